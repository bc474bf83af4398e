"""Utility functions."""

from .resilient_caller import ResilientCaller
from .rate_limiter import RateLimiter, Pacer
from .config_loader import ProvisioningConfig, Secrets, load_config, load_secrets
from .structured_logging import setup_structured_logging
from .console_report import render_result, render_rollback_report

__all__ = [
    "ResilientCaller",
    "RateLimiter",
    "Pacer",
    "ProvisioningConfig",
    "Secrets",
    "load_config",
    "load_secrets",
    "setup_structured_logging",
    "render_result",
    "render_rollback_report",
]
