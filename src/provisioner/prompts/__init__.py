"""Prompt templates for the completion service."""

from .dependency_prompt import DEPENDENCY_SYSTEM_PROMPT, build_dependency_prompt

__all__ = [
    "DEPENDENCY_SYSTEM_PROMPT",
    "build_dependency_prompt",
]
