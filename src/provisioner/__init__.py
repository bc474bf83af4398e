"""Provisioner - workspace, tracker, code-host and deployment provisioning pipeline."""

__version__ = "0.3.0"
