"""Exception hierarchy for the provisioning pipeline."""

from typing import Optional


class ProvisioningError(Exception):
    """Base class for all provisioning failures."""


class ConfigError(ProvisioningError):
    """Configuration file or environment is missing or invalid."""


class TrackerAPIError(ProvisioningError):
    """Issue tracker returned a non-2xx response or a GraphQL error payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CodeHostError(ProvisioningError):
    """A git command against the local repository or remote failed."""


class DeploymentError(ProvisioningError):
    """Deployment platform rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CompletionError(ProvisioningError):
    """Completion service failed or returned output that could not be parsed."""


class UserCancelledError(ProvisioningError):
    """Operator declined to continue at a confirmation prompt."""
