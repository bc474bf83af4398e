"""Configuration loader."""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigError

APP_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")


class AppConfig(BaseModel):
    """Application being provisioned."""

    name: str
    description: str = "A modern Laravel + React + TypeScript application"
    workspace_root: Path = Field(default_factory=lambda: Path.home() / "Documents" / "apps")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not APP_NAME_PATTERN.match(v):
            raise ValueError("App name must contain only lowercase letters, numbers, and hyphens")
        return v

    @field_validator("workspace_root", mode="before")
    @classmethod
    def expand_root(cls, v: object) -> Path:
        return Path(str(v)).expanduser()


class TrackerConfig(BaseModel):
    """Issue tracker group/container selection and ticketing behavior."""

    enabled: bool = True
    required: bool = False  # Fail the run when the tracker is unreachable
    team_id: Optional[str] = None
    create_new_team: bool = False
    new_team_name: Optional[str] = None
    project_id: Optional[str] = None
    create_new_project: bool = True
    auto_start: bool = False
    ai_dependencies: bool = False
    reconcile_orphans: bool = True
    confirm_before_mutation: bool = True
    backup_dir: Path = Field(default_factory=lambda: Path.home() / "linear-backups")

    @field_validator("backup_dir", mode="before")
    @classmethod
    def expand_backup_dir(cls, v: object) -> Path:
        return Path(str(v)).expanduser()

    @model_validator(mode="after")
    def check_selection(self) -> "TrackerConfig":
        if not self.enabled:
            return self
        if self.create_new_team and not self.new_team_name:
            raise ValueError("tracker.new_team_name is required when create_new_team is set")
        if not self.create_new_team and not self.team_id:
            raise ValueError("tracker.team_id is required unless create_new_team is set")
        if not self.create_new_project and not self.project_id:
            raise ValueError("tracker.project_id is required unless create_new_project is set")
        return self


class CodeHostConfig(BaseModel):
    """Code-hosting remote."""

    repo_url: Optional[str] = None
    branch: str = "main"
    commit_message: str = "Initial commit: Laravel + React + TypeScript setup"
    docs_commit_message: str = "Add work item documentation"


class DeployConfig(BaseModel):
    """Deployment platform site settings."""

    enabled: bool = False
    required: bool = False  # Site creation failure aborts the run
    server_id: Optional[str] = None
    domain: Optional[str] = None
    project_type: str = "laravel"
    php_version: str = "php81"
    database: Optional[str] = "mysql"
    database_name: Optional[str] = None


class RetryConfig(BaseModel):
    """Retry policy for remote calls."""

    max_attempts: int = Field(3, ge=1)
    initial_delay_ms: int = Field(1000, ge=0)
    backoff_multiplier: int = Field(2, ge=1)


class PacingConfig(BaseModel):
    """Spacing between bulk tracker writes."""

    bulk_write_delay_ms: int = Field(300, ge=0)


class CompletionConfig(BaseModel):
    """Completion service used for dependency inference."""

    model: str = "gpt-4o"
    temperature: float = 0.1
    max_tokens: int = 1000
    timeout_s: float = 60.0


class ProvisioningConfig(BaseModel):
    """Provisioning configuration model."""

    app: AppConfig
    tracker: TrackerConfig = Field(default_factory=lambda: TrackerConfig(enabled=False))
    code_host: CodeHostConfig = Field(default_factory=CodeHostConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)

    @property
    def workspace_path(self) -> Path:
        """Directory the run creates for the application."""
        return self.app.workspace_root / self.app.name


class Secrets(BaseModel):
    """API credentials read from the environment."""

    linear_api_key: str = ""
    forge_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None


def load_config(config_path: str | Path = "config/provisioning.yaml") -> ProvisioningConfig:
    """
    Load provisioning configuration from YAML file.

    Args:
        config_path: Path to config file

    Returns:
        Loaded configuration

    Raises:
        FileNotFoundError: If config file not found
        yaml.YAMLError: If config file is not valid YAML
        ConfigError: If config values fail validation
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    try:
        return ProvisioningConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e


def load_secrets() -> Secrets:
    """Read API credentials from the (dotenv-populated) environment."""
    return Secrets(
        linear_api_key=os.getenv("LINEAR_API_KEY", "").strip(),
        forge_api_key=os.getenv("FORGE_API_KEY", "").strip(),
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
    )
