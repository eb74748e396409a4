"""
Pydantic Settings Configuration
=================================

Type-safe configuration management using Pydantic.
Validates all configuration values at startup and fails fast with clear
error messages. AI Core credentials are loaded once and are immutable
for the lifetime of the process.
"""

import json
import os
from importlib import metadata
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from devportal.core.exceptions import CredentialsInvalidError, CredentialsNotConfiguredError

CREDENTIALS_ENV_VAR = "AI_CORE_CREDENTIALS"


def _project_version() -> str:
    """Resolve the project version from package metadata."""
    try:
        return metadata.version("devportal-aicore")
    except metadata.PackageNotFoundError:
        return "0.0.0-dev"


def _validate_http_url(value: str, field_name: str) -> str:
    v = value.strip()
    if not v.startswith(("http://", "https://")):
        raise ValueError(f"{field_name} must be an http(s) URL, got {value!r}")
    return v.rstrip("/")


class AICoreCredentials(BaseModel):
    """Credentials of a single AI Core instance (one per team)"""
    team: str = Field(..., min_length=1, description="Team / instance name")
    client_id: str = Field(..., alias="clientId", min_length=1, description="OAuth client id")
    client_secret: SecretStr = Field(..., alias="clientSecret", description="OAuth client secret")
    oauth_url: str = Field(..., alias="oAuthURL", description="OAuth token endpoint")
    api_url: str = Field(..., alias="apiUrl", description="AI Core API base URL")
    resource_group: str = Field("default", alias="resourceGroup", description="AI Core resource group")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra='ignore')

    @field_validator('team')
    @classmethod
    def strip_team(cls, v: str) -> str:
        return v.strip()

    @field_validator('oauth_url')
    @classmethod
    def validate_oauth_url(cls, v: str) -> str:
        return _validate_http_url(v, "oAuthURL")

    @field_validator('api_url')
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        return _validate_http_url(v, "apiUrl")

    @field_validator('resource_group')
    @classmethod
    def default_resource_group(cls, v: str) -> str:
        return v.strip() or "default"


class AICoreConfig(BaseModel):
    """AI Core gateway configuration"""
    credentials: List[AICoreCredentials] = Field(default_factory=list, description="Per-team credentials")
    http_timeout_seconds: float = Field(15.0, ge=1, le=300, description="Timeout per upstream call")
    token_expiry_leeway_seconds: int = Field(30, ge=0, le=600, description="Treat tokens as expired this early")
    max_concurrent_instances: int = Field(8, ge=1, le=128, description="Parallel instance listings")
    orchestration_model_name: str = Field("gpt-4o", description="Model used by orchestration when none is reported")
    anthropic_default_max_tokens: int = Field(1024, ge=1, description="max_tokens sent to Anthropic when unset")

    model_config = ConfigDict(extra='allow')

    @model_validator(mode='after')
    def reject_duplicate_teams(self) -> "AICoreConfig":
        seen: set[str] = set()
        for creds in self.credentials:
            if creds.team in seen:
                raise ValueError(f"Duplicate AI Core credentials for team {creds.team!r}")
            seen.add(creds.team)
        return self


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field("json", description="Log format (json, text)")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {'json', 'text'}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v_lower

    model_config = ConfigDict(extra='allow')


class Settings(BaseSettings):
    """
    Main application settings with type validation.

    Configuration is loaded from:
    1. YAML config file (if provided)
    2. Environment variables with DEVPORTAL_ prefix (override)
    3. The legacy AI_CORE_CREDENTIALS JSON variable (credentials only)
    4. Default values (fallback)

    Environment variable mapping uses double-underscore nesting:
      DEVPORTAL_AICORE__HTTP_TIMEOUT_SECONDS
      DEVPORTAL_LOGGING__LEVEL
    """

    aicore: AICoreConfig = Field(default_factory=AICoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    project_name: str = Field("devportal-aicore", description="Project name")
    version: str = Field(default_factory=_project_version, description="Project version")

    model_config = ConfigDict(
        env_prefix='DEVPORTAL_',
        env_nested_delimiter='__',
        extra='allow',
        validate_assignment=True,
    )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            pydantic.ValidationError: If configuration is invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables only."""
        return cls()

    @property
    def configured_instances(self) -> list[str]:
        """Team names that have credentials, in configuration order."""
        return [c.team for c in self.aicore.credentials]


_CREDENTIALS_ADAPTER = TypeAdapter(List[AICoreCredentials])


def load_aicore_credentials(raw: Optional[str] = None) -> list[AICoreCredentials]:
    """
    Parse the JSON array of credential records from AI_CORE_CREDENTIALS.

    Args:
        raw: JSON text to parse; read from the environment when omitted

    Raises:
        CredentialsNotConfiguredError: If the variable is not set
        CredentialsInvalidError: If the JSON or a record is malformed
    """
    if raw is None:
        raw = os.environ.get(CREDENTIALS_ENV_VAR)
    if raw is None or not raw.strip():
        raise CredentialsNotConfiguredError(f"{CREDENTIALS_ENV_VAR} environment variable not set")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CredentialsInvalidError(f"failed to parse {CREDENTIALS_ENV_VAR}: {e}") from e

    try:
        credentials = _CREDENTIALS_ADAPTER.validate_python(data)
        AICoreConfig(credentials=credentials)
    except PydanticValidationError as e:
        raise CredentialsInvalidError(
            f"failed to parse {CREDENTIALS_ENV_VAR}: {e.error_count()} invalid field(s)",
            {'errors': [err['msg'] for err in e.errors()]},
        ) from e
    return credentials


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """
    Load and validate application settings.

    Credentials come from the YAML file / DEVPORTAL_ variables when present,
    otherwise from AI_CORE_CREDENTIALS. Having none at all is not an error
    here: aggregation then yields empty results and instance-scoped
    operations fail with CredentialsNotConfiguredError.
    """
    if config_path:
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings.from_env()

    if not settings.aicore.credentials and os.environ.get(CREDENTIALS_ENV_VAR):
        settings.aicore = settings.aicore.model_copy(
            update={'credentials': load_aicore_credentials()}
        )

    return settings


__all__ = [
    'AICoreConfig',
    'AICoreCredentials',
    'CREDENTIALS_ENV_VAR',
    'LoggingConfig',
    'Settings',
    'load_aicore_credentials',
    'load_settings',
]
