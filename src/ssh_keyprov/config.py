"""Settings with pydantic-settings.

All fields have defaults; override via ``KEYPROV_*`` environment variables
or a ``.env`` file in the working directory.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Key provisioning settings."""

    model_config = SettingsConfigDict(
        env_prefix="KEYPROV_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging configuration
    service_name: str = Field(
        default="ssh-keyprov",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Local key storage
    local_ssh_dir: Path = Field(
        default_factory=lambda: Path.home() / ".ssh",
        description="Directory holding the local id_rsa / id_rsa.pub pair",
    )
    rsa_key_bits: int = Field(
        default=2048,
        ge=1024,
        description="Modulus size for locally generated RSA keys",
    )
    local_key_comment_host: str = Field(
        default="localcomputer",
        description="Host part of the '<user>@<host>' comment on generated public keys",
    )

    # Remote session
    connect_timeout: float = Field(
        default=15.0,
        gt=0,
        description="TCP connect timeout for remote sessions, in seconds",
    )
    command_poll_interval: float = Field(
        default=0.1,
        gt=0,
        description="How often a running remote command checks the cancel flag, in seconds",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("local_ssh_dir")
    @classmethod
    def expand_ssh_dir(cls, v: Path) -> Path:
        return v.expanduser()

    @property
    def local_private_key_path(self) -> Path:
        return self.local_ssh_dir / "id_rsa"

    @property
    def local_public_key_path(self) -> Path:
        return self.local_ssh_dir / "id_rsa.pub"


def get_settings() -> Settings:
    return Settings()
