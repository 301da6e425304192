"""Packer configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from a .env file and PRELPACK_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PackerConfig(BaseSettings):
    """Packer configuration with environment variable overrides.

    All settings can be overridden via PRELPACK_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export PRELPACK_LOG_LEVEL=DEBUG
        export PRELPACK_STAGING_ROOT=/var/tmp
        export PRELPACK_STAGING_DIR_MODE=0750
        export PRELPACK_INSECURE_REGISTRIES='["localhost:5000"]'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PRELPACK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Staging area
    staging_prefix: str = "prel-packer"
    staging_root: Path | None = None  # None -> system temp directory
    staging_dir_mode: int = 0o755

    # Properties file inside the archive
    properties_file_name: str = "props"
    properties_file_mode: int = 0o666
    stdin_indicator: str = "-"

    # Archive writer
    exclusive_create: bool = False
    remove_partial_archive: bool = False

    # Network I/O (location reader and registry client)
    http_timeout_seconds: float = 60.0
    insecure_registries: list[str] = []
    user_agent: str = "prelpack"

    @field_validator("staging_dir_mode", "properties_file_mode", mode="before")
    @classmethod
    def _parse_octal_mode(cls, v: object) -> object:
        # Environment values are permission strings: "0755", "755" or "0o755"
        if isinstance(v, str):
            try:
                return int(v.strip(), 8)
            except ValueError as exc:
                raise ValueError(f"Invalid octal file mode: {v!r}") from exc
        return v
