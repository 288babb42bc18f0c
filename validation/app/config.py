"""
Runtime configuration for the source validation engine.

This module centralizes environment-driven configuration for the engine:
resource limits applied while collecting submitted files, the staging
area used for archive extraction, and the diagnostic log level.

Configuration is read-only at runtime and must not influence which
sources are considered verified.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from pydantic import BaseModel, Field, field_validator


class ValidationConfig(BaseModel):
    """
    Runtime configuration for the source validation engine.

    Configuration is environment-driven and immutable once constructed.
    """

    # ------------------------------------------------------------------
    # Input limits
    # ------------------------------------------------------------------

    MAX_FILE_SIZE_MB: int = Field(
        30,
        description="Maximum size of a single file read from disk, in megabytes",
    )

    MAX_ARCHIVE_DEPTH: int = Field(
        8,
        description=(
            "Maximum nesting level at which archives are still expanded. "
            "Deeper archives are kept as plain files."
        ),
    )

    # ------------------------------------------------------------------
    # Archive extraction
    # ------------------------------------------------------------------

    STAGING_DIR: Path | None = Field(
        None,
        description=(
            "Parent directory for transient archive extraction. "
            "Defaults to the system temporary directory."
        ),
    )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    LOG_LEVEL: str = Field(
        "INFO",
        description="Level applied to the engine logger",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("MAX_FILE_SIZE_MB", "MAX_ARCHIVE_DEPTH")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Limit must be positive, got {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in allowed:
            raise ValueError(
                f"Unsupported LOG_LEVEL '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return level

    @field_validator("STAGING_DIR")
    @classmethod
    def staging_dir_must_exist(cls, v: Path | None) -> Path | None:
        if v is not None and not v.is_dir():
            raise ValueError(
                f"Configured STAGING_DIR is not a directory: {v}"
            )
        return v

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def max_file_size_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.LOG_LEVEL)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "ValidationConfig":
        """
        Load configuration from environment variables.

        All values are parsed once and must remain immutable.
        """
        staging_env = os.getenv("VALIDATION_STAGING_DIR")

        return cls(
            MAX_FILE_SIZE_MB=int(
                os.getenv("VALIDATION_MAX_FILE_SIZE_MB", "30")
            ),
            MAX_ARCHIVE_DEPTH=int(
                os.getenv("VALIDATION_MAX_ARCHIVE_DEPTH", "8")
            ),
            STAGING_DIR=(
                Path(staging_env)
                if staging_env
                else None
            ),
            LOG_LEVEL=os.getenv("VALIDATION_LOG_LEVEL", "INFO"),
        )

    model_config = {
        "frozen": True,
    }
