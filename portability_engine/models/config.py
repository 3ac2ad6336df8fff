"""
Configuration models for the Portability Engine.

This module defines the engine settings: pipeline timeouts, export
expiry, download URLs, catalog location and logging. Settings can be
built from defaults, a YAML/JSON file, or PORTABILITY_* environment
variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from portability_engine.utils.helpers import load_config_file

ENV_PREFIX = "PORTABILITY_"

# Environment variables understood by EngineSettings.from_env
_ENV_FIELDS = {
    "DOWNLOAD_BASE_URL": "download_base_url",
    "EXPORT_TTL_DAYS": "export_ttl_days",
    "STAGE_TIMEOUT": "stage_timeout",
    "MAX_PIPELINE_DURATION": "max_pipeline_duration",
    "CATALOG_DIR": "catalog_dir",
    "LOG_LEVEL": "log_level",
    "LOG_FILE": "log_file",
    "AUDIT_LOG_FILE": "audit_log_file",
}


class StageDelays(BaseModel):
    """Seconds the local packaging backend spends in each stage."""
    preparing: float = Field(default=1.0, ge=0)
    packaging: float = Field(default=1.5, ge=0)
    encrypting: float = Field(default=0.5, ge=0)


class EngineSettings(BaseModel):
    """Settings shared by every engine component."""
    download_base_url: str = "/api/portability"
    export_ttl_days: int = Field(default=7, gt=0)
    stage_timeout: float = Field(default=60.0, gt=0)
    max_pipeline_duration: float = Field(default=300.0, gt=0)
    stage_delays: StageDelays = Field(default_factory=StageDelays)
    catalog_dir: Optional[str] = None
    encryption_key_env: str = "PORTABILITY_KEY"
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    audit_log_file: Optional[str] = None

    @field_validator('download_base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')

    @field_validator('log_level')
    @classmethod
    def valid_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f'Unknown log level: {v}')
        return level

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> "EngineSettings":
        """Load settings from a YAML or JSON file."""
        data = load_config_file(file_path) or {}
        return cls(**data)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "EngineSettings":
        """Build settings from PORTABILITY_* environment variables."""
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for suffix, field_name in _ENV_FIELDS.items():
            raw = environ.get(f"{ENV_PREFIX}{suffix}")
            if raw not in (None, ""):
                values[field_name] = raw
        values.update(overrides)
        return cls(**values)
