"""
Configuration — typed, validated settings and plugin metadata.

Runtime settings use pydantic-settings:
  - Load from environment variables (12-factor app)
  - Fall back to .env file
  - Validate types and constraints at startup

Per-call values (gateway address, admin key, certificate) are NOT settings:
they arrive with each request. Settings only tune how the plugin talks to
the gateway and how it logs.

Plugin metadata (name, version, supported actions and their parameters) is
shipped as package data in metadata.json, parsed once per process and never
mutated afterwards.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from railway import ErrorCode
from railway.result import Result

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    http_timeout_seconds: int = Field(default=30, ge=1, description="Per-request timeout for admin API calls")
    verify_tls: bool = Field(default=True, description="Verify the admin API's TLS certificate")
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level


class ActionParam(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    required: bool = False
    description: str = ""


class ActionMetadata(BaseModel):
    """One action the plugin host may invoke."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    params: dict[str, ActionParam] = Field(default_factory=dict)


class PluginMetadata(BaseModel):
    """Static plugin description returned by `get_metadata`."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    version: str
    author: str = ""
    actions: tuple[ActionMetadata, ...] = ()

    def action_names(self) -> list[str]:
        return [action.name for action in self.actions]

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def _read_metadata() -> PluginMetadata:
    raw = resources.files("apisix_certbind").joinpath("metadata.json").read_text(encoding="utf-8")
    return PluginMetadata.model_validate(json.loads(raw))


@lru_cache(maxsize=1)
def load_metadata() -> Result[PluginMetadata]:
    """
    Parse the bundled metadata.json once per process.

    Returns Result.failure(CONFIGURATION_ERROR) if the file is missing or
    does not match PluginMetadata.
    """
    return Result.from_computation(
        _read_metadata,
        ErrorCode.CONFIGURATION_ERROR,
        "failed to load plugin metadata",
    )


def load_settings() -> Result[AppSettings]:
    """Build AppSettings from the environment, capturing validation errors."""
    try:
        return Result.success(AppSettings())
    except ValidationError as e:
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, f"invalid settings: {e}", e)
