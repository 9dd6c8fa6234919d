"""
NodeIdent: Configuration System

All configuration is Pydantic-validated and loaded from:
1. An optional YAML file (defaults)
2. Environment variables (overrides, ``NODEIDENT_`` prefix)

The identity derivation scheme is deliberately absent here: its hash,
checksum length and prefix are constants shared with every other
implementation, not tunables.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nodeident.errors import ConfigurationError, CredentialIOError, EncodingError

# ─── Sub-configs ──────────────────────────────────────────────────


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


class CertificateConfig(BaseModel):
    """Fixed, insecure-for-testing certificate fields."""

    algorithm: str = "ecdsa-p256"
    common_name: str = "nodeident self signed cert"
    organization: str | None = None
    not_before: datetime = datetime(1975, 1, 1, tzinfo=timezone.utc)
    not_after: datetime = datetime(4096, 1, 1, tzinfo=timezone.utc)

    @field_validator("not_before", "not_after")
    @classmethod
    def _require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("validity timestamps must carry a timezone offset")
        return v

    @model_validator(mode="after")
    def _check_window(self) -> CertificateConfig:
        if self.not_after <= self.not_before:
            raise ValueError("not_after must be later than not_before")
        return self


class HarnessConfig(BaseModel):
    # Argument template for the second implementation; "{key}" and "{cert}"
    # are substituted. Empty means re-derive through our own CLI.
    deriver_command: list[str] = Field(default_factory=list)
    timeout_s: float = 120.0
    cleanup_before_run: bool = True


# ─── Root Config ──────────────────────────────────────────────────


class NodeIdentConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="NODEIDENT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    certificate: CertificateConfig = Field(default_factory=CertificateConfig)
    harness: HarnessConfig = Field(default_factory=HarnessConfig)


def load_config(config_path: str | Path | None = None) -> NodeIdentConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f) or {}
            except OSError as exc:
                raise CredentialIOError(f"failed to read config: {exc}", str(path)) from exc
            except yaml.YAMLError as exc:
                raise EncodingError(f"invalid YAML in {path}: {exc}") from exc
            if not isinstance(raw, dict):
                raise EncodingError(f"config root must be a mapping: {path}")

    if level := os.environ.get("NODEIDENT_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = level
    if algorithm := os.environ.get("NODEIDENT_ALGORITHM"):
        raw.setdefault("certificate", {})["algorithm"] = algorithm

    try:
        return NodeIdentConfig(**raw)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
