"""
Configuration loader for Voratiq.
Merges defaults with per-repo .voratiq/config.yaml overrides.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class RunPreset(BaseModel):
    spec_path: str
    test_command: str | None = None


class VoratiqConfig(BaseModel):
    default: RunPreset | None = None
    presets: dict[str, RunPreset] = Field(default_factory=dict)
    jobs: int = Field(default=1, ge=1)

    def resolve_preset(self, name: str | None) -> RunPreset | None:
        if name is None:
            return self.default
        if name not in self.presets:
            known = ", ".join(sorted(self.presets)) or "none"
            raise ValueError(f"Unknown preset '{name}' (configured: {known})")
        return self.presets[name]


class ConfigError(Exception):
    """The repo config file could not be parsed or failed validation."""

    def __init__(self, file_path: Path, details: str):
        self.file_path = file_path
        self.details = details
        super().__init__(f"Invalid workspace config at {file_path}: {details}")


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"
REPO_CONFIG_RELATIVE = Path(".voratiq") / "config.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(path, str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(path, "top-level value must be a mapping")
    return data


def load_config(repo_path: Path | None = None) -> VoratiqConfig:
    """
    Load config by merging:
      1. Built-in defaults (voratiq/config.yaml)
      2. Repo-level overrides (<repo>/.voratiq/config.yaml)
    """
    base = _read_yaml(_DEFAULT_CONFIG_PATH)
    source = _DEFAULT_CONFIG_PATH

    if repo_path:
        repo_config = repo_path / REPO_CONFIG_RELATIVE
        if repo_config.exists():
            base = _deep_merge(base, _read_yaml(repo_config))
            source = repo_config

    try:
        return VoratiqConfig(**base)
    except ValidationError as e:
        details = ", ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(source, details) from e
