"""Configuration helpers for the service desk insights tools."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigError

PACKAGE_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_CONFIG_LOCATIONS = (
    PACKAGE_ROOT / "config" / "config.yaml",
    PACKAGE_ROOT / "config" / "config.yml",
    Path("./config/config.yaml"),
    Path("./config/config.yml"),
    Path.home() / ".desk_insights" / "config.yaml",
)


def resolve_path(path_str: str | None, *, base: Path | None = None) -> Path:
    """Resolve a path string that may be relative to an optional base directory."""
    base_path = base or Path.cwd()
    if not path_str:
        return base_path
    path = Path(path_str)
    if not path.is_absolute():
        path = base_path / path
    return path


POSITIVE_INT_KEYS = ("analysis_datapoints", "listing_datapoints", "timeout")


def _positive_int(section: str, key: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if isinstance(value, bool) or number <= 0:
        raise ConfigError(f"{section}.{key} must be a positive integer, got {value!r}")
    return number


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check the ``service_desk`` and ``server`` sections and coerce their numbers.

    Missing sections are allowed; the client and server fall back to their
    defaults for anything not configured.
    """
    desk_cfg = config.get("service_desk")
    if desk_cfg is not None:
        if not isinstance(desk_cfg, dict):
            raise ConfigError("service_desk must be a mapping")
        for key in ("base_url", "issues_path"):
            if key in desk_cfg and not isinstance(desk_cfg[key], str):
                raise ConfigError(f"service_desk.{key} must be a string")
        for key in POSITIVE_INT_KEYS:
            if key in desk_cfg:
                desk_cfg[key] = _positive_int("service_desk", key, desk_cfg[key])

    server_cfg = config.get("server")
    if server_cfg is not None:
        if not isinstance(server_cfg, dict):
            raise ConfigError("server must be a mapping")
        if "port" in server_cfg:
            server_cfg["port"] = _positive_int("server", "port", server_cfg["port"])
    return config


def load_config(path: str | os.PathLike[str] | None = None) -> Dict[str, Any]:
    """Load configuration from YAML.

    Parameters
    ----------
    path: Optional path to a configuration file. If not provided, default
        locations will be searched.
    """
    if path:
        candidate_paths = [Path(path)]
    else:
        candidate_paths = list(DEFAULT_CONFIG_LOCATIONS)

    for candidate in candidate_paths:
        if candidate.exists():
            with candidate.open("r", encoding="utf-8") as handle:
                try:
                    data = yaml.safe_load(handle) or {}
                except yaml.YAMLError as exc:
                    raise ConfigError(f"Unable to parse configuration file {candidate}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration file {candidate} must contain a mapping")
            return validate_config(data)
    raise ConfigError(
        "No configuration file could be located. Provide --config or create "
        "config/config.yaml."
    )
