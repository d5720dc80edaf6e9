"""
Centralised configuration loader for GoalBot.

Loads config/goalbot.yaml once, then exposes each section through an
accessor that merges it over built-in defaults, so the bot still starts
when the file or a section is missing.

Usage:
    from goalbot.utils.config import get_storage_config, get_scanner_config

Secrets (the Discord token) are not kept here; they come from the
environment / .env.
"""

import logging
import os
from typing import Any, Dict, Optional

import yaml

from goalbot.utils.paths import base_path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "goalbot.yaml"

# ---------------------------------------------------------------------------
# Internal cache
# ---------------------------------------------------------------------------
_config_cache: Optional[Dict[str, Any]] = None


def _load_yaml(filename: str) -> Dict[str, Any]:
    """Load a YAML file from config/ and return as dict (empty on failure)."""
    path = os.path.join(base_path(), "config", filename)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.debug("Could not load %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level is not a mapping", path)
        return {}
    return data


def _config() -> Dict[str, Any]:
    """Return cached goalbot.yaml contents."""
    global _config_cache
    if _config_cache is None:
        _config_cache = _load_yaml(CONFIG_FILENAME)
    return _config_cache


def reload() -> None:
    """Force re-read of the config file."""
    global _config_cache
    _config_cache = None


def _section(name: str, defaults: Dict[str, Any]) -> Dict[str, Any]:
    section = _config().get(name, {}) or {}
    merged = dict(defaults)
    merged.update({k: v for k, v in section.items() if v is not None})
    return merged


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

_STORAGE_DEFAULTS: Dict[str, Any] = {
    "backend": "json",
    "data_dir": "data",
}


def get_storage_config() -> Dict[str, Any]:
    """Return the ``storage`` section with defaults (backend: json | memory)."""
    merged = _section("storage", _STORAGE_DEFAULTS)
    merged["backend"] = str(merged["backend"]).strip().lower()
    merged["data_dir"] = str(merged["data_dir"])
    return merged


# ---------------------------------------------------------------------------
# Goal scanner
# ---------------------------------------------------------------------------

_SCANNER_DEFAULTS: Dict[str, Any] = {
    "enabled": True,
    "interval_seconds": 600,
}


def get_scanner_config() -> Dict[str, Any]:
    """Return the ``scanner`` section with defaults."""
    merged = _section("scanner", _SCANNER_DEFAULTS)
    merged["enabled"] = bool(merged["enabled"])
    merged["interval_seconds"] = float(merged["interval_seconds"])
    return merged


# ---------------------------------------------------------------------------
# Discord
# ---------------------------------------------------------------------------

_DISCORD_DEFAULTS: Dict[str, Any] = {
    "sync_commands": True,
    "send_timeout_seconds": 10,
}


def get_discord_config() -> Dict[str, Any]:
    """Return the ``discord`` section with defaults."""
    merged = _section("discord", _DISCORD_DEFAULTS)
    merged["sync_commands"] = bool(merged["sync_commands"])
    merged["send_timeout_seconds"] = float(merged["send_timeout_seconds"])
    return merged
