"""
silib.config — Configuration singleton for SceptreImport.

Provides thread-safe lazy loading of config.json merged over built-in
defaults, and accessors used by the rest of the framework.

Imports nothing from utils.py.
"""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict[str, Any] = {
    "default_region": "ap-southeast-2",
    "sceptre_environment_dir": "/app/sceptre-environment",
    "sceptre_template_dir": "/app/streamotion-platform-sceptre",
    "tracked_branch": "master",
    "git_remote": "origin",
    "change_set_name": "ImportChangeSet",
    "capabilities": ["CAPABILITY_NAMED_IAM"],
    # Tags to ignore when importing custom resource tags.
    "tags_to_ignore": [
        "Environment",
        "Contact",
        "Team",
        "Department",
        "Project",
        "SourceControlPath",
        "Version",
        "Creator",
    ],
    "waiter": {
        "delay": 10,
        "max_attempts": 360,
    },
    "aws_sdk_config": {
        "retries": {"max_attempts": 5, "mode": "adaptive"},
        "connect_timeout": 10,
        "read_timeout": 60,
    },
}

# ---------------------------------------------------------------------------
# Module-level state (config singleton)
# ---------------------------------------------------------------------------

CONFIG_DATA: Dict[str, Any] = {}
_CONFIG_LOADED: bool = False
_CONFIG_LOCK: threading.Lock = threading.Lock()


def _config_path() -> Path:
    """Return the absolute path to config.json (project root)."""
    # silib/config.py lives one level below the project root
    return Path(__file__).parent.parent / "config.json"


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def load_config() -> Dict[str, Any]:
    """
    Load configuration from config.json, merged over DEFAULT_CONFIG.

    A missing file is not an error: the defaults are used as-is. A file that
    cannot be parsed is logged and ignored.

    Returns:
        dict: CONFIG_DATA
    """
    global CONFIG_DATA

    config_file = _config_path()
    overrides: Dict[str, Any] = {}

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                overrides = json.load(f)
            logger.debug("Configuration loaded from %s", config_file)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading configuration from %s: %s", config_file, e)
    else:
        logger.debug("config.json not found. Using default configuration.")

    CONFIG_DATA = _merge(DEFAULT_CONFIG, overrides)
    return CONFIG_DATA


def get_config() -> Dict[str, Any]:
    """
    Lazy-load configuration. First call loads from disk; subsequent calls return cached values.
    Thread-safe: uses _CONFIG_LOCK to prevent concurrent initialization.

    Returns:
        dict: CONFIG_DATA
    """
    global _CONFIG_LOADED, CONFIG_DATA
    with _CONFIG_LOCK:
        if not _CONFIG_LOADED:
            CONFIG_DATA = load_config()
            _CONFIG_LOADED = True
    return CONFIG_DATA


def reset_config() -> None:
    """Drop the cached configuration so the next access reloads it."""
    global _CONFIG_LOADED, CONFIG_DATA
    with _CONFIG_LOCK:
        _CONFIG_LOADED = False
        CONFIG_DATA = {}


# ---------------------------------------------------------------------------
# Config value accessors
# ---------------------------------------------------------------------------


def config_value(key: str, default: Any = None, section: Optional[str] = None) -> Any:
    """
    Get a value from the configuration.

    Args:
        key: Configuration key
        default: Default value if key is not found
        section: Optional section in the configuration

    Returns:
        The configuration value or default
    """
    cfg = get_config()
    if not cfg:
        return default

    if section:
        if isinstance(cfg.get(section), dict) and key in cfg[section]:
            return cfg[section][key]
    elif key in cfg:
        return cfg[key]

    return default


def get_tags_to_ignore() -> list:
    """Return the tag keys that are never carried into a values file."""
    return list(config_value("tags_to_ignore", DEFAULT_CONFIG["tags_to_ignore"]))
