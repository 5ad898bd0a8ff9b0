import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from clientbuild.src.constants.cli_constants import DEFAULT_API_BASE_URL
from clientbuild.src.core.errors import ConfigError


def get_home_dir() -> Path:
    """Return the clientbuild home directory."""
    home = os.environ.get("CLIENTBUILD_HOME")
    return Path(home) if home else Path.home() / ".clientbuild"


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_home_dir() / "config.toml"


def get_state_path() -> Path:
    """Return the path to the login state written by the build service login."""
    return get_home_dir() / "state.json"


def load_config() -> Dict[str, Any]:
    """Load configuration from TOML file."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}")


def _setting(section: str, key: str, env: str, override: Optional[str] = None) -> Optional[str]:
    # option > environment > config file
    if override:
        return override
    if os.environ.get(env):
        return os.environ[env]
    return load_config().get(section, {}).get(key)


def get_apple_credentials(apple_id: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Get Apple credentials, either of which may be missing."""
    return {
        "apple_id": _setting("apple", "apple_id", "CLIENTBUILD_APPLE_ID", apple_id),
        "apple_password": _setting("apple", "apple_password", "CLIENTBUILD_APPLE_PASSWORD"),
    }


def get_team_id(team_id: Optional[str] = None) -> Optional[str]:
    return _setting("apple", "team_id", "CLIENTBUILD_TEAM_ID", team_id)


def get_session_dir() -> Path:
    """Get session directory from environment or config."""
    session_dir = _setting("apple", "session_dir", "CLIENTBUILD_SESSION_DIR")
    if session_dir:
        return Path(session_dir)

    return get_home_dir() / "sessions"


def get_api_base_url() -> str:
    base_url = _setting("api", "base_url", "CLIENTBUILD_API_URL")
    return (base_url or DEFAULT_API_BASE_URL).rstrip("/")


def is_non_interactive() -> bool:
    return bool(os.environ.get("NON_INTERACTIVE"))


def load_optional_overlay(path: Path) -> Optional[Dict[str, Any]]:
    """Load the custom app configuration if the file exists.

    A missing file is not an error. The overlay is the ``expo`` object when the
    file has one, otherwise the whole document.
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Failed to read custom configuration {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Custom configuration {path} must contain a JSON object")
    overlay = data.get("expo", data)
    return overlay if isinstance(overlay, dict) else None
