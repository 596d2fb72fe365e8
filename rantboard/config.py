"""
Configuration for Rantboard.

Handles paths, defaults, JSON config file, and environment-based overrides.
Configuration is loaded from ~/.rantboard/config.json with sensible defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Default data directory: ~/.rantboard/
DEFAULT_DATA_DIR = Path.home() / ".rantboard"
CONFIG_FILE_NAME = "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "database_url": None,  # Falls back to sqlite:///<data_dir>/board.db
    "listen_addr": "127.0.0.1:8080",
    "public_url": "http://localhost:8080",
    "stytch_project_id": None,
    "stytch_secret": None,
    "dev_mode": False,
    "session_cookie_name": "stytch_session",
    "session_duration_minutes": 60 * 24 * 7,
    "identity_timeout_seconds": 10,
    "enforce_post_ownership": False,
    "dedupe_upvotes": False,
    "limits": {
        "slug_max_length": 64,
        "comment_max_length": 1000,
        "description_max_length": 500,
        "preferred_name_max_length": 50,
        "contact_me_max_length": 200,
    },
}

_TRUTHY = ("1", "true", "yes", "on")

# Module-level config cache
_config_cache: Optional[Dict[str, Any]] = None


def get_data_dir() -> Path:
    """Get the data directory (not created)."""
    return Path(os.environ.get("RANTBOARD_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_data_dir() / CONFIG_FILE_NAME


def ensure_data_dir() -> Path:
    """Create data directory if it doesn't exist."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in _TRUTHY


def load_config() -> Dict[str, Any]:
    """
    Load configuration from JSON file, with defaults for missing values.

    Environment variables can override config file values:
    - RANTBOARD_DATA_DIR: Override data directory
    - RANTBOARD_DATABASE_URL: Override database_url
    - RANTBOARD_PUBLIC_URL: Override public_url (used for magic link redirects)
    - LISTEN_ADDR: Override listen_addr
    - STYTCH_PROJECT_ID / STYTCH_SECRET: Identity provider credentials
    - DEV_ENV: "TRUE" enables development mode (admin reset)
    - RANTBOARD_ENFORCE_OWNERSHIP: Restrict mood/description edits to the post owner
    - RANTBOARD_DEDUPE_UPVOTES: Allow one upvote per voter per comment

    Returns:
        Dict containing configuration values
    """
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    config = json.loads(json.dumps(DEFAULT_CONFIG))  # deep copy
    config_path = get_config_path()

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                file_config = json.load(f)
            limits = {**config["limits"], **file_config.pop("limits", {})}
            config.update(file_config)
            config["limits"] = limits
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Could not load config from %s: %s", config_path, e)

    if os.environ.get("RANTBOARD_DATABASE_URL"):
        config["database_url"] = os.environ["RANTBOARD_DATABASE_URL"]

    if os.environ.get("RANTBOARD_PUBLIC_URL"):
        config["public_url"] = os.environ["RANTBOARD_PUBLIC_URL"]

    if os.environ.get("LISTEN_ADDR"):
        config["listen_addr"] = os.environ["LISTEN_ADDR"]

    if os.environ.get("STYTCH_PROJECT_ID"):
        config["stytch_project_id"] = os.environ["STYTCH_PROJECT_ID"]

    if os.environ.get("STYTCH_SECRET"):
        config["stytch_secret"] = os.environ["STYTCH_SECRET"]

    if os.environ.get("DEV_ENV"):
        config["dev_mode"] = os.environ["DEV_ENV"] == "TRUE"

    for env_name, key in (
        ("RANTBOARD_ENFORCE_OWNERSHIP", "enforce_post_ownership"),
        ("RANTBOARD_DEDUPE_UPVOTES", "dedupe_upvotes"),
    ):
        flag = _env_flag(env_name)
        if flag is not None:
            config[key] = flag

    _config_cache = config
    return config


def clear_config_cache() -> None:
    """Clear the config cache, forcing reload on next access."""
    global _config_cache
    _config_cache = None


def get_database_url() -> str:
    """Get the database URL, defaulting to a SQLite file in the data directory."""
    url = load_config().get("database_url")
    if url:
        return url
    return f"sqlite:///{get_data_dir() / 'board.db'}"


def is_postgres(db_url: Optional[str] = None) -> bool:
    """True when db_url (default: the configured database) is PostgreSQL."""
    return (db_url or get_database_url()).startswith(("postgresql", "postgres"))


def get_listen_addr() -> str:
    return load_config().get("listen_addr", DEFAULT_CONFIG["listen_addr"])


def get_public_url() -> str:
    return load_config().get("public_url", DEFAULT_CONFIG["public_url"]).rstrip("/")


def get_stytch_credentials() -> tuple:
    """Get (project_id, secret) for the identity provider. Either may be None."""
    config = load_config()
    return config.get("stytch_project_id"), config.get("stytch_secret")


def is_dev_mode() -> bool:
    return bool(load_config().get("dev_mode"))


def get_session_cookie_name() -> str:
    return load_config().get("session_cookie_name", DEFAULT_CONFIG["session_cookie_name"])


def get_session_duration_minutes() -> int:
    return int(load_config().get("session_duration_minutes", DEFAULT_CONFIG["session_duration_minutes"]))


def get_identity_timeout() -> float:
    """Seconds before a stalled identity provider call is abandoned."""
    return float(load_config().get("identity_timeout_seconds", DEFAULT_CONFIG["identity_timeout_seconds"]))


def enforce_post_ownership() -> bool:
    return bool(load_config().get("enforce_post_ownership"))


def dedupe_upvotes() -> bool:
    return bool(load_config().get("dedupe_upvotes"))


def get_limit(name: str) -> int:
    """Get a field length limit, e.g. get_limit("comment_max_length")."""
    limits = load_config().get("limits", {})
    return int(limits.get(name, DEFAULT_CONFIG["limits"][name]))
