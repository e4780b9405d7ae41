"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (e.g., ~/.fetchkit/config.yaml). Keys are dotted
("cache.ttl_seconds"); the matching environment variable is the upper-cased
key with dots replaced by underscores and a FETCHKIT_ prefix
(FETCHKIT_CACHE_TTL_SECONDS).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
ENV_PREFIX = "FETCHKIT_"
DEFAULT_CONFIG_DIR = Path.home() / ".fetchkit"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

DEFAULT_API_BASE_URL = "https://biomaint.com/"
DEFAULT_CONTENT_BASE_URL = "http://localhost:8080/"
DEFAULT_CACHE_TTL_SECONDS = 30.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 20.0
DEFAULT_PRELOAD_NAMES = ("header", "footer")

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def env_var_name(key: str) -> str:
    return f"{ENV_PREFIX}{key.upper().replace('.', '_')}"


def load_configuration(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    reload: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config / the helpers below

    Args:
        config_file: Path to the YAML file (FETCHKIT_CONFIG_FILE or the default if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Re-read sources even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    if config_file is None:
        config_file = Path(os.environ.get(f"{ENV_PREFIX}CONFIG_FILE", DEFAULT_CONFIG_FILE))

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority; existing env vars win)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _coerce_env_value(value: str) -> Any:
    """Converts common scalar spellings from environment strings."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (FETCHKIT_<KEY>)
    3. YAML config
    4. Default value

    Args:
        key: The dotted configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce_env_value(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
        for path in [cwd] + list(cwd.parents):
            env_path = path / ENV_FILE_NAME
            if env_path.is_file():
                return env_path
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
    return None


# --- Convenience Functions ---

def get_api_base_url() -> str:
    return str(get_config("api.base_url", DEFAULT_API_BASE_URL))


def get_content_base_url() -> str:
    return str(get_config("content.base_url", DEFAULT_CONTENT_BASE_URL))


def get_api_token() -> Optional[str]:
    token = get_config("api.token")
    return str(token) if token else None


def _positive_float(key: str, default: float) -> float:
    raw = get_config(key)
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for '{key}': {raw!r}. Using default {default}.")
        return default
    if value <= 0:
        logger.warning(f"Non-positive value for '{key}': {value}. Using default {default}.")
        return default
    return value


def get_cache_ttl_seconds() -> float:
    """Content cache TTL override; absent or invalid values fall back to 30s."""
    return _positive_float("cache.ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)


def get_request_timeout() -> float:
    return _positive_float("http.timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS)


def get_preload_names() -> List[str]:
    """Resource names warmed up on startup (list in YAML, comma-separated in env)."""
    raw = get_config("content.preload", list(DEFAULT_PRELOAD_NAMES))
    if isinstance(raw, str):
        return [name.strip() for name in raw.split(",") if name.strip()]
    if isinstance(raw, (list, tuple)):
        return [str(name) for name in raw if str(name).strip()]
    return list(DEFAULT_PRELOAD_NAMES)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
