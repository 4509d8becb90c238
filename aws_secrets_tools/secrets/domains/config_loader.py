"""Configuration loader for aws-secrets-tools."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .preferences import CONFIG_PATH_KEY, get_preference

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "aws-secrets-tools"
DEFAULT_CONFIG_NAME = "config.yml"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


@dataclass
class KeyFilterConfig:
    include: Optional[List[str]] = None
    exclude: Optional[List[str]] = None


@dataclass
class PushConfig(KeyFilterConfig):
    from_selectors: List[str] = field(default_factory=list)


@dataclass
class PullConfig(KeyFilterConfig):
    to: Optional[str] = None


@dataclass
class ToolsConfig:
    """Defaults for the secrets commands. CLI flags always take precedence."""
    region: Optional[str] = None
    xray: str = "auto"
    paths: List[str] = field(default_factory=lambda: ["./"])
    dotenv_token: str = ".env"
    private_token: str = "local"
    default_env: Optional[str] = None
    secret_name: Optional[str] = None
    template_extension: str = "template"
    push: PushConfig = field(default_factory=PushConfig)
    pull: PullConfig = field(default_factory=PullConfig)
    source: Optional[str] = None


def default_config_path() -> Path:
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_NAME


def _get_config_path(explicit_path: Optional[str] = None) -> Optional[str]:
    """
    Find the config file.

    Priority order:
    1. Explicit path (--config); must exist
    2. User preference (stored in ~/.config/aws-secrets-tools/preferences.json)
    3. Default location: ~/.config/aws-secrets-tools/config.yml

    Returns:
        Path to the config file, or None when no config is present

    Raises:
        ConfigError: If an explicit path was given but does not exist
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Configuration file not found at: {path}")
        return str(path)

    config_path_pref = get_preference(CONFIG_PATH_KEY)
    if config_path_pref:
        path = Path(config_path_pref)
        if path.is_file():
            logger.info(f"Using config from preference: {path}")
            return str(path)
        logger.warning(f"Config path from preference doesn't exist: {path}")

    default_config = default_config_path()
    if default_config.is_file():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    return None


def _section(data: Dict[str, Any], name: str, where: str) -> Dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' in {where} must be a mapping")
    return value


def _str(section: Dict[str, Any], key: str, where: str, default: Optional[str] = None) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' in {where} must be a string (got {type(value).__name__})")
    return value


def _str_list(section: Dict[str, Any], key: str, where: str) -> Optional[List[str]]:
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' in {where} must be a list of strings")
    return value


def parse_config(data: Any, where: str = "config") -> ToolsConfig:
    """
    Validate raw config data and build a ToolsConfig.

    Unknown keys are ignored. Missing keys take their defaults.

    Raises:
        ConfigError: If a section is not a mapping or a value has the wrong type
    """
    if data is None:
        return ToolsConfig(source=where)
    if not isinstance(data, dict):
        raise ConfigError(f"Config at {where} must be a mapping")

    aws = _section(data, "aws", where)
    dotenv = _section(data, "dotenv", where)
    secrets = _section(data, "secrets", where)
    push = _section(secrets, "push", f"{where} (secrets)")
    pull = _section(secrets, "pull", f"{where} (secrets)")

    config = ToolsConfig(
        region=_str(aws, "region", where),
        xray=_str(aws, "xray", where, "auto"),
        paths=_str_list(dotenv, "paths", where) or ["./"],
        dotenv_token=_str(dotenv, "dotenv_token", where, ".env"),
        private_token=_str(dotenv, "private_token", where, "local"),
        default_env=_str(dotenv, "default_env", where),
        secret_name=_str(secrets, "secret_name", where),
        template_extension=_str(secrets, "template_extension", where, "template"),
        push=PushConfig(
            from_selectors=_str_list(push, "from", where) or [],
            include=_str_list(push, "include", where),
            exclude=_str_list(push, "exclude", where),
        ),
        pull=PullConfig(
            to=_str(pull, "to", where),
            include=_str_list(pull, "include", where),
            exclude=_str_list(pull, "exclude", where),
        ),
        source=where,
    )

    if config.xray not in ("auto", "on", "off"):
        raise ConfigError(f"'xray' in {where} must be one of auto, on, off (got {config.xray!r})")

    return config


def load_config(explicit_path: Optional[str] = None) -> ToolsConfig:
    """
    Load configuration from YAML.

    Args:
        explicit_path: Path given on the command line, if any

    Returns:
        Parsed config; built-in defaults when no config file exists

    Raises:
        ConfigError: If the file cannot be read or parsed, or is invalid
    """
    # Resolved on every call so preference changes apply immediately.
    config_path = _get_config_path(explicit_path)
    if config_path is None:
        logger.debug("No config file found, using defaults")
        return ToolsConfig()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    config = parse_config(data, config_path)
    logger.info(f"Configuration loaded successfully from {config_path}")
    return config
