"""
Application Analytics - Configuration Management

Supports loading configuration from:
1. .env file in the working directory (never overrides the process environment)
2. Environment variables (CUSTOMER_ID, CUSTOMER_SECRET, ANALYTICS_*)
3. YAML config file (--config)
4. Command-line arguments (highest priority)

Config file example:
```yaml
customer_id: ${CUSTOMER_ID}
output_file: "./analytics.csv"
log_level: INFO

api:
  url: https://api.cord.com
  timeout: 120
  retry_wait: 1
```

The customer secret is read from the environment (or .env) only, never from
the command line, to keep it out of shell history and process listings.
"""
import logging
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_API_URL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_WAIT,
)
from .utils import ConfigError

logger = logging.getLogger(__name__)


# Default config file locations (checked in order)
DEFAULT_CONFIG_PATHS = [
    './analytics-config.yaml',
    './analytics-config.yml',
    '~/.analytics/config.yaml',
    '~/.analytics/config.yml',
]

# Mapping from config keys to env vars
ENV_VAR_MAPPING = {
    'customer_id': 'CUSTOMER_ID',
    'customer_secret': 'CUSTOMER_SECRET',
    'output_file': 'ANALYTICS_OUTPUT_FILE',
    'log_level': 'ANALYTICS_LOG_LEVEL',
    'api.url': 'ANALYTICS_API_URL',
}


@dataclass
class AnalyticsConfig:
    """Resolved settings for one run."""
    customer_id: Optional[str] = None
    customer_secret: Optional[str] = None
    output_file: Optional[str] = None
    json_output: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_wait: float = DEFAULT_RETRY_WAIT

    def __repr__(self) -> str:
        return (
            f"AnalyticsConfig(customer_id={self.customer_id!r}, "
            f"customer_secret={'***' if self.customer_secret else None}, "
            f"output_file={self.output_file!r}, api_url={self.api_url!r})"
        )


def _substitute_env_vars(value: Any) -> Any:
    """Substitute ${ENV_VAR} patterns in string values."""
    if isinstance(value, str):
        # Pattern: ${VAR_NAME} or ${VAR_NAME:-default}
        pattern = r'\$\{([^}:]+)(?::-([^}]*))?\}'

        def replace(match):
            var_name = match.group(1)
            default = match.group(2) or ''
            return os.environ.get(var_name, default)

        return re.sub(pattern, replace, value)
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _get_nested(data: Dict, key_path: str, default: Any = None) -> Any:
    """Get a nested value from a dict using dot notation."""
    value = data
    for key in key_path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value


def _set_nested(data: Dict, key_path: str, value: Any) -> None:
    """Set a nested value in a dict using dot notation."""
    keys = key_path.split('.')
    for key in keys[:-1]:
        data = data.setdefault(key, {})
    data[keys[-1]] = value


def load_dotenv_file(path: str = '.env') -> bool:
    """Load a .env file if present. Existing environment variables win."""
    if not Path(path).exists():
        return False
    logger.debug(f"Loading environment from {path}")
    return load_dotenv(path, override=False)


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from a YAML file."""
    path = Path(config_path).expanduser()

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    # Warn if config file has loose permissions
    file_mode = path.stat().st_mode
    if file_mode & (stat.S_IRWXG | stat.S_IRWXO):
        logger.warning(f"Config file {config_path} has loose permissions. "
                       f"Consider: chmod 600 {config_path}")

    logger.info(f"Loading config from {path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    # Secrets belong in the environment
    if 'customer_secret' in config:
        logger.warning(f"Ignoring customer_secret in {config_path}; set CUSTOMER_SECRET instead")
        config.pop('customer_secret')

    return _substitute_env_vars(config)


def find_default_config() -> Optional[str]:
    """Find a config file in default locations."""
    for path in DEFAULT_CONFIG_PATHS:
        expanded = Path(path).expanduser()
        if expanded.exists():
            return str(expanded)
    return None


def load_env_config() -> Dict[str, Any]:
    """Load configuration from environment variables."""
    config: Dict[str, Any] = {}

    for config_key, env_var in ENV_VAR_MAPPING.items():
        value = os.environ.get(env_var)
        if value:
            _set_nested(config, config_key, value)

    return config


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge multiple config dicts. Later configs override earlier ones."""
    result: Dict[str, Any] = {}

    for config in configs:
        for key, value in config.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = merge_configs(result[key], value)
            elif value is not None:
                result[key] = value

    return result


def args_to_config(args) -> Dict[str, Any]:
    """Convert argparse args to config dict format."""
    config: Dict[str, Any] = {}

    arg_mapping = {
        'customer_id': 'customer_id',
        'output_file': 'output_file',
        'json': 'json_output',
        'log_level': 'log_level',
        'log_dir': 'log_dir',
        'api_url': 'api.url',
        'timeout': 'api.timeout',
    }

    for arg_name, config_key in arg_mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            _set_nested(config, config_key, value)

    return config


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}")


def config_from_dict(merged: Dict[str, Any]) -> AnalyticsConfig:
    """Build an AnalyticsConfig from a merged config dict."""
    return AnalyticsConfig(
        customer_id=merged.get('customer_id') or None,
        customer_secret=merged.get('customer_secret') or None,
        output_file=merged.get('output_file') or None,
        json_output=bool(merged.get('json_output', False)),
        log_level=str(merged.get('log_level') or DEFAULT_LOG_LEVEL),
        log_dir=merged.get('log_dir') or None,
        api_url=str(_get_nested(merged, 'api.url') or DEFAULT_API_URL),
        timeout=_as_float(_get_nested(merged, 'api.timeout', DEFAULT_REQUEST_TIMEOUT), 'api.timeout'),
        retry_wait=_as_float(_get_nested(merged, 'api.retry_wait', DEFAULT_RETRY_WAIT), 'api.retry_wait'),
    )


def load_config(args, dotenv_path: str = '.env') -> AnalyticsConfig:
    """
    Load configuration from all sources and merge them.

    Priority (highest to lowest):
    1. CLI arguments
    2. Config file (--config or default location)
    3. Environment variables (including those loaded from .env)

    Returns the merged, unvalidated config.
    """
    configs = []

    load_dotenv_file(dotenv_path)

    env_config = load_env_config()
    if env_config:
        logger.debug("Loaded config from environment variables")
        configs.append(env_config)

    config_path = getattr(args, 'config', None)
    if config_path:
        configs.append(load_config_file(config_path))
    else:
        default_config = find_default_config()
        if default_config:
            logger.info(f"Found default config file: {default_config}")
            configs.append(load_config_file(default_config))

    configs.append(args_to_config(args))

    return config_from_dict(merge_configs(*configs))


def validate_config(config: AnalyticsConfig) -> None:
    """
    Check that everything needed before the first network call is present.

    Raises:
        ConfigError: Naming every missing value
    """
    missing = []
    if not config.customer_id:
        missing.append('CUSTOMER_ID')
    if not config.customer_secret:
        missing.append('CUSTOMER_SECRET')
    if not config.output_file:
        missing.append('--output-file')
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}", missing)


def generate_sample_config() -> str:
    """Generate a sample config file content."""
    return '''# Application Analytics Configuration
#
# Environment variable substitution supported:
#   ${VAR_NAME}           - required env var
#   ${VAR_NAME:-default}  - env var with default value
#
# The customer secret is never read from this file. Set CUSTOMER_SECRET in
# the environment or in a .env file next to where you run the exporter.

# Customer (tenant) ID used to list applications
customer_id: ${CUSTOMER_ID}

# CSV file to write, one row per application
output_file: "./analytics.csv"

# Also write the rows as JSON next to the CSV
# json_output: true

# Logging level: DEBUG, INFO, WARNING, ERROR
log_level: INFO

# Directory for a persisted copy of the log (tokens are redacted)
# log_dir: "./logs"

api:
  # Base URL of the API
  url: https://api.cord.com

  # Per-request timeout in seconds
  timeout: 120

  # Seconds to wait before the single retry of a failed request
  retry_wait: 1
'''
