"""
Role Assignment Quota Report - Configuration Management

Supports loading configuration from:
1. YAML config file (--config)
2. Environment variables (SUBSCRIPTIONS, DEBUG, QUOTA_REPORT_*)
3. Command-line arguments (highest priority)

Config file example:
```yaml
subscriptions:
  - 00000000-0000-0000-0000-000000000001
  - ${EXTRA_SUBSCRIPTION_ID}  # env var substitution
parallel_workers: 8
timeout: 30
usage_source: graph
```
"""
import logging
import os
import re
import stat
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_PARALLEL_WORKERS,
    DEFAULT_QUOTA_LIMIT,
    DEFAULT_TIMEOUT_SECONDS,
    USAGE_SOURCE_GRAPH,
    USAGE_SOURCES,
)
from .report import parse_subscription_selector

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration value is invalid."""


# Default config file locations (checked in order)
DEFAULT_CONFIG_PATHS = [
    './quota-report.yaml',
    './quota-report.yml',
    '~/.quota-report/config.yaml',
    '~/.quota-report/config.yml',
]

# Mapping from config keys to env vars
ENV_VAR_MAPPING = {
    'subscriptions': 'SUBSCRIPTIONS',
    'debug': 'DEBUG',
    'log_level': 'QUOTA_REPORT_LOG_LEVEL',
    'parallel_workers': 'QUOTA_REPORT_PARALLEL_WORKERS',
    'timeout': 'QUOTA_REPORT_TIMEOUT',
    'usage_source': 'QUOTA_REPORT_USAGE_SOURCE',
    'default_limit': 'QUOTA_REPORT_DEFAULT_LIMIT',
}

DEFAULTS: Dict[str, Any] = {
    'subscriptions': [],
    'debug': False,
    'log_level': DEFAULT_LOG_LEVEL,
    'parallel_workers': DEFAULT_PARALLEL_WORKERS,
    'timeout': DEFAULT_TIMEOUT_SECONDS,
    'usage_source': USAGE_SOURCE_GRAPH,
    'default_limit': DEFAULT_QUOTA_LIMIT,
}

TRUE_VALUES = ('true', '1', 'yes', 'on')


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


def _split_ids(value: Any) -> List[str]:
    """Normalize a subscription selector (string or list) to a list of IDs."""
    if value is None:
        return []
    if isinstance(value, str):
        return parse_subscription_selector(value)
    return parse_subscription_selector(" ".join(str(item) for item in value))


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from a YAML file."""
    path = Path(config_path).expanduser()

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # Security check: warn if config file has loose permissions
    file_mode = path.stat().st_mode
    if file_mode & (stat.S_IRWXG | stat.S_IRWXO):  # Group or world access
        logger.warning(f"Config file {config_path} has loose permissions. "
                       f"Consider: chmod 600 {config_path}")

    logger.info(f"Loading config from {path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

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
        if value is not None and value.strip() != '':
            config[config_key] = value

    return config


def args_to_config(args) -> Dict[str, Any]:
    """Convert argparse args to a config dict, skipping unset arguments."""
    config: Dict[str, Any] = {}

    for key in DEFAULTS:
        value = getattr(args, key, None)
        # store_true flags default to False, which must not override env/file
        if value is None or value == '' or (key == 'debug' and value is False):
            continue
        config[key] = value

    return config


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge multiple config dicts. Later configs override earlier ones."""
    result: Dict[str, Any] = {}

    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value

    return result


def normalize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply defaults and coerce values to their expected types.

    Raises:
        ConfigError: If a value is out of range or cannot be converted
    """
    merged = merge_configs(DEFAULTS, config)

    try:
        normalized = {
            'subscriptions': _split_ids(merged['subscriptions']),
            'debug': _to_bool(merged['debug']),
            'log_level': str(merged['log_level']).upper(),
            'parallel_workers': int(merged['parallel_workers']),
            'timeout': float(merged['timeout']),
            'usage_source': str(merged['usage_source']).lower(),
            'default_limit': int(merged['default_limit']),
        }
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e

    if normalized['parallel_workers'] < 1:
        raise ConfigError("parallel_workers must be at least 1")
    if normalized['timeout'] <= 0:
        raise ConfigError("timeout must be positive")
    if normalized['default_limit'] <= 0:
        raise ConfigError("default_limit must be positive")
    if normalized['usage_source'] not in USAGE_SOURCES:
        raise ConfigError(
            f"usage_source must be one of {', '.join(USAGE_SOURCES)}, got {normalized['usage_source']!r}"
        )
    if normalized['debug']:
        normalized['log_level'] = 'DEBUG'

    return normalized


def load_config(args) -> Dict[str, Any]:
    """
    Load configuration from all sources and merge them.

    Priority (highest to lowest):
    1. CLI arguments
    2. Config file (--config or default location)
    3. Environment variables

    Returns normalized config dict.
    """
    configs = []

    # 1. Environment variables (lowest priority)
    env_config = load_env_config()
    if env_config:
        logger.debug("Loaded config from environment variables")
        configs.append(env_config)

    # 2. Config file
    config_path = getattr(args, 'config', None)
    if config_path:
        configs.append(load_config_file(config_path))
    else:
        default_config = find_default_config()
        if default_config:
            logger.info(f"Found default config file: {default_config}")
            configs.append(load_config_file(default_config))

    # 3. CLI arguments (highest priority)
    configs.append(args_to_config(args))

    return normalize_config(merge_configs(*configs))


def generate_sample_config() -> str:
    """Generate a sample config file content."""
    return f'''# Role Assignment Quota Report Configuration
#
# Environment variable substitution supported:
#   ${{VAR_NAME}}           - required env var
#   ${{VAR_NAME:-default}}  - env var with default value

# Subscriptions to check (default: all enabled subscriptions)
# subscriptions:
#   - "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
#   - ${{EXTRA_SUBSCRIPTION_ID}}

# Logging level: DEBUG, INFO, WARNING, ERROR
log_level: {DEFAULT_LOG_LEVEL}

# Log Resource Graph queries and intermediate counts
debug: false

# Number of subscriptions to check in parallel (1 = serial)
parallel_workers: {DEFAULT_PARALLEL_WORKERS}

# Timeout in seconds for each Azure API call
timeout: {DEFAULT_TIMEOUT_SECONDS}

# Where role assignments are read from:
#   graph          - Azure Resource Graph (fast)
#   authorization  - Microsoft.Authorization role assignment listing
usage_source: {USAGE_SOURCE_GRAPH}

# Limit used when the quota endpoint cannot be read
default_limit: {DEFAULT_QUOTA_LIMIT}
'''
