#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("pkgsnap")


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. PKGSNAP_CONFIG environment variable
    2. ~/.pkgsnap/config.{json,toml,yaml,yml}
    """
    if 'PKGSNAP_CONFIG' in os.environ:
        path = Path(os.environ['PKGSNAP_CONFIG'])
        if path.exists():
            return path

    pkgsnap_dir = Path.home() / '.pkgsnap'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = pkgsnap_dir / filename
        if path.exists() and path.stat().st_size > 0:
            return path

    # If no file exists, return default path for saving
    return pkgsnap_dir / 'config.json'


def _read_config_file(config_path):
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config():
    """
    Load configuration from file.

    Defaults are merged with the config file, then PKGSNAP_* environment
    variables are applied on top.

    Raises:
        ConfigError: the config file exists but cannot be parsed
    """
    config_path = get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}")

        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        config = merge_configs(config, file_config)

    config = apply_env_overrides(config)

    return config


def get_default_config():
    """Get default configuration."""
    return {
        # Target architectures for pull; empty = taken from the destination snapshot
        "architectures": [],
        "dependencies": {
            "follow_recommends": False,
            "follow_suggests": False,
            "follow_source": False,
            "follow_all_variants": False,
        },
        "pull": {
            # Safety valve on work-list entries per architecture, 0 = unlimited
            "max_iterations": 0,
        },
        "database": {
            "path": "",
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def get_architectures(config):
    """
    Configured target architectures as a list.

    Accepts a list or a comma-separated string (as set through
    PKGSNAP_ARCHITECTURES).
    """
    value = (config or {}).get("architectures") or []
    if isinstance(value, str):
        value = value.split(',')
    return [arch.strip() for arch in value if arch and arch.strip()]


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: PKGSNAP_SECTION_SUBSECTION_KEY
    For example: PKGSNAP_DEPENDENCIES_FOLLOW_RECOMMENDS=true
    """
    env_prefix = "PKGSNAP_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', '1', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', '0', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Longest config key whose underscore-split parts prefix the remaining env parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                break

            if not isinstance(current_level[matched_key], dict):
                break
            current_level = current_level[matched_key]
            i += best_match_len

    return config


def configure_logging(config, debug=False):
    """Apply the ``logging`` config section (``--debug`` forces DEBUG)."""
    section = (config or {}).get("logging", {})
    root = logging.getLogger()
    if debug:
        level = logging.DEBUG
        fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    else:
        level = getattr(logging, str(section.get("level", "INFO")).upper(), logging.INFO)
        fmt = section.get("format", "%(levelname)s: %(message)s")
    root.setLevel(level)
    for handler in root.handlers:
        handler.setFormatter(logging.Formatter(fmt))
