# Copyright 2025 NeuroBM Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Configuration management for sampling runs.

This module provides utilities for loading, validating, merging, and saving
sampling configurations, and for turning them into the objects the sampling
functions expect.

Features:
- YAML and JSON configuration files
- Dot-notation overrides
- Environment variable substitution (``${VAR}`` or ``${VAR:default}``)
- Schema validation
- Seeded random number generators and logging setup from configuration

Usage:
    from bmsampler.configs import ConfigManager, build_generator, sampling_kwargs

    config = ConfigManager.load('sampling.yaml', overrides={'sampling.burnin': 100})
    x = samples(dbm, config['sampling']['n_particles'], **sampling_kwargs(config))
"""

import yaml
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union
import copy
import os
import torch
from jsonschema import validate, ValidationError

from ..sampling.api import seeded_generator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default.yaml'

DTYPES = {
    'float32': torch.float32,
    'float64': torch.float64,
}


class ConfigManager:
    """Configuration management for BMSampler."""

    # Configuration schema for validation
    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "description": {"type": "string"},
            "sampling": {
                "type": "object",
                "properties": {
                    "n_particles": {"type": "integer", "minimum": 0},
                    "burnin": {"type": "integer", "minimum": 0},
                    "samplelast": {"type": "boolean"}
                },
                "required": ["n_particles", "burnin"]
            },
            "random_seed": {"type": ["integer", "null"]},
            "dtype": {"type": "string", "enum": list(DTYPES)},
            "device": {"type": "string"},
            "logging": {
                "type": "object",
                "properties": {
                    "level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
                    }
                }
            }
        },
        "required": ["sampling"]
    }

    @classmethod
    def load(
        cls,
        config_path: Union[str, Path],
        overrides: Optional[Dict[str, Any]] = None,
        validate_config: bool = True
    ) -> Dict[str, Any]:
        """
        Load configuration with optional overrides.

        Args:
            config_path: Path to configuration file
            overrides: Dictionary of parameter overrides in dot notation
            validate_config: Whether to validate the configuration

        Returns:
            Loaded and processed configuration dictionary
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                config = yaml.safe_load(f)
            elif config_path.suffix.lower() == '.json':
                config = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {config_path.suffix}")

        logger.info(f"Loaded configuration from {config_path}")

        if overrides:
            config = cls._apply_overrides(config, overrides)
            logger.info(f"Applied {len(overrides)} parameter overrides")

        config = cls._substitute_env_vars(config)

        if validate_config:
            cls.validate(config)

        return config

    @classmethod
    def default(cls, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Load the packaged default configuration."""
        return cls.load(DEFAULT_CONFIG_PATH, overrides=overrides)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration against schema.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValidationError: If configuration is invalid
        """
        try:
            validate(instance=config, schema=cls.CONFIG_SCHEMA)
            logger.info("Configuration validation passed")
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e.message}")
            raise

    @classmethod
    def save(
        cls,
        config: Dict[str, Any],
        output_path: Union[str, Path],
        format: str = 'yaml'
    ) -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration dictionary to save
            output_path: Output file path
            format: Output format ('yaml' or 'json')
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            if format.lower() == 'yaml':
                yaml.dump(config, f, default_flow_style=False, indent=2)
            elif format.lower() == 'json':
                json.dump(config, f, indent=2)
            else:
                raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Saved configuration to {output_path}")

    @classmethod
    def merge(cls, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with deep merging.

        Later configurations take precedence.
        """
        if not configs:
            return {}

        result = copy.deepcopy(configs[0])
        for config in configs[1:]:
            result = cls._deep_merge(result, config)
        return result

    @staticmethod
    def _apply_overrides(config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Apply parameter overrides using dot notation."""
        result = copy.deepcopy(config)

        for key, value in overrides.items():
            ConfigManager._set_nested_value(result, key, value)

        return result

    @staticmethod
    def _substitute_env_vars(config: Dict[str, Any]) -> Dict[str, Any]:
        """Substitute environment variables in configuration values."""
        def substitute_recursive(obj):
            if isinstance(obj, dict):
                return {k: substitute_recursive(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [substitute_recursive(item) for item in obj]
            elif isinstance(obj, str) and obj.startswith('${') and obj.endswith('}'):
                env_var = obj[2:-1]
                default_value = None
                if ':' in env_var:
                    env_var, default_value = env_var.split(':', 1)
                value = os.getenv(env_var, default_value)
                # parse scalars so that "42" validates as an integer
                return yaml.safe_load(value) if value is not None else None
            else:
                return obj

        return substitute_recursive(config)

    @staticmethod
    def _deep_merge(dict1: Dict[str, Any], dict2: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = copy.deepcopy(dict1)

        for key, value in dict2.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigManager._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    @staticmethod
    def _set_nested_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
        """Set nested value using dot notation."""
        keys = key_path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value


def resolve_dtype(config: Dict[str, Any]) -> torch.dtype:
    """Tensor data type named in the configuration (float64 by default)."""
    return DTYPES[config.get('dtype', 'float64')]


def resolve_device(config: Dict[str, Any]) -> torch.device:
    """Device named in the configuration (cpu by default)."""
    return torch.device(config.get('device', 'cpu'))


def build_generator(config: Dict[str, Any]) -> Optional[torch.Generator]:
    """Seeded random number generator, or None to use torch's default generator."""
    seed = config.get('random_seed')
    if seed is None:
        return None
    return seeded_generator(seed, resolve_device(config))


def sampling_kwargs(config: Dict[str, Any]) -> Dict[str, Any]:
    """Keyword arguments for ``samples`` taken from the configuration."""
    sampling = config['sampling']
    return {
        'burnin': sampling['burnin'],
        'samplelast': sampling.get('samplelast', True),
        'generator': build_generator(config),
    }


def configure_logging(config: Dict[str, Any]) -> None:
    """Set up logging with the level given in the configuration."""
    level = config.get('logging', {}).get('level', 'INFO')
    logging.basicConfig(level=getattr(logging, level),
                        format='%(asctime)s - %(levelname)s - %(message)s')


# Utility functions for common configuration tasks
def load_config(config_path: str, **kwargs) -> Dict[str, Any]:
    """Convenience function to load configuration."""
    return ConfigManager.load(config_path, **kwargs)


def save_config(config: Dict[str, Any], output_path: str, **kwargs) -> None:
    """Convenience function to save configuration."""
    ConfigManager.save(config, output_path, **kwargs)
