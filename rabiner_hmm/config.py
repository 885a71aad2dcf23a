"""
Configuration management system for RabinerHMM.

Settings live in three sections: ``hmm`` (validation tolerance and the
zero-denominator policy of the M-step), ``sampling`` (an optional fixed seed)
and ``logging``. Defaults can be overridden from a JSON file named by
``RABINER_HMM_CONFIG`` and from individual ``RABINER_HMM_*`` variables.
"""

import copy
import os
import json
from typing import Any, Optional
from pathlib import Path


DEFAULT_CONFIG = {
    'hmm': {
        'tolerance': 1e-9,
        'zero_denominator_policy': 'keep_prior'
    },
    'sampling': {
        # None leaves sampling unseeded
        'random_seed': None
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'file_logging': False,
        'log_file': 'rabiner_hmm.log'
    }
}

# variable -> (section, key, parser)
ENV_OVERRIDES = {
    'RABINER_HMM_TOLERANCE': ('hmm', 'tolerance', float),
    'RABINER_HMM_ZERO_DENOMINATOR_POLICY': ('hmm', 'zero_denominator_policy', str),
    'RABINER_HMM_LOG_LEVEL': ('logging', 'level', str),
    'RABINER_HMM_RANDOM_SEED': ('sampling', 'random_seed', int)
}


class ConfigManager:
    """Manages configuration settings with override capabilities."""

    def __init__(self):
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self._load_environment_overrides()

    def _load_environment_overrides(self):
        """Apply the JSON file and the single-value variables from the environment."""
        config_file = os.getenv('RABINER_HMM_CONFIG')
        if config_file and Path(config_file).exists():
            self.load_from_file(config_file)

        for env_var, (section, key, parse) in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value is None:
                continue
            try:
                self._config[section][key] = parse(value)
            except ValueError:
                pass  # Ignore invalid environment values

    def get(self, section: str, key: Optional[str] = None) -> Any:
        """Get a whole section, or one value of it."""
        values = self._config.get(section, {})
        return values if key is None else values.get(key)

    def set(self, section: str, key: str, value: Any) -> None:
        self._config.setdefault(section, {})[key] = value

    def load_from_file(self, config_path: str) -> None:
        """
        Merge a JSON file into the current settings, key by key within each
        section.

        Raises:
            ValueError: If the file is missing or is not valid JSON
        """
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")

        for section, values in file_config.items():
            self._config.setdefault(section, {}).update(values)

    def save_to_file(self, config_path: str) -> None:
        """Save current configuration to JSON file."""
        Path(config_path).parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            json.dump(self._config, f, indent=2)

    def reset_to_defaults(self) -> None:
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self._load_environment_overrides()


# Global configuration manager instance
_config_manager = ConfigManager()


def get_config(section: str, key: Optional[str] = None) -> Any:
    """Get configuration value(s) from global config manager."""
    return _config_manager.get(section, key)


def set_config(section: str, key: str, value: Any) -> None:
    """Set configuration value in global config manager."""
    _config_manager.set(section, key, value)


def load_config_file(config_path: str) -> None:
    """Load configuration from file into global config manager."""
    _config_manager.load_from_file(config_path)


def save_config_file(config_path: str) -> None:
    """Save global configuration to file."""
    _config_manager.save_to_file(config_path)


def reset_config() -> None:
    """Reset global configuration to defaults."""
    _config_manager.reset_to_defaults()
