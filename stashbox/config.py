"""Configuration management for StashBox."""

import os
from pathlib import Path
from typing import Any, Dict

import yaml


class Config:
    """Configuration manager for StashBox."""

    REQUIRED_STORE_KEYS = ['access_key_id', 'secret_access_key', 'endpoint_url', 'bucket_name']

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = config_path
        self._config = {}
        self.load_config()

    def load_config(self):
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as f:
                self._config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML configuration: {e}")

        if not isinstance(self._config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        self._expand_paths()

    def _expand_paths(self):
        """Expand user paths (~) in configuration."""
        paths_to_expand = [
            ['app', 'log_file'],
        ]

        for path_keys in paths_to_expand:
            try:
                config_section = self._config
                for key in path_keys[:-1]:
                    config_section = config_section[key]

                if config_section.get(path_keys[-1]):
                    config_section[path_keys[-1]] = os.path.expanduser(
                        config_section[path_keys[-1]]
                    )
            except (KeyError, AttributeError):
                pass

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        keys = key.split('.')
        value = self._config

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def get_store_config(self) -> Dict[str, Any]:
        """Get object store configuration."""
        store_config = dict(self.get('store', {}) or {})

        for key in self.REQUIRED_STORE_KEYS:
            if not store_config.get(key):
                raise ValueError(f"Missing required store configuration: {key}")

        return store_config

    def get_quota_config(self) -> Dict[str, Any]:
        """Get quota configuration."""
        return self.get('quota', {}) or {}

    def get_upload_config(self) -> Dict[str, Any]:
        """Get upload configuration."""
        return self.get('upload', {}) or {}

    def ensure_directories(self):
        """Ensure required directories exist."""
        log_file = self.get('app.log_file')
        if log_file:
            Path(os.path.dirname(log_file) or '.').mkdir(parents=True, exist_ok=True)
