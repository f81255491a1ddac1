"""
Configuration Module for the Field Extraction Engine.

Packaged defaults live in settings.yaml next to this file. A deployment
file (passed explicitly or named by FIELD_EXTRACTION_CONFIG) only needs
the keys it changes: it is merged over the defaults section by section,
so a file holding just

    review:
      thresholds:
        invoice: 0.9

keeps every other score, window and threshold of the pipeline.

Components read their values once, in __init__, through get_config().

Author: ML Engineering Team
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULTS_PATH = Path(__file__).parent / "settings.yaml"
ENV_VARIABLE = "FIELD_EXTRACTION_CONFIG"


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge; lists and scalars of `override` replace."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must hold a mapping: {path}")
    return data


class ConfigurationManager:
    """
    Process-wide configuration: packaged defaults plus an optional override.

    Attributes:
        override_path (Optional[Path]): Deployment file merged over the
            defaults, if any.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("ocr.quality_threshold")
        0.7
        >>> config.section("review")["thresholds"]["tender"]
        0.5
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Load the configuration on first construction.

        Args:
            config_path: Override file. Falls back to the
                FIELD_EXTRACTION_CONFIG environment variable; defaults
                only when neither is set.
        """
        if self._initialized:
            return

        override = config_path or os.environ.get(ENV_VARIABLE)
        self.override_path = Path(override) if override else None
        self._config: Dict[str, Any] = {}

        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Read the defaults, then merge the override file.

        Raises:
            FileNotFoundError: If a configuration file doesn't exist.
            ValueError: If a file does not hold a mapping.
            yaml.YAMLError: If a file is not valid YAML.
        """
        config = _read_yaml(DEFAULTS_PATH)
        if self.override_path is not None:
            config = _merge(config, _read_yaml(self.override_path))

        log_file = (config.get('logging') or {}).get('file') or {}
        if log_file.get('path') and not Path(log_file['path']).is_absolute():
            log_file['path'] = str(Path(__file__).parent.parent / log_file['path'])

        self._config = config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Dotted key (e.g. "candidates.proximity.window_ratio").
            default: Returned when any segment is missing.

        Example:
            >>> config.get("repair.tolerance")
            0.02
            >>> config.get("nonexistent.key", "default_value")
            'default_value'
        """
        value: Any = self._config
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def section(self, name: str) -> Dict[str, Any]:
        """Deep copy of a top-level section; empty when absent."""
        value = self._config.get(name)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def reload(self) -> None:
        """Re-read both files."""
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded instance; the next access reloads."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Read one configuration value.

    Args:
        key: Configuration key in dot notation.
        default: Default value if key doesn't exist.

    Returns:
        Configuration value or default.
    """
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
