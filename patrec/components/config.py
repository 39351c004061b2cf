"""
Configuration management for patrec.

This module provides functionality for managing configuration,
including loading from environment variables, files and default values.
"""

import os
import json
import logging
import threading
from typing import Dict, Optional, Any
from copy import deepcopy
import yaml

# Set up logging
logger = logging.getLogger(__name__)

TIE_BREAK_POLICIES = ('nearest', 'last-seen', 'lexicographic')
PCA_SOLVERS = ('svd', 'eigh')


def to_float(value: Any) -> Optional[float]:
    """
    Convert a value to a float.

    Args:
        value: Value to convert

    Returns:
        Float value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def to_bool(value: Any) -> Optional[bool]:
    """
    Convert a value to a boolean.

    Args:
        value: Value to convert

    Returns:
        Boolean value, or None if conversion failed
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.lower().strip()
        if value in ('true', 'yes', 'y', '1', 't'):
            return True
        if value in ('false', 'no', 'n', '0', 'f'):
            return False

    return None


def to_choice(value: Any, choices: tuple, default: str) -> str:
    """
    Normalize a string option against a fixed set of choices.

    Args:
        value: Value to convert
        choices: Accepted values
        default: Value used when conversion fails

    Returns:
        The matching choice, or default
    """
    if isinstance(value, str):
        value = value.lower().strip()
        if value in choices:
            return value
    if value is not None:
        logger.warning(f"Ignoring unknown option {value!r}, expected one of {choices}")
    return default


class Config:
    """
    Configuration manager for patrec.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Optional configuration overrides
        """
        self._lock = threading.RLock()
        self._config = {}

        # Load configuration
        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Load configuration from all sources.

        Args:
            overrides: Optional configuration overrides
        """
        with self._lock:
            # Start with default configuration
            config = self._get_defaults()

            # Apply environment variables
            config = self._apply_env_vars(config)

            # Apply overrides
            if overrides:
                config = self._apply_overrides(config, overrides)

            # Normalize option values
            config = self._apply_inferred_values(config)

            # Store configuration
            self._config = config

            logger.info("Configuration loaded")

    def _get_defaults(self) -> Dict[str, Any]:
        """
        Get default configuration values.

        Returns:
            Default configuration
        """
        return {
            # Input and parameter checks
            'validation': {
                'strict': False        # raise instead of no-op / clamp
            },

            # Nearest neighbor classification
            'knn': {
                'tie-break': 'nearest'
            },

            # Principal component analysis
            'pca': {
                'solver': 'svd',
                'normalize-sign': True
            },

            # Linear discriminant analysis
            'lda': {
                'max-condition': 1e12  # largest condition number of Sw accepted
            },

            # Logging
            'logging': {
                'level': 'warn'
            }
        }

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variables to configuration.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # Validation
        strict = to_bool(os.environ.get('PATREC_STRICT'))
        if strict is not None:
            config['validation']['strict'] = strict

        # kNN
        config['knn']['tie-break'] = os.environ.get('PATREC_KNN_TIE_BREAK', config['knn']['tie-break'])

        # PCA
        config['pca']['solver'] = os.environ.get('PATREC_PCA_SOLVER', config['pca']['solver'])
        normalize_sign = to_bool(os.environ.get('PATREC_PCA_NORMALIZE_SIGN'))
        if normalize_sign is not None:
            config['pca']['normalize-sign'] = normalize_sign

        # LDA
        max_condition = to_float(os.environ.get('PATREC_LDA_MAX_CONDITION'))
        if max_condition is not None:
            config['lda']['max-condition'] = max_condition

        # Logging
        config['logging']['level'] = os.environ.get('LOG_LEVEL', config['logging']['level']).lower()

        return config

    def _apply_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply configuration overrides.

        Args:
            config: Current configuration
            overrides: Configuration overrides

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # Helper function for deep update
        def deep_update(d, u):
            for k, v in u.items():
                if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                    d[k] = deep_update(d[k], v)
                else:
                    d[k] = v
            return d

        # Apply overrides
        return deep_update(config, overrides)

    def _apply_inferred_values(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Coerce option values to their canonical types.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        strict = to_bool(config['validation'].get('strict'))
        config['validation']['strict'] = bool(strict)

        config['knn']['tie-break'] = to_choice(
            config['knn'].get('tie-break'), TIE_BREAK_POLICIES, 'nearest')
        config['pca']['solver'] = to_choice(
            config['pca'].get('solver'), PCA_SOLVERS, 'svd')

        normalize_sign = to_bool(config['pca'].get('normalize-sign'))
        config['pca']['normalize-sign'] = True if normalize_sign is None else normalize_sign

        max_condition = to_float(config['lda'].get('max-condition'))
        config['lda']['max-condition'] = 1e12 if max_condition is None else max_condition

        return config

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            path: Configuration path (dot-separated)
            default: Default value if not found

        Returns:
            Configuration value, or default if not found
        """
        # Split path into components
        components = path.split('.')

        # Start with full configuration
        value = self._config

        # Traverse path
        for component in components:
            if isinstance(value, dict) and component in value:
                value = value[component]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            path: Configuration path (dot-separated)
            value: Configuration value
        """
        with self._lock:
            # Split path into components
            components = path.split('.')

            # Start with full configuration
            config = deepcopy(self._config)
            section = config

            # Traverse path
            for component in components[:-1]:
                if component not in section:
                    section[component] = {}

                section = section[component]

            # Set value, keeping known options in their canonical types
            section[components[-1]] = value
            self._config = self._apply_inferred_values(config)

    @property
    def strict(self) -> bool:
        """Whether invalid input and parameters raise instead of degrading."""
        return bool(to_bool(self.get('validation.strict', False)))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary.

        Returns:
            Configuration dictionary
        """
        return deepcopy(self._config)

    def save_to_file(self, filepath: str) -> None:
        """
        Save configuration to a file.

        Args:
            filepath: Path to save configuration
        """
        # Determine file format from extension
        if filepath.endswith('.json'):
            with open(filepath, 'w') as f:
                json.dump(self._config, f, indent=2)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'w') as f:
                yaml.dump(self._config, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

    def load_from_file(self, filepath: str) -> None:
        """
        Load configuration from a file.

        Args:
            filepath: Path to load configuration from
        """
        # Determine file format from extension
        if filepath.endswith('.json'):
            with open(filepath, 'r') as f:
                overrides = json.load(f)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'r') as f:
                overrides = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

        # Apply overrides
        self.load_config(overrides)


class ConfigManager:
    """
    Singleton manager for configuration.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the configuration instance.

        Args:
            overrides: Optional configuration overrides

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance so the next call reloads from scratch."""
        with cls._lock:
            cls._instance = None
