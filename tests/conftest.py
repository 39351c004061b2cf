"""
Pytest configuration and fixtures for patrec tests.
"""

import os
import sys

import pytest

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from patrec.components.config import Config, ConfigManager

ENV_VARS = [
    'PATREC_STRICT', 'PATREC_KNN_TIE_BREAK', 'PATREC_PCA_SOLVER',
    'PATREC_PCA_NORMALIZE_SIGN', 'PATREC_LDA_MAX_CONDITION', 'LOG_LEVEL',
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration environment variables and the shared config out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def config():
    """Default configuration."""
    return Config()


@pytest.fixture
def strict_config():
    """Configuration that raises on invalid input and parameters."""
    return Config({'validation': {'strict': True}})
