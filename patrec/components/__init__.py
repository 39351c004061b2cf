"""
System components for patrec.

This module provides the configuration component shared by the
classifiers and reducers.
"""

from patrec.components.config import Config, ConfigManager
