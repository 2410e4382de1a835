"""
Configuration management for the writing assistant.
Provides centralized autosave settings and logging setup.
"""

from .settings import (
    AutoSaveSettings,
    configure_logging,
    settings
)
