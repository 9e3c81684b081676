"""Configuration module for loading and managing indexer settings"""
from typing import Dict, Any
from .lib.load_settings_conf import load_settings_conf, SettingsError, DEFAULTS

__all__ = ['settings_conf', 'load_settings_conf', 'SettingsError', 'DEFAULTS']

try:
    settings_conf: Dict[str, Any] = load_settings_conf()

except SettingsError as e:
    # Re-raise the error but provide more context
    raise type(e)(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Please ensure settings.conf and the environment are properly configured.\n"
        "Run `python -m config` to write an example settings file."
    )
