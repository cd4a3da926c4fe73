"""Configuration module for engine settings and request type rules."""

from lostfound.config.settings import EngineSettings, get_settings, DEFAULT_REQUEST_TYPES_PATH

__all__ = ["EngineSettings", "get_settings", "DEFAULT_REQUEST_TYPES_PATH"]
