"""Configuration for a single ddsafe invocation."""

from .settings import WriteConfig, load_settings

__all__ = ["WriteConfig", "load_settings"]
