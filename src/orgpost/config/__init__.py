"""Configuration loading for orgpost."""

from orgpost.config.loader import load_config

__all__ = ["load_config"]
