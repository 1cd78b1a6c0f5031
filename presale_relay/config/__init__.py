"""
Configuration management for Presale Relay.

Loads settings from environment variables and .env files and validates the
presale configuration (mint, recipient, server key) into a RelayConfig.
"""

from presale_relay.config.settings import RelayConfig, Settings, get_settings, load_relay_config  # noqa: F401

__all__ = ["RelayConfig", "Settings", "get_settings", "load_relay_config"]
