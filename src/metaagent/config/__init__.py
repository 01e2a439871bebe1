"""Configuration — layered settings, config discovery, and logging setup."""

from metaagent.config.models import DatabaseConfig, PluginsConfig, PoolConfig
from metaagent.config.settings import MetaAgentSettings

__all__ = ["DatabaseConfig", "MetaAgentSettings", "PluginsConfig", "PoolConfig"]
