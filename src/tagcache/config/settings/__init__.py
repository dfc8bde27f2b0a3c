"""Config settings – 12-factor env-based configuration."""
from tagcache.config.settings.base import Settings
from tagcache.config.settings.cache import CacheSettings
from tagcache.config.settings.factory import SettingsFactory
from tagcache.config.settings.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader

__all__ = [
    "CacheSettings",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "Settings",
    "SettingsFactory",
    "SettingsLoader",
]
