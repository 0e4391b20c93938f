"""Statusboard configuration system."""

from statusboard.config.loader import find_config_file, load_config, load_config_or_default
from statusboard.config.models import (
    AuthConfig,
    MonitorConfig,
    ServiceEntry,
    SiteConfig,
    StatusboardConfig,
    StoreConfig,
    WebhookConfig,
)

__all__ = [
    "AuthConfig",
    "MonitorConfig",
    "ServiceEntry",
    "SiteConfig",
    "StatusboardConfig",
    "StoreConfig",
    "WebhookConfig",
    "load_config",
    "find_config_file",
    "load_config_or_default",
]
