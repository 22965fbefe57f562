"""
Swapt Analytics Platform
Configuration Module
"""
from .settings import (
    KlaviyoSettings,
    MetricsSettings,
    MonitoringSettings,
    SecuritySettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "KlaviyoSettings",
    "MetricsSettings",
    "MonitoringSettings",
    "SecuritySettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
