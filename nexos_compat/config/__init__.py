from .http import HTTPSettings
from .logging import LoggingSettings
from .settings import Settings, get_settings


__all__ = ["HTTPSettings", "LoggingSettings", "Settings", "get_settings"]
