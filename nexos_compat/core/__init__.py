from .errors import ConfigurationError, ModelListError, NexosCompatError
from .logging import get_logger, setup_logging


__all__ = [
    "ConfigurationError",
    "ModelListError",
    "NexosCompatError",
    "get_logger",
    "setup_logging",
]
