"""Utility modules for schemaguard."""

from .exceptions import *
from .logger import setup_logger, logger, shorten

__all__ = [
    # Exceptions
    "SchemaGuardError",
    "ConfigurationError",
    "SchemaError",
    "ValidationError",
    # Logger
    "setup_logger",
    "logger",
    "shorten",
]
