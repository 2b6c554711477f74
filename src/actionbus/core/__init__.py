"""Core primitives shared by the action bus: errors, logging, settings, hashing.

Architecture::

    errors.py     BusError hierarchy, ErrorCategory, ErrorContext
    logging.py    structlog configuration + context binding
    settings.py   BusSettings (pydantic-settings) + get_settings() cache
    hashing.py    compute_hash() for registry fingerprints
"""

from .errors import (
    BusError,
    ContainerError,
    ErrorCategory,
    ErrorContext,
    LoopError,
    RegistrationError,
    StructuralError,
)
from .hashing import compute_hash
from .logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    reset_logging,
    unbind_context,
)
from .settings import BusSettings, clear_settings_cache, get_settings

__all__ = [
    "BusError",
    "ContainerError",
    "ErrorCategory",
    "ErrorContext",
    "LoopError",
    "RegistrationError",
    "StructuralError",
    "compute_hash",
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "reset_logging",
    "unbind_context",
    "BusSettings",
    "clear_settings_cache",
    "get_settings",
]
