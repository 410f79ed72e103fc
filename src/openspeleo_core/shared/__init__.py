"""Shared utilities for XML/dict conversion.

This module provides the configuration object, the exception hierarchy, and
the correlation-aware logger used across all conversion layers.
"""

from .config import (
    ATTR_PREFIX,
    RESERVED_PREFIXES,
    TEXT_KEY,
    ConfigError,
    ConfigValidationError,
    ConversionConfig,
)
from .errors import (
    AmbiguousStructureError,
    MalformedXmlError,
    ReservedNameCollisionError,
    UnsupportedScalarError,
    XmlDictError,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "ATTR_PREFIX",
    "RESERVED_PREFIXES",
    "TEXT_KEY",
    "ConfigError",
    "ConfigValidationError",
    "ConversionConfig",
    "AmbiguousStructureError",
    "MalformedXmlError",
    "ReservedNameCollisionError",
    "UnsupportedScalarError",
    "XmlDictError",
    "CorrelationLogger",
    "configure_logging",
    "get_logger",
]
