"""Core eavrecord utilities.

This module exports core utilities for use throughout the package.
"""

from eavrecord.core.config import Settings, get_settings
from eavrecord.core.exceptions import (
    EavError,
    EavNotEnabledError,
    EavQueryError,
    EavRecordStateError,
    EavSessionError,
    UnknownDataTypeError,
    UnknownRuleError,
    UnsupportedPrimaryKeyError,
)
from eavrecord.core.logging import (
    LoggingContext,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "clear_context",
    "EavError",
    "EavNotEnabledError",
    "EavQueryError",
    "EavRecordStateError",
    "EavSessionError",
    "UnknownDataTypeError",
    "UnknownRuleError",
    "UnsupportedPrimaryKeyError",
]
