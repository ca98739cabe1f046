"""Core domain pieces shared by every layer.

Errors, notifications and configuration live here.
Submodules in core/ should not import from the other subpackages.
"""
from __future__ import annotations

from valuefmt.core.config import FormatterConfig, config_path, default_formatters_path
from valuefmt.core.errors import (
    InvalidCompletionSinkError,
    ManifestInvalidError,
    NoDataError,
    PluginInfoEmptyError,
    ProcessStartError,
    ProcessTimeoutError,
    ProtocolError,
    ProtocolParseError,
    RunTimeoutError,
    StartTimeoutError,
    UnknownFormatterError,
    ValueFormatError,
)
from valuefmt.core.notifications import ErrorChannel, Notification, NotificationSeverity

__all__ = [
    "ErrorChannel",
    "FormatterConfig",
    "InvalidCompletionSinkError",
    "ManifestInvalidError",
    "NoDataError",
    "Notification",
    "NotificationSeverity",
    "PluginInfoEmptyError",
    "ProcessStartError",
    "ProcessTimeoutError",
    "ProtocolError",
    "ProtocolParseError",
    "RunTimeoutError",
    "StartTimeoutError",
    "UnknownFormatterError",
    "ValueFormatError",
    "config_path",
    "default_formatters_path",
]
