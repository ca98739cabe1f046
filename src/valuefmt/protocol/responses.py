"""Typed plugin responses, one per verb.

Plugins answer with a loosely-typed JSON object. Each response class
pulls out the fields its verb defines and falls back to an explicit
default when a field is missing or has the wrong JSON type, so call
sites never inspect raw dicts.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


def _str_field(obj: Mapping[str, Any], key: str) -> str:
    value = obj.get(key)
    return value if isinstance(value, str) else ""


def _bool_field(obj: Mapping[str, Any], key: str) -> bool:
    value = obj.get(key)
    return value if isinstance(value, bool) else False


@dataclass(frozen=True)
class InfoResponse:
    """Reply to ``info``: plugin-supplied version and description."""

    version: str = ""
    description: str = ""

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "InfoResponse":
        return cls(version=_str_field(obj, "version"), description=_str_field(obj, "description"))


@dataclass(frozen=True)
class DecodeResponse:
    """Reply to ``decode``.

    Parameters
    ----------
    error:
        Plugin-reported problem with the value; empty on success.
    output:
        Human-readable rendering of the value.
    read_only:
        True if the plugin cannot encode the rendering back (JSON key
        ``read-only``).
    format:
        Label of the rendering, e.g. ``"json"`` or ``"plain_text"``.
    """

    error: str = ""
    output: str = ""
    read_only: bool = False
    format: str = ""

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "DecodeResponse":
        return cls(
            error=_str_field(obj, "error"),
            output=_str_field(obj, "output"),
            read_only=_bool_field(obj, "read-only"),
            format=_str_field(obj, "format"),
        )

    def as_tuple(self) -> tuple[str, str, bool, str]:
        """Values in delivery order: error, output, read-only, format."""
        return (self.error, self.output, self.read_only, self.format)


@dataclass(frozen=True)
class EncodeResponse:
    """Reply to ``encode``: the value to store."""

    output: str = ""

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "EncodeResponse":
        return cls(output=_str_field(obj, "output"))


@dataclass(frozen=True)
class ValidateResponse:
    """Reply to ``validate``."""

    valid: bool = False

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "ValidateResponse":
        return cls(valid=_bool_field(obj, "valid"))


PluginResponse = InfoResponse | DecodeResponse | EncodeResponse | ValidateResponse
