"""Plugin wire protocol: request building, output parsing, typed replies."""
from __future__ import annotations

from valuefmt.protocol.codec import (
    CommandRequest,
    PluginProtocolCodec,
    Verb,
    build_request,
    decode_response,
    parse_output,
)
from valuefmt.protocol.responses import (
    DecodeResponse,
    EncodeResponse,
    InfoResponse,
    PluginResponse,
    ValidateResponse,
)

__all__ = [
    "CommandRequest",
    "DecodeResponse",
    "EncodeResponse",
    "InfoResponse",
    "PluginProtocolCodec",
    "PluginResponse",
    "ValidateResponse",
    "Verb",
    "build_request",
    "decode_response",
    "parse_output",
]
