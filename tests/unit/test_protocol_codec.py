"""Unit tests for valuefmt.protocol — request building, output parsing and typed replies."""
from __future__ import annotations

import base64
import logging

import pytest

from valuefmt.core.errors import NoDataError, ProtocolParseError, RunTimeoutError
from valuefmt.core.notifications import ErrorChannel, NotificationSeverity
from valuefmt.process.runner import ProcessResult, ProcessRunner
from valuefmt.protocol import (
    CommandRequest,
    DecodeResponse,
    EncodeResponse,
    InfoResponse,
    PluginProtocolCodec,
    ValidateResponse,
    Verb,
    build_request,
    decode_response,
    parse_output,
)


class ScriptedRunner(ProcessRunner):
    """Returns a fixed result (or raises) instead of spawning a process."""

    def __init__(self, result: ProcessResult | None = None, error: Exception | None = None) -> None:
        super().__init__()
        self.result = result if result is not None else ProcessResult(b"", b"")
        self.error = error
        self.calls: list[tuple[tuple[str, ...], bytes, str | None]] = []

    def run(self, argv, payload=b"", working_directory=None):  # type: ignore[override]
        self.calls.append((tuple(argv), payload, working_directory))
        if self.error is not None:
            raise self.error
        return self.result


# ===========================================================================
# build_request
# ===========================================================================


class TestBuildRequest:
    def test_info_appends_verb(self) -> None:
        request = build_request(["python3", "fmt.py"], Verb.INFO, "/plugins/fmt")
        assert request.argv == ("python3", "fmt.py", "info")

    def test_info_has_empty_payload(self) -> None:
        request = build_request(["fmt"], "info", "/plugins/fmt", b"ignored")
        assert request.payload == b""

    @pytest.mark.parametrize("verb", ["decode", "encode", "validate"])
    def test_value_verbs_base64_payload(self, verb: str) -> None:
        request = build_request(["fmt"], verb, "/plugins/fmt", b"\x00\xffhello")
        assert request.payload == base64.b64encode(b"\x00\xffhello")
        assert request.argv[-1] == verb

    def test_plugin_name_defaults_to_directory_name(self) -> None:
        request = build_request(["fmt"], Verb.DECODE, "/plugins/jsonpp")
        assert request.plugin == "jsonpp"

    def test_explicit_plugin_name(self) -> None:
        request = build_request(["fmt"], Verb.DECODE, "/plugins/x", plugin="jsonpp")
        assert request.plugin == "jsonpp"

    def test_unknown_verb_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_request(["fmt"], "format", "/plugins/fmt")

    def test_empty_prefix_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_request([], Verb.INFO, "/plugins/fmt")

    def test_request_is_frozen(self) -> None:
        request = build_request(["fmt"], Verb.INFO, "/plugins/fmt")
        with pytest.raises((AttributeError, TypeError)):
            request.payload = b"x"  # type: ignore[misc]


# ===========================================================================
# parse_output
# ===========================================================================


class TestParseOutput:
    def test_object_returned_as_is(self) -> None:
        assert parse_output(b'{"output": "X", "extra": [1, 2]}') == {"output": "X", "extra": [1, 2]}

    def test_surrounding_whitespace_allowed(self) -> None:
        assert parse_output(b'\n  {"valid": true}\n') == {"valid": True}

    def test_empty_stdout_is_no_data(self) -> None:
        with pytest.raises(NoDataError) as info:
            parse_output(b"", Verb.ENCODE)
        assert info.value.verb == "encode"

    def test_empty_object_is_no_data(self) -> None:
        with pytest.raises(NoDataError):
            parse_output(b"{}", Verb.DECODE)

    def test_non_json_is_parse_error_with_raw_text(self) -> None:
        with pytest.raises(ProtocolParseError) as info:
            parse_output(b"this is not json")
        assert info.value.raw_output == "this is not json"
        assert "this is not json" in str(info.value)

    @pytest.mark.parametrize("raw", [b"[1, 2]", b'"text"', b"42", b"null", b"true"])
    def test_non_object_is_parse_error(self, raw: bytes) -> None:
        with pytest.raises(ProtocolParseError) as info:
            parse_output(raw)
        assert raw.decode() in str(info.value)

    def test_two_objects_is_parse_error(self) -> None:
        with pytest.raises(ProtocolParseError):
            parse_output(b'{"a": 1}{"b": 2}')

    def test_invalid_utf8_is_parse_error(self) -> None:
        with pytest.raises(ProtocolParseError, match="not UTF-8"):
            parse_output(b'{"a": "\xff"}')


# ===========================================================================
# Typed responses
# ===========================================================================


class TestTypedResponses:
    def test_info_fields(self) -> None:
        reply = decode_response(Verb.INFO, {"version": "1.0", "description": "pretty json"})
        assert reply == InfoResponse(version="1.0", description="pretty json")

    def test_info_defaults(self) -> None:
        assert decode_response(Verb.INFO, {"name": "x"}) == InfoResponse("", "")

    def test_decode_fields_in_delivery_order(self) -> None:
        reply = decode_response(
            Verb.DECODE, {"output": "X", "read-only": True, "format": "json"}
        )
        assert isinstance(reply, DecodeResponse)
        assert reply.as_tuple() == ("", "X", True, "json")

    def test_decode_wrong_types_fall_back_to_defaults(self) -> None:
        reply = decode_response(
            Verb.DECODE, {"error": 5, "output": ["x"], "read-only": "yes", "format": None}
        )
        assert reply == DecodeResponse()

    def test_encode_output(self) -> None:
        assert decode_response(Verb.ENCODE, {"output": "raw"}) == EncodeResponse(output="raw")

    def test_validate_valid(self) -> None:
        assert decode_response(Verb.VALIDATE, {"valid": True}) == ValidateResponse(valid=True)

    def test_validate_non_bool_is_false(self) -> None:
        assert decode_response(Verb.VALIDATE, {"valid": 1}) == ValidateResponse(valid=False)


# ===========================================================================
# PluginProtocolCodec
# ===========================================================================


class TestPluginProtocolCodec:
    def test_call_runs_request_and_parses(self) -> None:
        runner = ScriptedRunner(ProcessResult(b'{"output": "X", "format": "json"}', b""))
        codec = PluginProtocolCodec(runner)
        reply = codec.call(["fmt"], Verb.DECODE, "/plugins/jsonpp", b"hi")
        assert reply == DecodeResponse(output="X", format="json")
        assert runner.calls == [(("fmt", "decode"), base64.b64encode(b"hi"), "/plugins/jsonpp")]

    def test_execute_accepts_prebuilt_request(self) -> None:
        runner = ScriptedRunner(ProcessResult(b'{"valid": true}', b""))
        request = CommandRequest(("fmt", "validate"), b"aGk=", "/plugins/fmt", Verb.VALIDATE)
        assert PluginProtocolCodec(runner).execute(request) == ValidateResponse(valid=True)

    def test_stderr_reported_as_warning(self) -> None:
        channel = ErrorChannel()
        runner = ScriptedRunner(ProcessResult(b'{"valid": true}', b"deprecated flag"))
        reply = PluginProtocolCodec(runner, channel).call(["fmt"], Verb.VALIDATE, "/plugins/fmt", b"x")
        assert reply == ValidateResponse(valid=True)
        [notification] = channel.history
        assert notification.severity == NotificationSeverity.WARNING
        assert "deprecated flag" in notification.message
        assert "/plugins/fmt" in notification.message
        assert notification.operation == "validate"

    def test_stderr_without_channel_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        runner = ScriptedRunner(ProcessResult(b'{"valid": true}', b"noise"))
        with caplog.at_level(logging.WARNING, logger="valuefmt.protocol.codec"):
            PluginProtocolCodec(runner).call(["fmt"], Verb.VALIDATE, "/plugins/fmt", b"x")
        assert "noise" in caplog.text

    def test_stderr_does_not_rescue_empty_stdout(self) -> None:
        channel = ErrorChannel()
        runner = ScriptedRunner(ProcessResult(b"", b"traceback"))
        with pytest.raises(NoDataError):
            PluginProtocolCodec(runner, channel).call(["fmt"], Verb.ENCODE, "/plugins/fmt", b"x")
        assert len(channel.history) == 1

    def test_runner_errors_propagate(self) -> None:
        runner = ScriptedRunner(error=RunTimeoutError(["fmt", "info"], 3.0))
        with pytest.raises(RunTimeoutError):
            PluginProtocolCodec(runner).call(["fmt"], Verb.INFO, "/plugins/fmt")

    def test_verb_values(self) -> None:
        assert [v.value for v in Verb] == ["info", "decode", "encode", "validate"]
        assert not Verb.INFO.takes_value
        assert Verb.DECODE.takes_value
