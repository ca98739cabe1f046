"""Shared test fixtures for valuefmt.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. Stub formatter plugins are small Python
scripts run through ``sys.executable`` so no external binaries are
needed.
"""
from __future__ import annotations

import json
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from valuefmt.core import ErrorChannel, FormatterConfig
from valuefmt.service import FormatterService

# Answers every verb the way a well-behaved plugin does. decode/encode
# echo the base64 text they received, so payload integrity can be
# checked by decoding the output.
ECHO_STUB = """
import json
import sys

verb = sys.argv[1]
if verb == "info":
    print(json.dumps({"version": "1.0", "description": "pretty json"}))
elif verb == "decode":
    payload = sys.stdin.read()
    print(json.dumps({"output": payload, "read-only": False, "format": "base64"}))
elif verb == "encode":
    print(json.dumps({"output": sys.stdin.read()}))
elif verb == "validate":
    print(json.dumps({"valid": bool(sys.stdin.read())}))
"""

# Only answers info; every other verb produces the given reply.
REPLY_STUB = """
import json
import sys

if sys.argv[1] == "info":
    print(json.dumps({{"version": "1.0", "description": "pretty json"}}))
else:
    sys.stdin.read()
    sys.stdout.write({reply!r})
"""

SLEEPY_STUB = """
import time

time.sleep(5)
"""

GARBAGE_STUB = """
import sys

sys.stdout.write("this is not json")
"""


def reply_stub(reply: str) -> str:
    """Stub whose info works and whose value verbs print ``reply`` verbatim."""
    return REPLY_STUB.format(reply=reply)


PluginFactory = Callable[..., Path]


@pytest.fixture()
def formatters_dir(tmp_path: Path) -> Path:
    """An empty formatters directory."""
    directory = tmp_path / "formatters"
    directory.mkdir()
    return directory


@pytest.fixture()
def make_plugin(formatters_dir: Path) -> PluginFactory:
    """Return a factory that installs a stub plugin under ``formatters_dir``.

    ``manifest`` overrides the ``usage.json`` content: a list is dumped
    as JSON, a string is written verbatim, ``None`` writes no manifest
    at all when ``with_manifest`` is False.
    """

    def _make(
        name: str,
        script: str = ECHO_STUB,
        manifest: list[object] | str | None = None,
        with_manifest: bool = True,
    ) -> Path:
        plugin_dir = formatters_dir / name
        plugin_dir.mkdir()
        (plugin_dir / "stub.py").write_text(textwrap.dedent(script), encoding="utf-8")
        if with_manifest:
            usage = manifest if manifest is not None else [sys.executable, "stub.py"]
            text = usage if isinstance(usage, str) else json.dumps(usage)
            (plugin_dir / "usage.json").write_text(text, encoding="utf-8")
        return plugin_dir

    return _make


@pytest.fixture()
def channel() -> ErrorChannel:
    return ErrorChannel()


@pytest.fixture()
def fast_config(formatters_dir: Path) -> FormatterConfig:
    """Config pointing at ``formatters_dir`` with short process limits."""
    return FormatterConfig(formatters_path=formatters_dir, start_timeout=3.0, run_timeout=2.0)


@pytest.fixture()
def service(fast_config: FormatterConfig, channel: ErrorChannel) -> FormatterService:
    """A service over ``formatters_dir``; call ``load()`` after installing plugins."""
    return FormatterService(fast_config, channel=channel)


@pytest.fixture()
def stubs() -> SimpleNamespace:
    """Stub plugin scripts: ``echo``, ``sleepy``, ``garbage`` and ``reply(text)``."""
    return SimpleNamespace(echo=ECHO_STUB, sleepy=SLEEPY_STUB, garbage=GARBAGE_STUB, reply=reply_stub)
