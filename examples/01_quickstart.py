#!/usr/bin/env python3
"""Example: Quickstart — valuefmt

Minimal working example: install a tiny formatter plugin into a
temporary directory, load the catalog, and decode, encode and validate
a value with it.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install valuefmt
"""
from __future__ import annotations

import json
import sys
import tempfile
from pathlib import Path

import valuefmt

PLUGIN_SOURCE = '''
import base64
import json
import sys

verb = sys.argv[1]
if verb == "info":
    print(json.dumps({"version": "1.0", "description": "Pretty-prints JSON values"}))
    sys.exit(0)

value = base64.b64decode(sys.stdin.read())
if verb == "decode":
    try:
        pretty = json.dumps(json.loads(value), indent=2)
    except ValueError as exc:
        print(json.dumps({"error": str(exc)}))
    else:
        print(json.dumps({"output": pretty, "read-only": False, "format": "json"}))
elif verb == "encode":
    print(json.dumps({"output": json.dumps(json.loads(value), separators=(",", ":"))}))
elif verb == "validate":
    try:
        json.loads(value)
        print(json.dumps({"valid": True}))
    except ValueError:
        print(json.dumps({"valid": False}))
'''


def install_plugin(formatters: Path) -> None:
    plugin_dir = formatters / "jsonpp"
    plugin_dir.mkdir(parents=True)
    (plugin_dir / "jsonpp.py").write_text(PLUGIN_SOURCE, encoding="utf-8")
    (plugin_dir / "usage.json").write_text(json.dumps([sys.executable, "jsonpp.py"]), encoding="utf-8")


def main() -> None:
    print(f"valuefmt version: {valuefmt.__version__}")

    with tempfile.TemporaryDirectory() as tmp:
        formatters = Path(tmp) / "formatters"
        install_plugin(formatters)

        # Step 1: Discover plugins
        service = valuefmt.load(formatters)
        service.channel.subscribe(lambda note: print(f"  [{note.severity.name}] {note}"))
        print(f"Installed formatters: {service.get_plain_list()}")
        entry = service.lookup("jsonpp")
        print(f"jsonpp {entry.version}: {entry.description}")

        # Step 2: Decode a stored value for display
        def show(error: str, output: str, read_only: bool, fmt: str) -> None:
            print(f"\nDecoded ({fmt}, read-only={read_only}):")
            print(output if not error else f"error: {error}")

        service.decode("jsonpp", b'{"name":"valuefmt","tags":["a","b"]}', show)

        # Step 3: Encode an edited rendering back
        service.encode("jsonpp", '{\n  "name": "edited"\n}', lambda out: print(f"\nEncoded: {out}"))

        # Step 4: Validate raw values
        for raw in (b'{"ok": true}', b"{broken"):
            service.is_valid("jsonpp", raw, lambda valid, raw=raw: print(f"{raw!r} valid: {valid}"))

        # Unknown formatters are reported on the error channel
        service.decode("msgpack", b"\x81", show)


if __name__ == "__main__":
    main()
