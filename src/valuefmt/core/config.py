"""Configuration for the formatter host.

The host application owns a configuration directory; formatter plugins
live in its ``formatters`` subdirectory unless a path is given
explicitly. Settings can come from keyword arguments, environment
variables or a YAML file.

Environment variables
---------------------
``VALUEFMT_CONFIG_DIR``
    Host configuration directory (default ``~/.valuefmt``).
``VALUEFMT_FORMATTERS_PATH``
    Plugin directory, overriding ``<config dir>/formatters``.
``VALUEFMT_START_TIMEOUT`` / ``VALUEFMT_RUN_TIMEOUT``
    Process limits in seconds (default 3 each).
``VALUEFMT_EXTRA_PATH``
    ``os.pathsep``-separated directories prepended to the plugin's ``PATH``.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

DEFAULT_START_TIMEOUT: float = 3.0
DEFAULT_RUN_TIMEOUT: float = 3.0
FORMATTERS_DIRNAME = "formatters"

_ENV_PREFIX = "VALUEFMT_"


def config_path() -> Path:
    """Return the host application's configuration directory."""
    override = os.environ.get(f"{_ENV_PREFIX}CONFIG_DIR")
    if override:
        return Path(override)
    return Path.home() / ".valuefmt"


def default_formatters_path() -> Path:
    return config_path() / FORMATTERS_DIRNAME


@dataclass(frozen=True)
class FormatterConfig:
    """Settings shared by the catalog scan and every plugin call.

    Parameters
    ----------
    formatters_path:
        Plugin directory. ``None`` means ``config_path() / "formatters"``.
    start_timeout:
        Seconds a plugin process may take to reach a running state.
    run_timeout:
        Seconds a running plugin process may take to exit before it is
        killed.
    extra_path:
        Directories prepended to ``PATH`` in the plugin environment,
        e.g. a bundled interpreter shipped next to the host.
    """

    formatters_path: Path | None = None
    start_timeout: float = DEFAULT_START_TIMEOUT
    run_timeout: float = DEFAULT_RUN_TIMEOUT
    extra_path: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.start_timeout <= 0 or self.run_timeout <= 0:
            raise ValueError("Process timeouts must be positive")
        if self.formatters_path is not None and not isinstance(self.formatters_path, Path):
            object.__setattr__(self, "formatters_path", Path(self.formatters_path))
        object.__setattr__(self, "extra_path", tuple(str(p) for p in self.extra_path))

    @property
    def resolved_formatters_path(self) -> Path:
        """The plugin directory actually scanned."""
        if self.formatters_path is None:
            return default_formatters_path()
        return self.formatters_path

    # ------------------------------------------------------------------
    # Alternate constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "FormatterConfig":
        """Build a config from a plain mapping of field names to values.

        Raises
        ------
        ValueError
            If ``data`` contains keys that are not config fields, or a
            value has the wrong shape.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown formatter config keys: {', '.join(unknown)}")

        kwargs: dict[str, object] = {}
        if data.get("formatters_path") is not None:
            kwargs["formatters_path"] = Path(str(data["formatters_path"])).expanduser()
        for key in ("start_timeout", "run_timeout"):
            if data.get(key) is not None:
                try:
                    kwargs[key] = float(data[key])  # type: ignore[arg-type]
                except (TypeError, ValueError):
                    raise ValueError(f"{key} must be a number, got {data[key]!r}") from None
        extra = data.get("extra_path")
        if extra is not None:
            if isinstance(extra, str):
                kwargs["extra_path"] = tuple(p for p in extra.split(os.pathsep) if p)
            elif isinstance(extra, (list, tuple)):
                kwargs["extra_path"] = tuple(str(p) for p in extra)
            else:
                raise ValueError(f"extra_path must be a string or list, got {extra!r}")
        return cls(**kwargs)  # type: ignore[arg-type]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "FormatterConfig":
        """Build a config from ``VALUEFMT_*`` environment variables."""
        env = os.environ if environ is None else environ
        data: dict[str, object] = {}
        for name in ("formatters_path", "start_timeout", "run_timeout", "extra_path"):
            value = env.get(f"{_ENV_PREFIX}{name.upper()}")
            if value:
                data[name] = value
        return cls.from_mapping(data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "FormatterConfig":
        """Load a config from a YAML mapping file.

        An empty file yields the defaults.
        """
        text = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(text)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a YAML mapping, got {type(data).__name__}")
        return cls.from_mapping(data)
