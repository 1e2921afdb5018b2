"""Loading, validating and defaulting the agent's runtime configuration."""

from __future__ import annotations

import json
import ntpath
import os
import sys
from dataclasses import dataclass, field, fields
from typing import Any, Optional

DEFAULT_CLOUD_BASE_URL = "https://web-production-6bb4d.up.railway.app"

_LOG_LEVELS = ("debug", "info", "warn", "error")
_PAPER_WIDTHS = (58, 80)
_TSPL_DIALECTS = ("standard", "rongta")


def _default_origins() -> list[str]:
    return [DEFAULT_CLOUD_BASE_URL, "https://opensimsim.co"]


@dataclass
class Config:
    """On-disk configuration; every field defaults to its documented value.

    ``printer_name`` is the legacy receipt-printer field; when it is set
    and ``receipt_printer_name`` is empty, :func:`load` mirrors it across.
    """

    version: str = "0.1.0"
    listen_port: int = 47291
    cloud_base_url: str = DEFAULT_CLOUD_BASE_URL
    heartbeat_seconds: int = 300
    printer_name: str = ""
    receipt_printer_name: str = ""
    label_printer_name: str = ""
    tspl_dialect: str = "standard"
    log_level: str = "info"
    allowed_origins: list[str] = field(default_factory=_default_origins)
    paper_width_mm: int = 80


_FIELD_NAMES = {f.name for f in fields(Config)}
_INT_FIELDS = {"listen_port", "heartbeat_seconds", "paper_width_mm"}
_LIST_FIELDS = {"allowed_origins"}


class ConfigError(Exception):
    """A configuration could not be loaded or is invalid.

    When raised by :func:`load`, ``config`` holds the defaults the caller
    may fall back to.
    """

    def __init__(self, message: str, config: Optional[Config] = None):
        super().__init__(message)
        self.config = config


class ConfigMissingError(ConfigError):
    """The config file does not exist; the defaults apply."""


class ConfigMalformedError(ConfigError):
    """The config file is not valid JSON or has unknown or mistyped fields."""


def defaults() -> Config:
    """Return a fresh configuration holding the default values."""
    return Config()


def load(path: str) -> Config:
    """Read the config at ``path``; present fields override the defaults.

    Raises :class:`ConfigMissingError` when the file does not exist and
    :class:`ConfigMalformedError` for bad JSON or unknown fields; both
    carry the defaults in ``config``.
    """
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except FileNotFoundError as exc:
        raise ConfigMissingError(f"config: file not found: {path}", defaults()) from exc
    except OSError as exc:
        raise ConfigError(f"config: open {path}: {exc}", defaults()) from exc

    try:
        cfg = _decode(json.loads(raw))
    except ValueError as exc:
        raise ConfigMalformedError(
            f"config: malformed JSON: {path}: {exc}", defaults()
        ) from exc

    if not cfg.receipt_printer_name and cfg.printer_name:
        cfg.receipt_printer_name = cfg.printer_name
    return cfg


def _decode(document: Any) -> Config:
    cfg = defaults()
    if document is None:
        return cfg
    if not isinstance(document, dict):
        raise ValueError("top-level value is not an object")
    for key, value in document.items():
        if key not in _FIELD_NAMES:
            raise ValueError(f"unknown field {json.dumps(key)}")
        if key in _LIST_FIELDS:
            setattr(cfg, key, _decode_string_list(key, value))
            continue
        if value is None:
            continue
        if key in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"field {key} must be an integer")
        elif not isinstance(value, str):
            raise ValueError(f"field {key} must be a string")
        setattr(cfg, key, value)
    return cfg


def _decode_string_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key} must be an array of strings")
    items = []
    for item in value:
        if item is None:
            item = ""
        elif not isinstance(item, str):
            raise ValueError(f"field {key} must be an array of strings")
        items.append(item)
    return items


def validate(config: Config) -> None:
    """Raise :class:`ConfigError` if ``config`` breaks an agent invariant."""
    if config.version == "":
        raise ConfigError("config: version is required")
    if not 1 <= config.listen_port <= 65535:
        raise ConfigError(
            f"config: listen_port {config.listen_port} out of range (1..65535)"
        )
    if config.heartbeat_seconds <= 0:
        raise ConfigError(
            f"config: heartbeat_seconds {config.heartbeat_seconds} must be > 0"
        )
    if config.log_level not in _LOG_LEVELS:
        raise ConfigError(
            f"config: invalid log_level {json.dumps(config.log_level)} "
            "(want debug|info|warn|error)"
        )
    for index, origin in enumerate(config.allowed_origins):
        if origin == "":
            raise ConfigError(f"config: allowed_origins[{index}] is empty")
    if config.paper_width_mm not in _PAPER_WIDTHS:
        raise ConfigError(
            f"config: paper_width_mm {config.paper_width_mm} invalid (want 58 or 80)"
        )
    if config.tspl_dialect not in _TSPL_DIALECTS:
        raise ConfigError(
            f"config: tspl_dialect {json.dumps(config.tspl_dialect)} invalid "
            "(want standard or rongta)"
        )


def _is_windows() -> bool:
    return sys.platform == "win32"


def _program_data_dir() -> str:
    return os.environ.get("ProgramData") or "C:\\ProgramData"


def _agent_path(*parts: str) -> str:
    return ntpath.join(_program_data_dir(), "Simsim", "POSAgent", *parts)


def default_config_path() -> str:
    """Path of config.json for this platform."""
    return _agent_path("config.json") if _is_windows() else "./config.json"


def default_secrets_path() -> str:
    """Path of the pairing secrets file for this platform."""
    return _agent_path("secrets.dat") if _is_windows() else "./secrets.json"


def default_machine_id_path() -> str:
    """Path of the cached machine identifier for this platform."""
    return _agent_path("machine_id") if _is_windows() else "./machine_id"


def default_log_path() -> str:
    """Path of the agent's log file for this platform."""
    return _agent_path("logs", "agent.log") if _is_windows() else "./agent.log"