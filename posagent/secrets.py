"""Persisted pairing secrets and the stores that hold them."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol, runtime_checkable

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"([Zz]|[+-]\d{2}:\d{2})\Z"
)


class NoSecretsError(LookupError):
    """The store holds no secrets: the agent is unpaired."""

    def __init__(self, message: str = "secrets: no paired secrets present"):
        super().__init__(message)


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if len(text) < 19:
        text = f"{moment.year:04d}" + text[text.index("-"):]
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{mins:02d}"


def _parse_time(text: str) -> datetime:
    match = _RFC3339.match(text)
    if not match:
        raise ValueError(f"invalid timestamp {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, zone = match.group(7), match.group(8)
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


@dataclass
class Secrets:
    """The agent's pairing state."""

    terminal_id: str = ""
    terminal_token: str = ""
    store_id: str = ""
    paired_at: datetime = field(default=_ZERO_TIME)

    def to_dict(self) -> dict[str, Any]:
        return {
            "terminal_id": self.terminal_id,
            "terminal_token": self.terminal_token,
            "store_id": self.store_id,
            "paired_at": _format_time(self.paired_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Secrets":
        """Build from decoded JSON; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError("secrets document is not an object")
        values: dict[str, Any] = {}
        for name in ("terminal_id", "terminal_token", "store_id"):
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"{name} must be a string")
            values[name] = value
        paired_at = data.get("paired_at")
        if paired_at is not None:
            if not isinstance(paired_at, str):
                raise ValueError("paired_at must be a timestamp string")
            values["paired_at"] = _parse_time(paired_at)
        return cls(**values)


@runtime_checkable
class SecretStore(Protocol):
    """Where pairing secrets are persisted."""

    def load(self) -> Secrets:
        """Return the stored secrets; raise :class:`NoSecretsError` if none."""
        ...

    def save(self, secrets: Secrets) -> None:
        """Persist ``secrets`` atomically."""
        ...

    def clear(self) -> None:
        """Remove stored secrets; clearing an empty store is not an error."""
        ...


def write_atomic(path: str, data: bytes, mode: int = 0o600) -> None:
    """Write ``data`` to ``path`` via a temp file, fsync and rename.

    Missing parent directories are created.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, mode=0o755, exist_ok=True)
    tmp = path + ".tmp"
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise


class JSONFileSecretStore:
    """Stores secrets as plaintext JSON.

    For development and tests only: anyone who can read the file can read
    the terminal token.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Secrets:
        try:
            with open(self.path, "rb") as fh:
                raw = fh.read()
        except FileNotFoundError as exc:
            raise NoSecretsError() from exc
        try:
            return Secrets.from_dict(json.loads(raw))
        except ValueError as exc:
            raise ValueError(f"secrets: decode {self.path}: {exc}") from exc

    def save(self, secrets: Secrets) -> None:
        raw = json.dumps(secrets.to_dict(), indent=2, ensure_ascii=False)
        write_atomic(self.path, raw.encode("utf-8"), 0o600)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


def new_secret_store(path: str) -> SecretStore:
    """Return the secret store used by this platform's agent."""
    return JSONFileSecretStore(path)