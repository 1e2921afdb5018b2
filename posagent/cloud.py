"""HTTP client for the cloud's /api/pos-agent/* endpoints.

Every response is wrapped in an envelope ``{"ok": bool, "data": ...,
"error": {"code": ..., "message": ...}}``. Failures are raised as
subclasses of :class:`CloudError`, one per contract error code, plus
:class:`NetworkError` for transport problems and :class:`ProtocolError`
for successful responses that cannot be decoded.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping, Optional

DEFAULT_TIMEOUT = 10.0

PATH_PAIR = "/api/pos-agent/pair"
PATH_HEARTBEAT = "/api/pos-agent/heartbeat"
PATH_UNPAIR = "/api/pos-agent/unpair"


class CloudError(Exception):
    """Base class for every error raised by :class:`Client`.

    ``code`` is the machine-readable code from the cloud envelope (empty
    when the error did not come from one), ``message`` the cloud-supplied
    human-readable text, ``status`` the HTTP status when one was received.
    """

    description = "cloud: error"

    def __init__(self, message: str = "", code: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def __str__(self) -> str:
        if self.message:
            return f"{self.description}: {self.message}"
        return self.description


class InvalidRequestError(CloudError):
    description = "cloud: invalid request"


class InvalidCodeError(CloudError):
    description = "cloud: pairing code invalid or expired"


class UnauthenticatedError(CloudError):
    description = "cloud: terminal token invalid or revoked"


class ForbiddenError(CloudError):
    description = "cloud: forbidden"


class NotFoundError(CloudError):
    description = "cloud: not found"


class RateLimitedError(CloudError):
    description = "cloud: rate limited"


class InternalError(CloudError):
    description = "cloud: server error"


class NetworkError(CloudError):
    description = "cloud: network error"


class ProtocolError(CloudError):
    """A successful response whose body could not be decoded."""

    description = "cloud: invalid response"


_ERRORS_BY_CODE: dict[str, type[CloudError]] = {
    "INVALID_REQUEST": InvalidRequestError,
    "INVALID_CODE": InvalidCodeError,
    "UNAUTHENTICATED": UnauthenticatedError,
    "FORBIDDEN": ForbiddenError,
    "NOT_FOUND": NotFoundError,
    "RATE_LIMITED": RateLimitedError,
    "INTERNAL": InternalError,
}


@dataclass(frozen=True)
class PairResponse:
    """Payload returned by a successful pair call."""

    terminal_id: str = ""
    terminal_token: str = ""
    store_id: str = ""
    store_name: str = ""
    terminal_label: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PairResponse":
        """Build from the envelope's ``data`` object; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError("pair response data must be an object")
        values = {}
        for f in fields(cls):
            value = data.get(f.name)
            if value is None:
                value = ""
            elif not isinstance(value, str):
                raise ValueError(f"{f.name} must be a string")
            values[f.name] = value
        return cls(**values)


@dataclass
class PrinterStatus:
    """Printer transport state reported in heartbeats.

    ``last_error`` is ``None`` for "no error", which is sent as JSON null
    and is distinct from an empty string.
    """

    configured: bool = False
    reachable: bool = False
    name: str = ""
    last_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class HeartbeatRequest:
    """Body of the heartbeat call."""

    agent_version: str = ""
    os_version: str = ""
    uptime_seconds: int = 0
    printer: PrinterStatus = field(default_factory=PrinterStatus)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_version": self.agent_version,
            "os_version": self.os_version,
            "uptime_seconds": int(self.uptime_seconds),
            "printer": self.printer.to_dict(),
        }


@dataclass(frozen=True)
class _ErrorPayload:
    code: str
    message: str


class Client:
    """Speaks to the cloud's /api/pos-agent/* endpoints.

    ``opener`` is the urllib opener used for requests; replace it to use
    a custom transport.
    """

    def __init__(self, base_url: str, version: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url
        self.user_agent = f"simsim-pos-agent/{version}"
        self.timeout = timeout
        self.opener = urllib.request.build_opener()

    def pair(self, code: str, agent_version: str, machine_id: str) -> PairResponse:
        """Exchange a pairing code for a long-lived terminal token."""
        data = self._post(
            PATH_PAIR,
            "",
            {"code": code, "agent_version": agent_version, "machine_id": machine_id},
        )
        try:
            return PairResponse.from_dict({} if data is None else data)
        except ValueError as exc:
            raise ProtocolError(f"decode data: {exc}") from exc

    def heartbeat(self, token: str, hb: HeartbeatRequest) -> None:
        """Report liveness and agent state, authenticated by ``token``."""
        self._post(PATH_HEARTBEAT, token, hb.to_dict())

    def unpair(self, token: str) -> None:
        """Revoke the terminal's token cloud-side."""
        self._post(PATH_UNPAIR, token, {})

    def _post(self, path: str, token: str, body: Any) -> Any:
        raw = json.dumps(body, ensure_ascii=False).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if token:
            headers["X-Terminal-Token"] = token
        request = urllib.request.Request(
            self.base_url + path, data=raw, headers=headers, method="POST"
        )

        try:
            with self.opener.open(request, timeout=self.timeout) as response:
                status = response.status
                payload = response.read()
        except urllib.error.HTTPError as exc:
            status = exc.code
            try:
                payload = exc.read()
            except (OSError, http.client.HTTPException) as read_exc:
                raise NetworkError(f"read body: {read_exc}") from read_exc
            finally:
                exc.close()
        except (OSError, http.client.HTTPException) as exc:
            raise NetworkError(str(exc)) from exc

        return _decode_response(status, payload)


def _decode_response(status: int, payload: bytes) -> Any:
    """Check the envelope and return its ``data``, or raise the mapped error."""
    try:
        ok, data, error = _parse_envelope(json.loads(payload))
    except ValueError as exc:
        if 200 <= status < 300:
            raise ProtocolError(
                f"invalid JSON response (HTTP {status}): {exc}", status=status
            ) from exc
        raise InternalError(f"HTTP {status} (no JSON envelope)", status=status) from exc

    if not ok:
        if error is None:
            raise InternalError(
                f"HTTP {status} (envelope ok=false but no error field)", status=status
            )
        error_cls = _ERRORS_BY_CODE.get(error.code, InternalError)
        raise error_cls(error.message, code=error.code, status=status)
    return data


def _parse_envelope(envelope: Any) -> tuple[bool, Any, Optional[_ErrorPayload]]:
    if envelope is None:
        return False, None, None
    if not isinstance(envelope, dict):
        raise ValueError("response envelope is not an object")

    ok = envelope.get("ok")
    if ok is None:
        ok = False
    elif not isinstance(ok, bool):
        raise ValueError("envelope field 'ok' is not a boolean")

    raw_error = envelope.get("error")
    error = None
    if raw_error is not None:
        if not isinstance(raw_error, dict):
            raise ValueError("envelope field 'error' is not an object")
        code = raw_error.get("code") or ""
        message = raw_error.get("message") or ""
        if not isinstance(code, str) or not isinstance(message, str):
            raise ValueError("envelope error fields must be strings")
        error = _ErrorPayload(code=code, message=message)

    return ok, envelope.get("data"), error