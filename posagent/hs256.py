"""Minting and verifying HS256 tokens with a fixed claim set.

Supports exactly one algorithm (HMAC-SHA256), a fixed header and a
fixed claim set, with a hard ceiling on token lifetime.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
import re
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional, Union

MAX_TTL_SECONDS = 900

_HEADER = {"alg": "HS256", "typ": "JWT"}
_B64URL = re.compile(r"[A-Za-z0-9_-]*\Z")


@dataclass(frozen=True)
class Claims:
    """Payload of an agent handshake token. ``iat``/``exp`` are Unix seconds."""

    iss: str = ""
    aud: str = ""
    iat: int = 0
    exp: int = 0
    scope: str = ""


class TokenError(ValueError):
    """Base class for token verification failures."""


class MalformedTokenError(TokenError):
    def __init__(self, detail: str = "malformed token"):
        super().__init__(f"jwt: {detail}")


class BadSignatureError(TokenError):
    def __init__(self) -> None:
        super().__init__("jwt: signature verification failed")


class ExpiredTokenError(TokenError):
    def __init__(self) -> None:
        super().__init__("jwt: token expired")


def mint(claims: Claims, key: Union[bytes, str]) -> str:
    """Return ``header.payload.signature`` signed with HMAC-SHA256 under ``key``."""
    signing_input = _b64encode(_to_json(_HEADER)) + "." + _b64encode(_to_json(asdict(claims)))
    return signing_input + "." + _b64encode(_sign(signing_input, key))


def verify(
    token: str,
    key: Union[bytes, str],
    now: Optional[Union[datetime, int, float]] = None,
) -> Claims:
    """Check structure, signature, expiry and TTL ceiling; return the claims.

    Audience and issuer are not checked here. Raises
    :class:`MalformedTokenError`, :class:`BadSignatureError` or
    :class:`ExpiredTokenError`.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedTokenError()
    header_seg, payload_seg, sig_seg = parts

    header = _decode_json_segment(header_seg)
    if not isinstance(header, dict):
        raise MalformedTokenError("header is not an object")
    if header.get("alg") != "HS256" or header.get("typ") != "JWT":
        raise MalformedTokenError("unsupported header")

    # The signature is checked before the payload is decoded, so nothing
    # is read from unverified claim bytes.
    want_sig = _b64decode(sig_seg)
    got_sig = _sign(header_seg + "." + payload_seg, key)
    if not hmac.compare_digest(got_sig, want_sig):
        raise BadSignatureError()

    claims = _claims_from_json(_decode_json_segment(payload_seg))

    if claims.exp <= _unix_seconds(now):
        raise ExpiredTokenError()
    if claims.exp - claims.iat > MAX_TTL_SECONDS:
        raise ExpiredTokenError()
    return claims


def _sign(signing_input: str, key: Union[bytes, str]) -> bytes:
    if isinstance(key, str):
        key = key.encode("utf-8")
    return hmac.new(key, signing_input.encode("utf-8"), hashlib.sha256).digest()


def _to_json(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    if not _B64URL.match(segment):
        raise MalformedTokenError("invalid base64url segment")
    try:
        return base64.b64decode(
            segment + "=" * (-len(segment) % 4), altchars=b"-_", validate=True
        )
    except binascii.Error as exc:
        raise MalformedTokenError("invalid base64url segment") from exc


def _decode_json_segment(segment: str) -> Any:
    raw = _b64decode(segment)
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise MalformedTokenError("invalid JSON segment") from exc


def _claims_from_json(payload: Any) -> Claims:
    if payload is None:
        return Claims()
    if not isinstance(payload, dict):
        raise MalformedTokenError("payload is not an object")
    values: dict[str, Any] = {}
    for name in ("iss", "aud", "scope"):
        value = payload.get(name)
        if value is None:
            value = ""
        elif not isinstance(value, str):
            raise MalformedTokenError(f"claim {name} is not a string")
        values[name] = value
    for name in ("iat", "exp"):
        value = payload.get(name)
        if value is None:
            value = 0
        elif isinstance(value, bool) or not isinstance(value, int):
            raise MalformedTokenError(f"claim {name} is not an integer")
        values[name] = value
    return Claims(**values)


def _unix_seconds(now: Optional[Union[datetime, int, float]]) -> int:
    if now is None:
        return math.floor(time.time())
    if isinstance(now, datetime):
        return math.floor(now.timestamp())
    return math.floor(now)