"""
JWT-style token creation and verification.

Tokens are ``header.payload.signature``: each segment URL-safe base64
without padding, the signature an HMAC-SHA256 over the first two
segments.  Verification never raises: any failure (bad shape, bad
signature, bad base64/JSON, expiry) comes back as ``None``.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 7
DEFAULT_ISSUER = "abhihar-auth"

_HEADER = {"alg": "HS256", "typ": "JWT"}
_SEGMENT_RE = re.compile(r"[A-Za-z0-9_-]*")


class MalformedSegment(ValueError):
    """A token segment is not valid URL-safe base64."""


class MissingSecret(RuntimeError):
    """The signing secret is empty; tokens cannot be issued."""


@dataclass(frozen=True)
class IssuedToken:
    token: str
    payload: Dict[str, Any]


def _as_bytes(value: Union[bytes, str]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def encode_segment(data: Union[bytes, str]) -> str:
    return base64.urlsafe_b64encode(_as_bytes(data)).rstrip(b"=").decode("ascii")


def decode_segment(value: str) -> bytes:
    """Inverse of :func:`encode_segment`; raises ``MalformedSegment``."""
    if not _SEGMENT_RE.fullmatch(value):
        raise MalformedSegment("unexpected characters in segment")
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except binascii.Error as exc:
        raise MalformedSegment(str(exc)) from exc


def sign(message: str, secret: Union[bytes, str]) -> str:
    """HMAC-SHA256 of ``message`` under ``secret``, URL-safe encoded."""
    key = _as_bytes(secret or b"")
    if not key:
        raise MissingSecret("JWT secret not configured")
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    return encode_segment(digest)


def _dumps(obj: Mapping[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"))


def issue(
    claims: Mapping[str, Any],
    secret: Union[bytes, str],
    ttl: int = DEFAULT_TTL_SECONDS,
    *,
    now: Optional[int] = None,
    issuer: str = DEFAULT_ISSUER,
) -> IssuedToken:
    """Create a signed token carrying ``claims`` plus ``iat``/``exp``/``iss``."""
    issued_at = int(time.time()) if now is None else int(now)
    payload = {**claims, "iat": issued_at, "exp": issued_at + ttl, "iss": issuer}
    signing_input = f"{encode_segment(_dumps(_HEADER))}.{encode_segment(_dumps(payload))}"
    signature = sign(signing_input, secret)
    return IssuedToken(token=f"{signing_input}.{signature}", payload=payload)


def verify(
    token: Optional[str],
    secret: Union[bytes, str],
    *,
    now: Optional[float] = None,
) -> Optional[Dict[str, Any]]:
    """Return the payload of a valid, unexpired token, else ``None``."""
    if not token:
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_enc, payload_enc, signature = parts

    try:
        expected = sign(f"{header_enc}.{payload_enc}", secret).encode("ascii")
        delivered = signature.encode("utf-8")
        if len(delivered) != len(expected) or not hmac.compare_digest(delivered, expected):
            return None
        payload = json.loads(decode_segment(payload_enc))
    except (MissingSecret, ValueError):
        # MalformedSegment, JSONDecodeError and UnicodeDecodeError are all ValueErrors
        return None

    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)) or not exp:
        return None
    current = time.time() if now is None else now
    if current >= exp:
        return None
    return payload
