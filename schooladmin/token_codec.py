"""
Bearer token codec.

Tokens are three dot-separated segments; the middle one is URL-safe base64
JSON carrying the claims:

    {"exp": 1767225600, "role": "school", "user_id": 7, "school_name": "..."}

Only the payload is read. The signature is the server's business.
"""

import json
import math
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import JOSEError, jws

from schooladmin.exceptions import DecodeFailure


_B64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


@dataclass(frozen=True)
class Claims:
    """Decoded token payload"""
    exp: float
    role: str
    user_id: int
    school_name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _payload_bytes(token: str) -> bytes:
    try:
        return jws.get_unverified_claims(token)
    except JOSEError as e:
        raise DecodeFailure(f"token is not a JWS ({e})")


def decode(token: str) -> Claims:
    """
    Decode the claims of a bearer token.

    Raises:
        DecodeFailure: wrong segment count, bad base64, bytes that are not
            UTF-8, invalid JSON (NaN and Infinity included), or a
            missing/mistyped exp, role or user_id.
    """
    if not isinstance(token, str) or not token:
        raise DecodeFailure("token is empty")

    segments = token.split(".")
    if len(segments) != 3:
        raise DecodeFailure(f"expected 3 segments, got {len(segments)}")

    payload_segment = segments[1]
    if not payload_segment:
        raise DecodeFailure("payload segment is empty")
    if not _B64URL_SEGMENT.match(payload_segment):
        raise DecodeFailure("payload is not valid base64")

    raw_bytes = _payload_bytes(token)

    # Names may be Cyrillic; the bytes must be read as UTF-8
    try:
        text = raw_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeFailure(f"payload is not UTF-8 ({e.reason})")

    try:
        payload = json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise DecodeFailure(f"payload is not JSON ({e})")

    if not isinstance(payload, dict):
        raise DecodeFailure("payload is not a JSON object")

    missing = [name for name in ("exp", "role", "user_id") if name not in payload]
    if missing:
        raise DecodeFailure(f"missing claims: {', '.join(missing)}")

    exp = payload["exp"]
    role = payload["role"]
    user_id = payload["user_id"]

    if not _is_finite_number(exp):
        raise DecodeFailure("claim 'exp' must be a finite number")
    if not isinstance(role, str) or not role:
        raise DecodeFailure("claim 'role' must be a non-empty string")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise DecodeFailure("claim 'user_id' must be an integer")

    school_name = payload.get("school_name")
    if school_name is not None and not isinstance(school_name, str):
        school_name = str(school_name)

    return Claims(
        exp=exp,
        role=role,
        user_id=user_id,
        school_name=school_name or None,
        raw=payload,
    )


def try_decode(token: Optional[str]) -> Optional[Claims]:
    """Decode, returning None instead of raising"""
    if not token:
        return None
    try:
        return decode(token)
    except DecodeFailure:
        return None


def is_expired(token: Optional[str], now: Optional[float] = None) -> bool:
    """
    True unless the token decodes and `now` is strictly before its exp.

    Undecodable tokens count as expired.
    """
    claims = try_decode(token)
    if claims is None:
        return True

    current = time.time() if now is None else now
    return not current < claims.exp
