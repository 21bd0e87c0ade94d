"""HMAC-SHA256 signed operator tokens.

An operator proves knowledge of the shared operator password once, at login,
and receives a signed token to present as a Bearer credential on every operator
request. Tokens are verified locally; nothing is stored server-side, so a token
stays valid until it expires.

Token format: base64url(json_payload_bytes).base64url(hmac_sha256_signature)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
import secrets
import time
from dataclasses import asdict, dataclass

import structlog

logger = structlog.get_logger()

_TOKEN_PARTS = 2  # base64url(payload).base64url(signature)

DEFAULT_TOKEN_TTL_SECONDS = 12 * 3600
CLOCK_SKEW_SECONDS = 60


@dataclass
class OperatorToken:
    """Payload carried inside a signed operator token."""

    token_id: str
    issued_at: float
    expires_at: float


def check_operator_password(candidate: str, password: str) -> bool:
    """Constant-time comparison of a login attempt against the shared password."""
    return hmac.compare_digest(candidate.encode(), password.encode())


def issue_operator_token(secret: str, ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS) -> str:
    """Create and sign a fresh operator token."""
    now = time.time()
    token = OperatorToken(token_id=secrets.token_hex(8), issued_at=now, expires_at=now + ttl_seconds)
    return sign_operator_token(token, secret)


def sign_operator_token(token: OperatorToken, secret: str) -> str:
    payload_bytes = json.dumps(asdict(token), sort_keys=True).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    return f"{base64.urlsafe_b64encode(payload_bytes).decode()}.{base64.urlsafe_b64encode(sig).decode()}"


def verify_operator_token(
    token: str,
    secret: str,
    max_ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
) -> OperatorToken | None:
    """Verify HMAC signature and expiry. Returns OperatorToken or None on any failure."""
    parts = token.split(".")
    if len(parts) != _TOKEN_PARTS:
        return None

    try:
        payload_bytes = base64.urlsafe_b64decode(parts[0])
        provided_sig = base64.urlsafe_b64decode(parts[1])
    except (ValueError, binascii.Error):
        return None

    expected_sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_sig, expected_sig):
        logger.debug("operator token signature mismatch")
        return None

    try:
        parsed = OperatorToken(**json.loads(payload_bytes))
    except (json.JSONDecodeError, TypeError):
        logger.debug("operator token malformed payload")
        return None

    if not _timestamps_valid(parsed, max_ttl_seconds):
        return None
    return parsed


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _timestamps_valid(token: OperatorToken, max_ttl_seconds: float) -> bool:
    """Reject non-finite, future-dated, inverted, over-long or expired tokens."""
    if not _is_finite_number(token.issued_at) or not _is_finite_number(token.expires_at):
        logger.debug("operator token non-finite timestamp")
        return False

    now = time.time()
    if token.issued_at > now + CLOCK_SKEW_SECONDS:
        logger.debug("operator token issued in the future")
        return False
    if token.expires_at <= token.issued_at:
        logger.debug("operator token expires_at <= issued_at")
        return False
    if token.expires_at - token.issued_at > max_ttl_seconds + CLOCK_SKEW_SECONDS:
        logger.debug("operator token lifetime too long")
        return False
    if now > token.expires_at:
        logger.debug("operator token expired")
        return False
    return True
