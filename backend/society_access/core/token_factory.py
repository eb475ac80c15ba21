"""Pure functions for issuing and verifying login tokens.

Tokens are HS256 JWTs carrying the user id and the user's role. The role is
only informative: every request re-reads the user's current role from the
database, so a role change takes effect without waiting for expiry.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_ISSUER = "society-access"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded token claims. Immutable."""
    user_id: int
    role_id: Optional[int]
    role_name: Optional[str]
    exp: datetime


def create_token(
    user_id: int,
    role_id: Optional[int],
    role_name: Optional[str],
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Create a signed login token.

    Args:
        user_id: Subject of the token.
        role_id: Role of the user at login time.
        role_name: Display name of that role.
        secret: HMAC signing key.
        algorithm: Only HS256 supported.
        expires_hours: Hours until expiry.

    Returns:
        Encoded JWT string.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = time.time()
    payload = {
        "sub": str(user_id),
        "role_id": role_id,
        "role_name": role_name,
        "iat": int(now),
        "exp": int(now + expires_hours * 3600),
        "iss": _ISSUER,
    }

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Verify a token and return its claims.

    Returns ``None`` on a bad signature, an expired or malformed token, or a
    foreign issuer. Never raises.
    """
    if algorithm != "HS256":
        return None
    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        if not hmac.compare_digest(expected_sig, _b64decode(parts[2])):
            return None

        payload = json.loads(_b64decode(parts[1]))
        if payload.get("iss") != _ISSUER:
            return None

        exp = payload.get("exp", 0)
        if time.time() > exp:
            return None

        return TokenPayload(
            user_id=int(payload["sub"]),
            role_id=payload.get("role_id"),
            role_name=payload.get("role_name"),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (json.JSONDecodeError, KeyError, ValueError, TypeError, IndexError):
        return None


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
