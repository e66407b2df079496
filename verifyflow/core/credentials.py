"""Credential Parsing — pure decoding of API key tokens.

Invariants:
    - A token is exactly 3 non-empty dot-separated segments
    - Claims are read in order exp -> key_type; the first missing claim wins
    - Expiry is inclusive: now >= exp means expired
    - The raw token never appears in repr() or error messages

Design Decisions:
    - Signature is NOT verified: the server is the authority, we only read claims
    - PyJWT decodes the segments; exp and key_type are parsed here because
      registered-claim validation is disabled along with the signature check
    - Time is passed in (now) so every function here stays deterministic
"""

import math
from dataclasses import dataclass, field

import jwt

from verifyflow.core.domain_types import KeyType
from verifyflow.core.errors import ClientError, ClientErrorCode


@dataclass(frozen=True)
class Credential:
    """A usable bearer token plus the claims it was resolved from."""
    token: str = field(repr=False)
    key_type: KeyType
    expires_at: float | None = None


@dataclass(frozen=True)
class TokenClaims:
    """The two claims resolution depends on. key_type is kept raw for error reporting."""
    exp: float
    key_type: str


def decode_payload(token: str) -> dict:
    """Decode the middle segment of a JWT into a dict.

    Raises:
        ClientError(invalid_jwt_format): wrong shape, or a segment PyJWT cannot
            decode (bad base64, non-object JSON header or payload).
    """
    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        raise ClientError(ClientErrorCode.INVALID_JWT_FORMAT)

    # Registered-claim checks stay off with the signature check; exp is read below
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise ClientError(ClientErrorCode.INVALID_JWT_FORMAT) from e


def parse_expiration(value: object) -> float | None:
    """exp may be an int, a float or a numeric string. Booleans are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            exp = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            exp = float(value.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None
    return exp if math.isfinite(exp) else None


def decode_claims(token: str) -> TokenClaims:
    payload = decode_payload(token)

    exp = parse_expiration(payload.get("exp"))
    if exp is None:
        raise ClientError(ClientErrorCode.MISSING_EXPIRATION)

    key_type = payload.get("key_type")
    if not isinstance(key_type, str):
        raise ClientError(ClientErrorCode.MISSING_KEY_TYPE)

    return TokenClaims(exp=exp, key_type=key_type)


def is_expired(exp: float, now: float) -> bool:
    return now >= exp
