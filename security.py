"""
Session tokens and password hashing.

Tokens are ``<payload>.<signature>`` where payload is base64url JSON
claims and signature is HMAC-SHA256 over the encoded payload. Claims:
``kind`` ("admin" or "user"), ``sub``, ``iat`` (epoch milliseconds) and,
for users, ``email``. Tokens are stateless: expiry is the only way one
stops working.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Optional

import bcrypt


class TokenError(Exception):
    pass


class TokenExpired(TokenError):
    pass


@dataclass
class TokenClaims:
    kind: str
    sub: str
    iat: int
    email: Optional[str] = None


def now_ms() -> int:
    return int(time.time() * 1000)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _sign(secret: str, payload: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def issue_token(secret: str, claims: TokenClaims) -> str:
    body = {"kind": claims.kind, "sub": claims.sub, "iat": claims.iat}
    if claims.email is not None:
        body["email"] = claims.email
    payload = _b64encode(json.dumps(body, separators=(",", ":")).encode("utf-8"))
    return f"{payload}.{_sign(secret, payload)}"


def create_admin_token(secret: str, username: str, issued_at: Optional[int] = None) -> str:
    return issue_token(secret, TokenClaims("admin", username, issued_at if issued_at is not None else now_ms()))


def create_user_token(secret: str, user_id: str, email: str, issued_at: Optional[int] = None) -> str:
    return issue_token(secret, TokenClaims("user", user_id, issued_at if issued_at is not None else now_ms(), email))


def decode_token(secret: str, token: str, kind: str, ttl_seconds: int,
                 now: Optional[int] = None) -> TokenClaims:
    """Verify signature, kind and age. A token exactly ``ttl_seconds`` old is still valid."""
    try:
        payload, signature = token.split(".")
    except ValueError:
        raise TokenError("Malformed token")
    if not hmac.compare_digest(_sign(secret, payload), signature):
        raise TokenError("Invalid token signature")
    try:
        body = json.loads(_b64decode(payload))
        claims = TokenClaims(
            kind=str(body["kind"]),
            sub=str(body["sub"]),
            iat=int(body["iat"]),
            email=body.get("email"),
        )
    except (binascii.Error, ValueError, KeyError, TypeError):
        raise TokenError("Malformed token")
    if claims.kind != kind:
        raise TokenError("Wrong token type")

    now = now if now is not None else now_ms()
    if now - claims.iat > ttl_seconds * 1000:
        raise TokenExpired("Token expired")
    return claims


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
