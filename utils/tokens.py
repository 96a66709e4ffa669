"""
Token codec: signs and verifies compact HS256 JWTs via PyJWT.

Payload: ``sub`` (subject id), ``jti`` (random nonce), ``iat`` and ``exp``.
The nonce keeps two tokens minted for the same subject in the same second
distinct, which refresh-token rotation depends on.

The codec holds no state beyond its TokenSettings. A missing secret is
checked on every call and reported as Unconfigured.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from utils.exceptions import ExpiredToken, InvalidToken, Unconfigured

DEFAULT_ACCESS_TTL = timedelta(hours=1)
DEFAULT_REFRESH_TTL = timedelta(days=7)


@dataclass
class TokenSettings:
    secret: Optional[str]
    access_ttl: timedelta = DEFAULT_ACCESS_TTL
    refresh_ttl: timedelta = DEFAULT_REFRESH_TTL
    algorithm: str = "HS256"

    @classmethod
    def from_config(cls, config) -> "TokenSettings":
        return cls(
            secret=config.get("TOKEN_SECRET") or None,
            access_ttl=config.get("TOKEN_EXPIRATION", DEFAULT_ACCESS_TTL),
            refresh_ttl=config.get("REFRESH_TOKEN_EXPIRATION", DEFAULT_REFRESH_TTL),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )


def generate_nonce() -> str:
    """Generate a unique token id (JWT ``jti``)."""
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenCodec:
    settings: TokenSettings
    required_claims: tuple = field(default=("sub", "exp"))

    def _secret(self) -> str:
        if not self.settings.secret:
            raise Unconfigured()
        return self.settings.secret

    def sign(self, subject_id: str, ttl: timedelta) -> str:
        """Return a signed token for ``subject_id`` expiring ``ttl`` from now."""
        secret = self._secret()
        now = _now()
        payload = {
            "sub": str(subject_id),
            "jti": generate_nonce(),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=self.settings.algorithm)

    def sign_access(self, subject_id: str) -> str:
        return self.sign(subject_id, self.settings.access_ttl)

    def sign_refresh(self, subject_id: str) -> str:
        return self.sign(subject_id, self.settings.refresh_ttl)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate ``token``.
        Raises ExpiredToken past expiry, InvalidToken on bad signature or
        structure, Unconfigured when no secret is set.
        """
        secret = self._secret()
        if not token or not isinstance(token, str):
            raise InvalidToken()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                options={"require": list(self.required_claims)},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredToken()
        except jwt.InvalidTokenError:
            raise InvalidToken()
        if not payload.get("sub"):
            raise InvalidToken()
        return payload

    def subject_of(self, token: str) -> str:
        return str(self.verify(token)["sub"])
