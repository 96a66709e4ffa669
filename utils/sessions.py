"""
Session engine: issues, rotates and revokes access/refresh token pairs.

Every refresh token a user may still present lives in User.refresh_tokens.

- login replaces the list with the single freshly minted refresh token
- rotate accepts a listed token exactly once: it is removed and the new
  refresh token appended, so parallel sessions on other devices survive
- a token that verifies but is not listed has already been used (or was
  revoked); that is treated as theft and clears every session of the user
- logout clears the list, which also disables outstanding access tokens at
  the auth gate

All failures are APIError subclasses; nothing here retries on its own
except the single re-read after a lost optimistic lock in rotate().
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models.user import User
from models.user_store import UserStore
from utils.exceptions import (
    APIError,
    ExpiredToken,
    InvalidCredentials,
    InvalidToken,
    LoggedOut,
    SecurityBreach,
    StaleSession,
    StoreError,
    UnknownSubject,
)
from utils.security import verify_password
from utils.tokens import TokenCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    user: User
    tokens: TokenPair


@dataclass(frozen=True)
class AuthContext:
    """Identity established by the auth gate for the current request."""
    user_id: str
    claims: Dict[str, Any]


def _store_errors(fn):
    """Surface persistence failures as a generic 500 without internal detail."""
    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except APIError:
            raise
        except SQLAlchemyError:
            logger.exception("store failure in %s", fn.__name__)
            self.store.storage.rollback()
            raise StoreError()
    return wrapper


class SessionManager:
    def __init__(self, codec: TokenCodec, store: UserStore):
        self.codec = codec
        self.store = store

    def issue_pair(self, user_id: str) -> TokenPair:
        """Mint two independent tokens; the caller persists the refresh token."""
        return TokenPair(
            access_token=self.codec.sign_access(user_id),
            refresh_token=self.codec.sign_refresh(user_id),
        )

    @_store_errors
    def login(self, email: str, password: str) -> LoginResult:
        user = self.store.find_by_email(email, with_password=True)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        tokens = self.issue_pair(user.id)
        # One login, one live refresh token
        self.store.replace_refresh_tokens(user, [tokens.refresh_token])
        logger.info("login user=%s", user.id)
        return LoginResult(user=user, tokens=tokens)

    @_store_errors
    def rotate(self, presented: str) -> TokenPair:
        try:
            payload = self.codec.verify(presented)
        except ExpiredToken:
            raise ExpiredToken("Refresh token expired")
        except InvalidToken:
            raise InvalidToken("Invalid refresh token")

        user = self.store.find_by_id(payload["sub"])
        if user is None:
            raise UnknownSubject()

        try:
            return self._rotate(user, presented)
        except StaleSession:
            # Someone else wrote this user since we read it: decide again on fresh state
            logger.info("rotation conflict user=%s, re-reading", user.id)
            return self._rotate(self.store.refresh(user), presented)

    def _rotate(self, user: User, presented: str) -> TokenPair:
        if presented not in (user.refresh_tokens or []):
            logger.warning("refresh token reuse detected user=%s, revoking all sessions", user.id)
            self.store.revoke_all(user)
            raise SecurityBreach()

        tokens = self.issue_pair(user.id)
        self.store.consume_refresh_token(user, presented, tokens.refresh_token)
        logger.info("rotated refresh token user=%s", user.id)
        return tokens

    @_store_errors
    def logout(self, access_token: str) -> None:
        """
        Revoke every session of the token's subject.
        Checks the access token the way the auth gate does, except that a
        missing secret stays a 500 instead of being folded into InvalidToken.
        """
        payload = self.codec.verify(access_token)
        user = self.store.find_by_id(payload["sub"])
        if user is None:
            raise UnknownSubject()
        if not user.has_active_session:
            raise LoggedOut()
        self.store.revoke_all(user)
        logger.info("logout user=%s", user.id)

    @_store_errors
    def authenticate(self, access_token: str) -> AuthContext:
        """
        Check an access token for a protected request. Read-only.
        Any codec failure is reported as InvalidToken; a user without refresh
        tokens on file has no active session even if the token is unexpired.
        """
        try:
            payload = self.codec.verify(access_token)
        except APIError:
            raise InvalidToken("Invalid or expired token")

        user = self.store.find_by_id(payload["sub"])
        if user is None:
            raise UnknownSubject()
        if not user.has_active_session:
            raise LoggedOut()
        return AuthContext(user_id=user.id, claims=payload)


def get_sessions() -> SessionManager:
    """The SessionManager bound to the running app."""
    return current_app.extensions["sessions"]
