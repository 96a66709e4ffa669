"""
Credential store: the only code that reads or writes User.refresh_tokens.

Read-modify-write updates (token consumption, profile edits) run under the
User.session_version optimistic lock. When another request committed a
change to the same user after our read, the flush raises StaleDataError;
it is rolled back here and surfaced as StaleSession so callers can re-read
and decide.

Overwrites (login reset, logout and breach revocation) do not depend on what
was read, so they go straight to the row and bump the version, which makes
any in-flight versioned write of the same user lose.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import undefer
from sqlalchemy.orm.exc import StaleDataError

from models.user import User
from utils.exceptions import StaleSession


class UserStore:
    def __init__(self, storage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def create(self, email: str, username: str, password_hash: str) -> User:
        user = User(
            email=email,
            username=username,
            password_hash=password_hash,
            refresh_tokens=[],
        )
        self.storage.new(user)
        self.storage.save()
        return user

    def find_by_email(self, email: str, with_password: bool = False) -> Optional[User]:
        query = self.session.query(User).filter(func.lower(User.email) == (email or "").strip().lower())
        if with_password:
            query = query.options(undefer(User.password_hash))
        return query.first()

    def find_by_username(self, username: str) -> Optional[User]:
        return self.session.query(User).filter(User.username == username).first()

    def find_by_id(self, user_id: str, with_password: bool = False) -> Optional[User]:
        if not user_id:
            return None
        query = self.session.query(User).filter(User.id == str(user_id))
        if with_password:
            query = query.options(undefer(User.password_hash))
        return query.first()

    def refresh(self, user: User) -> User:
        """Drop cached state and re-read the row."""
        self.session.expire(user)
        self.session.refresh(user)
        return user

    def _commit(self, user: User) -> User:
        self.storage.new(user)
        try:
            self.storage.save()
        except StaleDataError:
            raise StaleSession()
        return user

    def replace_refresh_tokens(self, user: User, tokens: List[str]) -> User:
        """Unconditionally set the token list, whatever changed since ``user`` was read."""
        stmt = (
            update(User)
            .where(User.id == user.id)
            .values(refresh_tokens=list(tokens), session_version=User.session_version + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)
        self.storage.save()
        self.session.expire(user)
        return user

    def consume_refresh_token(self, user: User, used: str, minted: str) -> User:
        """Remove ``used`` and append ``minted`` in one versioned write."""
        remaining = [t for t in (user.refresh_tokens or []) if t != used]
        remaining.append(minted)
        user.refresh_tokens = remaining
        return self._commit(user)

    def revoke_all(self, user: User) -> User:
        return self.replace_refresh_tokens(user, [])

    def update_profile(self, user: User, **fields) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        return self._commit(user)
