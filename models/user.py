from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text, JSON, Integer
from sqlalchemy.orm import deferred


class User(BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    # Deferred: only loaded when a query asks for it (login, password change)
    password_hash = deferred(Column(String(255), nullable=False))
    profile_picture = Column(String(512), nullable=True)
    bio = Column(Text, nullable=True)
    # Ordered list of refresh tokens that may still be rotated; empty means logged out everywhere
    refresh_tokens = Column(JSON, nullable=False, default=list)
    # Bumped on every flush; a stale read-modify-write raises StaleDataError
    session_version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": session_version}

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def has_active_session(self) -> bool:
        return bool(self.refresh_tokens)
