from __future__ import annotations
from functools import wraps
from typing import Optional

from flask import request, g

from utils.exceptions import MissingToken
from utils.sessions import AuthContext, get_sessions

BEARER_PREFIX = "Bearer "


def bearer_token(header: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` value."""
    if not header or not header.startswith(BEARER_PREFIX):
        raise MissingToken()
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise MissingToken()
    return token


def request_token() -> str:
    return bearer_token(request.headers.get("Authorization"))


def auth_required():
    """
    Gate a view behind a valid access token and a live session.
    On success ``g.auth`` holds the AuthContext; the view may also read it
    through current_identity().
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = request_token()
            g.auth = get_sessions().authenticate(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def current_identity() -> AuthContext:
    auth = g.get("auth")
    if auth is None:
        raise MissingToken()
    return auth
