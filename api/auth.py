"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout

Login returns an access token and a refresh token (HS256 JWTs). The refresh
token is single use: /auth/refresh exchanges it for a new pair, and
presenting it a second time revokes every session of the user.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify

from models.schemas.user import UserCreateSchema, UserLoginSchema
from utils.decorators import bearer_token, request_token
from utils.exceptions import BadRequest, Conflict, MissingToken
from utils.security import hash_password
from utils.sessions import get_sessions

bp = Blueprint("auth", __name__, url_prefix="/auth")

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, username, password]
          properties:
            email: { type: string }
            username: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Missing email, password, or username
      409:
        description: Email or username already exists
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    if not all(payload.get(k) for k in ("email", "username", "password")):
        raise BadRequest("Missing email, password, or username")
    data = user_create_schema.load(payload)

    users = get_sessions().store
    if users.find_by_email(data["email"]):
        raise Conflict("Email already exists")
    if users.find_by_username(data["username"]):
        raise Conflict("Username already exists")

    user = users.create(
        email=data["email"],
        username=data["username"],
        password_hash=hash_password(data["password"]),
    )
    return jsonify({"_id": user.id, "email": user.email, "username": user.username}), 201


@bp.post("/login")
def login():
    """
    Login: returns accessToken and refreshToken
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns _id, email, accessToken, refreshToken)
      400:
        description: Missing email or password
      401:
        description: Invalid email or password
      500:
        description: Server configuration error
    """
    data = user_login_schema.load(request.get_json(silent=True) or {})
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        raise BadRequest("Missing email or password")

    result = get_sessions().login(email, password)
    return jsonify(
        {
            "_id": result.user.id,
            "email": result.user.email,
            "accessToken": result.tokens.access_token,
            "refreshToken": result.tokens.refresh_token,
        }
    ), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new token pair (rotation)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    description: >
      Send the refresh token as "Authorization: Bearer <refreshToken>"
      (a JSON body {"refreshToken": ...} is accepted as well).
      Reusing an already rotated refresh token answers 401 security_breach
      and logs the user out of every session.
    responses:
      200:
        description: OK (returns accessToken, refreshToken)
      401:
        description: Missing, invalid, expired or reused refresh token
      500:
        description: Server configuration error
    """
    header = request.headers.get("Authorization")
    if header:
        token = bearer_token(header)
    else:
        token = (request.get_json(silent=True) or {}).get("refreshToken")
        if not token or not isinstance(token, str):
            raise MissingToken()

    tokens = get_sessions().rotate(token)
    return jsonify({"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token}), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes every refresh token of the user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out successfully
      401:
        description: Missing, invalid or expired token, unknown user, or already logged out
      500:
        description: Server configuration error
    """
    get_sessions().logout(request_token())
    return jsonify({"message": "Logged out successfully"}), 200
