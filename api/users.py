from __future__ import annotations

from flask import Blueprint, request, jsonify

from models.schemas.user import UserOutSchema, ProfileUpdateSchema, CredentialsUpdateSchema
from utils.decorators import auth_required, current_identity
from utils.exceptions import Conflict, NotFound
from utils.security import hash_password
from utils.sessions import get_sessions

bp = Blueprint("users", __name__, url_prefix="/user")

user_out_schema = UserOutSchema()
profile_update_schema = ProfileUpdateSchema()
credentials_update_schema = CredentialsUpdateSchema()


def _load_user(user_id: str, with_password: bool = False):
    user = get_sessions().store.find_by_id(user_id, with_password=with_password)
    if user is None:
        raise NotFound("User not found")
    return user


def _ensure_username_free(username: str | None, user_id: str) -> None:
    if not username:
        return
    other = get_sessions().store.find_by_username(username)
    if other is not None and other.id != user_id:
        raise Conflict("Username already exists")


@bp.get("")
@auth_required()
def get_profile():
    """
    Get the profile of the authenticated user
    ---
    tags:
      - Profile
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = _load_user(current_identity().user_id)
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.put("")
@auth_required()
def update_profile():
    """
    Update username, profile picture or bio of the authenticated user
    ---
    tags:
      - Profile
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            profilePicture: { type: string }
            bio: { type: string }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      409: { description: Username already exists }
      422: { description: Validation error }
    """
    user_id = current_identity().user_id
    data = profile_update_schema.load(request.get_json(silent=True) or {})
    _ensure_username_free(data.get("username"), user_id)

    user = _load_user(user_id)
    user = get_sessions().store.update_profile(user, **data)
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.put("/update")
@auth_required()
def update_credentials():
    """
    Change username and/or password of the authenticated user
    ---
    tags:
      - Profile
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            newPassword: { type: string }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      409: { description: Username already exists }
      422: { description: Validation error }
    """
    user_id = current_identity().user_id
    data = credentials_update_schema.load(request.get_json(silent=True) or {})
    _ensure_username_free(data.get("username"), user_id)

    changes = {}
    if data.get("username"):
        changes["username"] = data["username"]
    if data.get("new_password"):
        changes["password_hash"] = hash_password(data["new_password"])

    user = _load_user(user_id, with_password="password_hash" in changes)
    user = get_sessions().store.update_profile(user, **changes)
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.get("/<user_id>")
def get_user(user_id: str):
    """
    Get a user's public profile by id
    ---
    tags:
      - Profile
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: User not found }
    """
    user = _load_user(user_id)
    return jsonify({"data": user_out_schema.dump(user)}), 200
