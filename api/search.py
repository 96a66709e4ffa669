from flask import Blueprint, request, jsonify
from sqlalchemy import func

from models import storage
from models.post import Post
from models.user import User
from models.schemas.post import PostOutSchema
from models.schemas.user import UserBriefSchema

bp = Blueprint("search", __name__)

SEARCH_LIMIT = 5

users_schema = UserBriefSchema(many=True)
posts_schema = PostOutSchema(many=True)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@bp.get("/search")
def search():
    """
    Case-insensitive search over usernames and post content
    ---
    tags: [Search]
    parameters:
      - in: query
        name: q
        type: string
        required: true
    responses:
      200:
        description: Up to 5 users and 5 posts, each tagged with "type"
    """
    q = (request.args.get("q") or "").strip()
    if not q:
        return jsonify({"data": []}), 200

    session = storage.get_session()
    pattern = f"%{_escape_like(q.lower())}%"
    users = (
        session.query(User)
        .filter(func.lower(User.username).like(pattern, escape="\\"))
        .order_by(User.username)
        .limit(SEARCH_LIMIT)
        .all()
    )
    posts = (
        session.query(Post)
        .filter(func.lower(Post.content).like(pattern, escape="\\"))
        .order_by(Post.created_at.desc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    results = [dict(u, type="user") for u in users_schema.dump(users)]
    results += [dict(p, type="post") for p in posts_schema.dump(posts)]
    return jsonify({"data": results}), 200
