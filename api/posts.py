from __future__ import annotations

from flask import Blueprint, request, jsonify

from models import storage
from models.comment import Comment
from models.post import Post
from models.user import User
from models.schemas.comment import CommentOutSchema
from models.schemas.post import PostCreateSchema, PostUpdateSchema, PostOutSchema
from models.schemas.user import UserBriefSchema
from utils.decorators import auth_required, current_identity
from utils.exceptions import BadRequest, Forbidden, NotFound
from utils.files import save_upload

bp = Blueprint("posts", __name__, url_prefix="/posts")

post_create_schema = PostCreateSchema()
post_update_schema = PostUpdateSchema()
post_out_schema = PostOutSchema()
posts_out_schema = PostOutSchema(many=True)
likers_out_schema = UserBriefSchema(many=True)
comments_out_schema = CommentOutSchema(many=True)


def _get_post(post_id: str) -> Post:
    post = storage.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def _get_own_post(post_id: str) -> Post:
    post = _get_post(post_id)
    if post.owner_id != current_identity().user_id:
        raise Forbidden()
    return post


def _request_fields() -> dict:
    # multipart/form-data when an image is attached, JSON otherwise
    if request.mimetype == "multipart/form-data":
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


@bp.get("")
@auth_required()
def list_posts():
    """
    List posts, newest first
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: query
        name: owner
        type: string
        description: Only posts created by this user id
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    query = storage.get_session().query(Post)
    owner = request.args.get("owner")
    if owner:
        query = query.filter(Post.owner_id == owner)
    rows = query.order_by(Post.created_at.desc()).all()
    return jsonify({"data": posts_out_schema.dump(rows)}), 200


@bp.get("/<post_id>")
@auth_required()
def get_post(post_id: str):
    """
    Get a post by id
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Post not found }
    """
    return jsonify({"data": post_out_schema.dump(_get_post(post_id))}), 200


@bp.post("")
@auth_required()
def create_post():
    """
    Create a post, optionally with an image
    ---
    tags: [Posts]
    security:
      - Bearer: []
    consumes:
      - application/json
      - multipart/form-data
    parameters:
      - in: formData
        name: title
        type: string
      - in: formData
        name: content
        type: string
      - in: formData
        name: image
        type: file
    responses:
      201: { description: Created }
      401: { description: Unauthorized }
      422: { description: Validation error }
    """
    data = post_create_schema.load(_request_fields())
    post = Post(
        title=data["title"],
        content=data["content"],
        owner_id=current_identity().user_id,
    )
    upload = request.files.get("image")
    if upload is not None and upload.filename:
        post.image = save_upload(upload, images_only=True)
    post.save()
    return jsonify({"data": post_out_schema.dump(post)}), 201


@bp.put("/<post_id>")
@auth_required()
def update_post(post_id: str):
    """
    Update title and/or content of your own post
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            title: { type: string }
            content: { type: string }
    responses:
      200: { description: Updated }
      403: { description: Not your post }
      404: { description: Post not found }
    """
    post = _get_own_post(post_id)
    data = post_update_schema.load(request.get_json(silent=True) or {})
    for field in ("title", "content"):
        if field in data:
            setattr(post, field, data[field])
    post.save()
    return jsonify({"data": post_out_schema.dump(post)}), 200


@bp.delete("/<post_id>")
@auth_required()
def delete_post(post_id: str):
    """
    Delete your own post and its comments
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      403: { description: Not your post }
      404: { description: Post not found }
    """
    post = _get_own_post(post_id)
    post.delete()
    storage.save()
    return jsonify({"message": "Resource deleted successfully"}), 200


@bp.post("/<post_id>/like")
@auth_required()
def like_post(post_id: str):
    """
    Like a post
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: Post liked successfully }
      400: { description: Post already liked }
      404: { description: Post not found }
    """
    post = _get_post(post_id)
    user_id = current_identity().user_id
    if post.is_liked_by(user_id):
        raise BadRequest("Post already liked")
    post.likes.append(storage.get(User, user_id))
    post.save()
    return jsonify({"message": "Post liked successfully"}), 200


@bp.post("/<post_id>/unlike")
@auth_required()
def unlike_post(post_id: str):
    """
    Remove your like from a post (no-op if not liked)
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: Post unliked successfully }
      404: { description: Post not found }
    """
    post = _get_post(post_id)
    user_id = current_identity().user_id
    post.likes = [u for u in post.likes if u.id != user_id]
    post.save()
    return jsonify({"message": "Post unliked successfully"}), 200


@bp.get("/<post_id>/likes")
@auth_required()
def get_likes(post_id: str):
    """
    Users who liked a post
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Post not found }
    """
    post = _get_post(post_id)
    return jsonify({"data": likers_out_schema.dump(post.likes)}), 200


@bp.get("/<post_id>/comments")
@auth_required()
def get_post_comments(post_id: str):
    """
    Comments on a post, oldest first
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Post not found }
    """
    post = _get_post(post_id)
    rows = (
        storage.get_session()
        .query(Comment)
        .filter(Comment.post_id == post.id)
        .order_by(Comment.created_at.asc())
        .all()
    )
    return jsonify({"data": comments_out_schema.dump(rows)}), 200
