from __future__ import annotations

from flask import Blueprint, request, jsonify

from models import storage
from models.comment import Comment
from models.post import Post
from models.schemas.comment import CommentCreateSchema, CommentUpdateSchema, CommentOutSchema
from utils.decorators import auth_required, current_identity
from utils.exceptions import Forbidden, NotFound

bp = Blueprint("comments", __name__, url_prefix="/comments")

create_schema = CommentCreateSchema()
update_schema = CommentUpdateSchema()
out_schema = CommentOutSchema()
out_list_schema = CommentOutSchema(many=True)


def _get_comment(comment_id: str) -> Comment:
    comment = storage.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    return comment


def _get_own_comment(comment_id: str) -> Comment:
    comment = _get_comment(comment_id)
    if comment.owner_id != current_identity().user_id:
        raise Forbidden()
    return comment


@bp.get("")
@auth_required()
def list_comments():
    """
    List comments, optionally filtered by post or author
    ---
    tags: [Comments]
    security:
      - Bearer: []
    parameters:
      - in: query
        name: postId
        type: string
      - in: query
        name: owner
        type: string
    responses:
      200: { description: OK }
    """
    query = storage.get_session().query(Comment)
    post_id = request.args.get("postId")
    owner = request.args.get("owner")
    if post_id:
        query = query.filter(Comment.post_id == post_id)
    if owner:
        query = query.filter(Comment.owner_id == owner)
    rows = query.order_by(Comment.created_at.asc()).all()
    return jsonify({"data": out_list_schema.dump(rows)}), 200


@bp.get("/<comment_id>")
@auth_required()
def get_comment(comment_id: str):
    """
    Get a comment by id
    ---
    tags: [Comments]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: comment_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    return jsonify({"data": out_schema.dump(_get_comment(comment_id))}), 200


@bp.post("")
@auth_required()
def create_comment():
    """
    Comment on a post
    ---
    tags: [Comments]
    security:
      - Bearer: []
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            postId: { type: string }
            comment: { type: string }
    responses:
      201: { description: Created }
      404: { description: Post not found }
      422: { description: Validation error }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    if storage.get(Post, data["post_id"]) is None:
        raise NotFound("Post not found")
    comment = Comment(
        comment=data["comment"],
        post_id=data["post_id"],
        owner_id=current_identity().user_id,
    )
    comment.save()
    return jsonify({"data": out_schema.dump(comment)}), 201


@bp.put("/<comment_id>")
@auth_required()
def update_comment(comment_id: str):
    """
    Edit your own comment
    ---
    tags: [Comments]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: comment_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            comment: { type: string }
    responses:
      200: { description: Updated }
      403: { description: Not your comment }
      404: { description: Not found }
    """
    comment = _get_own_comment(comment_id)
    data = update_schema.load(request.get_json(silent=True) or {})
    comment.comment = data["comment"]
    comment.save()
    return jsonify({"data": out_schema.dump(comment)}), 200


@bp.delete("/<comment_id>")
@auth_required()
def delete_comment(comment_id: str):
    """
    Delete your own comment
    ---
    tags: [Comments]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: comment_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      403: { description: Not your comment }
      404: { description: Not found }
    """
    comment = _get_own_comment(comment_id)
    comment.delete()
    storage.save()
    return jsonify({"message": "Resource deleted successfully"}), 200
