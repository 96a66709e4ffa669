from marshmallow import Schema, fields, EXCLUDE

from models.schemas.common import validate_not_blank
from models.schemas.user import UserBriefSchema


class CommentCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    post_id = fields.String(data_key="postId", required=True, validate=validate_not_blank)
    comment = fields.String(required=True, validate=validate_not_blank)


class CommentUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    comment = fields.String(required=True, validate=validate_not_blank)


class CommentOutSchema(Schema):
    id = fields.String(data_key="_id")
    comment = fields.String()
    owner = fields.Nested(UserBriefSchema)
    post_id = fields.String(data_key="postId")
    created_at = fields.DateTime(data_key="createdAt")
