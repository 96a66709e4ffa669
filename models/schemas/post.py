from marshmallow import Schema, fields, EXCLUDE

from models.schemas.common import validate_not_blank
from models.schemas.user import UserBriefSchema


class PostCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=validate_not_blank)
    content = fields.String(required=True, validate=validate_not_blank)


class PostUpdateSchema(Schema):
    # All optional, but validate if present
    class Meta:
        unknown = EXCLUDE

    title = fields.String(validate=validate_not_blank)
    content = fields.String(validate=validate_not_blank)


class PostOutSchema(Schema):
    id = fields.String(data_key="_id")
    title = fields.String()
    content = fields.String()
    owner = fields.Nested(UserBriefSchema)
    image = fields.String(allow_none=True)
    likes = fields.Method("get_like_ids")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

    def get_like_ids(self, obj):
        return [u.id for u in obj.likes]
