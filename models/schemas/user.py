from marshmallow import Schema, fields, pre_load, validates, ValidationError, EXCLUDE

from models.schemas.common import normalize_email, validate_username

MIN_PASSWORD_LENGTH = 6


def _validate_password(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    username = fields.String(required=True, validate=validate_username)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=normalize_email(data["email"]))
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _validate_password(value)


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.String()
    password = fields.String()


class ProfileUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(validate=validate_username)
    profile_picture = fields.String(data_key="profilePicture", allow_none=True)
    bio = fields.String(allow_none=True)


class CredentialsUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(validate=validate_username)
    new_password = fields.String(data_key="newPassword", load_only=True)

    @validates("new_password")
    def validate_password(self, value, **kwargs):
        _validate_password(value)


class UserOutSchema(Schema):
    id = fields.String(data_key="_id")
    email = fields.String()
    username = fields.String()
    profile_picture = fields.String(data_key="profilePicture", allow_none=True)
    bio = fields.String(allow_none=True)


class UserBriefSchema(Schema):
    """Embedded author/liker info on posts and comments."""
    id = fields.String(data_key="_id")
    username = fields.String()
    profile_picture = fields.String(data_key="profilePicture", allow_none=True)
