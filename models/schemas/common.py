from marshmallow import ValidationError


def normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


def validate_not_blank(value: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError("Must not be blank.")


def validate_username(value: str) -> None:
    validate_not_blank(value)
    if len(value) > 64:
        raise ValidationError("Username must be at most 64 characters long.")
    if any(ch.isspace() for ch in value):
        raise ValidationError("Username must not contain whitespace.")
