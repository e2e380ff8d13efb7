from marshmallow import Schema, ValidationError, EXCLUDE, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _not_blank(s: str) -> None:
    if not s.strip():
        raise ValidationError("Must not be empty.")


class OtpField(fields.Field):
    """4 digit code; accepts 1234 or "1234" and loads a string."""

    default_error_messages = {"invalid": "Otp must be 4 digits!"}

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise self.make_error("invalid")
        value = str(value).strip()
        if len(value) != 4 or not value.isdigit():
            raise self.make_error("invalid")
        return value


class BaseInSchema(Schema):
    """Request bodies: trim strings, lower-case emails, ignore unknown keys."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object.")
        data = {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}
        if "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


def Password(**kwargs):
    return fields.String(
        required=True,
        validate=validate.Length(min=8, error="Password length should be at least 8 chars!"),
        **kwargs,
    )


def NonBlank(**kwargs):
    return fields.String(required=True, validate=_not_blank, **kwargs)
