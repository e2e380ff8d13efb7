from marshmallow import Schema, fields, validate

from models.schemas.common import BaseInSchema, NonBlank, OtpField, Password
from models.user import Role

_phone = validate.Regexp(r"^\d{10}$", error="phone number should be 10 digits!")
_country = validate.Length(equal=2, error="country code should be 2 chars!")


class UserOutSchema(Schema):
    id = fields.String()
    full_name = fields.String(data_key="fullName")
    email = fields.String()
    role = fields.Enum(Role, by_value=True)
    avatar = fields.String(allow_none=True)
    phone_number = fields.String(allow_none=True, data_key="phoneNumber")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class UpdateFullNameSchema(BaseInSchema):
    full_name = NonBlank(data_key="fullName")


class ChangePasswordSchema(BaseInSchema):
    old_password = Password(data_key="oldPassword")
    new_password = Password(data_key="newPassword")


class EmailSchema(BaseInSchema):
    email = fields.Email(required=True)


class VerifyEmailOtpSchema(BaseInSchema):
    email = fields.Email(required=True)
    otp = OtpField(required=True)
    hash_otp = NonBlank(data_key="hashOtp")
    full_name = fields.String(data_key="fullName")


class PhoneNumberSchema(BaseInSchema):
    phone_number = fields.String(required=True, validate=_phone, data_key="phoneNumber")
    country_code = fields.String(required=True, validate=_country, data_key="countryCode")


class VerifyPhoneOtpSchema(PhoneNumberSchema):
    otp = OtpField(required=True)
    hash_otp = NonBlank(data_key="hashOtp")
    full_name = fields.String(data_key="fullName")
