from marshmallow import fields

from models.schemas.common import BaseInSchema, NonBlank, OtpField, Password


class SendOtpSchema(BaseInSchema):
    full_name = NonBlank(data_key="fullName")
    email = fields.Email(required=True)
    password = Password()
    confirm_password = fields.String(required=True, data_key="confirmPassword")


class VerifyOtpSchema(BaseInSchema):
    full_name = NonBlank(data_key="fullName")
    email = fields.Email(required=True)
    otp = OtpField(required=True)
    hash_otp = NonBlank(data_key="hashOtp")


class LoginSchema(BaseInSchema):
    email = fields.Email(required=True)
    password = NonBlank()


class ForgetPasswordSchema(BaseInSchema):
    email = fields.Email(required=True)


class SetPasswordSchema(BaseInSchema):
    email = fields.Email(required=True)
    otp = OtpField(required=True)
    hash_otp = NonBlank(data_key="hashOtp")
    password = Password()
    confirm_password = fields.String(required=True, data_key="confirmPassword")
