from __future__ import annotations

import logging
import os
import tempfile
import uuid

from flask import Blueprint, request, jsonify, g, current_app
from werkzeug.utils import secure_filename

from auth_api.extensions import credential_service, user_service
from auth_api.sessions import clear_auth_cookies
from models.schemas.user import (
    ChangePasswordSchema,
    EmailSchema,
    PhoneNumberSchema,
    UpdateFullNameSchema,
    UserOutSchema,
    VerifyEmailOtpSchema,
    VerifyPhoneOtpSchema,
)
from models.user import Role
from services.upload import allowed_file
from utils.decorators import access_token_required, roles_required
from utils.exceptions import (
    ConfigurationError,
    ConflictError,
    CredentialMismatchError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)
update_full_name_schema = UpdateFullNameSchema()
change_password_schema = ChangePasswordSchema()
email_schema = EmailSchema()
verify_email_otp_schema = VerifyEmailOtpSchema()
phone_number_schema = PhoneNumberSchema()
verify_phone_otp_schema = VerifyPhoneOtpSchema()


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _parse_user_id(user_id: str) -> str:
    try:
        return str(uuid.UUID(user_id))
    except ValueError:
        raise ValidationError("Invalid param id!")


def _current_user():
    user = user_service().find_by_id(g.auth["userId"])
    if not user:
        raise NotFoundError()
    return user


def _purpose_key(name: str) -> str:
    key = current_app.config.get(name)
    if not key:
        raise ConfigurationError(f"{name} is not found!")
    return key


@bp.get("/<user_id>")
@roles_required([Role.ADMIN.value])
def get_one(user_id: str):
    """
    Get one user - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: "{user}" }
      400: { description: Invalid id or user not found }
      403: { description: Not an admin }
    """
    user = user_service().find_by_id(_parse_user_id(user_id))
    if not user:
        raise NotFoundError()
    return jsonify({"user": user_out_schema.dump(user)}), 200


@bp.get("/")
@roles_required([Role.ADMIN.value])
def get_all():
    """
    List all users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{users}" }
    """
    return jsonify({"users": user_list_out_schema.dump(user_service().list())}), 200


@bp.delete("/<user_id>")
@roles_required([Role.ADMIN.value])
def delete(user_id: str):
    """
    Delete a user - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: "{id}" }
      400: { description: Invalid id or user not found }
    """
    user_id = _parse_user_id(user_id)
    user_service().delete(user_id)
    logger.info("User %s deleted by admin %s", user_id, g.auth["userId"])
    return jsonify({"id": user_id}), 200


@bp.delete("/")
@access_token_required()
def delete_myself():
    """
    Delete the current user and clear the cookies
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{user: null}" }
    """
    user = _current_user()
    user_service().delete(user.id)
    logger.info("User %s deleted itself", user.id)
    response = jsonify({"user": None, "message": "User deleted successfully"})
    clear_auth_cookies(response)
    return response, 200


@bp.post("/update-full-name")
@access_token_required()
def update_full_name():
    """
    Update full name
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            fullName: { type: string }
    responses:
      200: { description: OK }
    """
    data = update_full_name_schema.load(_body())
    user = _current_user()
    user.full_name = data["full_name"]
    user_service().save(user)
    return jsonify({"message": "Update user fullName successfully.", "user": user_out_schema.dump(user)}), 200


@bp.post("/upload-profile-picture")
@access_token_required()
def upload_profile_picture():
    """
    Upload a profile picture
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: avatar
        type: file
        required: true
    responses:
      200: { description: User with the new avatar url }
      400: { description: Missing or unsupported file }
    """
    file = request.files.get("avatar")
    if not file or not file.filename:
        raise ValidationError("Profile picture not found!")
    filename = secure_filename(file.filename)
    if not allowed_file(filename):
        raise ValidationError("Only png, jpg, jpeg, gif and webp images are allowed!")

    user = _current_user()
    fd, tmp_path = tempfile.mkstemp(suffix=os.path.splitext(filename)[1].lower())
    os.close(fd)
    file.save(tmp_path)
    user = user_service().upload_avatar(user, tmp_path)
    logger.info("User %s uploaded a profile picture", user.id)
    return jsonify({"user": user_out_schema.dump(user), "message": "User profile picture updated successfully."}), 200


@bp.post("/change-password")
@access_token_required()
def change_password():
    """
    Change password
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            oldPassword: { type: string }
            newPassword: { type: string }
    responses:
      200: { description: OK }
      400: { description: Old password entered wrong }
    """
    data = change_password_schema.load(_body())
    user = _current_user()
    credentials = credential_service()
    if not credentials.verify_password(data["old_password"], user.password):
        raise CredentialMismatchError("Old password entered wrong!")

    user_service().update_password(user.id, credentials.hash_password(data["new_password"]))
    logger.info("User %s changed password", user.id)
    return jsonify({"status": "OK", "message": "User password changed successfully"}), 200


# email change: prove the current address, then the new one

def _email_otp_info(user, email: str) -> dict:
    challenge = credential_service().issue_challenge(email, purpose_key=_purpose_key("CHANGE_EMAIL_OTP_SECRET"))
    return {"fullName": user.full_name, "email": email, "hashOtp": challenge.hash_otp, "otp": challenge.otp}


def _verify_email_otp(data: dict) -> None:
    credential_service().verify_challenge(
        data["otp"], data["email"], data["hash_otp"], purpose_key=_purpose_key("CHANGE_EMAIL_OTP_SECRET")
    )


@bp.post("/send-otp-for-change-email")
@access_token_required()
def send_otp_for_change_email():
    """
    Send an otp to the current email
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200: { description: "{otpInfo: {fullName, email, hashOtp, otp}}" }
      400: { description: Email is not the user's email }
    """
    data = email_schema.load(_body())
    user = _current_user()
    if user.email != data["email"]:
        raise ValidationError("Email does not registered!")
    return jsonify({"otpInfo": _email_otp_info(user, data["email"]), "message": "Otp send successfully"}), 200


@bp.post("/verify-otp-for-change-email")
@access_token_required()
def verify_otp_for_change_email():
    """
    Verify the otp sent to the current email
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{isOtpVerified: true}" }
      400: { description: Invalid otp }
      408: { description: Otp expired }
    """
    data = verify_email_otp_schema.load(_body())
    user = _current_user()
    if user.email != data["email"]:
        raise ValidationError("Email does not registered!")
    _verify_email_otp(data)
    return jsonify({"isOtpVerified": True, "message": "Otp verified successfully."}), 200


@bp.post("/send-otp-to-new-email-for-email-change")
@access_token_required()
def send_otp_to_new_email():
    """
    Send an otp to the new email
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{otpInfo}" }
      400: { description: Email already registered }
    """
    data = email_schema.load(_body())
    if user_service().find_by_email(data["email"]):
        raise ConflictError("This email is already registered!")
    user = _current_user()
    return jsonify({"otpInfo": _email_otp_info(user, data["email"]), "message": "Otp send successfully"}), 200


@bp.post("/verify-new-email-for-email-change")
@access_token_required()
def verify_new_email():
    """
    Verify the otp sent to the new email and switch the address
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{isOtpVerified: true, user}" }
      400: { description: Invalid otp or email already registered }
      408: { description: Otp expired }
    """
    data = verify_email_otp_schema.load(_body())
    user = _current_user()
    _verify_email_otp(data)

    users = user_service()
    owner = users.find_by_email(data["email"])
    if owner and owner.id != user.id:
        raise ConflictError("This email is already registered!")
    user.email = data["email"]
    users.save(user)
    logger.info("User %s changed email", user.id)
    return jsonify(
        {"message": "User email changed successfully", "isOtpVerified": True, "user": user_out_schema.dump(user)}
    ), 200


# phone number change

def _phone_otp_info(user, data: dict) -> dict:
    challenge = credential_service().issue_challenge(
        data["phone_number"], purpose_key=_purpose_key("CHANGE_PHONE_NUMBER_OTP_SECRET")
    )
    return {
        "fullName": user.full_name,
        "phoneNumber": data["phone_number"],
        "hashOtp": challenge.hash_otp,
        "otp": challenge.otp,
        "countryCode": data["country_code"],
    }


def _verify_phone_otp(data: dict) -> None:
    credential_service().verify_challenge(
        data["otp"],
        data["phone_number"],
        data["hash_otp"],
        purpose_key=_purpose_key("CHANGE_PHONE_NUMBER_OTP_SECRET"),
    )


def _ensure_phone_available(user, phone_number: str) -> None:
    owner = user_service().find_by_phone_number(phone_number)
    if owner and owner.id != user.id:
        raise ConflictError("This phone number is already registered!")


@bp.post("/send-otp-for-change-old-phone-number")
@access_token_required()
def send_otp_for_change_old_phone_number():
    """
    Send an otp to the current phone number
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            phoneNumber: { type: string }
            countryCode: { type: string }
    responses:
      200: { description: "{otpInfo: {fullName, phoneNumber, hashOtp, otp, countryCode}}" }
      400: { description: Phone number does not match }
    """
    data = phone_number_schema.load(_body())
    user = _current_user()
    if user.phone_number != data["phone_number"]:
        raise ValidationError("User phone number does not match!")
    return jsonify({"otpInfo": _phone_otp_info(user, data), "message": "Otp send successfully"}), 200


@bp.post("/verify-otp-for-change-old-phone-number")
@access_token_required()
def verify_otp_for_change_old_phone_number():
    """
    Verify the otp sent to the current phone number
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{isOtpVerified: true}" }
      400: { description: Invalid otp }
      408: { description: Otp expired }
    """
    data = verify_phone_otp_schema.load(_body())
    user = _current_user()
    if user.phone_number != data["phone_number"]:
        raise ValidationError("User phone number does not match!")
    _verify_phone_otp(data)
    return jsonify({"isOtpVerified": True, "message": "Otp verified successfully."}), 200


@bp.post("/send-otp-for-set-new-phone-number")
@access_token_required()
def send_otp_for_set_new_phone_number():
    """
    Send an otp to a new phone number
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{otpInfo}" }
      400: { description: Phone number already registered }
    """
    data = phone_number_schema.load(_body())
    user = _current_user()
    _ensure_phone_available(user, data["phone_number"])
    return jsonify({"otpInfo": _phone_otp_info(user, data), "message": "Otp send successfully"}), 200


@bp.post("/verify-otp-for-set-new-phone-number")
@access_token_required()
def verify_otp_for_set_new_phone_number():
    """
    Verify the otp sent to the new phone number and store it
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: "{user}" }
      400: { description: Invalid otp or phone number already registered }
      408: { description: Otp expired }
    """
    data = verify_phone_otp_schema.load(_body())
    user = _current_user()
    _verify_phone_otp(data)
    _ensure_phone_available(user, data["phone_number"])

    user.phone_number = data["phone_number"]
    user_service().save(user)
    logger.info("User %s changed phone number", user.id)
    return jsonify({"user": user_out_schema.dump(user), "message": "User phone number changed successfully."}), 200
