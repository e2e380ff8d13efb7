"""
Authentication blueprint (mounted at /api/auth):
- POST /register/send-otp
- POST /register/verify-otp
- POST /login
- GET  /self
- GET  /refresh
- GET  /logout
- POST /forget-password
- POST /set-password
- GET  /permission (admin only)

OTP flows are stateless: send-* answers with the code and a sealed
`hashOtp`, verify-* re-derives the seal (see services.credential).
Every check happens before the first write; the only write that can be
followed by a failure is the user row in verify-otp, which then answers
with the created user and no cookies.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g

from auth_api.extensions import credential_service, token_service, user_service
from auth_api.sessions import clear_auth_cookies, issue_tokens, set_auth_cookies
from models.schemas.auth import (
    ForgetPasswordSchema,
    LoginSchema,
    SendOtpSchema,
    SetPasswordSchema,
    VerifyOtpSchema,
)
from models.schemas.user import UserOutSchema
from models.user import Role
from utils.decorators import (
    access_token_required,
    logged_out_required,
    refresh_token_required,
    roles_required,
)
from utils.exceptions import (
    AppError,
    ConflictError,
    CredentialMismatchError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

send_otp_schema = SendOtpSchema()
verify_otp_schema = VerifyOtpSchema()
login_schema = LoginSchema()
forget_password_schema = ForgetPasswordSchema()
set_password_schema = SetPasswordSchema()
user_out_schema = UserOutSchema()


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _session_response(user, status: int = 200):
    """User JSON plus a fresh access/refresh cookie pair."""
    access_token, refresh_token = issue_tokens(user)
    response = jsonify(user_out_schema.dump(user))
    set_auth_cookies(response, access_token, refresh_token)
    return response, status


@bp.post("/register/send-otp")
def send_otp():
    """
    Start a registration: returns the OTP and its seal.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [fullName, email, password, confirmPassword]
          properties:
            fullName: { type: string }
            email: { type: string }
            password: { type: string, minLength: 8 }
            confirmPassword: { type: string }
    responses:
      200:
        description: "{fullName, email, otp, hashOtp}; hashOtp is <hmac>#<expiresAt>#<passwordHash>"
      400:
        description: Validation error, password mismatch or email already registered
    """
    data = send_otp_schema.load(_body())
    if data["password"] != data["confirm_password"]:
        raise ValidationError("confirm password not match to password!")

    email = data["email"]
    if user_service().find_by_email(email):
        raise ConflictError("This email already registered!")

    credentials = credential_service()
    password_hash = credentials.hash_password(data["password"])
    challenge = credentials.issue_challenge(email, bound=password_hash)
    logger.info("Registration otp issued for %s", email)

    # OTP delivery is stubbed: the code goes back in the response
    return jsonify(
        {
            "fullName": data["full_name"],
            "email": email,
            "otp": challenge.otp,
            "hashOtp": challenge.hash_otp,
        }
    ), 200


@bp.post("/register/verify-otp")
def verify_otp():
    """
    Finish a registration: verifies the echoed OTP, creates the user and logs it in.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [fullName, email, otp, hashOtp]
          properties:
            fullName: { type: string }
            email: { type: string }
            otp: { type: string }
            hashOtp: { type: string }
    responses:
      200:
        description: Created user; accessToken and refreshToken cookies set
      400:
        description: Invalid otp, malformed seal or email already registered
      408:
        description: Otp expired
    """
    data = verify_otp_schema.load(_body())
    email = data["email"]
    users = user_service()

    if users.find_by_email(email):
        raise ConflictError("This email already registered!")

    password_hash = credential_service().verify_challenge(
        data["otp"], email, data["hash_otp"], carries_bound=True
    )

    # a concurrent verify for the same email loses on the unique constraint
    user = users.create(data["full_name"], email, password_hash, role=Role.CUSTOMER)
    logger.info("User %s registered", user.id)

    try:
        return _session_response(user)
    except AppError:
        logger.exception("User %s created but the session could not be established", user.id)
        return jsonify(user_out_schema.dump(user)), 200


@bp.post("/login")
@logged_out_required()
def login():
    """
    Login with email and password
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: User; accessToken and refreshToken cookies set
      400:
        description: Email or password does not match, or already logged in
    """
    data = login_schema.load(_body())
    user = user_service().find_by_email_with_password(data["email"])
    # same answer for unknown email and wrong password
    if not user or not credential_service().verify_password(data["password"], user.password):
        raise CredentialMismatchError()

    logger.info("User %s logged in", user.id)
    return _session_response(user)


@bp.get("/self")
@access_token_required()
def self_info():
    """
    Current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    user = user_service().find_by_id(g.auth["userId"])
    if not user:
        raise NotFoundError()
    return jsonify(user_out_schema.dump(user)), 200


@bp.get("/refresh")
@refresh_token_required()
def refresh():
    """
    Rotate the session: the presented refresh reference is deleted and a new pair is issued.
    ---
    tags:
      - Auth
    responses:
      200: { description: User; rotated cookies }
      401: { description: Missing, expired or revoked refresh token }
    """
    claims = g.refresh_auth
    user = user_service().find_by_id(claims["userId"])
    if not user:
        raise NotFoundError()

    # losing a race against another refresh with the same token means revoked
    if not token_service().revoke(claims["tokenId"]):
        raise UnauthorizedError("Token revoked", details={"reason": "revoked"})

    logger.info("Refresh token rotated for user %s", user.id)
    return _session_response(user)


@bp.get("/logout")
@access_token_required()
@refresh_token_required()
def logout():
    """
    Logout: deletes the refresh reference and clears the cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200: { description: "{user: null}" }
      401: { description: Unauthorized }
    """
    claims = g.refresh_auth
    if str(claims.get("userId")) != str(g.auth.get("userId")):
        raise UnauthorizedError("Token mismatch")

    token_service().revoke(claims["tokenId"])
    logger.info("User %s logged out", claims["userId"])

    response = jsonify({"user": None, "message": "User successfully logout."})
    clear_auth_cookies(response)
    return response, 200


@bp.post("/forget-password")
def forget_password():
    """
    Start a password reset: returns the OTP and its seal.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200:
        description: "{fullName, email, otp, hashOtp}; hashOtp is <hmac>#<expiresAt>"
      400:
        description: Email is not registered
    """
    data = forget_password_schema.load(_body())
    email = data["email"]
    user = user_service().find_by_email(email)
    if not user:
        raise NotFoundError("This email is not registered!")

    challenge = credential_service().issue_challenge(email)
    logger.info("Password reset otp issued for user %s", user.id)
    return jsonify(
        {
            "fullName": user.full_name,
            "email": email,
            "otp": challenge.otp,
            "hashOtp": challenge.hash_otp,
        }
    ), 200


@bp.post("/set-password")
def set_password():
    """
    Finish a password reset
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            otp: { type: string }
            hashOtp: { type: string }
            password: { type: string }
            confirmPassword: { type: string }
    responses:
      200: { description: User }
      400: { description: Invalid input, unknown email or invalid otp }
      408: { description: Otp expired }
    """
    data = set_password_schema.load(_body())
    if data["password"] != data["confirm_password"]:
        raise ValidationError("confirm password not match to password!")

    email = data["email"]
    users = user_service()
    user = users.find_by_email(email)
    if not user:
        raise NotFoundError("This email is not registered!")

    credentials = credential_service()
    credentials.verify_challenge(data["otp"], email, data["hash_otp"])
    user = users.update_password(user.id, credentials.hash_password(data["password"]))
    logger.info("Password reset for user %s", user.id)
    return jsonify(user_out_schema.dump(user)), 200


@bp.get("/permission")
@roles_required([Role.ADMIN.value])
def permission():
    """
    Admin-only probe
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200: { description: "{permission: true, user}" }
      400: { description: User not found }
      401: { description: Unauthorized }
      403: { description: Not an admin }
    """
    user = user_service().find_by_id(g.auth["userId"])
    if not user:
        raise NotFoundError()
    return jsonify({"permission": True, "user": user_out_schema.dump(user)}), 200
