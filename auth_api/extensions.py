"""
Service wiring. create_app() builds one instance of each service from the
app config and keeps it in app.extensions; routes fetch them through the
accessors below.
"""
from flask import current_app
from argon2 import PasswordHasher

from models import storage
from services import CredentialService, LocalUploader, RefreshTokenStore, TokenService, UserService


def init_services(app):
    config = app.config
    hasher = PasswordHasher(
        time_cost=config["PASSWORD_HASH_TIME_COST"],
        memory_cost=config["PASSWORD_HASH_MEMORY_COST"],
        parallelism=config["PASSWORD_HASH_PARALLELISM"],
    )
    app.extensions["credential_service"] = CredentialService(
        hash_secret=config.get("HASH_SECRET"),
        otp_ttl=config["OTP_TTL"],
        password_hasher=hasher,
    )
    app.extensions["token_service"] = TokenService(
        store=RefreshTokenStore(storage),
        private_key=config.get("PRIVATE_KEY"),
        refresh_secret=config.get("REFRESH_TOKEN_SECRET"),
        public_key=config.get("PUBLIC_KEY"),
        jwks_uri=config.get("JWKS_URI"),
        issuer=config["JWT_ISSUER"],
        access_expires=config["ACCESS_TOKEN_EXPIRES"],
        refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
    )
    uploader = LocalUploader(config["UPLOAD_FOLDER"], config["PUBLIC_BASE_URL"])
    app.extensions["uploader"] = uploader
    app.extensions["user_service"] = UserService(storage, uploader=uploader)


def credential_service() -> CredentialService:
    return current_app.extensions["credential_service"]


def token_service() -> TokenService:
    return current_app.extensions["token_service"]


def user_service() -> UserService:
    return current_app.extensions["user_service"]
