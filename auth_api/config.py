"""
Environment-aware configuration.
Secrets are read here once and handed to the services by create_app();
nothing else in the code base reads them from the environment.
"""
import logging
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


def _pem(name: str) -> str | None:
    """
    Read a PEM key either inline from NAME (with escaped newlines, as most
    .env files store it) or from the file pointed to by NAME_FILE.
    """
    path = os.getenv(f"{name}_FILE")
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    value = os.getenv(name)
    if value:
        return value.replace("\\n", "\n")
    return None


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth-service.db")
    SQL_ECHO = _env_bool("SQL_ECHO", False)

    # OTP sealing
    HASH_SECRET = os.getenv("HASH_SECRET")
    CHANGE_EMAIL_OTP_SECRET = os.getenv("CHANGE_EMAIL_OTP_SECRET")
    CHANGE_PHONE_NUMBER_OTP_SECRET = os.getenv("CHANGE_PHONE_NUMBER_OTP_SECRET")
    OTP_TTL = timedelta(seconds=int(os.getenv("OTP_TTL_SECONDS", "600")))

    # Tokens
    PRIVATE_KEY = _pem("PRIVATE_KEY")
    PUBLIC_KEY = _pem("PUBLIC_KEY")
    JWKS_URI = os.getenv("JWKS_URI")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "auth-service")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "86400")))
    REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.getenv("REFRESH_TOKEN_EXPIRES_DAYS", "365")))

    # argon2 cost parameters (argon2-cffi defaults)
    PASSWORD_HASH_TIME_COST = int(os.getenv("PASSWORD_HASH_TIME_COST", "3"))
    PASSWORD_HASH_MEMORY_COST = int(os.getenv("PASSWORD_HASH_MEMORY_COST", "65536"))
    PASSWORD_HASH_PARALLELISM = int(os.getenv("PASSWORD_HASH_PARALLELISM", "4"))

    # Cookies
    COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN", "localhost") or None
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", False)

    # Avatar uploads
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(os.getcwd(), "public", "uploads"))
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(5 * 1024 * 1024)))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    HASH_SECRET = "test-hash-secret"
    CHANGE_EMAIL_OTP_SECRET = "test-change-email-secret"
    CHANGE_PHONE_NUMBER_OTP_SECRET = "test-change-phone-secret"
    REFRESH_TOKEN_SECRET = "test-refresh-token-secret-0123456789"
    PRIVATE_KEY = None
    PUBLIC_KEY = None
    JWKS_URI = None
    # cheapest argon2 parameters, tests hash a lot of passwords
    PASSWORD_HASH_TIME_COST = 1
    PASSWORD_HASH_MEMORY_COST = 8
    PASSWORD_HASH_PARALLELISM = 1
    COOKIE_DOMAIN = None
    PUBLIC_BASE_URL = "http://localhost"


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", True)


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def configure_logging(app) -> None:
    """Attach a single stream handler to the root logger."""
    root = logging.getLogger()
    root.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    if any(getattr(h, "_auth_service", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    handler._auth_service = True
    root.addHandler(handler)
