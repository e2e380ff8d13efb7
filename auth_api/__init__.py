from flask import Flask, send_from_directory
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, configure_logging
from .errors import register_error_handlers
from .extensions import init_services, token_service
from models import storage  # DBStorage singleton (scoped_session)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Auth Service API",
        "version": "1.0.0",
        "description": "Registration with OTP verified email, login/logout, access and refresh tokens, "
                       "password reset and profile management.",
    },
    "basePath": "/",
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Access token with the `Bearer ` prefix. The accessToken cookie works too."
        }
    }
}

def _documented(rule) -> bool:
    return rule.rule.startswith(("/api/", "/.well-known/"))


SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "auth_apispec",
            "route": "/swagger.json",
            "rule_filter": _documented,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` is applied on top of the selected config class (tests use it
    to inject generated keys).
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    configure_logging(app)

    # Cookies carry the tokens, so CORS must allow credentials
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}}, supports_credentials=True)

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    storage.configure(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()

    init_services(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/user")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.get("/.well-known/jwks.json")
    def jwks():
        """
        Public key set for access token verification
        ---
        tags:
          - Auth
        responses:
          200:
            description: JWKS document with the RS256 signing key
        """
        return token_service().jwks(), 200

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Auth Service API",
            "docs": "/apidocs/",
            "health": "/api/health",
        }, 200

    return app
