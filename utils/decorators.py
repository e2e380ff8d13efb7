from __future__ import annotations
from functools import wraps
from typing import Iterable

from flask import request, g, current_app

from utils.exceptions import ForbiddenError, UnauthorizedError, ValidationError

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def is_role_allowed(allowed_roles: Iterable[str], role: str | None) -> bool:
    """Pure role gate: allow when the actual role is one of the allowed ones."""
    return role is not None and role in set(allowed_roles or [])


def _token_service():
    return current_app.extensions["token_service"]


def get_access_token() -> str | None:
    """Bearer header first (a literal "undefined" counts as absent), then cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token and token != "undefined":
            return token
    return request.cookies.get(ACCESS_COOKIE)


def access_token_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = get_access_token()
            if not token:
                raise UnauthorizedError("Missing access token")
            g.auth = _token_service().verify_access_token(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def refresh_token_required():
    """
    Two-phase refresh check: signature/expiry, then the reference row lookup.
    Claims land on g.refresh_auth.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.refresh_auth = _token_service().verify_refresh_token(request.cookies.get(REFRESH_COOKIE))
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the token role is one of required_roles, otherwise 403.
    Implies access_token_required().
    """
    def decorator(fn):
        @wraps(fn)
        @access_token_required()
        def wrapper(*args, **kwargs):
            if not is_role_allowed(required_roles, g.auth.get("role")):
                raise ForbiddenError("You don't have enough permission")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def logged_out_required():
    """Reject the request when a still-valid refresh cookie is attached."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = request.cookies.get(REFRESH_COOKIE)
            if token:
                try:
                    _token_service().decode_refresh_token(token)
                except UnauthorizedError:
                    token = None
                if token:
                    raise ValidationError("User already login!")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
