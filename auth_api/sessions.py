"""
Login session helpers: mint the access/refresh pair for a user and move it
in and out of cookies.
"""
from __future__ import annotations

from typing import Tuple

from flask import current_app

from auth_api.extensions import token_service
from utils.decorators import ACCESS_COOKIE, REFRESH_COOKIE


def token_payload(user) -> dict:
    role = getattr(user.role, "value", user.role)
    return {"userId": str(user.id), "role": role}


def issue_tokens(user) -> Tuple[str, str]:
    """
    Sign an access token, persist a new refresh reference and sign the
    refresh token for it. The reference is removed again if signing fails.
    """
    tokens = token_service()
    payload = token_payload(user)
    access_token = tokens.sign_access_token(payload)
    ref = tokens.issue_refresh_reference(user)
    try:
        refresh_token = tokens.sign_refresh_token({**payload, "tokenId": ref.id})
    except Exception:
        tokens.revoke(ref.id)
        raise
    return access_token, refresh_token


def set_auth_cookies(response, access_token: str, refresh_token: str):
    tokens = token_service()
    options = {
        "domain": current_app.config.get("COOKIE_DOMAIN"),
        "samesite": "Strict",
        "httponly": True,
        "secure": current_app.config.get("COOKIE_SECURE", False),
    }
    response.set_cookie(ACCESS_COOKIE, access_token, max_age=int(tokens.access_expires.total_seconds()), **options)
    response.set_cookie(REFRESH_COOKIE, refresh_token, max_age=int(tokens.refresh_expires.total_seconds()), **options)
    return response


def clear_auth_cookies(response):
    domain = current_app.config.get("COOKIE_DOMAIN")
    response.delete_cookie(ACCESS_COOKIE, domain=domain)
    response.delete_cookie(REFRESH_COOKIE, domain=domain)
    return response
