"""
Token service:
- access tokens: RS256, signed with PRIVATE_KEY, 24h, stateless
- refresh tokens: HS256, signed with REFRESH_TOKEN_SECRET, 1 year, backed by
  a RefreshToken row whose id is carried as `tokenId` / `jti`

Refresh verification is two-phase on purpose: decode_refresh_token() does the
cryptographic check only, is_revoked() does the store lookup. Nothing does
I/O inside PyJWT.
"""
from __future__ import annotations

import base64
import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from jwt.exceptions import PyJWKClientConnectionError, PyJWKClientError
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from jwt.algorithms import RSAAlgorithm
from sqlalchemy.exc import SQLAlchemyError

from models.refresh_token import RefreshToken
from utils.exceptions import ConfigurationError, InternalError, UnauthorizedError

logger = logging.getLogger(__name__)

ACCESS_ALGORITHM = "RS256"
REFRESH_ALGORITHM = "HS256"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RefreshTokenStore:
    """Persistence for refresh token references (the only revocation state)."""

    def __init__(self, storage):
        self.storage = storage

    def insert(self, user, expires_at: datetime) -> RefreshToken:
        ref = RefreshToken(user_id=user.id, expires_at=expires_at)
        self.storage.new(ref)
        try:
            self.storage.save()
        except SQLAlchemyError as exc:
            logger.exception("Could not persist refresh token for user %s", user.id)
            raise InternalError() from exc
        return ref

    def find(self, token_id: str, user_id: str) -> RefreshToken | None:
        session = self.storage.get_session()
        try:
            return (
                session.query(RefreshToken)
                .filter(RefreshToken.id == str(token_id), RefreshToken.user_id == str(user_id))
                .first()
            )
        except SQLAlchemyError as exc:
            logger.error("Error while getting the refresh token for user %s", user_id)
            raise InternalError() from exc

    def delete(self, token_id: str) -> int:
        """Delete by id and return the number of rows removed; unknown ids are not an error."""
        session = self.storage.get_session()
        try:
            deleted = session.query(RefreshToken).filter(RefreshToken.id == str(token_id)).delete(
                synchronize_session=False
            )
            self.storage.save()
        except SQLAlchemyError as exc:
            logger.exception("Could not delete refresh token %s", token_id)
            raise InternalError() from exc
        return deleted

    def count_for_user(self, user_id: str) -> int:
        session = self.storage.get_session()
        return session.query(RefreshToken).filter(RefreshToken.user_id == str(user_id)).count()


class TokenService:
    def __init__(
        self,
        store: RefreshTokenStore,
        private_key: str | None = None,
        refresh_secret: str | None = None,
        public_key: str | None = None,
        jwks_uri: str | None = None,
        issuer: str = "auth-service",
        access_expires: timedelta = timedelta(hours=24),
        refresh_expires: timedelta = timedelta(days=365),
    ):
        self.store = store
        self._private_key = private_key
        self._refresh_secret = refresh_secret
        self._public_key = public_key
        self._verifying_key = None
        self._jwk = None
        self._jwks_client = jwt.PyJWKClient(jwks_uri, cache_keys=True) if jwks_uri else None
        self.issuer = issuer
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires

    # signing

    def sign_access_token(self, payload: Dict[str, Any]) -> str:
        if not self._private_key:
            raise ConfigurationError("PRIVATE_KEY is not found!")
        now = _now()
        claims = {
            "userId": str(payload["userId"]),
            "role": payload["role"],
            "iss": self.issuer,
            "iat": now,
            "exp": now + self.access_expires,
        }
        headers = {"kid": self.key_id()}
        try:
            return jwt.encode(claims, self._private_key, algorithm=ACCESS_ALGORITHM, headers=headers)
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            logger.error("Access token signing failed: %s", exc)
            raise ConfigurationError("PRIVATE_KEY is invalid!") from exc

    def sign_refresh_token(self, payload: Dict[str, Any]) -> str:
        if not self._refresh_secret:
            raise ConfigurationError("REFRESH_TOKEN_SECRET is not found!")
        token_id = str(payload["tokenId"])
        now = _now()
        claims = {
            "userId": str(payload["userId"]),
            "role": payload["role"],
            "tokenId": token_id,
            "jti": token_id,
            "iss": self.issuer,
            "iat": now,
            "exp": now + self.refresh_expires,
        }
        return jwt.encode(claims, self._refresh_secret, algorithm=REFRESH_ALGORITHM)

    # references

    def issue_refresh_reference(self, user) -> RefreshToken:
        return self.store.insert(user, _now() + self.refresh_expires)

    def revoke(self, token_id) -> bool:
        """Delete the reference. Returns False when it was already gone."""
        if token_id is None:
            return False
        return self.store.delete(token_id) > 0

    # verification

    def _decode(self, token: str, key, algorithm: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                key,
                algorithms=[algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iss"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Token expired", details={"reason": "expired"})
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError(f"Invalid token: {exc}", details={"reason": "invalid"})

    def _verification_key(self, token: str):
        if self._jwks_client is not None:
            try:
                return self._jwks_client.get_signing_key_from_jwt(token).key
            except PyJWKClientConnectionError as exc:
                logger.error("JWKS endpoint unreachable: %s", exc)
                raise InternalError("Unable to fetch signing keys") from exc
            except (PyJWKClientError, jwt.InvalidTokenError) as exc:
                raise UnauthorizedError(f"Invalid token: {exc}", details={"reason": "invalid"})
        return self.public_key()

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        if not token:
            raise UnauthorizedError("Missing access token")
        return self._decode(token, self._verification_key(token), ACCESS_ALGORITHM)

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        """Phase one: signature, issuer and expiry."""
        if not token:
            raise UnauthorizedError("Missing refresh token")
        if not self._refresh_secret:
            raise ConfigurationError("REFRESH_TOKEN_SECRET is not found!")
        return self._decode(token, self._refresh_secret, REFRESH_ALGORITHM)

    def is_revoked(self, claims: Dict[str, Any]) -> bool:
        """Phase two: the reference row must exist and belong to the claimed user."""
        token_id = claims.get("tokenId")
        user_id = claims.get("userId")
        if not token_id or not user_id:
            return True
        return self.store.find(token_id, user_id) is None

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        claims = self.decode_refresh_token(token)
        if self.is_revoked(claims):
            logger.info("Revoked refresh token %s presented", claims.get("tokenId"))
            raise UnauthorizedError("Token revoked", details={"reason": "revoked"})
        return claims

    # public key material

    def public_key(self):
        """Public half of the access token key pair."""
        if self._verifying_key is None:
            if not self._public_key and not self._private_key:
                raise ConfigurationError("PRIVATE_KEY is not found!")
            try:
                if self._public_key:
                    self._verifying_key = serialization.load_pem_public_key(self._public_key.encode("utf-8"))
                else:
                    private = serialization.load_pem_private_key(self._private_key.encode("utf-8"), password=None)
                    self._verifying_key = private.public_key()
            except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
                logger.error("Could not load the access token key: %s", exc)
                raise ConfigurationError("PRIVATE_KEY is invalid!") from exc
        return self._verifying_key

    def public_jwk(self) -> Dict[str, Any]:
        if self._jwk is None:
            jwk = RSAAlgorithm.to_jwk(self.public_key(), as_dict=True)
            jwk.update({"use": "sig", "alg": ACCESS_ALGORITHM, "kid": _thumbprint(jwk)})
            self._jwk = jwk
        return self._jwk

    def key_id(self) -> str:
        return self.public_jwk()["kid"]

    def jwks(self) -> Dict[str, Any]:
        """JWKS document for offline access token verification."""
        return {"keys": [dict(self.public_jwk())]}


def _thumbprint(jwk: Dict[str, Any]) -> str:
    """RFC 7638 thumbprint of an RSA JWK."""
    canonical = json.dumps({"e": jwk["e"], "kty": jwk["kty"], "n": jwk["n"]}, separators=(",", ":"), sort_keys=True)
    digest = hashlib.sha256(canonical.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
