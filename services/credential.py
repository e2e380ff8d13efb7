"""
Credential service:
- Argon2 password hashing via argon2-cffi
- 4 digit OTP generation
- Stateless OTP challenges sealed with HMAC-SHA256

An OTP is never stored. Sending a challenge returns the code together with a
seal of the form ``<hmac>#<expiresAtMs>[#<bound>]`` where

    hmac = HMAC-SHA256(HASH_SECRET, "<otp>.<subject>.<expiresAtMs>[.<extra>]")

The client echoes both back and the server re-derives the HMAC from the same
inputs. ``extra`` is either a value carried in the seal itself (the
registration flow binds the password hash this way) or a purpose key that is
only mixed into the HMAC, so a seal issued for one flow never verifies in
another.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from utils.exceptions import ConfigurationError, OtpExpiredError, OtpInvalidError

logger = logging.getLogger(__name__)

SEAL_SEPARATOR = "#"
OTP_LOW = 1000
OTP_HIGH = 9999  # exclusive


def now_ms() -> int:
    """Current time as epoch milliseconds, the unit embedded in seals."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Challenge:
    otp: int
    hash_otp: str
    expires_at: int


class CredentialService:
    def __init__(
        self,
        hash_secret: str | None,
        otp_ttl: timedelta = timedelta(minutes=10),
        password_hasher: PasswordHasher | None = None,
    ):
        self._hash_secret = hash_secret
        self.otp_ttl = otp_ttl
        self._ph = password_hasher or PasswordHasher()

    # passwords

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password using Argon2."""
        return self._ph.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a plaintext password against an Argon2 hash."""
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    # otp

    def generate_otp(self) -> int:
        """Uniformly random code in [1000, 9998]."""
        return OTP_LOW + secrets.randbelow(OTP_HIGH - OTP_LOW)

    def seal(self, otp, subject: str, expires_at, extra: str | None = None) -> str:
        """
        Deterministic HMAC over the dot-joined fields. Raises
        ConfigurationError when HASH_SECRET is not configured.
        """
        if not self._hash_secret:
            raise ConfigurationError("HASH_SECRET is not found!")
        fields = [str(otp), subject, str(expires_at)]
        if extra is not None:
            fields.append(extra)
        data = ".".join(fields).encode("utf-8")
        return hmac.new(self._hash_secret.encode("utf-8"), data, hashlib.sha256).hexdigest()

    def issue_challenge(
        self,
        subject: str,
        bound: str | None = None,
        purpose_key: str | None = None,
        now: int | None = None,
    ) -> Challenge:
        """
        Create a new OTP challenge for ``subject``.

        ``bound`` is carried as the third seal segment and covered by the
        HMAC. ``purpose_key`` is covered by the HMAC but never leaves the
        server. Only one of them may be given.
        """
        if bound is not None and purpose_key is not None:
            raise ValueError("a challenge binds either a carried value or a purpose key")
        if not self._hash_secret:
            raise ConfigurationError("HASH_SECRET is not found!")
        expires_at = (now if now is not None else now_ms()) + int(self.otp_ttl.total_seconds() * 1000)
        otp = self.generate_otp()
        digest = self.seal(otp, subject, expires_at, bound if bound is not None else purpose_key)
        segments = [digest, str(expires_at)]
        if bound is not None:
            segments.append(bound)
        return Challenge(otp=otp, hash_otp=SEAL_SEPARATOR.join(segments), expires_at=expires_at)

    def verify_challenge(
        self,
        otp,
        subject: str,
        hash_otp: str,
        carries_bound: bool = False,
        purpose_key: str | None = None,
        now: int | None = None,
    ) -> str | None:
        """
        Check an echoed challenge. Returns the carried bound value (or None).

        Order matters: segment count first, then expiry, then the HMAC, so an
        expired seal reports OtpExpiredError even when the code is right.
        """
        segments = (hash_otp or "").split(SEAL_SEPARATOR)
        if len(segments) != (3 if carries_bound else 2):
            raise OtpInvalidError()

        digest, raw_expires = segments[0], segments[1]
        bound = segments[2] if carries_bound else None
        try:
            expires_at = int(raw_expires)
        except ValueError:
            raise OtpInvalidError()

        current = now if now is not None else now_ms()
        if current > expires_at:
            raise OtpExpiredError()

        # rebuild from the raw segment so the input is byte-for-byte identical
        expected = self.seal(otp, subject, raw_expires, bound if carries_bound else purpose_key)
        if not hmac.compare_digest(expected.encode("utf-8"), digest.encode("utf-8")):
            raise OtpInvalidError()
        return bound
