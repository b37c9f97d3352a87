"""JWT access token issuance and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The token
carries everything needed to identify the caller:

    sub  → the user's email
    uid  → the user's id
    iat  → issued at (unix seconds)
    exp  → expires at (unix seconds)

Nothing is stored server-side, so a token can only be revoked by letting
it expire or by rotating the secret.

The TokenEngine is built once at startup with the signing key and a
clock, then shared by every request. It holds no mutable state, so
concurrent verification needs no locking.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

import jwt

REQUIRED_CLAIMS = ("sub", "uid", "iat", "exp")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenFailure(str, Enum):
    """Why a token failed verification."""

    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    MALFORMED = "malformed"


class TokenError(Exception):
    """Raised when token verification fails."""

    def __init__(self, failure: TokenFailure, message: str):
        super().__init__(message)
        self.failure = failure
        self.message = message


@dataclass(frozen=True)
class Identity:
    """Claims recovered from a verified access token."""

    email: str
    user_id: str
    issued_at: datetime
    expires_at: datetime


class TokenEngine:
    """Signs and verifies access tokens with a process-wide secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    def issue(self, email: str, user_id: str, ttl: Optional[timedelta] = None) -> str:
        """Create a signed access token for the given identity."""
        ttl = self.ttl if ttl is None else ttl
        if ttl <= timedelta(0):
            raise ValueError("Token lifetime must be positive")
        now = self._clock()
        payload = {
            "sub": email,
            "uid": str(user_id),
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        # Sub-second lifetimes would otherwise round to exp == iat
        if payload["exp"] <= payload["iat"]:
            payload["exp"] = payload["iat"] + 1
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        """Verify a token and return its claims.

        Expiry is compared against this engine's clock (no leeway). A
        token past its exp fails as expired whether or not its signature
        holds; any other signature mismatch fails as invalid_signature.
        Raises TokenError on failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidSignatureError:
            if self._is_past_exp(token):
                raise TokenError(TokenFailure.EXPIRED, "Token has expired")
            raise TokenError(TokenFailure.INVALID_SIGNATURE, "Invalid token signature")
        except jwt.InvalidTokenError:
            raise TokenError(TokenFailure.MALFORMED, "Malformed token")

        missing = [c for c in REQUIRED_CLAIMS if payload.get(c) in (None, "")]
        if missing:
            raise TokenError(
                TokenFailure.MALFORMED, f"Token is missing claims: {', '.join(missing)}"
            )
        if payload.get("type", "access") != "access":
            raise TokenError(TokenFailure.MALFORMED, "Not an access token")

        try:
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            raise TokenError(TokenFailure.MALFORMED, "Token timestamps are invalid")

        if expires_at <= issued_at:
            raise TokenError(TokenFailure.MALFORMED, "Token expires before it was issued")
        if self._clock() >= expires_at:
            raise TokenError(TokenFailure.EXPIRED, "Token has expired")

        return Identity(
            email=str(payload["sub"]),
            user_id=str(payload["uid"]),
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def _is_past_exp(self, token: str) -> bool:
        # Unverified read; the result only chooses which failure to report
        try:
            claims = jwt.decode(
                token, options={"verify_signature": False, "verify_exp": False}
            )
            exp = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError, OverflowError):
            return False
        return self._clock() >= exp

    def extract_email(self, token: str) -> str:
        """Email claim of a verified token. Fails exactly like verify()."""
        return self.verify(token).email

    def extract_user_id(self, token: str) -> str:
        """User id claim of a verified token. Fails exactly like verify()."""
        return self.verify(token).user_id
