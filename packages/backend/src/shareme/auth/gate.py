"""Authentication gate — Authorization header → Identity.

Learn: Every protected request passes through here exactly once, before
any handler runs. The header moves through a tiny state machine:

    absent / no "Bearer " prefix  → Rejected (missing_token / invalid_token_format)
    "Bearer <token>"              → TokenPresented → verify()
                                     → Verified (Identity bound to the request)
                                     → Rejected (invalid_signature / token_expired /
                                                 malformed_token)

A rejected request never reaches its handler. Which routes are public is
decided statically in api/__init__.py, not here.
"""

from typing import Optional

from shareme.auth.jwt import Identity, TokenEngine, TokenError, TokenFailure
from shareme.errors import AuthenticationError, ErrorKind

BEARER_PREFIX = "Bearer "

_FAILURE_KINDS = {
    TokenFailure.INVALID_SIGNATURE: ErrorKind.INVALID_SIGNATURE,
    TokenFailure.EXPIRED: ErrorKind.TOKEN_EXPIRED,
    TokenFailure.MALFORMED: ErrorKind.MALFORMED_TOKEN,
}


class AuthenticationGate:
    """Validates bearer credentials with a shared TokenEngine."""

    def __init__(self, engine: TokenEngine):
        self.engine = engine

    def extract_token(self, authorization: Optional[str]) -> str:
        """Strip the Bearer prefix; reject absent or wrongly-formatted headers."""
        if not authorization:
            raise AuthenticationError(
                "Authentication required", ErrorKind.MISSING_TOKEN
            )
        if not authorization.startswith(BEARER_PREFIX):
            raise AuthenticationError(
                "Invalid token format, expected 'Bearer <token>'",
                ErrorKind.INVALID_TOKEN_FORMAT,
            )
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise AuthenticationError(
                "Invalid token format, expected 'Bearer <token>'",
                ErrorKind.INVALID_TOKEN_FORMAT,
            )
        return token

    def authenticate(self, authorization: Optional[str]) -> Identity:
        token = self.extract_token(authorization)
        try:
            return self.engine.verify(token)
        except TokenError as e:
            raise AuthenticationError(e.message, _FAILURE_KINDS[e.failure])
