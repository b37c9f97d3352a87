"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers (and at router level
in api/__init__.py) to authenticate the request. FastAPI caches a
dependency per request, so declaring get_current_identity both on the
router and in a handler still verifies the token only once.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from shareme.auth.gate import AuthenticationGate
from shareme.auth.jwt import Identity, TokenEngine
from shareme.errors import AuthenticationError

logger = structlog.get_logger()


def get_token_engine(request: Request) -> TokenEngine:
    """The process-wide engine built by create_app()."""
    return request.app.state.token_engine


def get_gate(engine: TokenEngine = Depends(get_token_engine)) -> AuthenticationGate:
    return AuthenticationGate(engine)


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
    gate: AuthenticationGate = Depends(get_gate),
) -> Identity:
    """Authenticate the request (401 if the bearer token is missing or bad).

    Learn: The Identity is frozen, so handlers can read it but never
    change who the request is acting as.
    """
    try:
        identity = gate.authenticate(authorization)
    except AuthenticationError as e:
        logger.info("auth.rejected", path=request.url.path, error=e.kind.value)
        raise
    request.state.identity = identity
    return identity
