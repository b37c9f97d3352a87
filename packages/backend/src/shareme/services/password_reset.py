"""Password reset service — single-use, time-limited reset tokens.

Learn: The lifecycle of a reset token:

    request_reset(email)  → random token stored on the user row with an
                            absolute expiry (replaces any earlier token)
    consume_reset(token)  → new password hash written and token cleared
                            in ONE conditional UPDATE
    expired on consume    → token cleared lazily, caller told "expired"

Atomicity: the final UPDATE is guarded by `WHERE reset_token = :token`.
Two concurrent resets with the same token both pass the lookup, but the
database applies the row update once; the loser sees rowcount == 0 and
fails as if the token never existed. A new forgot-password request that
lands in between overwrites the token, so the same guard also makes the
older consume fail. No application-level locks are needed, and users
never contend with each other.

Unknown emails are not an error: request_reset returns None and the API
answers exactly as it would for a real account.
"""

import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.jwt import utcnow
from shareme.auth.password import hash_password, password_problem
from shareme.db.models import User, as_utc
from shareme.errors import ErrorKind, ResetTokenError, ValidationError
from shareme.services.notifier import ResetTicket

logger = structlog.get_logger()

RESET_TOKEN_BYTES = 32


def normalize_email(email: str) -> str:
    return email.strip().lower()


class PasswordResetManager:
    """Issues and consumes password reset tokens."""

    def __init__(
        self,
        db: AsyncSession,
        window: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.window = window
        self.clock = clock

    # ─── Issue ───────────────────────────────────────────

    async def request_reset(self, email: str) -> Optional[ResetTicket]:
        """Store a fresh reset token for the account, if there is one.

        Returns the ticket to hand to a notifier, or None when no account
        uses this email. Callers must not reveal which case happened.
        """
        q = select(User.id, User.email).where(User.email == normalize_email(email))
        row = (await self.db.execute(q)).first()
        if row is None:
            logger.info("password_reset.unknown_email")
            return None

        token = secrets.token_urlsafe(RESET_TOKEN_BYTES)
        expires_at = self.clock() + self.window

        # Single slot: overwriting discards any earlier unconsumed token
        await self.db.execute(
            update(User)
            .where(User.id == row.id)
            .values(reset_token=token, reset_token_expires_at=expires_at)
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.commit()

        logger.info("password_reset.requested", user_id=str(row.id))
        return ResetTicket(email=row.email, token=token, expires_at=expires_at)

    # ─── Consume ─────────────────────────────────────────

    async def consume_reset(self, token: str, new_password: str) -> None:
        """Replace the password of the account holding this reset token.

        Raises ResetTokenError (invalid or expired) or ValidationError
        (unacceptable new password).
        """
        if not token:
            raise ResetTokenError(
                "Invalid or already used reset token", ErrorKind.RESET_TOKEN_INVALID
            )
        problem = password_problem(new_password)
        if problem:
            raise ValidationError(problem)

        q = select(User.id, User.reset_token_expires_at).where(User.reset_token == token)
        row = (await self.db.execute(q)).first()
        if row is None:
            logger.info("password_reset.invalid_token")
            raise ResetTokenError(
                "Invalid or already used reset token", ErrorKind.RESET_TOKEN_INVALID
            )

        expires_at = as_utc(row.reset_token_expires_at)
        if expires_at is None or self.clock() > expires_at:
            await self._clear(row.id, token)
            logger.info("password_reset.expired", user_id=str(row.id))
            raise ResetTokenError("Reset token has expired", ErrorKind.RESET_TOKEN_EXPIRED)

        result = await self.db.execute(
            update(User)
            .where(User.id == row.id, User.reset_token == token)
            .values(
                password_hash=hash_password(new_password),
                reset_token=None,
                reset_token_expires_at=None,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            # Consumed or replaced by a concurrent request since the lookup
            await self.db.rollback()
            raise ResetTokenError(
                "Invalid or already used reset token", ErrorKind.RESET_TOKEN_INVALID
            )
        await self.db.commit()
        logger.info("password_reset.completed", user_id=str(row.id))

    async def _clear(self, user_id, token: str) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id, User.reset_token == token)
            .values(reset_token=None, reset_token_expires_at=None)
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.commit()
