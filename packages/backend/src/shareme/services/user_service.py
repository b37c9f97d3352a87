"""User accounts — signup, credential check, lookup and search."""

import secrets
import uuid
from functools import lru_cache
from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.password import hash_password, password_problem, verify_password
from shareme.db.models import User
from shareme.errors import (
    AuthenticationError,
    ConflictError,
    ErrorKind,
    NotFoundError,
    ValidationError,
)
from shareme.services.password_reset import normalize_email

logger = structlog.get_logger()

SEARCH_LIMIT = 10


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Verified against when the email is unknown, so a miss costs as much as a hit
    return hash_password(secrets.token_urlsafe(16))


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def signup(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> User:
        problem = password_problem(password)
        if problem:
            raise ValidationError(problem)

        email = normalize_email(email)
        if await self.get_by_email(email):
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role="USER",
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            await self.db.rollback()
            raise ConflictError("Email already registered")
        await self.db.refresh(user)
        logger.info("auth.signup", user_id=str(user.id))
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials. Unknown email and wrong password look the same."""
        user = await self.get_by_email(email)
        if user is None:
            verify_password(password, _dummy_hash())
            logger.info("auth.login_failed", reason="unknown_email")
            raise AuthenticationError("Invalid email or password", ErrorKind.INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", reason="bad_password", user_id=str(user.id))
            raise AuthenticationError("Invalid email or password", ErrorKind.INVALID_CREDENTIALS)
        logger.info("auth.login", user_id=str(user.id))
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        q = select(User).where(User.email == normalize_email(email))
        result = await self.db.execute(q)
        return result.scalars().first()

    async def get(self, user_id: str) -> User:
        try:
            uid = uuid.UUID(str(user_id))
        except ValueError:
            raise NotFoundError("User not found")
        user = await self.db.get(User, uid)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def search(self, query: Optional[str]) -> list[User]:
        """Case-insensitive match on email, first or last name (max 10)."""
        q = select(User).order_by(User.email).limit(SEARCH_LIMIT)
        term = (query or "").strip()
        if term:
            pattern = f"%{term.lower()}%"
            q = q.where(
                or_(
                    User.email.ilike(pattern),
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                )
            )
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def get_many_by_email(self, emails: list[str]) -> list[User]:
        wanted = {normalize_email(e) for e in emails if e and e.strip()}
        if not wanted:
            return []
        result = await self.db.execute(select(User).where(User.email.in_(sorted(wanted))))
        return list(result.scalars().all())
