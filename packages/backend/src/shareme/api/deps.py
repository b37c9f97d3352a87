"""Request-scoped access to the objects create_app() builds once.

Learn: Long-lived collaborators (settings, clock, reset notifier, document
storage) live on app.state. Handlers reach them through these tiny
dependencies, which tests can swap with app.dependency_overrides.
"""

from datetime import datetime, timedelta
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.config import Settings
from shareme.db.engine import get_db
from shareme.services.notifier import ResetNotifier
from shareme.services.password_reset import PasswordResetManager
from shareme.services.storage import DocumentStorage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def get_reset_notifier(request: Request) -> ResetNotifier:
    return request.app.state.reset_notifier


def get_storage(request: Request) -> DocumentStorage:
    return request.app.state.storage


def get_reset_manager(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> PasswordResetManager:
    return PasswordResetManager(
        db,
        window=timedelta(minutes=settings.reset_token_expire_minutes),
        clock=clock,
    )
