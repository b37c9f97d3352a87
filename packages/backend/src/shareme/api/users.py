"""User search — used when picking project members."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.db.engine import get_db
from shareme.schemas.common import UserInfo
from shareme.services.user_service import UserService

router = APIRouter(prefix="/users")


@router.get("/search", response_model=list[UserInfo])
async def search_users(
    q: Optional[str] = Query(None, max_length=100, description="Email or name fragment"),
    db: AsyncSession = Depends(get_db),
):
    """Up to 10 users matching q (the first 10 users if q is empty)."""
    return await UserService(db).search(q)
