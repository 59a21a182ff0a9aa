"""Public user profile endpoints: /api/users/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from c42.auth.dependencies import get_current_user
from c42.database import get_session
from c42.db.models import User
from c42.users.schemas import UserResponse
from c42.users.service import require_user

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> User:
    """Own profile, including activity points and displayed rank."""
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_session)) -> User:
    return await require_user(db, user_id)
