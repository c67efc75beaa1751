from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.user import MessageResponse, UserResponse, UserUpdate
from projecthub.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    user = await user_service.update_user(db, current_user.id, data)
    await db.commit()
    return user


@router.delete("/me", response_model=MessageResponse)
async def delete_me(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    await user_service.delete_user(db, current_user.id)
    await db.commit()
    return {"message": "Account deleted"}


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await user_service.get_user(db, user_id)
