from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.dependencies import get_db, get_current_user
from projecthub.errors import AuthenticationError, NotFoundError
from projecthub.models.user import User as UserModel
from projecthub.schemas.user import AuthResponse, RefreshRequest, UserLogin, UserRegister, UserResponse
from projecthub.services import users as user_service
from projecthub.utils.security import create_token_pair, decode_token, REFRESH

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: UserModel) -> dict:
    return {"user": user, **create_token_pair(user.id, user.email)}


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    user = await user_service.register_user(db, data)
    await db.commit()
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await user_service.authenticate_user(db, data.email, data.password)
    await db.commit()
    return _auth_response(user)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    payload = decode_token(data.refresh_token, REFRESH)
    try:
        user = await user_service.get_user(db, payload["sub"])
    except NotFoundError:
        raise AuthenticationError("Invalid or expired token")
    if not user.is_active:
        raise AuthenticationError("User account is inactive")
    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: UserModel = Depends(get_current_user)):
    return current_user
