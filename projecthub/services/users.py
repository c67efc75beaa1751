import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from projecthub.errors import AuthenticationError, ConflictError, NotFoundError
from projecthub.models.common import utcnow
from projecthub.models.user import User
from projecthub.schemas.user import UserRegister, UserUpdate
from projecthub.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(
        select(User).filter(User.id == user_id, User.deleted_at.is_(None))
    )
    user = result.scalars().first()
    if not user:
        raise NotFoundError("User not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User:
    result = await db.execute(
        select(User).filter(User.email == email, User.deleted_at.is_(None))
    )
    user = result.scalars().first()
    if not user:
        raise NotFoundError(f"User with email {email} not found")
    return user


async def register_user(db: AsyncSession, data: UserRegister) -> User:
    result = await db.execute(
        select(User.id).filter(User.email == data.email, User.deleted_at.is_(None))
    )
    if result.scalars().first():
        raise ConflictError(f"User with email {data.email} already exists")

    user = User(
        email=data.email,
        password_hash=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        timezone="UTC",
        locale="en",
        email_verified=False,
        is_active=True,
        last_login_at=utcnow(),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"User with email {data.email} already exists")

    logger.info("Registered user %s", user.id)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    result = await db.execute(
        select(User).filter(User.email == email, User.deleted_at.is_(None))
    )
    user = result.scalars().first()

    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    user.last_login_at = utcnow()
    return user


async def update_user(db: AsyncSession, user_id: str, data: UserUpdate) -> User:
    user = await get_user(db, user_id)
    for key, value in data.model_dump(exclude_none=True).items():
        setattr(user, key, value)
    return user


async def delete_user(db: AsyncSession, user_id: str) -> None:
    user = await get_user(db, user_id)
    user.is_active = False
    user.deleted_at = utcnow()
    logger.info("Soft-deleted user %s", user_id)
