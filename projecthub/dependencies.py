from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from projecthub.database import get_db as db_session
from projecthub.errors import AuthenticationError, NotFoundError
from projecthub.models.user import User as UserModel
from projecthub.services import users as user_service
from projecthub.utils.security import decode_token, ACCESS

bearer_scheme = HTTPBearer(auto_error=False)


def get_db(db: AsyncSession = Depends(db_session)):
    return db


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UserModel:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")

    payload = decode_token(credentials.credentials, ACCESS)
    try:
        user = await user_service.get_user(db, payload["sub"])
    except NotFoundError:
        raise AuthenticationError("Invalid or expired token")
    if not user.is_active:
        raise AuthenticationError("User account is inactive")
    return user
