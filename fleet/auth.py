"""Password hashing and JWT session handling."""
import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .errors import Conflict, InvalidCredentials, InvalidToken
from .models import Role, User
from .schemas import (
    AccessTokenResponse,
    LoginResponse,
    RegisterRequest,
    TokenPayload,
    UserPublic,
)

logger = logging.getLogger(__name__)


def hash_password(plain: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def create_access_token(user: User) -> str:
    payload = {
        "id": user.id,
        "email": user.email,
        "role": user.role.value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user: User) -> str:
    payload = {
        "id": user.id,
        "exp": datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    """
    Verify an access token and return its claims.

    Raises:
        InvalidToken: bad signature, expired, or claims of the wrong shape
    """
    try:
        decoded = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return TokenPayload.model_validate(decoded)
    except (jwt.PyJWTError, ValidationError) as e:
        raise InvalidToken() from e


async def login(db: AsyncSession, email: str, password: str) -> LoginResponse:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.password):
        logger.info(f"Failed login for {email}")
        raise InvalidCredentials()

    logger.info(f"User {user.id} logged in")
    return LoginResponse(
        user=UserPublic.model_validate(user),
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
    )


async def register(db: AsyncSession, data: RegisterRequest) -> UserPublic:
    user = User(
        email=data.email,
        password=hash_password(data.password),
        name=data.name,
        role=Role.USER,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict("Resource already exists") from e

    logger.info(f"Registered user {user.id}")
    return UserPublic.model_validate(user)


async def refresh(db: AsyncSession, refresh_token: str) -> AccessTokenResponse:
    """Issue a new access token for a valid refresh token."""
    try:
        decoded = jwt.decode(
            refresh_token, settings.JWT_REFRESH_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.PyJWTError as e:
        raise InvalidToken("Invalid refresh token") from e

    user = await db.get(User, decoded.get("id"))
    if user is None:
        raise InvalidToken("Invalid refresh token")

    return AccessTokenResponse(access_token=create_access_token(user))
