from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from loguru import logger

from app.db.session import get_db
from app.db.redis import get_optional_redis, get_redis
from app.models.users import User
from app.core.config import settings
from app.core.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_STR}/auth/login")


async def get_current_user(
        db: AsyncSession = Depends(get_db),
        token: str = Depends(oauth2_scheme),
        redis: Redis = Depends(get_redis),
) -> User:
    """
    Resolves the user behind a bearer token
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        token_jti = payload.get("jti")
        user_sid = payload.get("sub")

        if user_sid is None:
            raise credentials_exception

        # Tokens revoked by logout stay blacklisted until they expire
        blacklisted = await redis.get(f"blacklist:{token_jti}")
        if blacklisted:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has been revoked",
                headers={"WWW-Authenticate": "Bearer"},
            )
    except JWTError:
        raise credentials_exception

    user_query = select(User).where(User.sid == user_sid)
    result = await db.execute(user_query)
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
        current_user: User = Depends(get_current_user),
) -> User:
    """
    Rejects unverified accounts while email verification is enabled
    """
    if settings.email_verification_enabled and not current_user.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Email not verified")
    return current_user


def rate_limit_dependency(
        requests_limit: int = 100,
        time_window: int = 60,
        scope: str = "global",
):
    """
    Builds a per-IP fixed-window request limiter
    """

    async def rate_limit(
            request: Request,
            redis: Optional[Redis] = Depends(get_optional_redis)
    ):
        if redis is None:
            return

        client_ip = request.client.host if request.client else "unknown"
        key = f"rate_limit:{scope}:{client_ip}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, time_window)
        except RedisError as e:
            # limiter is best effort, requests pass while Redis is down
            logger.warning(f"Rate limiter unavailable: {str(e)}")
            return

        if count > requests_limit:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
            )

    return rate_limit
