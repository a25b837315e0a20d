from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict

from app.core.dependencies import get_current_user, oauth2_scheme, rate_limit_dependency
from app.core.security import create_access_token, decode_access_token
from app.db.session import get_db
from app.db.redis import get_redis
from app.models.users import User
from app.schemas.auth import ResendVerificationRequest, VerifyEmailRequest
from app.schemas.user import Identity, IdentityResponse, LoginResponse, MessageResponse
from app.services.authenticator import authenticate
from app.services.registration import register_user, resend_verification, verify_email

router = APIRouter()

# mounted at the API root: the sign-up endpoint lives at /api/register
register_router = APIRouter()


@register_router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit_dependency(requests_limit=10, time_window=60, scope="register"))],
)
async def register(
        payload: Dict[str, Any] = Body(...),
        db: AsyncSession = Depends(get_db),
):
    return await register_user(db, payload)


@router.post("/verify-email", response_model=MessageResponse)
async def verify(
        body: VerifyEmailRequest,
        db: AsyncSession = Depends(get_db),
):
    return await verify_email(db, body.token)


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit_dependency(requests_limit=20, time_window=60, scope="login"))],
)
async def login(
        credentials: Dict[str, Any] = Body(...),
        db: AsyncSession = Depends(get_db),
):
    identity = await authenticate(db, credentials)
    access_token = create_access_token(subject=identity.id)

    return {"access_token": access_token, "token_type": "bearer", "user": asdict(identity)}


@router.post("/logout")
async def logout(
        current_user: User = Depends(get_current_user),
        token: str = Depends(oauth2_scheme),
        redis: Redis = Depends(get_redis)
):
    payload = decode_access_token(token)
    token_jti = payload.get("jti")

    exp_timestamp = payload.get("exp")
    current_timestamp = datetime.now(timezone.utc).timestamp()
    ttl = max(int(exp_timestamp - current_timestamp), 1)

    await redis.set(f"blacklist:{token_jti}", "1", ex=ttl)

    return {"message": "Logged out successfully"}


@router.get("/session", response_model=IdentityResponse)
async def session(
        current_user: User = Depends(get_current_user),
):
    return asdict(Identity.from_user(current_user))


@router.post("/resend-verification", response_model=MessageResponse)
async def resend(
        body: ResendVerificationRequest,
        db: AsyncSession = Depends(get_db),
):
    return await resend_verification(db, body.email)
