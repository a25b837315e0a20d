"""
Account registration and email verification.

``register_user`` runs the whole sign-up pass for the configured
``REGISTRATION_VARIANT`` and returns the response body. Every expected failure
is an ``AppError``; anything else is logged and reported as a generic 500.
"""
from typing import Any, Dict, Mapping

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AlreadyVerified,
    AppError,
    DuplicateEmail,
    InvalidToken,
    MissingToken,
    UserNotFound,
    ValidationFailed,
)
from app.core.security import get_password_hash
from app.models.base import utcnow
from app.models.users import User, UserRole
from app.schemas.auth import (
    EMAIL_DOMAIN_UNREACHABLE,
    LegacyRegisterRequest,
    RegisterRequest,
    format_validation_errors,
    normalize_email,
)
from app.services.domain_check import validate_email_domain
from app.services.email import send_verification_email
from app.services.tokens import (
    delete_verification_token,
    generate_verification_token,
    get_verification_token_by_email,
    get_verification_token_by_token,
)

REGISTRATION_SUCCESS = "Registration successful! Please check your email to verify your account."
REGISTRATION_FAILED = "Something went wrong during registration"
VERIFIED_SUCCESS = "Email verified successfully! You can now sign in to your account."
ALREADY_VERIFIED = "Email already verified. You can sign in now."


async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


def _parse(payload: Mapping[str, Any]):
    schema = RegisterRequest if settings.email_verification_enabled else LegacyRegisterRequest
    try:
        return schema.model_validate(dict(payload))
    except ValidationError as e:
        raise ValidationFailed(details=format_validation_errors(e.errors(), schema))


async def _create_user(db: AsyncSession, name: str, email: str, password: str) -> User:
    if await get_user_by_email(db, email) is not None:
        raise DuplicateEmail()

    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        role=UserRole.USER,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent registration won the unique index
        await db.rollback()
        raise DuplicateEmail()
    await db.refresh(user)
    return user


async def _register(db: AsyncSession, payload: Mapping[str, Any]) -> Dict[str, Any]:
    data = _parse(payload)

    if settings.email_verification_enabled and not await validate_email_domain(data.email):
        raise ValidationFailed(details=[{"field": "email", "message": EMAIL_DOMAIN_UNREACHABLE}])

    user = await _create_user(db, data.name, data.email, data.password)
    logger.info(f"User registered: {user.sid}")

    if not settings.email_verification_enabled:
        return {"success": True, "user": {"id": user.sid, "name": user.name, "email": user.email}}

    verification = await generate_verification_token(db, user.email)
    await send_verification_email(verification.email, verification.token)
    return {"success": True, "message": REGISTRATION_SUCCESS}


async def register_user(db: AsyncSession, payload: Mapping[str, Any]) -> Dict[str, Any]:
    try:
        return await _register(db, payload)
    except AppError:
        raise
    except Exception:
        logger.exception("Registration failed")
        raise AppError(REGISTRATION_FAILED)


async def verify_email(db: AsyncSession, token) -> Dict[str, Any]:
    if not token:
        raise MissingToken()

    verification = await get_verification_token_by_token(db, token)
    if verification is None:
        raise InvalidToken()

    user = await get_user_by_email(db, verification.email)
    if user is None:
        raise UserNotFound()

    if user.is_verified:
        await delete_verification_token(db, verification.token)
        return {"success": True, "message": ALREADY_VERIFIED}

    user.email_verified = utcnow()
    await db.commit()
    await delete_verification_token(db, verification.token)
    logger.info(f"Email verified for user {user.sid}")
    return {"success": True, "message": VERIFIED_SUCCESS}


async def resend_verification(db: AsyncSession, email: str) -> Dict[str, Any]:
    user = await get_user_by_email(db, normalize_email(email or ""))
    if user is None:
        raise UserNotFound()
    if user.is_verified:
        raise AlreadyVerified()

    verification = await get_verification_token_by_email(db, user.email)
    if verification is None:
        verification = await generate_verification_token(db, user.email)

    await send_verification_email(verification.email, verification.token)
    return {"success": True, "message": "Verification email sent"}
