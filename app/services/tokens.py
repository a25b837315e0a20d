import secrets
from datetime import timedelta
from typing import Optional

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import TokenServiceError
from app.models.base import utcnow
from app.models.users import VerificationToken
from app.schemas.auth import normalize_email


async def generate_verification_token(db: AsyncSession, email: str) -> VerificationToken:
    """
    Issues a fresh token for the address, replacing any earlier ones.
    """
    email = normalize_email(email)
    token = secrets.token_hex(32)
    expires = utcnow() + timedelta(minutes=settings.VERIFICATION_TOKEN_TTL_MINUTES)

    try:
        await db.execute(delete(VerificationToken).where(VerificationToken.email == email))
        verification = VerificationToken(email=email, token=token, expires=expires)
        db.add(verification)
        await db.commit()
        await db.refresh(verification)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to store verification token for {email}: {str(e)}")
        raise TokenServiceError()

    return verification


async def _drop_if_expired(db: AsyncSession, verification: Optional[VerificationToken]) -> Optional[VerificationToken]:
    if verification is None:
        return None
    if utcnow() >= verification.expires:
        await delete_verification_token(db, verification.token)
        return None
    return verification


async def get_verification_token_by_token(db: AsyncSession, token: str) -> Optional[VerificationToken]:
    result = await db.execute(select(VerificationToken).where(VerificationToken.token == token))
    return await _drop_if_expired(db, result.scalar_one_or_none())


async def get_verification_token_by_email(db: AsyncSession, email: str) -> Optional[VerificationToken]:
    result = await db.execute(
        select(VerificationToken)
        .where(VerificationToken.email == normalize_email(email))
        .order_by(VerificationToken.created_at.desc())
        .limit(1)
    )
    return await _drop_if_expired(db, result.scalar_one_or_none())


async def delete_verification_token(db: AsyncSession, token: str) -> None:
    try:
        await db.execute(delete(VerificationToken).where(VerificationToken.token == token))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to delete verification token: {str(e)}")
