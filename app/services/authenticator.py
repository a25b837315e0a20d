from typing import Any, Mapping

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import EmailNotVerified, InvalidCredentials
from app.core.security import DUMMY_PASSWORD_HASH, verify_password
from app.schemas.auth import SignInRequest
from app.schemas.user import Identity
from app.services.registration import get_user_by_email


async def authenticate(db: AsyncSession, credentials: Mapping[str, Any]) -> Identity:
    """
    Checks an email/password pair and returns the matching identity.

    Malformed input, unknown accounts and wrong passwords all raise the same
    ``InvalidCredentials``. An unverified account raises ``EmailNotVerified``
    while email verification is enabled.
    """
    try:
        data = SignInRequest.model_validate(dict(credentials))
    except ValidationError:
        raise InvalidCredentials()

    user = await get_user_by_email(db, data.email)
    if user is None or not user.password_hash:
        # keeps response time independent of whether the account exists
        verify_password(data.password, DUMMY_PASSWORD_HASH)
        raise InvalidCredentials()

    if settings.email_verification_enabled and not user.is_verified:
        raise EmailNotVerified()

    if not verify_password(data.password, user.password_hash):
        raise InvalidCredentials()

    return Identity.from_user(user)
