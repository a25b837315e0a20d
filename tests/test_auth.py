import pytest
from datetime import timedelta
from fastapi import HTTPException
from unittest.mock import patch
from sqlalchemy import select

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError
from app.core.security import verify_password
from app.db.redis import get_optional_redis, get_redis
from app.main import app
from app.models.base import utcnow
from app.models.users import User, UserRole, VerificationToken
from app.schemas.auth import CONFIRM_PASSWORD_REQUIRED

REGISTER_URL = f"{settings.API_STR}/register"

REGISTRATION = {
    "name": "John Doe",
    "email": "JOHN@gmail.com",
    "password": "Secure1!pass",
    "confirmPassword": "Secure1!pass",
}


async def get_user(db_session, email):
    result = await db_session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


@pytest.mark.asyncio
async def test_register_success(client, db_session, mock_email_service):
    """John Doe registers and gets a verification email"""
    response = await client.post(REGISTER_URL, json=REGISTRATION)

    assert response.status_code == 201
    assert response.json() == {
        "success": True,
        "message": "Registration successful! Please check your email to verify your account.",
    }

    user = await get_user(db_session, "john@gmail.com")
    assert user is not None
    assert user.name == "John Doe"
    assert user.email_verified is None
    assert user.role == UserRole.USER
    assert user.password_hash != REGISTRATION["password"]
    assert verify_password(REGISTRATION["password"], user.password_hash)

    tokens = (await db_session.execute(
        select(VerificationToken).where(VerificationToken.email == "john@gmail.com")
    )).scalars().all()
    assert len(tokens) == 1
    assert len(tokens[0].token) == 64

    mock_email_service.assert_called_once_with("john@gmail.com", tokens[0].token)


@pytest.mark.asyncio
async def test_register_validation_errors(client, mock_email_service):
    response = await client.post(REGISTER_URL, json={
        **REGISTRATION,
        "password": "weakpass",
        "confirmPassword": "weakpass",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"] == [
        {"field": "password", "message": "Password must include at least one uppercase letter (A-Z)"},
    ]
    mock_email_service.assert_not_called()


@pytest.mark.asyncio
async def test_register_typo_domain(client, db_session):
    response = await client.post(REGISTER_URL, json={**REGISTRATION, "email": "user@gamil.com"})

    assert response.status_code == 400
    assert response.json()["details"] == [
        {"field": "email", "message": "Did you mean user@gmail.com? Please check your email address."},
    ]
    assert await get_user(db_session, "user@gamil.com") is None


@pytest.mark.asyncio
async def test_register_unreachable_domain(client, db_session, mock_domain_check, mock_email_service):
    mock_domain_check.return_value = False

    response = await client.post(REGISTER_URL, json={**REGISTRATION, "email": "john@no-such-domain.dev"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"][0]["field"] == "email"
    assert body["details"][0]["message"].startswith("This email domain does not exist")
    assert await get_user(db_session, "john@no-such-domain.dev") is None
    mock_email_service.assert_not_called()


@pytest.mark.asyncio
async def test_register_duplicate_email(client, test_user, mock_email_service):
    """Test registration with existing email"""
    response = await client.post(REGISTER_URL, json={**REGISTRATION, "email": "Test@Example.com"})

    assert response.status_code == 400
    assert response.json() == {"error": "User with this email already exists"}
    mock_email_service.assert_not_called()


@pytest.mark.asyncio
async def test_register_race_on_unique_index(client, db_session, test_user):
    """The insert that loses the unique index still gets the duplicate error"""

    async def lookup_misses(db, email):
        return None

    with patch("app.services.registration.get_user_by_email", lookup_misses):
        response = await client.post(REGISTER_URL, json={**REGISTRATION, "email": test_user["email"]})

    assert response.status_code == 400
    assert response.json() == {"error": "User with this email already exists"}

    users = (await db_session.execute(select(User).where(User.email == test_user["email"]))).scalars().all()
    assert len(users) == 1


@pytest.mark.asyncio
async def test_register_email_failure_in_production(client, mock_email_service, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    mock_email_service.side_effect = EmailDeliveryError()

    response = await client.post(REGISTER_URL, json=REGISTRATION)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to send verification email. Please try again."}


@pytest.mark.asyncio
async def test_register_unexpected_error(client):
    with patch("app.services.registration.get_password_hash", side_effect=RuntimeError("boom")):
        response = await client.post(REGISTER_URL, json=REGISTRATION)

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong during registration"}


@pytest.mark.asyncio
async def test_register_rejects_non_object_body(client):
    response = await client.post(REGISTER_URL, json=["not", "an", "object"])

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_register_legacy_variant(client, db_session, legacy_registration, mock_domain_check,
                                       mock_email_service):
    response = await client.post(REGISTER_URL, json={
        "name": "Jane Roe",
        "email": "jane@example.com",
        "password": "lowercase-only",
    })

    assert response.status_code == 201
    body = response.json()
    user = await get_user(db_session, "jane@example.com")
    assert body == {"success": True, "user": {"id": user.sid, "name": "Jane Roe", "email": "jane@example.com"}}
    mock_domain_check.assert_not_called()
    mock_email_service.assert_not_called()


@pytest.mark.asyncio
async def test_verify_email_success(client, db_session, verification_token, unverified_user):
    """Test successful email verification"""
    response = await client.post(
        f"{settings.API_STR}/auth/verify-email",
        json={"token": verification_token.token}
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Email verified successfully! You can now sign in to your account.",
    }

    await db_session.refresh(unverified_user)
    assert unverified_user.email_verified is not None

    remaining = (await db_session.execute(
        select(VerificationToken).where(VerificationToken.token == verification_token.token)
    )).scalar_one_or_none()
    assert remaining is None


@pytest.mark.asyncio
async def test_verify_email_already_verified_keeps_timestamp(client, db_session, test_user):
    original = test_user["user"].email_verified
    token = VerificationToken(email=test_user["email"], token="b" * 64, expires=utcnow() + timedelta(hours=1))
    db_session.add(token)
    await db_session.commit()

    response = await client.post(f"{settings.API_STR}/auth/verify-email", json={"token": "b" * 64})

    assert response.status_code == 200
    assert response.json()["message"] == "Email already verified. You can sign in now."
    await db_session.refresh(test_user["user"])
    assert test_user["user"].email_verified == original


@pytest.mark.asyncio
async def test_verify_email_twice(client, verification_token):
    first = await client.post(f"{settings.API_STR}/auth/verify-email", json={"token": verification_token.token})
    second = await client.post(f"{settings.API_STR}/auth/verify-email", json={"token": verification_token.token})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {"error": "Invalid or expired verification token."}


@pytest.mark.asyncio
async def test_verify_email_missing_token(client):
    response = await client.post(f"{settings.API_STR}/auth/verify-email", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing verification token"}


@pytest.mark.asyncio
async def test_verify_email_unknown_token(client):
    response = await client.post(f"{settings.API_STR}/auth/verify-email", json={"token": "c" * 64})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or expired verification token."}


@pytest.mark.asyncio
async def test_verify_email_expired_token(client, db_session, verification_token):
    """Test email verification with expired token"""
    verification_token.expires = utcnow() - timedelta(seconds=1)
    await db_session.commit()

    response = await client.post(
        f"{settings.API_STR}/auth/verify-email",
        json={"token": verification_token.token}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or expired verification token."}


@pytest.mark.asyncio
async def test_verify_email_user_deleted(client, db_session, verification_token, unverified_user):
    await db_session.delete(unverified_user)
    await db_session.commit()

    response = await client.post(f"{settings.API_STR}/auth/verify-email", json={"token": verification_token.token})

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_login_success(client, test_user):
    """Test successful login"""
    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": test_user["email"], "password": test_user["password"]}
    )

    assert response.status_code == 200
    json = response.json()
    assert "access_token" in json
    assert json["token_type"] == "bearer"
    assert json["user"] == {
        "id": test_user["sid"],
        "email": test_user["email"],
        "name": "Test User",
        "image": None,
        "verified": True,
    }
    assert "password_hash" not in json["user"]


@pytest.mark.asyncio
async def test_login_incorrect_password(client, test_user):
    """Test login with incorrect password"""
    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": test_user["email"], "password": "Wrong1!pass"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_nonexistent_user(client):
    """Test login with nonexistent user"""
    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": "nobody@example.com", "password": "Secure1!pass"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_malformed_credentials(client):
    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": "not-an-email", "password": ""}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_unverified_user(client, unverified_user):
    """Test login with unverified user"""
    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": unverified_user.email, "password": "Str0ng!Pass"}
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Email not verified"}


@pytest.mark.asyncio
async def test_login_unverified_user_legacy_variant(client, unverified_user, legacy_registration):
    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": unverified_user.email, "password": "Str0ng!Pass"}
    )

    assert response.status_code == 200
    assert response.json()["user"]["verified"] is False


@pytest.mark.asyncio
async def test_session_returns_identity(authorized_client, test_user):
    response = await authorized_client.get(f"{settings.API_STR}/auth/session")

    assert response.status_code == 200
    assert response.json()["id"] == test_user["sid"]
    assert response.json()["verified"] is True


@pytest.mark.asyncio
async def test_session_requires_token(client):
    response = await client.get(f"{settings.API_STR}/auth/session")

    assert response.status_code == 401
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_logout_success(authorized_client, mock_redis):
    """Test successful logout"""
    response = await authorized_client.post(f"{settings.API_STR}/auth/logout")
    assert response.status_code == 200
    assert "logged out" in response.json()["message"].lower()

    mock_redis.set.assert_called_once()
    assert "blacklist:" in mock_redis.set.call_args[0][0]


@pytest.mark.asyncio
async def test_revoked_token_is_rejected(authorized_client, mock_redis):
    mock_redis.get.return_value = "1"

    response = await authorized_client.get(f"{settings.API_STR}/auth/session")

    assert response.status_code == 401
    assert response.json() == {"error": "Token has been revoked"}


@pytest.mark.asyncio
async def test_resend_verification_reuses_live_token(client, verification_token, mock_email_service):
    response = await client.post(
        f"{settings.API_STR}/auth/resend-verification",
        json={"email": "Pending@Example.com"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Verification email sent"}
    mock_email_service.assert_called_once_with("pending@example.com", verification_token.token)


@pytest.mark.asyncio
async def test_resend_verification_issues_new_token(client, db_session, unverified_user, mock_email_service):
    response = await client.post(
        f"{settings.API_STR}/auth/resend-verification",
        json={"email": unverified_user.email}
    )

    assert response.status_code == 200
    token = (await db_session.execute(
        select(VerificationToken).where(VerificationToken.email == unverified_user.email)
    )).scalar_one()
    mock_email_service.assert_called_once_with(unverified_user.email, token.token)


@pytest.mark.asyncio
async def test_resend_verification_errors(client, test_user):
    unknown = await client.post(f"{settings.API_STR}/auth/resend-verification", json={"email": "who@example.com"})
    verified = await client.post(f"{settings.API_STR}/auth/resend-verification", json={"email": test_user["email"]})

    assert unknown.status_code == 404
    assert unknown.json() == {"error": "User not found"}
    assert verified.status_code == 400
    assert verified.json() == {"error": "Email already verified"}


@pytest.mark.asyncio
async def test_rate_limit(client, mock_redis):
    mock_redis.incr.return_value = 11

    response = await client.post(REGISTER_URL, json=REGISTRATION)

    assert response.status_code == 429
    assert response.json() == {"error": "Too many requests"}


@pytest.fixture
def redis_unavailable(client):
    """Startup ran without Redis and reconnects fail"""

    async def no_redis():
        return None

    async def unreachable_redis():
        raise HTTPException(status_code=503, detail="Service temporarily unavailable. Please try again later.")

    app.dependency_overrides[get_optional_redis] = no_redis
    app.dependency_overrides[get_redis] = unreachable_redis


@pytest.mark.asyncio
async def test_register_and_login_without_redis(client, redis_unavailable, db_session):
    registered = await client.post(REGISTER_URL, json=REGISTRATION)

    assert registered.status_code == 201

    user = await get_user(db_session, "john@gmail.com")
    user.email_verified = utcnow()
    await db_session.commit()

    response = await client.post(
        f"{settings.API_STR}/auth/login",
        json={"email": "john@gmail.com", "password": REGISTRATION["password"]},
    )

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "john@gmail.com"


@pytest.mark.asyncio
async def test_register_missing_confirm_password(client, mock_email_service):
    payload = {key: value for key, value in REGISTRATION.items() if key != "confirmPassword"}

    response = await client.post(REGISTER_URL, json=payload)

    assert response.status_code == 400
    assert response.json() == {
        "error": "Validation failed",
        "details": [{"field": "confirmPassword", "message": CONFIRM_PASSWORD_REQUIRED}],
    }
    mock_email_service.assert_not_called()
