from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.schemas.auth import format_validation_errors


class AppError(Exception):
    """Base error rendered as ``{"error": message[, "details": [...]]}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, details: Optional[List[Dict[str, str]]] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class DuplicateEmail(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "User with this email already exists"


class MissingToken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing verification token"


class InvalidToken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid or expired verification token."


class UserNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class AlreadyVerified(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Email already verified"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password"


class EmailNotVerified(InvalidCredentials):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Email not verified"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Resource already exists"


class TokenServiceError(AppError):
    message = "Failed to generate verification token"


class EmailDeliveryError(AppError):
    message = "Failed to send verification email. Please try again."


def error_body(message: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


async def handle_app_error(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", format_validation_errors(exc.errors())),
    )
