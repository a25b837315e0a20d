"""
Input validation for registration and sign-in.

Each field validator normalizes its value and reports the first rule it
breaks as a ``PydanticCustomError`` so the message reaches the client
unchanged. ``format_validation_errors`` turns a pydantic error list into the
``[{"field", "message"}]`` shape returned by the API.
"""
import re
from typing import Any, Dict, List, Optional, Sequence, Type

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 254

UPPERCASE_RE = re.compile(r"[A-Z]")
LOWERCASE_RE = re.compile(r"[a-z]")
NUMBER_RE = re.compile(r"\d")
SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]")
NAME_FORBIDDEN_RE = re.compile(r"[<>/\\{}\[\]`|]")
WHITESPACE_RE = re.compile(r"\s+")

EMAIL_REQUIRED = "Email address is required"
EMAIL_INVALID = "Please enter a valid email address (e.g., user@example.com)"
EMAIL_TOO_LONG = f"Email address cannot exceed {EMAIL_MAX_LENGTH} characters"

PASSWORD_REQUIRED = "Password is required"
PASSWORD_TOO_SHORT = f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
PASSWORD_TOO_LONG = f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters"
PASSWORD_NO_UPPERCASE = "Password must include at least one uppercase letter (A-Z)"
PASSWORD_NO_LOWERCASE = "Password must include at least one lowercase letter (a-z)"
PASSWORD_NO_NUMBER = "Password must include at least one number (0-9)"
PASSWORD_NO_SPECIAL = "Password must include at least one special character (!@#$%^&*...)"
PASSWORD_MISMATCH = "Passwords do not match. Please check and try again"

NAME_REQUIRED = "Full name is required"
NAME_TOO_SHORT = f"Name must be at least {NAME_MIN_LENGTH} characters"
NAME_TOO_LONG = f"Name cannot exceed {NAME_MAX_LENGTH} characters"
NAME_INVALID_CHARS = "Name contains invalid characters. Please remove: < > / \\ { } [ ] ` |"

CONFIRM_PASSWORD_REQUIRED = "Please confirm your password"

EMAIL_DOMAIN_UNREACHABLE = (
    "This email domain does not exist or cannot receive emails. "
    "Please use a valid email address."
)

# Misspelled provider domains and their corrections
DOMAIN_TYPO_MAP: Dict[str, str] = {
    "gamil.com": "gmail.com",
    "gmial.com": "gmail.com",
    "gmai.com": "gmail.com",
    "gmil.com": "gmail.com",
    "gmaill.com": "gmail.com",
    "gmails.com": "gmail.com",
    "gnail.com": "gmail.com",
    "gmaul.com": "gmail.com",
    "yaho.com": "yahoo.com",
    "yahooo.com": "yahoo.com",
    "yhoo.com": "yahoo.com",
    "yahhoo.com": "yahoo.com",
    "yaboo.com": "yahoo.com",
    "yahou.com": "yahoo.com",
    "hotmial.com": "hotmail.com",
    "hotmil.com": "hotmail.com",
    "hotmal.com": "hotmail.com",
    "hotmaii.com": "hotmail.com",
    "hotmaill.com": "hotmail.com",
    "hotmeil.com": "hotmail.com",
    "hotmali.com": "hotmail.com",
    "outlok.com": "outlook.com",
    "outloook.com": "outlook.com",
    "outluk.com": "outlook.com",
    "outllook.com": "outlook.com",
    "outtlook.com": "outlook.com",
    "outlouk.com": "outlook.com",
    "icould.com": "icloud.com",
    "iclod.com": "icloud.com",
    "icloud.con": "icloud.com",
    "icloude.com": "icloud.com",
    "iclould.com": "icloud.com",
    "protonmial.com": "protonmail.com",
    "protonmai.com": "protonmail.com",
    "protonmali.com": "protonmail.com",
    "protonmeil.com": "protonmail.com",
    "gmail.con": "gmail.com",
    "yahoo.con": "yahoo.com",
    "hotmail.con": "hotmail.com",
    "outlook.con": "outlook.com",
    "gmail.cpm": "gmail.com",
    "yahoo.cpm": "yahoo.com",
    "gmail.co": "gmail.com",
    "yahoo.co": "yahoo.com",
}


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError("value_error", message)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def extract_domain(email: str) -> Optional[str]:
    parts = email.split("@")
    if len(parts) != 2 or not parts[1]:
        return None
    return parts[1].strip().lower()


def suggest_email_correction(email: str) -> Optional[str]:
    """Return the corrected address when the domain is a known misspelling."""
    domain = extract_domain(email)
    if domain is None:
        return None
    correct_domain = DOMAIN_TYPO_MAP.get(domain)
    if correct_domain is None:
        return None
    username = email.split("@")[0]
    return f"{username}@{correct_domain}"


def check_email(value: Any) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise _fail(EMAIL_INVALID)
    email = value.strip()
    if not email:
        raise _fail(EMAIL_REQUIRED)
    if len(email) > EMAIL_MAX_LENGTH:
        raise _fail(EMAIL_TOO_LONG)
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise _fail(EMAIL_INVALID)
    email = email.lower()

    suggestion = suggest_email_correction(email)
    if suggestion:
        raise _fail(f"Did you mean {suggestion}? Please check your email address.")
    return email


def check_name(value: Any) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise _fail(NAME_REQUIRED)
    name = value.strip()
    if not name:
        raise _fail(NAME_REQUIRED)
    if len(name) < NAME_MIN_LENGTH:
        raise _fail(NAME_TOO_SHORT)
    if len(name) > NAME_MAX_LENGTH:
        raise _fail(NAME_TOO_LONG)
    if NAME_FORBIDDEN_RE.search(name):
        raise _fail(NAME_INVALID_CHARS)
    return WHITESPACE_RE.sub(" ", name)


def check_password_strength(password: str) -> str:
    # the exact string is hashed, so it is never trimmed
    if not password:
        raise _fail(PASSWORD_REQUIRED)
    if len(password) < PASSWORD_MIN_LENGTH:
        raise _fail(PASSWORD_TOO_SHORT)
    if len(password) > PASSWORD_MAX_LENGTH:
        raise _fail(PASSWORD_TOO_LONG)
    if not UPPERCASE_RE.search(password):
        raise _fail(PASSWORD_NO_UPPERCASE)
    if not LOWERCASE_RE.search(password):
        raise _fail(PASSWORD_NO_LOWERCASE)
    if not NUMBER_RE.search(password):
        raise _fail(PASSWORD_NO_NUMBER)
    if not SPECIAL_RE.search(password):
        raise _fail(PASSWORD_NO_SPECIAL)
    return password


class _AuthModel(BaseModel):
    # defaults go through the validators too, so a missing field reports "required"
    model_config = ConfigDict(populate_by_name=True, validate_default=True)


class RegisterRequest(_AuthModel):
    name: Any = ""
    email: Any = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return check_name(v)

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: Any) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            raise _fail(CONFIRM_PASSWORD_REQUIRED)
        password = info.data.get("password")
        # compared only once the password itself passed validation
        if password is not None and v != password:
            raise _fail(PASSWORD_MISMATCH)
        return v


class LegacyRegisterRequest(_AuthModel):
    """Registration payload of the legacy flow: minimum password length only."""

    name: Any = ""
    email: Any = ""
    password: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return check_name(v)

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: Any) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise _fail(PASSWORD_REQUIRED)
        if len(v) < PASSWORD_MIN_LENGTH:
            raise _fail(PASSWORD_TOO_SHORT)
        return v


class SignInRequest(_AuthModel):
    email: Any = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: Any) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        # complexity is not enforced at sign-in so older passwords keep working
        if not v:
            raise _fail(PASSWORD_REQUIRED)
        return v


class VerifyEmailRequest(BaseModel):
    token: Optional[str] = None


class ResendVerificationRequest(BaseModel):
    email: str


def format_validation_errors(
        errors: Sequence[Dict[str, Any]],
        model: Optional[Type[BaseModel]] = None,
) -> List[Dict[str, str]]:
    # errors raised on defaults carry the attribute name, the wire uses the alias
    fields = model.model_fields if model is not None else {}
    details = []
    for error in errors:
        path = []
        for part in error.get("loc", ()):
            if part == "body":
                continue
            field = fields.get(part) if isinstance(part, str) else None
            path.append(field.alias if field is not None and field.alias else str(part))
        details.append({"field": ".".join(path), "message": error.get("msg", "Invalid value")})
    return details
