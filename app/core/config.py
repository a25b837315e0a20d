from pydantic_settings import BaseSettings
from typing import Optional, Any, Literal


class Settings(BaseSettings):
    API_STR: str = "/api"
    ENVIRONMENT: str = "development"

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    DATABASE_URL: str
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    APP_BASE_URL: Optional[str] = None

    # "verified" is the canonical flow; "legacy" skips domain checks,
    # confirmation, verification emails and the sign-in gate
    REGISTRATION_VARIANT: Literal["verified", "legacy"] = "verified"
    BCRYPT_ROUNDS: int = 10
    VERIFICATION_TOKEN_TTL_MINUTES: int = 60
    DNS_TIMEOUT_SECONDS: float = 5.0

    REDIS_HOST: str = "localhost"
    REDIS_PORT: str = "6379"
    REDIS_PASSWORD: Optional[str] = None

    SMTP_TLS: bool = True
    SMTP_PORT: Optional[int] = None
    SMTP_HOST: Optional[str] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: float = 10.0
    EMAILS_FROM_EMAIL: Optional[str] = None
    EMAILS_FROM_NAME: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def __init__(self, **data: Any):
        super().__init__(**data)
        uri = self.DATABASE_URL
        if uri.startswith("postgres://"):
            uri = uri.replace("postgres://", "postgresql://", 1)
        if uri.startswith("postgresql://"):
            uri = uri.replace("postgresql://", "postgresql+asyncpg://", 1)
        self.SQLALCHEMY_DATABASE_URI = uri

        if self.is_production:
            missing = [
                name for name in ("APP_BASE_URL", "SMTP_HOST", "EMAILS_FROM_EMAIL")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Missing required production settings: {', '.join(missing)}")

        if not self.APP_BASE_URL:
            self.APP_BASE_URL = "http://localhost:3000"
        if not self.EMAILS_FROM_EMAIL:
            self.EMAILS_FROM_EMAIL = "noreply@munjiz.app"
        if not self.EMAILS_FROM_NAME:
            self.EMAILS_FROM_NAME = "Munjiz"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def email_verification_enabled(self) -> bool:
        return self.REGISTRATION_VARIANT == "verified"

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"


settings = Settings()
