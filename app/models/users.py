# app/models/users.py
from sqlalchemy import Column, String, Text, Enum
from app.models.base import Base, UTCDateTime
import enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    name = Column(String, nullable=True)
    email = Column(String(254), unique=True, nullable=False, index=True)
    # NULL for accounts that only sign in through an OAuth provider
    password_hash = Column(Text, nullable=True)
    email_verified = Column(UTCDateTime, nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    image = Column(String, nullable=True)

    @property
    def is_verified(self) -> bool:
        return self.email_verified is not None


class VerificationToken(Base):
    email = Column(String(254), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False)
    expires = Column(UTCDateTime, nullable=False, index=True)
