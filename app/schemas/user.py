# app/schemas/user.py
from dataclasses import dataclass
from pydantic import BaseModel
from typing import Optional


@dataclass(frozen=True)
class Identity:
    """Authenticated principal handed to the session layer; carries no secrets."""

    id: str
    email: str
    name: Optional[str]
    image: Optional[str]
    verified: bool

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(
            id=user.sid,
            email=user.email,
            name=user.name,
            image=user.image,
            verified=user.is_verified,
        )


class IdentityResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    verified: bool

    class Config:
        from_attributes = True


class UserPublic(BaseModel):
    id: str
    name: Optional[str] = None
    email: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: IdentityResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str
