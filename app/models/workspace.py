from sqlalchemy import Column, String, Text, Enum, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import timedelta
import enum

from app.models.base import Base, UTCDateTime, utcnow

INVITATION_EXPIRY_DAYS = 7


class WorkspaceRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class ProjectView(str, enum.Enum):
    BOARD = "board"
    LIST = "list"
    TIMELINE = "timeline"
    CALENDAR = "calendar"


def default_workspace_settings() -> dict:
    return {
        "default_project_view": ProjectView.BOARD.value,
        "allow_member_invites": True,
        "is_public": False,
    }


class Workspace(Base):
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    owner = relationship("User")
    settings = Column(JSON, nullable=False, default=default_workspace_settings)

    members = relationship(
        "WorkspaceMember", back_populates="workspace", cascade="all, delete-orphan"
    )
    projects = relationship("Project", back_populates="workspace")


class WorkspaceMember(Base):
    __table_args__ = (UniqueConstraint("workspace_sid", "user_sid", name="uq_workspace_member"),)

    workspace_sid = Column(String(22), ForeignKey("workspace.sid"), nullable=False, index=True)
    workspace = relationship("Workspace", back_populates="members")
    user_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    email = Column(String(254), nullable=False)
    role = Column(Enum(WorkspaceRole), nullable=False)
    joined_at = Column(UTCDateTime, nullable=False, default=utcnow)


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class InvitationRole(str, enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


def invitation_expiry():
    return utcnow() + timedelta(days=INVITATION_EXPIRY_DAYS)


class Invitation(Base):
    email = Column(String(254), nullable=False, index=True)
    workspace_sid = Column(String(22), ForeignKey("workspace.sid"), nullable=False, index=True)
    workspace = relationship("Workspace")
    # cached for the invitation email
    workspace_name = Column(String, nullable=False)
    invited_by_sid = Column(String(22), ForeignKey("user.sid"), nullable=False)
    inviter_name = Column(String, nullable=False)
    role = Column(Enum(InvitationRole), nullable=False, default=InvitationRole.MEMBER)
    token = Column(String(128), unique=True, nullable=False)
    status = Column(Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING)
    message = Column(String(500), nullable=True)
    expires = Column(UTCDateTime, nullable=False, default=invitation_expiry, index=True)
    accepted_at = Column(UTCDateTime, nullable=True)
    declined_at = Column(UTCDateTime, nullable=True)
