from sqlalchemy import Column, String, Integer, Float, Boolean, Text, Enum, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
import copy
import enum

from app.models.base import Base, UTCDateTime, utcnow


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class ProjectVisibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    WORKSPACE = "workspace"


class ProjectRole(str, enum.Enum):
    LEAD = "lead"
    MEMBER = "member"
    VIEWER = "viewer"


class StatusCategory(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


DEFAULT_TASK_STATUSES = [
    {"id": "backlog", "name": "Backlog", "color": "#6B7280", "order": 0, "category": "todo"},
    {"id": "todo", "name": "To Do", "color": "#3B82F6", "order": 1, "category": "todo"},
    {"id": "in_progress", "name": "In Progress", "color": "#F59E0B", "order": 2, "category": "in_progress"},
    {"id": "in_review", "name": "In Review", "color": "#8B5CF6", "order": 3, "category": "in_progress"},
    {"id": "done", "name": "Done", "color": "#10B981", "order": 4, "category": "done"},
]

DEFAULT_TASK_PRIORITIES = [
    {"id": "highest", "name": "Highest", "color": "#EF4444", "order": 0},
    {"id": "high", "name": "High", "color": "#F97316", "order": 1},
    {"id": "medium", "name": "Medium", "color": "#F59E0B", "order": 2},
    {"id": "low", "name": "Low", "color": "#3B82F6", "order": 3},
    {"id": "lowest", "name": "Lowest", "color": "#6B7280", "order": 4},
]

PROJECT_COLORS = [
    "#EF4444", "#F97316", "#F59E0B", "#84CC16", "#10B981", "#14B8A6",
    "#06B6D4", "#3B82F6", "#6366F1", "#8B5CF6", "#A855F7", "#EC4899",
]


def default_project_settings() -> dict:
    return {
        "default_view": "board",
        "enable_time_tracking": False,
        "enable_subtasks": True,
        "task_statuses": copy.deepcopy(DEFAULT_TASK_STATUSES),
        "task_priorities": copy.deepcopy(DEFAULT_TASK_PRIORITIES),
    }


class Project(Base):
    __table_args__ = (UniqueConstraint("workspace_sid", "key", name="uq_project_workspace_key"),)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    # prefix of task keys, e.g. MUN for MUN-1
    key = Column(String(10), nullable=False, index=True)
    workspace_sid = Column(String(22), ForeignKey("workspace.sid"), nullable=False, index=True)
    workspace = relationship("Workspace", back_populates="projects")
    owner_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    lead_sid = Column(String(22), ForeignKey("user.sid"), nullable=True)
    status = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.ACTIVE)
    visibility = Column(Enum(ProjectVisibility), nullable=False, default=ProjectVisibility.WORKSPACE)
    color = Column(String(7), nullable=False)
    icon = Column(String, nullable=True)
    settings = Column(JSON, nullable=False, default=default_project_settings)
    task_count = Column(Integer, nullable=False, default=0)
    completed_task_count = Column(Integer, nullable=False, default=0)
    start_date = Column(UTCDateTime, nullable=True)
    end_date = Column(UTCDateTime, nullable=True)

    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="project")

    def status_ids(self):
        return {status["id"] for status in (self.settings or {}).get("task_statuses", [])}

    def priority_ids(self):
        return {priority["id"] for priority in (self.settings or {}).get("task_priorities", [])}


class ProjectMember(Base):
    __table_args__ = (UniqueConstraint("project_sid", "user_sid", name="uq_project_member"),)

    project_sid = Column(String(22), ForeignKey("project.sid"), nullable=False, index=True)
    project = relationship("Project", back_populates="members")
    user_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    role = Column(Enum(ProjectRole), nullable=False)
    joined_at = Column(UTCDateTime, nullable=False, default=utcnow)


class TaskType(str, enum.Enum):
    TASK = "task"
    BUG = "bug"
    STORY = "story"
    EPIC = "epic"
    SUBTASK = "subtask"
    IMPROVEMENT = "improvement"
    FEATURE = "feature"


class Task(Base):
    __table_args__ = (UniqueConstraint("project_sid", "number", name="uq_task_project_number"),)

    key = Column(String(32), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    project_sid = Column(String(22), ForeignKey("project.sid"), nullable=False, index=True)
    project = relationship("Project", back_populates="tasks")
    workspace_sid = Column(String(22), ForeignKey("workspace.sid"), nullable=False, index=True)

    type = Column(Enum(TaskType), nullable=False, default=TaskType.TASK)
    status_id = Column(String, nullable=False, index=True)
    priority_id = Column(String, nullable=False)

    reporter_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    assignee_sid = Column(String(22), ForeignKey("user.sid"), nullable=True, index=True)

    parent_sid = Column(String(22), ForeignKey("task.sid"), nullable=True, index=True)
    parent = relationship("Task", remote_side="Task.sid", back_populates="subtasks")
    subtasks = relationship("Task", back_populates="parent")

    labels = Column(JSON, nullable=False, default=list)

    estimated_hours = Column(Float, nullable=True)
    logged_hours = Column(Float, nullable=False, default=0)

    due_date = Column(UTCDateTime, nullable=True)
    start_date = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    story_points = Column(Integer, nullable=True)
    sprint = Column(String, nullable=True)

    comment_count = Column(Integer, nullable=False, default=0)
    attachment_count = Column(Integer, nullable=False, default=0)

    comments = relationship("TaskComment", back_populates="task")
    activities = relationship("TaskActivity", back_populates="task")
    attachments = relationship("TaskAttachment", back_populates="task")


class TaskComment(Base):
    task_sid = Column(String(22), ForeignKey("task.sid"), nullable=False, index=True)
    task = relationship("Task", back_populates="comments")
    author_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    mentions = Column(JSON, nullable=False, default=list)
    is_edited = Column(Boolean, nullable=False, default=False)


class TaskActivityAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    COMMENTED = "commented"
    ATTACHMENT_ADDED = "attachment_added"
    ATTACHMENT_REMOVED = "attachment_removed"
    LABEL_ADDED = "label_added"
    LABEL_REMOVED = "label_removed"
    MOVED = "moved"
    ARCHIVED = "archived"
    RESTORED = "restored"


class TaskActivity(Base):
    task_sid = Column(String(22), ForeignKey("task.sid"), nullable=False, index=True)
    task = relationship("Task", back_populates="activities")
    user_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    action = Column(Enum(TaskActivityAction), nullable=False)
    field = Column(String, nullable=True)
    old_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)


class TaskAttachment(Base):
    task_sid = Column(String(22), ForeignKey("task.sid"), nullable=False, index=True)
    task = relationship("Task", back_populates="attachments")
    uploader_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    url = Column(String, nullable=False)
