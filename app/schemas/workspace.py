from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
import re

from app.models.project import ProjectStatus, ProjectVisibility, TaskType

PROJECT_KEY_RE = re.compile(r"^[A-Z0-9]{2,10}$")


class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)

    @validator('name')
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Workspace name is required')
        return v


class WorkspaceResponse(BaseModel):
    sid: str
    name: str
    description: Optional[str] = None
    owner_sid: str
    settings: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    key: str
    description: Optional[str] = Field(None, max_length=1000)

    @validator('key')
    def key_format(cls, v):
        v = v.strip().upper()
        if not PROJECT_KEY_RE.match(v):
            raise ValueError('Project key must be 2-10 letters or digits')
        return v


class ProjectResponse(BaseModel):
    sid: str
    name: str
    key: str
    description: Optional[str] = None
    workspace_sid: str
    owner_sid: str
    lead_sid: Optional[str] = None
    status: ProjectStatus
    visibility: ProjectVisibility
    color: str
    settings: Dict[str, Any]
    task_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: TaskType = TaskType.TASK
    status_id: str = "todo"
    priority_id: str = "medium"
    assignee_sid: Optional[str] = None
    parent_sid: Optional[str] = None
    labels: List[str] = []
    story_points: Optional[int] = Field(None, ge=0)
    due_date: Optional[datetime] = None


class TaskResponse(BaseModel):
    sid: str
    key: str
    number: int
    title: str
    description: Optional[str] = None
    project_sid: str
    workspace_sid: str
    type: TaskType
    status_id: str
    priority_id: str
    reporter_sid: str
    assignee_sid: Optional[str] = None
    parent_sid: Optional[str] = None
    labels: List[str]
    story_points: Optional[int] = None
    due_date: Optional[datetime] = None
    comment_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    mentions: List[str] = []


class CommentResponse(BaseModel):
    sid: str
    task_sid: str
    author_sid: str
    content: str
    mentions: List[str]
    created_at: datetime

    class Config:
        from_attributes = True
