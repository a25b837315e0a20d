from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.dependencies import get_current_active_user
from app.db.session import get_db
from app.models.users import User
from app.schemas.workspace import CommentCreate, CommentResponse, TaskCreate, TaskResponse
from app.services import workspace as workspace_service

router = APIRouter()


@router.post("/projects/{project_sid}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
        project_sid: str,
        body: TaskCreate,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.create_task(db, current_user, project_sid, body)


@router.get("/projects/{project_sid}/tasks", response_model=List[TaskResponse])
async def list_tasks(
        project_sid: str,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.list_tasks(db, current_user, project_sid)


@router.post("/tasks/{task_sid}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
        task_sid: str,
        body: CommentCreate,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.add_task_comment(db, current_user, task_sid, body)
