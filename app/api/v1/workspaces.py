from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.dependencies import get_current_active_user
from app.db.session import get_db
from app.models.users import User
from app.schemas.workspace import ProjectCreate, ProjectResponse, WorkspaceCreate, WorkspaceResponse
from app.services import workspace as workspace_service

router = APIRouter()


@router.post("", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(
        body: WorkspaceCreate,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.create_workspace(db, current_user, body)


@router.get("", response_model=List[WorkspaceResponse])
async def list_workspaces(
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.list_workspaces_for_user(db, current_user)


@router.post("/{workspace_sid}/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
        workspace_sid: str,
        body: ProjectCreate,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.create_project(db, current_user, workspace_sid, body)


@router.get("/{workspace_sid}/projects", response_model=List[ProjectResponse])
async def list_projects(
        workspace_sid: str,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
):
    return await workspace_service.list_projects(db, current_user, workspace_sid)
