"""
Workspaces, projects and tasks.

Every lookup is scoped to the caller's workspace memberships; objects the
caller cannot see raise ``NotFound`` exactly like objects that do not exist.
"""
import random
from typing import List

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.exceptions import Conflict, NotFound, ValidationFailed
from app.models.project import (
    PROJECT_COLORS,
    Project,
    ProjectMember,
    ProjectRole,
    Task,
    TaskActivity,
    TaskActivityAction,
    TaskComment,
)
from app.models.users import User
from app.models.workspace import Workspace, WorkspaceMember, WorkspaceRole
from app.schemas.workspace import CommentCreate, ProjectCreate, TaskCreate, WorkspaceCreate

DUPLICATE_PROJECT_KEY = "Project key already exists in this workspace"


async def create_workspace(db: AsyncSession, user: User, data: WorkspaceCreate) -> Workspace:
    workspace = Workspace(name=data.name, description=data.description, owner_sid=user.sid)
    db.add(workspace)
    # flush first so the generated sid is available to the member row
    await db.flush()
    db.add(WorkspaceMember(
        workspace_sid=workspace.sid,
        user_sid=user.sid,
        email=user.email,
        role=WorkspaceRole.OWNER,
    ))
    await db.commit()
    await db.refresh(workspace)
    logger.info(f"Workspace {workspace.sid} created by {user.sid}")
    return workspace


async def list_workspaces_for_user(db: AsyncSession, user: User) -> List[Workspace]:
    result = await db.execute(
        select(Workspace)
        .join(WorkspaceMember, WorkspaceMember.workspace_sid == Workspace.sid)
        .where(WorkspaceMember.user_sid == user.sid)
        .order_by(Workspace.created_at)
    )
    return list(result.scalars().all())


async def _is_workspace_member(db: AsyncSession, workspace_sid: str, user_sid: str) -> bool:
    result = await db.execute(
        select(WorkspaceMember.id).where(
            WorkspaceMember.workspace_sid == workspace_sid,
            WorkspaceMember.user_sid == user_sid,
        )
    )
    return result.first() is not None


async def get_workspace_for_member(db: AsyncSession, user: User, workspace_sid: str) -> Workspace:
    result = await db.execute(select(Workspace).where(Workspace.sid == workspace_sid))
    workspace = result.scalar_one_or_none()
    if workspace is None or not await _is_workspace_member(db, workspace.sid, user.sid):
        raise NotFound("Workspace not found")
    return workspace


async def get_project_for_member(db: AsyncSession, user: User, project_sid: str) -> Project:
    result = await db.execute(select(Project).where(Project.sid == project_sid))
    project = result.scalar_one_or_none()
    if project is None or not await _is_workspace_member(db, project.workspace_sid, user.sid):
        raise NotFound("Project not found")
    return project


async def get_task_for_member(db: AsyncSession, user: User, task_sid: str) -> Task:
    result = await db.execute(select(Task).where(Task.sid == task_sid))
    task = result.scalar_one_or_none()
    if task is None or not await _is_workspace_member(db, task.workspace_sid, user.sid):
        raise NotFound("Task not found")
    return task


async def create_project(db: AsyncSession, user: User, workspace_sid: str, data: ProjectCreate) -> Project:
    workspace = await get_workspace_for_member(db, user, workspace_sid)

    existing = await db.execute(
        select(Project.id).where(Project.workspace_sid == workspace.sid, Project.key == data.key)
    )
    if existing.first() is not None:
        raise Conflict(DUPLICATE_PROJECT_KEY)

    project = Project(
        name=data.name,
        key=data.key,
        description=data.description,
        workspace_sid=workspace.sid,
        owner_sid=user.sid,
        lead_sid=user.sid,
        color=random.choice(PROJECT_COLORS),
    )
    db.add(project)
    try:
        await db.flush()
        db.add(ProjectMember(project_sid=project.sid, user_sid=user.sid, role=ProjectRole.LEAD))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(DUPLICATE_PROJECT_KEY)

    await db.refresh(project)
    logger.info(f"Project {project.key} created in workspace {workspace.sid}")
    return project


async def list_projects(db: AsyncSession, user: User, workspace_sid: str) -> List[Project]:
    workspace = await get_workspace_for_member(db, user, workspace_sid)
    result = await db.execute(
        select(Project).where(Project.workspace_sid == workspace.sid).order_by(Project.created_at)
    )
    return list(result.scalars().all())


async def create_task(db: AsyncSession, user: User, project_sid: str, data: TaskCreate) -> Task:
    project = await get_project_for_member(db, user, project_sid)

    errors = []
    if data.status_id not in project.status_ids():
        errors.append({"field": "status_id", "message": f"Unknown status '{data.status_id}'"})
    if data.priority_id not in project.priority_ids():
        errors.append({"field": "priority_id", "message": f"Unknown priority '{data.priority_id}'"})
    if data.assignee_sid and not await _is_workspace_member(db, project.workspace_sid, data.assignee_sid):
        errors.append({"field": "assignee_sid", "message": "Assignee is not a member of this workspace"})
    if data.parent_sid:
        parent = await db.execute(
            select(Task.id).where(Task.sid == data.parent_sid, Task.project_sid == project.sid)
        )
        if parent.first() is None:
            errors.append({"field": "parent_sid", "message": "Parent task not found in this project"})
    if errors:
        raise ValidationFailed(details=errors)

    # increment in the database, the loaded counter may be stale
    await db.execute(
        update(Project)
        .where(Project.sid == project.sid)
        .values(task_count=Project.task_count + 1)
        .execution_options(synchronize_session=False)
    )
    number = (await db.execute(
        select(Project.task_count).where(Project.sid == project.sid)
    )).scalar_one()
    set_committed_value(project, "task_count", number)

    task = Task(
        number=number,
        key=f"{project.key}-{number}",
        title=data.title,
        description=data.description,
        project_sid=project.sid,
        workspace_sid=project.workspace_sid,
        type=data.type,
        status_id=data.status_id,
        priority_id=data.priority_id,
        reporter_sid=user.sid,
        assignee_sid=data.assignee_sid,
        parent_sid=data.parent_sid,
        labels=list(data.labels),
        story_points=data.story_points,
        due_date=data.due_date,
    )
    db.add(task)
    await db.flush()
    db.add(TaskActivity(task_sid=task.sid, user_sid=user.sid, action=TaskActivityAction.CREATED))
    await db.commit()
    await db.refresh(task)
    return task


async def list_tasks(db: AsyncSession, user: User, project_sid: str) -> List[Task]:
    project = await get_project_for_member(db, user, project_sid)
    result = await db.execute(
        select(Task).where(Task.project_sid == project.sid).order_by(Task.number)
    )
    return list(result.scalars().all())


async def add_task_comment(db: AsyncSession, user: User, task_sid: str, data: CommentCreate) -> TaskComment:
    task = await get_task_for_member(db, user, task_sid)

    comment = TaskComment(
        task_sid=task.sid,
        author_sid=user.sid,
        content=data.content,
        mentions=list(data.mentions),
    )
    db.add(comment)
    task.comment_count = task.comment_count + 1
    db.add(TaskActivity(task_sid=task.sid, user_sid=user.sid, action=TaskActivityAction.COMMENTED))
    await db.commit()
    await db.refresh(comment)
    return comment
