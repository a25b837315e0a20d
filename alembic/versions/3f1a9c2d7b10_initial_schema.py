"""Initial schema: users, verification tokens, workspaces, projects and tasks

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2025-09-02 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sid', sa.String(length=22), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _create(table: str, *columns, constraints=()):
    op.create_table(
        table,
        *_base_columns(),
        *columns,
        sa.PrimaryKeyConstraint('id'),
        *constraints,
    )
    op.create_index(f'ix_{table}_sid', table, ['sid'], unique=True)


def upgrade() -> None:
    """Upgrade schema."""
    _create(
        'user',
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('email_verified', sa.DateTime(timezone=True), nullable=True),
        sa.Column('role', sa.Enum('USER', 'ADMIN', name='userrole'), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    _create(
        'verificationtoken',
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('expires', sa.DateTime(timezone=True), nullable=False),
        constraints=[sa.UniqueConstraint('token')],
    )
    op.create_index('ix_verificationtoken_email', 'verificationtoken', ['email'])
    op.create_index('ix_verificationtoken_expires', 'verificationtoken', ['expires'])

    _create(
        'workspace',
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('owner_sid', sa.String(length=22), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        constraints=[sa.ForeignKeyConstraint(['owner_sid'], ['user.sid'])],
    )
    op.create_index('ix_workspace_owner_sid', 'workspace', ['owner_sid'])

    workspace_role = sa.Enum('OWNER', 'ADMIN', 'MEMBER', 'VIEWER', name='workspacerole')
    _create(
        'workspacemember',
        sa.Column('workspace_sid', sa.String(length=22), nullable=False),
        sa.Column('user_sid', sa.String(length=22), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('role', workspace_role, nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        constraints=[
            sa.ForeignKeyConstraint(['workspace_sid'], ['workspace.sid']),
            sa.ForeignKeyConstraint(['user_sid'], ['user.sid']),
            sa.UniqueConstraint('workspace_sid', 'user_sid', name='uq_workspace_member'),
        ],
    )
    op.create_index('ix_workspacemember_workspace_sid', 'workspacemember', ['workspace_sid'])
    op.create_index('ix_workspacemember_user_sid', 'workspacemember', ['user_sid'])

    _create(
        'invitation',
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('workspace_sid', sa.String(length=22), nullable=False),
        sa.Column('workspace_name', sa.String(), nullable=False),
        sa.Column('invited_by_sid', sa.String(length=22), nullable=False),
        sa.Column('inviter_name', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'MEMBER', 'VIEWER', name='invitationrole'), nullable=False),
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'ACCEPTED', 'DECLINED', 'EXPIRED', name='invitationstatus'),
                  nullable=False),
        sa.Column('message', sa.String(length=500), nullable=True),
        sa.Column('expires', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('declined_at', sa.DateTime(timezone=True), nullable=True),
        constraints=[
            sa.ForeignKeyConstraint(['workspace_sid'], ['workspace.sid']),
            sa.ForeignKeyConstraint(['invited_by_sid'], ['user.sid']),
            sa.UniqueConstraint('token'),
        ],
    )
    op.create_index('ix_invitation_email', 'invitation', ['email'])
    op.create_index('ix_invitation_workspace_sid', 'invitation', ['workspace_sid'])
    op.create_index('ix_invitation_expires', 'invitation', ['expires'])

    _create(
        'project',
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('key', sa.String(length=10), nullable=False),
        sa.Column('workspace_sid', sa.String(length=22), nullable=False),
        sa.Column('owner_sid', sa.String(length=22), nullable=False),
        sa.Column('lead_sid', sa.String(length=22), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'ARCHIVED', 'COMPLETED', 'ON_HOLD', name='projectstatus'),
                  nullable=False),
        sa.Column('visibility', sa.Enum('PUBLIC', 'PRIVATE', 'WORKSPACE', name='projectvisibility'),
                  nullable=False),
        sa.Column('color', sa.String(length=7), nullable=False),
        sa.Column('icon', sa.String(), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('task_count', sa.Integer(), nullable=False),
        sa.Column('completed_task_count', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        constraints=[
            sa.ForeignKeyConstraint(['workspace_sid'], ['workspace.sid']),
            sa.ForeignKeyConstraint(['owner_sid'], ['user.sid']),
            sa.ForeignKeyConstraint(['lead_sid'], ['user.sid']),
            sa.UniqueConstraint('workspace_sid', 'key', name='uq_project_workspace_key'),
        ],
    )
    op.create_index('ix_project_key', 'project', ['key'])
    op.create_index('ix_project_workspace_sid', 'project', ['workspace_sid'])
    op.create_index('ix_project_owner_sid', 'project', ['owner_sid'])

    _create(
        'projectmember',
        sa.Column('project_sid', sa.String(length=22), nullable=False),
        sa.Column('user_sid', sa.String(length=22), nullable=False),
        sa.Column('role', sa.Enum('LEAD', 'MEMBER', 'VIEWER', name='projectrole'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        constraints=[
            sa.ForeignKeyConstraint(['project_sid'], ['project.sid']),
            sa.ForeignKeyConstraint(['user_sid'], ['user.sid']),
            sa.UniqueConstraint('project_sid', 'user_sid', name='uq_project_member'),
        ],
    )
    op.create_index('ix_projectmember_project_sid', 'projectmember', ['project_sid'])
    op.create_index('ix_projectmember_user_sid', 'projectmember', ['user_sid'])

    task_type = sa.Enum('TASK', 'BUG', 'STORY', 'EPIC', 'SUBTASK', 'IMPROVEMENT', 'FEATURE', name='tasktype')
    _create(
        'task',
        sa.Column('key', sa.String(length=32), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('project_sid', sa.String(length=22), nullable=False),
        sa.Column('workspace_sid', sa.String(length=22), nullable=False),
        sa.Column('type', task_type, nullable=False),
        sa.Column('status_id', sa.String(), nullable=False),
        sa.Column('priority_id', sa.String(), nullable=False),
        sa.Column('reporter_sid', sa.String(length=22), nullable=False),
        sa.Column('assignee_sid', sa.String(length=22), nullable=True),
        sa.Column('parent_sid', sa.String(length=22), nullable=True),
        sa.Column('labels', sa.JSON(), nullable=False),
        sa.Column('estimated_hours', sa.Float(), nullable=True),
        sa.Column('logged_hours', sa.Float(), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('story_points', sa.Integer(), nullable=True),
        sa.Column('sprint', sa.String(), nullable=True),
        sa.Column('comment_count', sa.Integer(), nullable=False),
        sa.Column('attachment_count', sa.Integer(), nullable=False),
        constraints=[
            sa.ForeignKeyConstraint(['project_sid'], ['project.sid']),
            sa.ForeignKeyConstraint(['workspace_sid'], ['workspace.sid']),
            sa.ForeignKeyConstraint(['reporter_sid'], ['user.sid']),
            sa.ForeignKeyConstraint(['assignee_sid'], ['user.sid']),
            sa.ForeignKeyConstraint(['parent_sid'], ['task.sid']),
            sa.UniqueConstraint('project_sid', 'number', name='uq_task_project_number'),
        ],
    )
    for column in ('key', 'project_sid', 'workspace_sid', 'status_id', 'reporter_sid', 'assignee_sid', 'parent_sid'):
        op.create_index(f'ix_task_{column}', 'task', [column])

    _create(
        'taskcomment',
        sa.Column('task_sid', sa.String(length=22), nullable=False),
        sa.Column('author_sid', sa.String(length=22), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('mentions', sa.JSON(), nullable=False),
        sa.Column('is_edited', sa.Boolean(), nullable=False),
        constraints=[
            sa.ForeignKeyConstraint(['task_sid'], ['task.sid']),
            sa.ForeignKeyConstraint(['author_sid'], ['user.sid']),
        ],
    )
    op.create_index('ix_taskcomment_task_sid', 'taskcomment', ['task_sid'])
    op.create_index('ix_taskcomment_author_sid', 'taskcomment', ['author_sid'])

    activity_action = sa.Enum(
        'CREATED', 'UPDATED', 'STATUS_CHANGED', 'ASSIGNED', 'UNASSIGNED', 'COMMENTED',
        'ATTACHMENT_ADDED', 'ATTACHMENT_REMOVED', 'LABEL_ADDED', 'LABEL_REMOVED',
        'MOVED', 'ARCHIVED', 'RESTORED',
        name='taskactivityaction',
    )
    _create(
        'taskactivity',
        sa.Column('task_sid', sa.String(length=22), nullable=False),
        sa.Column('user_sid', sa.String(length=22), nullable=False),
        sa.Column('action', activity_action, nullable=False),
        sa.Column('field', sa.String(), nullable=True),
        sa.Column('old_value', sa.String(), nullable=True),
        sa.Column('new_value', sa.String(), nullable=True),
        constraints=[
            sa.ForeignKeyConstraint(['task_sid'], ['task.sid']),
            sa.ForeignKeyConstraint(['user_sid'], ['user.sid']),
        ],
    )
    op.create_index('ix_taskactivity_task_sid', 'taskactivity', ['task_sid'])
    op.create_index('ix_taskactivity_user_sid', 'taskactivity', ['user_sid'])

    _create(
        'taskattachment',
        sa.Column('task_sid', sa.String(length=22), nullable=False),
        sa.Column('uploader_sid', sa.String(length=22), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('original_name', sa.String(), nullable=False),
        sa.Column('mime_type', sa.String(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        constraints=[
            sa.ForeignKeyConstraint(['task_sid'], ['task.sid']),
            sa.ForeignKeyConstraint(['uploader_sid'], ['user.sid']),
        ],
    )
    op.create_index('ix_taskattachment_task_sid', 'taskattachment', ['task_sid'])
    op.create_index('ix_taskattachment_uploader_sid', 'taskattachment', ['uploader_sid'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'taskattachment', 'taskactivity', 'taskcomment', 'task', 'projectmember',
        'project', 'invitation', 'workspacemember', 'workspace', 'verificationtoken', 'user',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        'taskactivityaction', 'tasktype', 'projectrole', 'projectvisibility', 'projectstatus',
        'invitationstatus', 'invitationrole', 'workspacerole', 'userrole',
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
