"""Initial tracker schema: users, projects, sprints, issues

Revision ID: a1f3c5e7b9d2
Revises:
Create Date: 2026-10-19 00:00:00.000000

- users (identity-provider projection)
- projects (unique key per organisation)
- sprints (PLANNED / ACTIVE / COMPLETED, cascade with project)
- issues (status/order partition index, JSON track, sprint set-null)
"""
from alembic import op
import sqlalchemy as sa

revision = 'a1f3c5e7b9d2'
down_revision = None
branch_labels = None
depends_on = None

ISSUE_STATUSES = ('TODO', 'PURCHASE', 'STORE', 'BUFFING', 'PAINTING', 'WINDING', 'ASSEMBLY', 'PACKING', 'SALES')
ISSUE_PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')
SPRINT_STATUSES = ('PLANNED', 'ACTIVE', 'COMPLETED')


def upgrade() -> None:
    # ---- users ----
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('external_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ---- projects ----
    op.create_table(
        'projects',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'key', name='uq_project_org_key'),
    )
    op.create_index('ix_projects_organization_id', 'projects', ['organization_id'])

    # ---- sprints ----
    op.create_table(
        'sprints',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.Enum(*SPRINT_STATUSES, name='sprintstatus'), nullable=False),
        sa.Column('project_id', sa.String(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sprints_project_id', 'sprints', ['project_id'])

    # ---- issues ----
    op.create_table(
        'issues',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*ISSUE_STATUSES, name='issuestatus'), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('priority', sa.Enum(*ISSUE_PRIORITIES, name='issuepriority'), nullable=False),
        sa.Column('assignee_id', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reporter_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('project_id', sa.String(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sprint_id', sa.String(), sa.ForeignKey('sprints.id', ondelete='SET NULL'), nullable=True),
        sa.Column('track', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('status_order_idx', 'issues', ['status', 'order'])
    op.create_index('idx_issue_project_status', 'issues', ['project_id', 'status'])
    op.create_index('ix_issues_assignee_id', 'issues', ['assignee_id'])
    op.create_index('ix_issues_project_id', 'issues', ['project_id'])
    op.create_index('ix_issues_sprint_id', 'issues', ['sprint_id'])


def downgrade() -> None:
    op.drop_table('issues')
    op.drop_table('sprints')
    op.drop_table('projects')
    op.drop_table('users')
    sa.Enum(name='issuestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='issuepriority').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='sprintstatus').drop(op.get_bind(), checkfirst=True)
