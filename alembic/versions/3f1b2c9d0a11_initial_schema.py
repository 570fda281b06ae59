"""Initial schema

Revision ID: 3f1b2c9d0a11
Revises:
Create Date: 2021-09-01 09:12:40.118203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1b2c9d0a11'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(length=30), nullable=False, server_default='User'),
        sa.Column('login', sa.String(length=256), nullable=True, unique=True),
        sa.Column('firstname', sa.String(length=256), nullable=False, server_default=''),
        sa.Column('lastname', sa.String(length=256), nullable=False, server_default=''),
        sa.Column('mail', sa.String(length=256), nullable=True, unique=True),
        sa.Column('admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='active'),
        *_timestamps(),
    )
    op.create_index('ix_users_status', 'users', ['status'])

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=256), nullable=False),
        sa.Column('identifier', sa.String(length=100), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=256), nullable=False, unique=True),
    )

    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_members_project_user'),
    )
    op.create_index('ix_members_project_id', 'members', ['project_id'])
    op.create_index('ix_members_user_id', 'members', ['user_id'])

    op.create_table(
        'work_packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject', sa.String(length=256), nullable=False),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_work_packages_project_id', 'work_packages', ['project_id'])

    op.create_table(
        'queries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=256), nullable=False),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_queries_project_id', 'queries', ['project_id'])
    op.create_index('ix_queries_user_id', 'queries', ['user_id'])

    op.create_table(
        'ordered_work_packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('query_id', sa.Integer(), sa.ForeignKey('queries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('work_package_id', sa.Integer(), sa.ForeignKey('work_packages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.UniqueConstraint('query_id', 'work_package_id', name='uq_ordered_work_packages_query_work_package'),
    )
    op.create_index('ix_ordered_work_packages_query_id', 'ordered_work_packages', ['query_id'])
    op.create_index('ix_ordered_work_packages_work_package_id', 'ordered_work_packages', ['work_package_id'])

    # Notifications still carry one read/reason column per channel (in-app, mail, digest).
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('read_ian', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_mail', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('read_mail_digest', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reason_ian', sa.SmallInteger(), nullable=True),
        sa.Column('reason_mail', sa.SmallInteger(), nullable=True),
        sa.Column('reason_mail_digest', sa.SmallInteger(), nullable=True),
        sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=True),
        sa.Column('journal_id', sa.Integer(), nullable=True),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('resource_type', sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_notifications_read_ian', 'notifications', ['read_ian'])
    op.create_index('ix_notifications_read_mail', 'notifications', ['read_mail'])
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_project_id', 'notifications', ['project_id'])
    op.create_index('ix_notifications_resource', 'notifications', ['resource_id', 'resource_type'])

    # channel: 0 = in-app, 1 = mail, 2 = mail digest
    op.create_table(
        'notification_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=True),
        sa.Column('channel', sa.SmallInteger(), nullable=True),
        sa.Column('all', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('watched', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('involved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('mentioned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('work_package_commented', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('work_package_created', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('work_package_processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('work_package_prioritized', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('work_package_scheduled', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_notification_settings_user_id', 'notification_settings', ['user_id'])
    op.create_index('ix_notification_settings_project_id', 'notification_settings', ['project_id'])
    op.create_index(
        'index_notification_settings_unique_project_null',
        'notification_settings',
        ['user_id', 'channel'],
        unique=True,
        sqlite_where=sa.text('project_id IS NULL'),
        postgresql_where=sa.text('project_id IS NULL'),
    )
    op.create_index(
        'index_notification_settings_unique_project',
        'notification_settings',
        ['user_id', 'project_id', 'channel'],
        unique=True,
        sqlite_where=sa.text('project_id IS NOT NULL'),
        postgresql_where=sa.text('project_id IS NOT NULL'),
    )

    op.create_table(
        'user_preferences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('settings', sa.JSON(), nullable=False),
    )

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )


def downgrade():
    for table in (
        'settings',
        'user_preferences',
        'notification_settings',
        'notifications',
        'ordered_work_packages',
        'queries',
        'work_packages',
        'members',
        'roles',
        'projects',
        'users',
    ):
        op.drop_table(table)
