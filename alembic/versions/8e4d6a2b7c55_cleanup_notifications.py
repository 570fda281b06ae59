"""Cleanup notifications

Collapse the per-channel notification columns and notification settings rows
into a single in-app row with two mail bookkeeping flags:

- notifications: drop read_mail/reason_mail/reason_mail_digest, rename
  reason_ian -> reason and read_mail_digest -> mail_reminder_sent, add
  mail_alert_sent (nullable, indexed).
- notification_settings: delete all non in-app rows, drop channel/all and
  rebuild the partial unique indexes without channel.

Revision ID: 8e4d6a2b7c55
Revises: 3f1b2c9d0a11
Create Date: 2021-09-14 06:55:55.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8e4d6a2b7c55'
down_revision = '3f1b2c9d0a11'
branch_labels = None
depends_on = None

UNIQUE_PROJECT_NULL = 'index_notification_settings_unique_project_null'
UNIQUE_PROJECT = 'index_notification_settings_unique_project'

SETTING_FLAGS = (
    'watched, involved, mentioned, work_package_commented, work_package_created, '
    'work_package_processed, work_package_prioritized, work_package_scheduled'
)


def _create_unique_indexes(with_channel):
    extra = ['channel'] if with_channel else []
    op.create_index(
        UNIQUE_PROJECT_NULL,
        'notification_settings',
        ['user_id', *extra],
        unique=True,
        sqlite_where=sa.text('project_id IS NULL'),
        postgresql_where=sa.text('project_id IS NULL'),
    )
    op.create_index(
        UNIQUE_PROJECT,
        'notification_settings',
        ['user_id', 'project_id', *extra],
        unique=True,
        sqlite_where=sa.text('project_id IS NOT NULL'),
        postgresql_where=sa.text('project_id IS NOT NULL'),
    )


def _drop_unique_indexes():
    op.drop_index(UNIQUE_PROJECT_NULL, table_name='notification_settings')
    op.drop_index(UNIQUE_PROJECT, table_name='notification_settings')


def upgrade():
    op.drop_index('ix_notifications_read_mail', table_name='notifications')
    with op.batch_alter_table('notifications') as batch_op:
        batch_op.drop_column('read_mail')
        batch_op.drop_column('reason_mail')
        batch_op.drop_column('reason_mail_digest')
        batch_op.alter_column('reason_ian', new_column_name='reason')
        batch_op.alter_column('read_mail_digest', new_column_name='mail_reminder_sent')
        batch_op.add_column(sa.Column('mail_alert_sent', sa.Boolean(), nullable=True))
    op.create_index('ix_notifications_mail_alert_sent', 'notifications', ['mail_alert_sent'])

    _drop_unique_indexes()

    # Delete all non in-app settings
    op.execute('DELETE FROM notification_settings WHERE channel > 0')

    with op.batch_alter_table('notification_settings') as batch_op:
        batch_op.drop_column('channel')
        batch_op.drop_column('all')

    _create_unique_indexes(with_channel=False)


def downgrade():
    op.drop_index('ix_notifications_mail_alert_sent', table_name='notifications')
    with op.batch_alter_table('notifications') as batch_op:
        batch_op.drop_column('mail_alert_sent')
        batch_op.add_column(sa.Column('read_mail', sa.Boolean(), nullable=True, server_default=sa.false()))
        batch_op.add_column(sa.Column('reason_mail', sa.SmallInteger(), nullable=True))
        batch_op.add_column(sa.Column('reason_mail_digest', sa.SmallInteger(), nullable=True))
        batch_op.alter_column('mail_reminder_sent', new_column_name='read_mail_digest')
        batch_op.alter_column('reason', new_column_name='reason_ian')
    op.create_index('ix_notifications_read_mail', 'notifications', ['read_mail'])

    _drop_unique_indexes()

    with op.batch_alter_table('notification_settings') as batch_op:
        batch_op.add_column(sa.Column('channel', sa.SmallInteger(), nullable=True))
        batch_op.add_column(sa.Column('all', sa.Boolean(), nullable=True, server_default=sa.false()))

    # Every remaining row is the in-app channel
    op.execute('UPDATE notification_settings SET channel = 0')

    # Restore the mail (1) and mail digest (2) rows as copies of the in-app row
    op.execute(
        'INSERT INTO notification_settings '
        f'(project_id, user_id, channel, {SETTING_FLAGS}, created_at, updated_at) '
        f'SELECT project_id, user_id, channel + 1, {SETTING_FLAGS}, created_at, updated_at '
        'FROM notification_settings '
        'UNION '
        f'SELECT project_id, user_id, channel + 2, {SETTING_FLAGS}, created_at, updated_at '
        'FROM notification_settings'
    )

    _create_unique_indexes(with_channel=True)
