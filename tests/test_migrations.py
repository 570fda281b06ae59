"""
tests.test_migrations

Alembic migrations against a scratch SQLite database: the notifications
cleanup and its downgrade.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config

INITIAL = "3f1b2c9d0a11"
CLEANUP = "8e4d6a2b7c55"

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "migrations.db"
    monkeypatch.setenv("OPENPLAN_DATABASE_URL", f"sqlite+aiosqlite:///{path}")
    return path


@pytest.fixture
def alembic_cfg(db_path) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    return cfg


@pytest.fixture
def engine(db_path):
    engine = sa.create_engine(f"sqlite:///{db_path}")
    yield engine
    engine.dispose()


def _columns(engine, table: str) -> set[str]:
    return {c["name"] for c in sa.inspect(engine).get_columns(table)}


def _indexes(engine, table: str) -> dict[str, list[str]]:
    return {i["name"]: i["column_names"] for i in sa.inspect(engine).get_indexes(table)}


def _seed_pre_cleanup(engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa.text("INSERT INTO users (id, login, mail) VALUES (1, 'jane', 'jane@example.net')"))
        conn.execute(sa.text("INSERT INTO projects (id, name, identifier) VALUES (1, 'Demo', 'demo')"))
        for channel in (0, 1, 2):
            conn.execute(
                sa.text(
                    "INSERT INTO notification_settings (user_id, project_id, channel, watched, mentioned) "
                    "VALUES (1, NULL, :channel, :watched, 1)"
                ),
                {"channel": channel, "watched": channel == 0},
            )
        conn.execute(
            sa.text(
                "INSERT INTO notifications (subject, recipient_id, reason_ian, reason_mail, "
                "read_mail_digest) VALUES ('Fix login', 1, 0, 0, 1)"
            )
        )


def test_upgrade_cleans_up_notifications(alembic_cfg, engine) -> None:
    command.upgrade(alembic_cfg, INITIAL)
    _seed_pre_cleanup(engine)

    command.upgrade(alembic_cfg, "head")

    columns = _columns(engine, "notifications")
    assert {"reason", "mail_reminder_sent", "mail_alert_sent"} <= columns
    assert not {"read_mail", "reason_ian", "reason_mail", "reason_mail_digest", "read_mail_digest"} & columns
    indexes = _indexes(engine, "notifications")
    assert indexes["ix_notifications_mail_alert_sent"] == ["mail_alert_sent"]
    assert "ix_notifications_read_mail" not in indexes

    with engine.connect() as conn:
        row = conn.execute(
            sa.text("SELECT reason, mail_reminder_sent, mail_alert_sent FROM notifications")
        ).one()
    assert tuple(row) == (0, 1, None)

    assert not {"channel", "all"} & _columns(engine, "notification_settings")
    indexes = _indexes(engine, "notification_settings")
    assert indexes["index_notification_settings_unique_project_null"] == ["user_id"]
    assert indexes["index_notification_settings_unique_project"] == ["user_id", "project_id"]

    with engine.connect() as conn:
        rows = conn.execute(sa.text("SELECT user_id, watched FROM notification_settings")).all()
    # Only the in-app row survives.
    assert [tuple(r) for r in rows] == [(1, 1)]


def test_cleaned_up_settings_stay_unique_per_scope(alembic_cfg, engine) -> None:
    command.upgrade(alembic_cfg, "head")
    with engine.begin() as conn:
        conn.execute(sa.text("INSERT INTO users (id, login) VALUES (1, 'jane')"))
        conn.execute(sa.text("INSERT INTO notification_settings (user_id) VALUES (1)"))

    with pytest.raises(sa.exc.IntegrityError):
        with engine.begin() as conn:
            conn.execute(sa.text("INSERT INTO notification_settings (user_id) VALUES (1)"))


def test_downgrade_restores_channel_rows(alembic_cfg, engine) -> None:
    command.upgrade(alembic_cfg, INITIAL)
    _seed_pre_cleanup(engine)
    command.upgrade(alembic_cfg, CLEANUP)

    command.downgrade(alembic_cfg, INITIAL)

    columns = _columns(engine, "notifications")
    assert {"read_mail", "reason_ian", "reason_mail", "reason_mail_digest", "read_mail_digest"} <= columns
    assert "mail_alert_sent" not in columns
    assert "ix_notifications_read_mail" in _indexes(engine, "notifications")

    assert {"channel", "all"} <= _columns(engine, "notification_settings")
    indexes = _indexes(engine, "notification_settings")
    assert indexes["index_notification_settings_unique_project_null"] == ["user_id", "channel"]

    with engine.connect() as conn:
        rows = conn.execute(
            sa.text(
                "SELECT channel, watched, mentioned FROM notification_settings ORDER BY channel"
            )
        ).all()
    # Mail and digest rows are copies of the in-app row.
    assert [tuple(r) for r in rows] == [(0, 1, 1), (1, 1, 1), (2, 1, 1)]
