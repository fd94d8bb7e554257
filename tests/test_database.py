from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError

from app.database import Database
from app.db_models import Episode


def test_create_all_builds_catalogue_and_overlay_tables(tmp_path) -> None:
    """Tables for the shared catalogue and per-user overlay are created."""

    database_path = tmp_path / "schema.db"
    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        tables = set(inspector.get_table_names())
        overlay_keys = inspector.get_pk_constraint("watch_marks")["constrained_columns"]
        link_keys = inspector.get_pk_constraint("user_shows")["constrained_columns"]
    finally:
        inspector_engine.dispose()

    assert {"shows", "episodes", "users", "user_shows", "watch_marks"} <= tables
    assert overlay_keys == ["user_id", "episode_id"]
    assert link_keys == ["user_id", "show_id"]


def test_episode_requires_existing_show(tmp_path) -> None:
    """Foreign keys are enforced on SQLite connections."""

    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'fk.db'}")
        await database.create_all()
        try:
            async with database.session() as session:
                session.add(Episode(id=1, show_id=404, title="Orphan"))
                with pytest.raises(IntegrityError):
                    await session.commit()
        finally:
            await database.dispose()

    asyncio.run(runner())
