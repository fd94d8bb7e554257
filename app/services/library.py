"""Per-user library membership and watched marks over the shared catalogue."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import and_, case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import insert_ignore
from ..db_models import Episode, Show, UserShowLink, WatchMark
from ..exceptions import Forbidden, NotFound

logger = logging.getLogger(__name__)


class LibraryStore:
    """Overlay operations; every call is scoped to an explicit ``user_id``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def add_to_library(self, user_id: int, show_id: int) -> bool:
        """Link the show to the user. Returns False when it was already linked."""

        async with self._session_factory() as session:
            if await session.get(Show, show_id) is None:
                raise NotFound(f"Show {show_id} has not been synced", identifier=show_id)
            result = await session.execute(
                insert_ignore(session, UserShowLink.__table__),
                [{"user_id": user_id, "show_id": show_id}],
            )
            await session.commit()
        created = bool(result.rowcount and result.rowcount > 0)
        if created:
            logger.info("User %s added show %s", user_id, show_id)
        return created

    async def remove_from_library(self, user_id: int, show_id: int) -> None:
        """Drop the user's marks for the show's episodes and the link, atomically."""

        async with self._session_factory() as session:
            async with session.begin():
                link = await session.get(UserShowLink, (user_id, show_id))
                if link is None:
                    raise NotFound(
                        f"Show {show_id} is not in your library", identifier=show_id
                    )
                await session.execute(
                    delete(WatchMark).where(
                        WatchMark.user_id == user_id,
                        WatchMark.episode_id.in_(
                            select(Episode.id).where(Episode.show_id == show_id)
                        ),
                    )
                )
                await session.execute(
                    delete(UserShowLink).where(
                        UserShowLink.user_id == user_id,
                        UserShowLink.show_id == show_id,
                    )
                )
        logger.info("User %s removed show %s", user_id, show_id)

    async def is_linked(self, user_id: int, show_id: int) -> bool:
        async with self._session_factory() as session:
            link = await session.get(UserShowLink, (user_id, show_id))
        return link is not None

    async def linked_show_ids(self, user_id: int) -> list[int]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(UserShowLink.show_id).where(UserShowLink.user_id == user_id)
            )
            return list(result)

    async def watched_episode_ids(self, user_id: int, show_id: int) -> set[int]:
        """Return ids of the show's episodes the user currently has watched."""

        async with self._session_factory() as session:
            result = await session.scalars(
                select(WatchMark.episode_id)
                .join(Episode, Episode.id == WatchMark.episode_id)
                .where(
                    WatchMark.user_id == user_id,
                    WatchMark.watched_at.is_not(None),
                    Episode.show_id == show_id,
                )
            )
            return set(result)

    async def toggle_watched(self, user_id: int, episode_id: int) -> bool:
        """Flip the user's watched state for an episode and return the new state.

        Both writes are conditioned on the library link inside the statement
        itself, so a removal committed after the ownership check leaves no mark
        behind and surfaces as ``Forbidden``.
        """

        async with self._session_factory() as session:
            async with session.begin():
                await self._owned_show(session, user_id, episode_id)
                if not await self._flip_mark(session, user_id, episode_id):
                    raise Forbidden("This show is not in your library.")
                watched_at = await session.scalar(
                    select(WatchMark.watched_at).where(
                        WatchMark.user_id == user_id,
                        WatchMark.episode_id == episode_id,
                    )
                )

        watched = watched_at is not None
        logger.debug(
            "User %s toggled episode %s to %s",
            user_id,
            episode_id,
            "watched" if watched else "unwatched",
        )
        return watched

    async def _owned_show(
        self, session: AsyncSession, user_id: int, episode_id: int
    ) -> int:
        episode_show = await session.scalar(
            select(Episode.show_id).where(Episode.id == episode_id)
        )
        if episode_show is None:
            raise NotFound(f"Episode {episode_id} not found", identifier=episode_id)
        # Row lock on backends that support it; SQLite relies on the guarded writes.
        owns = await session.scalar(
            select(UserShowLink.show_id)
            .where(
                and_(
                    UserShowLink.user_id == user_id,
                    UserShowLink.show_id == episode_show,
                )
            )
            .with_for_update()
        )
        if owns is None:
            raise Forbidden("This show is not in your library.")
        return episode_show

    @staticmethod
    async def _flip_mark(session: AsyncSession, user_id: int, episode_id: int) -> bool:
        """Create the mark if absent, then flip it. False when the link is gone."""

        linked = (
            select(UserShowLink.user_id)
            .join(Episode, Episode.show_id == UserShowLink.show_id)
            .where(UserShowLink.user_id == user_id, Episode.id == episode_id)
        )
        await session.execute(
            insert_ignore(session, WatchMark.__table__).from_select(
                ["user_id", "episode_id"], linked.add_columns(Episode.id)
            )
        )
        # Single-row flip keeps concurrent toggles of the same mark serialised.
        result = await session.execute(
            update(WatchMark)
            .where(
                WatchMark.user_id == user_id,
                WatchMark.episode_id == episode_id,
                linked.exists(),
            )
            .values(
                watched_at=case(
                    (WatchMark.watched_at.is_(None), datetime.utcnow()),
                    else_=None,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
