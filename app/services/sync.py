"""Idempotent mirroring of external shows into the shared catalogue."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import insert_ignore
from ..db_models import Episode, Show
from ..models import CatalogShow
from .tvmaze import TVMazeClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncReport:
    """Outcome of merging one show into the catalogue."""

    show_id: int
    show_created: bool = False
    episodes_inserted: int = 0
    episodes_existing: int = 0
    fetched: bool = True


class CatalogSync:
    """Fetches a show and its episodes and merges them without duplicates.

    Shows and episodes are keyed by their external ids and written with
    insert-if-absent, so overlapping syncs of the same show converge on the
    same rows. Rows that already exist are never overwritten. A show stored
    without any episodes is treated as incomplete and fetched again.
    """

    def __init__(
        self,
        catalogue: TVMazeClient,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._catalogue = catalogue
        self._session_factory = session_factory

    async def sync(self, show_id: int, show: CatalogShow | None = None) -> SyncReport:
        """Ensure ``show_id`` and its full episode list exist locally."""

        if await self.is_synced(show_id):
            logger.debug("Show %s already synced, skipping upstream fetch", show_id)
            return SyncReport(show_id=show_id, fetched=False)

        # Everything is fetched before the first write so an upstream failure
        # leaves no trace in the catalogue.
        if show is None or show.id != show_id:
            show = await self._catalogue.get_show(show_id)
        episodes = await self._catalogue.get_episodes(show_id)

        unique_episodes = {episode.id: episode for episode in episodes}
        async with self._session_factory() as session:
            show_result = await session.execute(
                insert_ignore(session, Show.__table__),
                [
                    {
                        "id": show.id,
                        "name": show.name,
                        "image": show.image,
                        "summary": show.summary,
                    }
                ],
            )
            inserted = 0
            if unique_episodes:
                episode_result = await session.execute(
                    insert_ignore(session, Episode.__table__),
                    [
                        {
                            "id": episode.id,
                            "show_id": show.id,
                            "season": episode.season,
                            "number": episode.number,
                            "title": episode.title,
                            "airdate": episode.airdate,
                            "runtime": episode.runtime,
                        }
                        for episode in unique_episodes.values()
                    ],
                )
                inserted = max(episode_result.rowcount or 0, 0)
            await session.commit()

        report = SyncReport(
            show_id=show.id,
            show_created=bool(show_result.rowcount and show_result.rowcount > 0),
            episodes_inserted=inserted,
            episodes_existing=len(unique_episodes) - inserted,
        )
        logger.info(
            "Synced show %s (%s): %s new episodes, %s already present",
            show.id,
            show.name,
            report.episodes_inserted,
            report.episodes_existing,
        )
        return report

    async def is_synced(self, show_id: int) -> bool:
        """Return True when the show row exists and owns at least one episode."""

        async with self._session_factory() as session:
            show_exists = await session.scalar(
                select(Show.id).where(Show.id == show_id)
            )
            if show_exists is None:
                return False
            episode_count = await session.scalar(
                select(func.count(Episode.id)).where(Episode.show_id == show_id)
            )
        return bool(episode_count)
