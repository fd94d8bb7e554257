"""Operations exposed to the HTTP layer, each scoped to an explicit user."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import Episode, Show, UserShowLink, WatchMark
from ..exceptions import Forbidden, NotFound
from ..models import (
    Added,
    Candidates,
    LibraryEntry,
    Removed,
    ShowDetail,
    ShowSelection,
    ShowSummary,
    ToggleResult,
)
from . import progress
from .library import LibraryStore
from .resolver import ShowResolver
from .sync import CatalogSync

logger = logging.getLogger(__name__)


class TrackerService:
    """Glue between disambiguation, catalogue sync, overlay and progress."""

    def __init__(
        self,
        resolver: ShowResolver,
        sync: CatalogSync,
        library: LibraryStore,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._resolver = resolver
        self._sync = sync
        self._library = library
        self._session_factory = session_factory

    async def resolve_and_add(
        self, user_id: int, selection: ShowSelection
    ) -> Added | Candidates:
        """Resolve the selection and, when unambiguous, sync and link the show.

        Raises ``InvalidInput`` for an empty query, ``NotFound`` when nothing
        matches and ``UpstreamUnavailable`` when the catalogue fails. An
        ambiguous query returns ``Candidates`` and writes nothing.
        """

        resolution = await self._resolver.resolve(selection)
        if resolution.show is None:
            return Candidates(
                query=selection.query or "", candidates=resolution.candidates
            )

        report = await self._sync.sync(resolution.show.id, resolution.show)
        await self._library.add_to_library(user_id, report.show_id)
        return Added(show_id=report.show_id)

    async def list_library(self, user_id: int) -> list[LibraryEntry]:
        totals = (
            select(Episode.show_id, func.count(Episode.id).label("total"))
            .group_by(Episode.show_id)
            .subquery()
        )
        watched = (
            select(Episode.show_id, func.count(WatchMark.episode_id).label("watched"))
            .join(WatchMark, WatchMark.episode_id == Episode.id)
            .where(WatchMark.user_id == user_id, WatchMark.watched_at.is_not(None))
            .group_by(Episode.show_id)
            .subquery()
        )
        stmt = (
            select(
                Show,
                func.coalesce(totals.c.total, 0),
                func.coalesce(watched.c.watched, 0),
            )
            .join(UserShowLink, UserShowLink.show_id == Show.id)
            .outerjoin(totals, totals.c.show_id == Show.id)
            .outerjoin(watched, watched.c.show_id == Show.id)
            .where(UserShowLink.user_id == user_id)
            .order_by(func.lower(Show.name), Show.id)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [
            LibraryEntry(
                show=self._summary(show),
                total_episodes=total,
                watched_episodes=seen,
                percent=progress.percent(seen, total),
            )
            for show, total, seen in rows
        ]

    async def get_show_detail(self, user_id: int, show_id: int) -> ShowDetail:
        if not await self._library.is_linked(user_id, show_id):
            raise Forbidden("This show is not in your library.")

        async with self._session_factory() as session:
            show = await session.get(Show, show_id)
            if show is None:
                raise NotFound(f"Show {show_id} not found", identifier=show_id)
            episodes = list(
                await session.scalars(select(Episode).where(Episode.show_id == show_id))
            )
        watched_ids = await self._library.watched_episode_ids(user_id, show_id)

        return ShowDetail(
            show=self._summary(show),
            seasons=progress.season_breakdown(episodes, watched_ids),
            overall=progress.show_progress(episodes, watched_ids),
        )

    async def remove_show(self, user_id: int, show_id: int) -> Removed:
        await self._library.remove_from_library(user_id, show_id)
        return Removed(show_id=show_id)

    async def toggle_episode(self, user_id: int, episode_id: int) -> ToggleResult:
        watched = await self._library.toggle_watched(user_id, episode_id)
        return ToggleResult(watched=watched)

    @staticmethod
    def _summary(show: Show) -> ShowSummary:
        return ShowSummary(
            id=show.id, name=show.name, image=show.image, summary=show.summary
        )
