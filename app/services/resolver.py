"""Turns a free-text show name into one external id or a candidate list."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..exceptions import InvalidInput, NotFound
from ..models import CatalogShow, ShowCandidate, ShowSelection
from .tvmaze import TVMazeClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Resolution:
    """Either a single resolved show or the ranked candidates to choose from."""

    show: CatalogShow | None = None
    candidates: list[ShowCandidate] = field(default_factory=list)


class ShowResolver:
    """Read-only: performs catalogue lookups and never writes locally."""

    def __init__(self, catalogue: TVMazeClient):
        self._catalogue = catalogue

    async def resolve(self, selection: ShowSelection) -> Resolution:
        if selection.show_id is not None:
            if selection.show_id <= 0:
                raise InvalidInput("Show id must be a positive integer")
            show = await self._catalogue.get_show(selection.show_id)
            return Resolution(show=show)

        query = selection.query
        if not query:
            raise InvalidInput("Show name required")

        candidates = await self._catalogue.search_shows(query)
        if not candidates:
            logger.info("No catalogue matches for %r", query)
            raise NotFound(f"No matches found for {query!r}", identifier=query)
        if len(candidates) == 1:
            only = candidates[0]
            logger.info("Query %r resolved to show %s", query, only.id)
            return Resolution(show=CatalogShow(**only.model_dump(exclude={"score"})))

        logger.info("Query %r matched %s shows", query, len(candidates))
        return Resolution(candidates=candidates)
