"""Client for the TVmaze show and episode catalogue."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import NotFound, UpstreamUnavailable
from ..models import CatalogEpisode, CatalogShow, ShowCandidate
from ..utils import optional_int, optional_str, parse_year, pick_image

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class TVMazeClient:
    """Typed, read-only queries against the TVmaze API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._max_retries = settings.catalog_max_retries
        self._semaphore = asyncio.Semaphore(settings.catalog_concurrency)
        self._search_timeout = httpx.Timeout(
            settings.catalog_search_timeout,
            connect=settings.catalog_connect_timeout,
        )
        self._episodes_timeout = httpx.Timeout(
            settings.catalog_episodes_timeout,
            connect=settings.catalog_connect_timeout,
        )

    async def search_shows(self, text: str) -> list[ShowCandidate]:
        """Return shows matching ``text`` in upstream relevance order."""

        data = await self._get_json(
            "/search/shows", params={"q": text}, timeout=self._search_timeout
        )
        if not isinstance(data, list):
            logger.warning("Unexpected TVmaze search payload for %r", text)
            raise UpstreamUnavailable("Catalogue returned an unexpected search payload")

        candidates: list[ShowCandidate] = []
        for entry in data:
            if not isinstance(entry, dict) or not isinstance(entry.get("show"), dict):
                continue
            show = self._parse_show(entry["show"])
            if show is None:
                continue
            score = entry.get("score")
            candidates.append(
                ShowCandidate(
                    **show.model_dump(),
                    score=float(score) if isinstance(score, (int, float)) else None,
                )
            )
        return candidates

    async def get_show(self, show_id: int) -> CatalogShow:
        """Return metadata for one show, raising ``NotFound`` for unknown ids."""

        data = await self._get_json(
            f"/shows/{show_id}", timeout=self._search_timeout, not_found=show_id
        )
        show = self._parse_show(data) if isinstance(data, dict) else None
        if show is None:
            logger.warning("Unexpected TVmaze show payload for %s", show_id)
            raise UpstreamUnavailable("Catalogue returned an unexpected show payload")
        return show

    async def get_episodes(self, show_id: int) -> list[CatalogEpisode]:
        """Return the complete episode list for a show."""

        data = await self._get_json(
            f"/shows/{show_id}/episodes",
            timeout=self._episodes_timeout,
            not_found=show_id,
        )
        if not isinstance(data, list):
            logger.warning("Unexpected TVmaze episode payload for %s", show_id)
            raise UpstreamUnavailable("Catalogue returned an unexpected episode payload")

        episodes: list[CatalogEpisode] = []
        for entry in data:
            episode = self._parse_episode(entry) if isinstance(entry, dict) else None
            if episode is None:
                logger.warning("Skipping malformed episode entry for show %s", show_id)
                continue
            episodes.append(episode)
        return episodes

    async def _get_json(
        self,
        path: str,
        *,
        timeout: httpx.Timeout,
        params: dict[str, Any] | None = None,
        not_found: int | None = None,
    ) -> Any:
        attempt = 0
        while True:
            try:
                async with self._semaphore:
                    # httpx bounds each read; the ceiling bounds the whole call.
                    async with asyncio.timeout(timeout.read):
                        response = await self._client.get(
                            path, params=params, timeout=timeout
                        )
            except (httpx.TimeoutException, TimeoutError) as exc:
                logger.warning("TVmaze request %s timed out: %s", path, exc)
                raise UpstreamUnavailable("Catalogue request timed out") from exc
            except httpx.HTTPError as exc:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = self._backoff(attempt)
                    logger.info(
                        "Transient error talking to TVmaze (%s). Retrying %s in %.1fs",
                        exc.__class__.__name__,
                        path,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.warning("TVmaze request %s failed: %s", path, exc)
                raise UpstreamUnavailable("Catalogue is unreachable") from exc

            if response.status_code in RETRYABLE_STATUS:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = self._backoff(attempt)
                    logger.info(
                        "TVmaze returned %s for %s. Retrying in %.1fs",
                        response.status_code,
                        path,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.warning(
                    "TVmaze request %s failed with %s", path, response.status_code
                )
                raise UpstreamUnavailable(
                    f"Catalogue responded with status {response.status_code}"
                )
            break

        if response.status_code == 404 and not_found is not None:
            raise NotFound(f"Show {not_found} not found in catalogue", identifier=not_found)
        if response.status_code >= 400:
            logger.warning(
                "TVmaze request %s failed with %s: %s",
                path,
                response.status_code,
                response.text,
            )
            raise UpstreamUnavailable(
                f"Catalogue responded with status {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Non-JSON TVmaze response for %s", path)
            raise UpstreamUnavailable("Catalogue returned a non-JSON response") from exc

    @staticmethod
    def _backoff(attempt: int) -> float:
        return min(2 ** (attempt - 1), 5) * 0.5

    @staticmethod
    def _parse_show(payload: dict[str, Any]) -> CatalogShow | None:
        show_id = optional_int(payload.get("id"))
        name = optional_str(payload.get("name"))
        if show_id is None or name is None:
            return None

        channel = payload.get("network") or payload.get("webChannel")
        network = optional_str(channel.get("name")) if isinstance(channel, dict) else None
        return CatalogShow(
            id=show_id,
            name=name,
            image=pick_image(payload.get("image")),
            summary=optional_str(payload.get("summary")),
            premiere_year=parse_year(payload.get("premiered")),
            network=network,
            language=optional_str(payload.get("language")),
        )

    @staticmethod
    def _parse_episode(payload: dict[str, Any]) -> CatalogEpisode | None:
        episode_id = optional_int(payload.get("id"))
        if episode_id is None:
            return None
        return CatalogEpisode(
            id=episode_id,
            season=optional_int(payload.get("season")),
            number=optional_int(payload.get("number")),
            title=optional_str(payload.get("name")) or "",
            airdate=optional_str(payload.get("airdate")),
            runtime=optional_int(payload.get("runtime")),
        )
