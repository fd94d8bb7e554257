"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from sqlalchemy import func, select  # noqa: E402

from app.config import Settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.db_models import User  # noqa: E402
from app.services.library import LibraryStore  # noqa: E402
from app.services.resolver import ShowResolver  # noqa: E402
from app.services.sync import CatalogSync  # noqa: E402
from app.services.tracker import TrackerService  # noqa: E402
from app.services.tvmaze import TVMazeClient  # noqa: E402


@dataclass
class FakeTVMaze:
    """In-memory stand-in for the TVmaze endpoints used by the client."""

    shows: dict[int, dict[str, Any]] = field(default_factory=dict)
    episodes: dict[int, list[dict[str, Any]]] = field(default_factory=dict)
    searches: dict[str, list[int]] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    failing_paths: dict[str, int] = field(default_factory=dict)

    def add_show(
        self,
        show_id: int,
        name: str,
        *,
        premiered: str | None = None,
        network: str | None = None,
        episode_count: int = 0,
        seasons: int = 1,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": show_id,
            "name": name,
            "premiered": premiered,
            "language": "English",
            "summary": f"<p>{name} summary</p>",
            "image": {
                "medium": f"https://static.tvmaze.test/{show_id}/medium.jpg",
                "original": f"https://static.tvmaze.test/{show_id}/original.jpg",
            },
            "network": {"name": network} if network else None,
        }
        self.shows[show_id] = payload
        per_season = max(1, -(-episode_count // seasons)) if episode_count else 1
        self.episodes[show_id] = [
            {
                "id": show_id * 1000 + index + 1,
                "season": index // per_season + 1,
                "number": index % per_season + 1,
                "name": f"{name} episode {index + 1}",
                "airdate": "2020-01-01",
                "runtime": 45,
            }
            for index in range(episode_count)
        ]
        self.searches.setdefault(name.casefold(), []).append(show_id)
        return payload

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.failing_paths:
            return httpx.Response(self.failing_paths[path], json={"error": "boom"})

        if path == "/search/shows":
            query = request.url.params.get("q", "").casefold()
            ids = self.searches.get(query, [])
            return httpx.Response(
                200,
                json=[
                    {"score": round(1.0 - position * 0.1, 2), "show": self.shows[show_id]}
                    for position, show_id in enumerate(ids)
                ],
            )

        parts = [part for part in path.split("/") if part]
        if len(parts) >= 2 and parts[0] == "shows" and parts[1].isdigit():
            show_id = int(parts[1])
            if show_id not in self.shows:
                return httpx.Response(404, json={"name": "Not Found", "status": 404})
            if len(parts) == 2:
                return httpx.Response(200, json=self.shows[show_id])
            if parts[2:] == ["episodes"]:
                return httpx.Response(200, json=self.episodes.get(show_id, []))
        return httpx.Response(404, json={"name": "Not Found", "status": 404})

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="https://api.tvmaze.test",
        )


@dataclass
class TrackerStack:
    """Fully wired services over a temporary SQLite database."""

    database: Database
    catalogue: TVMazeClient
    sync: CatalogSync
    library: LibraryStore
    tracker: TrackerService

    async def count(self, model: Any, *criteria: Any) -> int:
        async with self.database.session_factory() as session:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return int(await session.scalar(stmt) or 0)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def fake_tvmaze() -> FakeTVMaze:
    return FakeTVMaze()


@pytest.fixture
def tracker_settings() -> Settings:
    return Settings(_env_file=None, CATALOG_MAX_RETRIES=1)  # type: ignore[call-arg]


@pytest.fixture
def open_stack(
    tmp_path: Path,
    fake_tvmaze: FakeTVMaze,
    tracker_settings: Settings,
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[..., Any]:
    """Return an async context manager yielding a wired ``TrackerStack``."""

    monkeypatch.setattr(TVMazeClient, "_backoff", staticmethod(lambda attempt: 0))

    @asynccontextmanager
    async def _open(user_ids: tuple[int, ...] = (1, 2)) -> AsyncIterator[TrackerStack]:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
        await database.create_all()
        async with database.session_factory() as session:
            for user_id in user_ids:
                session.add(
                    User(id=user_id, username=f"user{user_id}", password_hash="x")
                )
            await session.commit()

        async with fake_tvmaze.http_client() as http_client:
            catalogue = TVMazeClient(tracker_settings, http_client)
            sync = CatalogSync(catalogue, database.session_factory)
            library = LibraryStore(database.session_factory)
            tracker = TrackerService(
                ShowResolver(catalogue), sync, library, database.session_factory
            )
            try:
                yield TrackerStack(database, catalogue, sync, library, tracker)
            finally:
                await database.dispose()

    return _open
