"""Entry point for the FastAPI-powered TV tracker."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, NoReturn

import httpx
from fastapi import FastAPI, HTTPException, Request
from pydantic import ValidationError

from .config import settings
from .database import Database
from .exceptions import Forbidden, InvalidInput, NotFound, TrackerError, UpstreamUnavailable
from .models import ShowSelection
from .services.library import LibraryStore
from .services.resolver import ShowResolver
from .services.sync import CatalogSync
from .services.tracker import TrackerService
from .services.tvmaze import TVMazeClient

logging.basicConfig(level=getattr(logging, settings.log_level))
logger = logging.getLogger(__name__)

app: FastAPI

ERROR_STATUS: dict[type[TrackerError], int] = {
    InvalidInput: 400,
    Forbidden: 403,
    NotFound: 404,
    UpstreamUnavailable: 502,
}


def build_tracker_service(
    catalogue: TVMazeClient, database: Database
) -> TrackerService:
    return TrackerService(
        ShowResolver(catalogue),
        CatalogSync(catalogue, database.session_factory),
        LibraryStore(database.session_factory),
        database.session_factory,
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tvmaze_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tvmaze_api_url),
            timeout=httpx.Timeout(
                settings.catalog_search_timeout,
                connect=settings.catalog_connect_timeout,
            ),
            headers={"User-Agent": f"{settings.app_name} (tvtracker)"},
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    catalogue = TVMazeClient(settings, tvmaze_http_client)
    fastapi_app.state.tracker_service = build_tracker_service(catalogue, database)
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Track watched episodes over a shared TVmaze catalogue",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_routes(fastapi_app)
    return fastapi_app


def get_tracker_service(fastapi_app: FastAPI) -> TrackerService:
    service = getattr(fastapi_app.state, "tracker_service", None)
    if not isinstance(service, TrackerService):
        raise RuntimeError("Tracker service not initialised")
    return service


def resolve_user_id(request: Request) -> int:
    """Return the acting user set by the credential layer in front of us."""

    user_id: Any = getattr(request.state, "user_id", None)
    if user_id is None:
        user_id = request.headers.get(settings.user_header)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        resolved = int(user_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid user identity") from exc
    if resolved <= 0:
        raise HTTPException(status_code=401, detail="Invalid user identity")
    return resolved


def raise_http_error(exc: TrackerError) -> NoReturn:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/library")
    async def list_library(request: Request) -> dict[str, Any]:
        user_id = resolve_user_id(request)
        service = get_tracker_service(fastapi_app)
        entries = await service.list_library(user_id)
        return {"shows": [entry.model_dump(mode="json") for entry in entries]}

    @fastapi_app.post("/api/library")
    async def add_show(request: Request) -> dict[str, Any]:
        user_id = resolve_user_id(request)
        service = get_tracker_service(fastapi_app)
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            selection = ShowSelection.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        try:
            outcome = await service.resolve_and_add(user_id, selection)
        except TrackerError as exc:
            if isinstance(exc, UpstreamUnavailable):
                logger.warning("Failed to add show for user %s: %s", user_id, exc)
            raise_http_error(exc)
        return outcome.model_dump(mode="json")

    @fastapi_app.get("/api/shows/{show_id}")
    async def show_detail(request: Request, show_id: int) -> dict[str, Any]:
        user_id = resolve_user_id(request)
        service = get_tracker_service(fastapi_app)
        try:
            detail = await service.get_show_detail(user_id, show_id)
        except TrackerError as exc:
            raise_http_error(exc)
        return detail.model_dump(mode="json")

    @fastapi_app.delete("/api/shows/{show_id}")
    async def remove_show(request: Request, show_id: int) -> dict[str, Any]:
        user_id = resolve_user_id(request)
        service = get_tracker_service(fastapi_app)
        try:
            removed = await service.remove_show(user_id, show_id)
        except TrackerError as exc:
            raise_http_error(exc)
        return removed.model_dump(mode="json")

    @fastapi_app.post("/api/episodes/{episode_id}/toggle")
    async def toggle_episode(request: Request, episode_id: int) -> dict[str, Any]:
        user_id = resolve_user_id(request)
        service = get_tracker_service(fastapi_app)
        try:
            result = await service.toggle_episode(user_id, episode_id)
        except TrackerError as exc:
            raise_http_error(exc)
        return result.model_dump(mode="json")


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
