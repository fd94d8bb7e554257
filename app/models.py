"""Pydantic models describing catalogue payloads and library views."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class CatalogShow(BaseModel):
    """Show metadata as returned by the external catalogue."""

    id: int
    name: str
    image: str | None = None
    summary: str | None = None
    premiere_year: int | None = None
    network: str | None = None
    language: str | None = None


class CatalogEpisode(BaseModel):
    """Episode metadata as returned by the external catalogue."""

    id: int
    season: int | None = None
    number: int | None = None
    title: str = ""
    airdate: str | None = None
    runtime: int | None = None


class ShowCandidate(CatalogShow):
    """A search hit offered to the user when a query is ambiguous."""

    score: float | None = None


class ShowSelection(BaseModel):
    """Free-text query or explicit external id chosen from a candidate list."""

    model_config = ConfigDict(populate_by_name=True)

    query: str | None = Field(
        default=None, validation_alias=AliasChoices("query", "name")
    )
    show_id: int | None = Field(
        default=None, validation_alias=AliasChoices("show_id", "showId")
    )

    @model_validator(mode="after")
    def _normalise_query(self) -> "ShowSelection":
        if self.query is not None:
            self.query = self.query.strip() or None
        return self


class Added(BaseModel):
    """The selection resolved to one show, now linked to the user."""

    status: Literal["added"] = "added"
    show_id: int


class Candidates(BaseModel):
    """The query matched several shows; the caller must pick one."""

    status: Literal["candidates"] = "candidates"
    query: str
    candidates: list[ShowCandidate]


class ShowSummary(BaseModel):
    id: int
    name: str
    image: str | None = None
    summary: str | None = None


class Progress(BaseModel):
    """Watched/total counters with a rounded percentage."""

    total: int = 0
    watched: int = 0
    percent: int = 0


class EpisodeView(BaseModel):
    id: int
    season: int | None = None
    number: int | None = None
    title: str = ""
    airdate: str | None = None
    runtime: int | None = None
    watched: bool = False


class SeasonProgress(Progress):
    season_number: int | None = None
    episodes: list[EpisodeView] = Field(default_factory=list)


class ShowDetail(BaseModel):
    show: ShowSummary
    seasons: list[SeasonProgress] = Field(default_factory=list)
    overall: Progress


class LibraryEntry(BaseModel):
    show: ShowSummary
    total_episodes: int
    watched_episodes: int
    percent: int


class ToggleResult(BaseModel):
    watched: bool


class Removed(BaseModel):
    status: Literal["removed"] = "removed"
    show_id: int
