"""Watched/total aggregation at show and season granularity."""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from typing import Protocol

from ..models import EpisodeView, Progress, SeasonProgress


class EpisodeLike(Protocol):
    id: int
    season: int | None
    number: int | None
    title: str
    airdate: str | None
    runtime: int | None


def percent(watched: int, total: int) -> int:
    """Return ``watched / total`` as a rounded percentage, 0 for empty shows."""

    if total <= 0:
        return 0
    # Halves round up (1 of 8 is 13%), unlike round()'s banker's rounding.
    return (watched * 200 + total) // (total * 2)


def progress(watched: int, total: int) -> Progress:
    return Progress(total=total, watched=watched, percent=percent(watched, total))


def _nulls_last(value: int | str | None) -> tuple[bool, int | str]:
    return (value is None, value if value is not None else 0)


def episode_sort_key(episode: EpisodeLike) -> tuple:
    """Order by season, number, air date, then id; missing values sort last."""

    return (
        _nulls_last(episode.season),
        _nulls_last(episode.number),
        _nulls_last(episode.airdate or None),
        episode.id,
    )


def sort_episodes(episodes: Iterable[EpisodeLike]) -> list[EpisodeLike]:
    return sorted(episodes, key=episode_sort_key)


def show_progress(
    episodes: Sequence[EpisodeLike], watched_ids: Collection[int]
) -> Progress:
    watched = sum(1 for episode in episodes if episode.id in watched_ids)
    return progress(watched, len(episodes))


def season_breakdown(
    episodes: Iterable[EpisodeLike], watched_ids: Collection[int]
) -> list[SeasonProgress]:
    """Group episodes into seasons with per-season counters.

    Seasons ascend with unnumbered specials collected in a trailing
    ``season_number=None`` group.
    """

    seasons: dict[int | None, list[EpisodeView]] = {}
    for episode in sort_episodes(episodes):
        seasons.setdefault(episode.season, []).append(
            EpisodeView(
                id=episode.id,
                season=episode.season,
                number=episode.number,
                title=episode.title,
                airdate=episode.airdate,
                runtime=episode.runtime,
                watched=episode.id in watched_ids,
            )
        )

    breakdown: list[SeasonProgress] = []
    for season_number in sorted(seasons, key=_nulls_last):
        views = seasons[season_number]
        watched = sum(1 for view in views if view.watched)
        breakdown.append(
            SeasonProgress(
                season_number=season_number,
                episodes=views,
                total=len(views),
                watched=watched,
                percent=percent(watched, len(views)),
            )
        )
    return breakdown
