"""Pure progress calculations and episode ordering."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from app.services.progress import (
    percent,
    season_breakdown,
    show_progress,
    sort_episodes,
)


@dataclass
class Ep:
    id: int
    season: int | None
    number: int | None
    title: str = ""
    airdate: str | None = None
    runtime: int | None = None


@pytest.mark.parametrize(
    ("watched", "total", "expected"),
    [(3, 10, 30), (0, 0, 0), (0, 5, 0), (5, 5, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13)],
)
def test_percent_rounds_half_up_and_handles_empty(watched: int, total: int, expected: int) -> None:
    assert percent(watched, total) == expected


def test_show_progress_counts_only_episodes_of_the_show() -> None:
    episodes = [Ep(id=index, season=1, number=index) for index in range(1, 11)]

    result = show_progress(episodes, {1, 2, 3, 999})

    assert (result.watched, result.total, result.percent) == (3, 10, 30)


def test_null_season_and_number_sort_last() -> None:
    episodes = [
        Ep(id=5, season=None, number=None, airdate="2010-01-01"),
        Ep(id=4, season=2, number=None),
        Ep(id=3, season=2, number=1),
        Ep(id=2, season=1, number=2),
        Ep(id=1, season=1, number=1),
        Ep(id=6, season=None, number=1),
        Ep(id=7, season=2, number=None, airdate="2011-05-05"),
    ]

    assert [episode.id for episode in sort_episodes(episodes)] == [1, 2, 3, 7, 4, 6, 5]


def test_season_breakdown_groups_and_counts() -> None:
    episodes = [
        Ep(id=30, season=None, number=None, title="Christmas Special"),
        Ep(id=21, season=2, number=1),
        Ep(id=12, season=1, number=2),
        Ep(id=11, season=1, number=1),
    ]

    seasons = season_breakdown(episodes, {11, 30})

    assert [season.season_number for season in seasons] == [1, 2, None]
    first, second, specials = seasons
    assert [view.id for view in first.episodes] == [11, 12]
    assert (first.watched, first.total, first.percent) == (1, 2, 50)
    assert (second.watched, second.total, second.percent) == (0, 1, 0)
    assert specials.episodes[0].watched is True
    assert specials.percent == 100


def test_season_breakdown_of_empty_show() -> None:
    assert season_breakdown([], set()) == []
    assert show_progress([], set()).percent == 0
