"""Shared fixtures: a small offline NFL data bundle in TheSportsDB event format."""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any, Optional

import pytest

GAME_DAY = dt.date(2024, 10, 20)

CHIEFS = "134934"
RAIDERS = "134935"
BRONCOS = "134936"
CHARGERS = "134937"  # deliberately absent from the bundle's teams


def event(
    event_id: str,
    day: dt.date,
    home_id: str,
    away_id: str,
    home_score: Optional[int],
    away_score: Optional[int],
    *,
    home_name: Optional[str] = None,
    away_name: Optional[str] = None,
    venue: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "idEvent": event_id,
        "dateEvent": day.isoformat(),
        "idHomeTeam": home_id,
        "idAwayTeam": away_id,
        "intHomeScore": None if home_score is None else str(home_score),
        "intAwayScore": None if away_score is None else str(away_score),
        "strHomeTeam": home_name,
        "strAwayTeam": away_name,
        "strVenue": venue,
    }


def team_log(team_id: str, margins: list[int], start: dt.date = dt.date(2024, 10, 13)) -> list:
    """Weekly home games, most recent first, with the given scoring margins."""
    games = []
    for i, margin in enumerate(margins):
        day = start - dt.timedelta(days=7 * i)
        games.append(
            event(
                f"{team_id}-{i}",
                day,
                team_id,
                f"90{i}",
                20 + max(margin, 0),
                20 + max(-margin, 0),
            )
        )
    return games


@pytest.fixture
def sample_bundle() -> dict[str, Any]:
    return {
        "teams": {
            CHIEFS: {
                "recent_games": team_log(CHIEFS, [10, 7, 3, 14, 21, -3]),
                "season_stats": {"played": 6, "wins": 5, "losses": 1},
                "injuries": [],
            },
            RAIDERS: {
                "recent_games": team_log(RAIDERS, [-10, -14, 3, -7, -3]),
                "season_stats": {"played": 5, "wins": 1, "losses": 4},
                "injuries": [
                    {"player_name": "Starting QB", "position": "QB", "severity": "Out"},
                ],
            },
            BRONCOS: {
                "recent_games": team_log(BRONCOS, [3, -3, 7]),
                "season_stats": {},
                "injuries": [],
            },
        },
        "head_to_head": {
            f"{CHIEFS}:{RAIDERS}": [
                event("h1", dt.date(2023, 12, 25), CHIEFS, RAIDERS, 14, 20),
                event("h2", dt.date(2023, 10, 29), RAIDERS, CHIEFS, 14, 30),
                event("h3", dt.date(2022, 12, 7), CHIEFS, RAIDERS, 31, 13),
            ]
        },
        "weather": {
            "Arrowhead Stadium": {"temperature": 25, "wind_speed": 20, "precipitation": 0.3},
        },
        "schedule": {
            "nfl": [
                event(
                    "g1",
                    GAME_DAY,
                    CHIEFS,
                    RAIDERS,
                    27,
                    20,
                    home_name="Kansas City Chiefs",
                    away_name="Las Vegas Raiders",
                    venue="Arrowhead Stadium",
                ),
                event(
                    "g2",
                    GAME_DAY,
                    BRONCOS,
                    CHARGERS,
                    10,
                    24,
                    home_name="Denver Broncos",
                    away_name="Los Angeles Chargers",
                    venue="Empower Field",
                ),
                event("g0", GAME_DAY - dt.timedelta(days=7), CHIEFS, BRONCOS, 30, 20),
            ]
        },
    }


@pytest.fixture
def bundle_path(tmp_path: Path, sample_bundle: dict[str, Any]) -> Path:
    path = tmp_path / "bundle.json"
    path.write_text(json.dumps(sample_bundle), encoding="utf-8")
    return path
