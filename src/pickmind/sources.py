"""Read-only data collaborators the orchestrator pulls from.

SportsDataSource is the boundary: anything that can answer these five reads
(the TheSportsDB client, an offline JSON bundle, a test double) can feed the
prediction engine. Implementations raise DataSourceError subclasses on
failure; they never return partial objects.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError

from .exceptions import DataSourceClientError
from .models import GameRecord, InjuryEntry, ScheduledGame, TeamRef, WeatherReport

log = logging.getLogger(__name__)


class SportsDataSource(Protocol):
    def fetch_recent_games(self, team_id: str, limit: int) -> List[GameRecord]: ...

    def fetch_season_stats(self, team_id: str, sport: str) -> Dict[str, Any]: ...

    def fetch_injuries(self, team_id: str) -> List[InjuryEntry]: ...

    def fetch_head_to_head(
        self, home_team_id: str, away_team_id: str, sport: str
    ) -> List[GameRecord]: ...

    def fetch_weather(self, venue: Optional[str], date: dt.date) -> Optional[WeatherReport]: ...


def meetings_between(games: List[GameRecord], team_id: str, opponent_id: str) -> List[GameRecord]:
    """Games from one team's log that were played against a given opponent."""
    return [g for g in games if g.involves(team_id) and g.involves(opponent_id)]


class JsonFileSource:
    """
    Offline source backed by a JSON bundle:

        {
          "teams": {
            "<team id>": {
              "recent_games": [<event>, ...],
              "season_stats": {...},
              "injuries": [{"player_name": ..., "severity": "out"}, ...]
            }
          },
          "head_to_head": {"<home id>:<away id>": [<event>, ...]},
          "weather": {"<venue>": {"temperature": 28, "wind_speed": 18}},
          "schedule": {"nfl": [<event>, ...]}
        }

    Events use TheSportsDB field names or the snake_case GameRecord names.
    A team missing from "teams" is a fetch failure. Without an explicit
    head_to_head entry, meetings come from the home team's recent games.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self._data: Dict[str, Any] = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise DataSourceClientError(f"Could not read data bundle {self.path}: {e}") from e
        self._teams: Dict[str, Any] = self._data.get("teams") or {}

    def _team(self, team_id: str) -> Dict[str, Any]:
        try:
            return self._teams[str(team_id)]
        except KeyError:
            raise DataSourceClientError(f"No data for team {team_id} in {self.path}") from None

    @staticmethod
    def _games(raw: List[Dict[str, Any]]) -> List[GameRecord]:
        try:
            games = [GameRecord.model_validate(x) for x in raw]
        except ValidationError as e:
            raise DataSourceClientError(f"Malformed game record: {e}") from e
        return sorted(games, key=lambda g: g.date, reverse=True)

    def fetch_recent_games(self, team_id: str, limit: int) -> List[GameRecord]:
        return self._games(self._team(team_id).get("recent_games") or [])[:limit]

    def fetch_season_stats(self, team_id: str, sport: str) -> Dict[str, Any]:
        return dict(self._team(team_id).get("season_stats") or {})

    def fetch_injuries(self, team_id: str) -> List[InjuryEntry]:
        raw = self._team(team_id).get("injuries") or []
        try:
            return [InjuryEntry.model_validate(x) for x in raw]
        except ValidationError as e:
            raise DataSourceClientError(f"Malformed injury entry for team {team_id}: {e}") from e

    def fetch_head_to_head(
        self, home_team_id: str, away_team_id: str, sport: str
    ) -> List[GameRecord]:
        explicit = self._data.get("head_to_head") or {}
        for key in (f"{home_team_id}:{away_team_id}", f"{away_team_id}:{home_team_id}"):
            if key in explicit:
                return self._games(explicit[key])

        if str(home_team_id) not in self._teams:
            return []
        games = self._games(self._team(home_team_id).get("recent_games") or [])
        return meetings_between(games, home_team_id, away_team_id)

    def fetch_weather(self, venue: Optional[str], date: dt.date) -> Optional[WeatherReport]:
        raw = (self._data.get("weather") or {}).get(venue or "")
        if raw is None:
            log.debug("No weather in bundle for venue %r", venue)
            return None
        try:
            return WeatherReport.model_validate(raw)
        except ValidationError as e:
            raise DataSourceClientError(f"Malformed weather for {venue}: {e}") from e

    # ---- schedule ----

    def _schedule(self, date: dt.date, sport: str) -> List[GameRecord]:
        raw = (self._data.get("schedule") or {}).get(sport) or []
        return [g for g in self._games(raw) if g.date == date]

    def games_by_date(self, date: dt.date, sport: str) -> List[ScheduledGame]:
        return [
            ScheduledGame(
                id=g.id or f"{g.home_team_id}-{g.away_team_id}-{g.date}",
                sport=sport,
                date=g.date,
                venue=g.venue,
                home_team=TeamRef(id=g.home_team_id, name=g.home_team_name or g.home_team_id),
                away_team=TeamRef(id=g.away_team_id, name=g.away_team_name or g.away_team_id),
            )
            for g in self._schedule(date, sport)
        ]

    def final_scores(self, date: dt.date, sport: str) -> Dict[str, Tuple[int, int]]:
        return {
            g.id: (g.home_score, g.away_score)  # type: ignore[misc]
            for g in self._schedule(date, sport)
            if g.id and g.is_completed
        }
