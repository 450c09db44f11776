from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TeamRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class GameRecord(BaseModel):
    """One contest from a team's game log (or a scheduled fixture).

    Accepts TheSportsDB event fields (idEvent, dateEvent, intHomeScore, ...)
    as well as the snake_case names. A null or blank score means the game
    has not been played yet.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="idEvent")
    date: dt.date = Field(alias="dateEvent")
    home_team_id: str = Field(alias="idHomeTeam")
    away_team_id: str = Field(alias="idAwayTeam")
    home_score: Optional[int] = Field(default=None, alias="intHomeScore")
    away_score: Optional[int] = Field(default=None, alias="intAwayScore")
    venue: Optional[str] = Field(default=None, alias="strVenue")
    home_team_name: Optional[str] = Field(default=None, alias="strHomeTeam")
    away_team_name: Optional[str] = Field(default=None, alias="strAwayTeam")

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def _blank_score_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("id", "home_team_id", "away_team_id", mode="before")
    @classmethod
    def _ids_as_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def is_completed(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def scores_for(self, team_id: str) -> tuple[int, int]:
        """(team score, opponent score) for a completed game the team played."""
        if not self.is_completed:
            raise ValueError(f"Game {self.id} has no final score")
        if team_id == self.home_team_id:
            return self.home_score, self.away_score  # type: ignore[return-value]
        if team_id == self.away_team_id:
            return self.away_score, self.home_score  # type: ignore[return-value]
        raise ValueError(f"Team {team_id} did not play in game {self.id}")


class InjurySeverity(str, Enum):
    OUT = "out"
    DOUBTFUL = "doubtful"
    QUESTIONABLE = "questionable"
    PROBABLE = "probable"
    DAY_TO_DAY = "day-to-day"


class InjuryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_name: str
    position: Optional[str] = None
    severity: InjurySeverity
    importance: Optional[float] = None  # externally supplied weight

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("_", "-").replace(" ", "-")
        return value


class WeatherReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float  # Fahrenheit
    wind_speed: float  # mph
    precipitation: float = 0.0  # inches


class ScheduledGame(BaseModel):
    """The game a prediction is requested for."""

    model_config = ConfigDict(frozen=True)

    id: str
    sport: str
    date: dt.date
    venue: Optional[str] = None
    home_team: TeamRef
    away_team: TeamRef

    @classmethod
    def from_event(cls, event: dict[str, Any], sport: str) -> "ScheduledGame":
        record = GameRecord.model_validate(event)
        return cls(
            id=record.id or f"{record.home_team_id}-{record.away_team_id}-{record.date}",
            sport=sport,
            date=record.date,
            venue=record.venue,
            home_team=TeamRef(
                id=record.home_team_id, name=record.home_team_name or record.home_team_id
            ),
            away_team=TeamRef(
                id=record.away_team_id, name=record.away_team_name or record.away_team_id
            ),
        )
