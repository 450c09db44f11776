"""Pairwise matchup context and differential factors.

This module reduces the two teams' analytics plus game context (previous
meetings, venue weather) into signed, pre-scaled differentials. Every factor
is expressed from the home team's perspective: positive values push the home
win probability up.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from .analytics import TeamAnalytics, completed_games
from .exceptions import PredictionInvariantError
from .models import GameRecord, WeatherReport
from .sports import SportProfile

log = logging.getLogger(__name__)

HEAD_TO_HEAD_RECENT_WINDOW = 5
ADVANTAGE_HIGH = 0.6
ADVANTAGE_LOW = 0.4

# Per-factor scaling applied before the differentials reach the predictor
FACTOR_COEFFICIENTS = {
    "form": 0.15,
    "momentum": 0.08,
    "consistency": 0.05,
    "clutch": 0.06,
    "injury": 0.08,
    "head_to_head": 0.05,
    "weather": 0.03,
}

# Largest magnitude each factor can reach given its inputs' ranges
FACTOR_BOUNDS = {
    "strength_differential": 1.0,  # strengths in [0, 100]
    "form_differential": 0.15,  # weighted form in [0, 1]
    "momentum_differential": 0.08,  # momentum score in [0, 100]
    "consistency_differential": 0.05,  # consistency score in [0, 100]
    "clutch_factor": 0.012,  # clutch factor in [-10, 10]
    "injury_factor": 0.02,  # injury impact in [0, 25]
    "head_to_head_factor": 0.0025,  # head-to-head factor in [-5, 5]
    "weather_factor": 0.0015,  # weather impact in [-5, 2]
}


@dataclass(frozen=True)
class HeadToHead:
    advantage: str  # "home" | "away" | "neutral"
    factor: float  # [-5, 5]
    recent_trend: str  # "home" | "away" | "even"
    record: str  # "home wins-away wins"
    recent_record: str
    meetings: int


@dataclass(frozen=True)
class WeatherImpact:
    impact: int  # [-5, 2]
    conditions: str  # comma-joined tags, "favorable", "indoor" or "unknown"
    report: Optional[WeatherReport] = None

    @property
    def tags(self) -> list[str]:
        return [t.strip() for t in self.conditions.split(",") if t.strip()]


NEUTRAL_HEAD_TO_HEAD = HeadToHead(
    advantage="neutral",
    factor=0.0,
    recent_trend="even",
    record="0-0",
    recent_record="0-0",
    meetings=0,
)
INDOOR_WEATHER = WeatherImpact(impact=0, conditions="indoor")
UNKNOWN_WEATHER = WeatherImpact(impact=0, conditions="unknown")


@dataclass(frozen=True)
class MatchupContext:
    head_to_head: HeadToHead = field(default=NEUTRAL_HEAD_TO_HEAD)
    weather: WeatherImpact = field(default=UNKNOWN_WEATHER)


@dataclass(frozen=True)
class MatchupFactors:
    """Signed differentials, home perspective, already scaled to probability units."""

    strength_differential: float
    form_differential: float
    momentum_differential: float
    consistency_differential: float
    clutch_factor: float
    injury_factor: float
    head_to_head_factor: float
    weather_factor: float

    # Raw inputs kept for the breakdown
    home_strength: int
    away_strength: int

    def total(self) -> float:
        return sum(getattr(self, name) for name in FACTOR_BOUNDS)

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


# =============================================================================
# Head-to-head
# =============================================================================


def _lean(rate: float, even_label: str) -> str:
    if rate > ADVANTAGE_HIGH:
        return "home"
    if rate < ADVANTAGE_LOW:
        return "away"
    return even_label


def analyze_head_to_head(meetings: Iterable[GameRecord], home_team_id: str) -> HeadToHead:
    """Summarise previous meetings from the upcoming home team's side.

    A meeting counts as a home win when the team hosting the upcoming game
    won it, wherever it was played. Ties count against the home side.

    Returns:
        HeadToHead with advantage over all meetings, recent_trend over the
        most recent HEAD_TO_HEAD_RECENT_WINDOW, and factor = (rate - 0.5) * 10
    """
    played = completed_games(meetings, home_team_id)
    if not played:
        return NEUTRAL_HEAD_TO_HEAD

    def home_won(game: GameRecord) -> bool:
        team_score, opp_score = game.scores_for(home_team_id)
        return team_score > opp_score

    home_wins = sum(1 for g in played if home_won(g))
    recent = played[:HEAD_TO_HEAD_RECENT_WINDOW]
    recent_home_wins = sum(1 for g in recent if home_won(g))

    home_win_rate = home_wins / len(played)
    recent_rate = recent_home_wins / len(recent)

    return HeadToHead(
        advantage=_lean(home_win_rate, "neutral"),
        factor=(home_win_rate - 0.5) * 10,
        recent_trend=_lean(recent_rate, "even"),
        record=f"{home_wins}-{len(played) - home_wins}",
        recent_record=f"{recent_home_wins}-{len(recent) - recent_home_wins}",
        meetings=len(played),
    )


# =============================================================================
# Weather
# =============================================================================


def analyze_weather(report: Optional[WeatherReport], profile: SportProfile) -> WeatherImpact:
    """Small venue-weather adjustment; indoor sports are never affected.

    Cold (<32F) -2, heat (>85F) -1, wind (>15 mph) and precipitation
    (>0.1 in) subtract the sport's penalties. Clamped to [-5, 2].
    """
    if profile.indoor:
        return INDOOR_WEATHER
    if report is None:
        log.debug("No weather report for outdoor %s game - impact 0", profile.label)
        return UNKNOWN_WEATHER

    impact = 0
    tags = []

    if report.temperature < 32:
        impact -= 2
        tags.append("cold")
    elif report.temperature > 85:
        impact -= 1
        tags.append("hot")

    if report.wind_speed > 15:
        impact -= profile.wind_penalty
        tags.append("windy")

    if report.precipitation > 0.1:
        impact -= profile.precipitation_penalty
        tags.append("wet")

    return WeatherImpact(
        impact=max(-5, min(2, impact)),
        conditions=", ".join(tags) if tags else "favorable",
        report=report,
    )


# =============================================================================
# Differential factors
# =============================================================================


def check_factor_bounds(factors: MatchupFactors, tolerance: float = 1e-9) -> None:
    """Raise PredictionInvariantError if any factor exceeds its bound.

    A violation means an upstream analyzer produced an out-of-range value;
    it is never clamped away here.
    """
    for name, bound in FACTOR_BOUNDS.items():
        value = getattr(factors, name)
        if abs(value) > bound + tolerance:
            raise PredictionInvariantError(
                f"{name}={value:.6f} outside [-{bound}, {bound}] "
                f"(home strength {factors.home_strength}, away strength {factors.away_strength})"
            )


def calculate_matchup_factors(
    home: TeamAnalytics, away: TeamAnalytics, context: MatchupContext
) -> MatchupFactors:
    """Compute the named home-perspective differentials for one game.

    The injury factor is away impact minus home impact, so it favors the
    healthier team.

    Example:
        >>> factors = calculate_matchup_factors(home, away, MatchupContext())
        >>> print(f"Strength edge: {factors.strength_differential:+.2f}")
    """
    coef = FACTOR_COEFFICIENTS
    factors = MatchupFactors(
        strength_differential=(home.strength - away.strength) / 100,
        form_differential=(home.form.weighted_form - away.form.weighted_form) * coef["form"],
        momentum_differential=(home.momentum.score - away.momentum.score) / 100 * coef["momentum"],
        consistency_differential=(home.consistency.score - away.consistency.score)
        / 100
        * coef["consistency"],
        clutch_factor=(
            home.clutch_performance.clutch_factor - away.clutch_performance.clutch_factor
        )
        / 100
        * coef["clutch"],
        injury_factor=(away.injury_impact.impact - home.injury_impact.impact)
        / 100
        * coef["injury"],
        head_to_head_factor=context.head_to_head.factor / 100 * coef["head_to_head"],
        weather_factor=context.weather.impact / 100 * coef["weather"],
        home_strength=home.strength,
        away_strength=away.strength,
    )
    check_factor_bounds(factors)
    return factors
