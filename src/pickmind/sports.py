"""Per-sport constants for the prediction engine.

Each supported sport is described by a SportProfile record instead of a
predictor subclass. Everything sport-specific (home advantage, what counts
as a close game, league scoring levels, weather sensitivity and score
nudging coefficients) lives here as data.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import UnsupportedSportError


@dataclass(frozen=True)
class ScoreCoefficients:
    """Points added to the favored side per unit of each differential."""

    strength: float
    form: float
    momentum: float


@dataclass(frozen=True)
class SportProfile:
    key: str  # "nfl" | "nba" | "mlb"
    kind: str  # "gridiron" | "court" | "diamond"
    label: str  # "NFL"
    home_advantage: float  # added to home win probability
    close_game_threshold: int  # margin (points/runs) that counts as a close game
    default_score: float  # average score assumed when a team has no completed games
    league_average_score: float  # baseline for offensive/defensive ratings
    indoor: bool
    wind_penalty: int  # weather impact subtracted when wind > 15 mph
    precipitation_penalty: int  # weather impact subtracted when precipitation > 0.1 in
    score_coefficients: ScoreCoefficients
    model_name: str
    model_version: str
    model_factors: tuple[str, ...]
    accuracy_note: str


_BASE_FACTORS = (
    "team_strength",
    "recent_form",
    "home_advantage",
    "momentum",
    "consistency",
    "clutch_performance",
    "injuries",
    "head_to_head",
)

GRIDIRON = SportProfile(
    key="nfl",
    kind="gridiron",
    label="NFL",
    home_advantage=0.03,
    close_game_threshold=7,
    default_score=21.0,
    league_average_score=24.0,
    indoor=False,
    wind_penalty=3,
    precipitation_penalty=2,
    score_coefficients=ScoreCoefficients(strength=4.0, form=3.0, momentum=2.0),
    model_name="Enhanced NFL Prediction Model",
    model_version="2.0",
    model_factors=_BASE_FACTORS + ("weather",),
    accuracy_note="Estimated 70-75%",
)

COURT = SportProfile(
    key="nba",
    kind="court",
    label="NBA",
    home_advantage=0.04,
    close_game_threshold=5,
    default_score=110.0,
    league_average_score=112.0,
    indoor=True,
    wind_penalty=1,
    precipitation_penalty=1,
    score_coefficients=ScoreCoefficients(strength=8.0, form=6.0, momentum=4.0),
    model_name="Enhanced NBA Prediction Model",
    model_version="2.0",
    model_factors=_BASE_FACTORS + ("pace",),
    accuracy_note="Estimated 65-70%",
)

DIAMOND = SportProfile(
    key="mlb",
    kind="diamond",
    label="MLB",
    home_advantage=0.02,
    close_game_threshold=2,
    default_score=5.0,
    league_average_score=5.0,
    indoor=False,
    wind_penalty=2,
    precipitation_penalty=1,
    score_coefficients=ScoreCoefficients(strength=1.0, form=0.75, momentum=0.5),
    model_name="Enhanced MLB Prediction Model",
    model_version="2.0",
    model_factors=_BASE_FACTORS + ("weather",),
    accuracy_note="Estimated 58-63%",
)

SPORT_PROFILES: dict[str, SportProfile] = {
    GRIDIRON.key: GRIDIRON,
    COURT.key: COURT,
    DIAMOND.key: DIAMOND,
}

_ALIASES = {
    "football": "nfl",
    "gridiron": "nfl",
    "basketball": "nba",
    "court": "nba",
    "baseball": "mlb",
    "diamond": "mlb",
}


def get_profile(sport: str) -> SportProfile:
    """Look up the profile for a sport key (case-insensitive).

    Raises:
        UnsupportedSportError: no profile is registered for the key
    """
    key = (sport or "").strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return SPORT_PROFILES[key]
    except KeyError:
        raise UnsupportedSportError(
            f"Unsupported sport: {sport!r} (expected one of {sorted(SPORT_PROFILES)})"
        ) from None
