"""Per-team analytics derived from a recent game log and injury report.

Every function here is a pure computation over GameRecord sequences. The
aggregator (build_team_analytics) composes them into one TeamAnalytics value
per team per prediction request; nothing is cached between requests.

Pipeline:
1. extract_basic_stats: wins/losses and scoring averages over completed games
2. analyze_form: windowed and recency-weighted win rate, streak, dominance
3. analyze_momentum: direction of the point-differential sequence
4. analyze_consistency: variance of the point-differential sequence
5. analyze_clutch: record in games decided inside the sport's close margin
6. assess_injury_impact: bounded severity score from the injury report
7. calculate_enhanced_strength: composite [0, 100] rating

Thin logs degrade to documented neutral values instead of failing:
fewer than MIN_GAMES_FOR_TRENDS completed games leaves form, momentum,
consistency and clutch at their neutral defaults.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from .models import GameRecord, InjuryEntry, InjurySeverity, TeamRef
from .sports import SportProfile

log = logging.getLogger(__name__)

# Window sizes (completed games, most recent first)
FORM_LOOKBACK = 5
ADVANCED_FORM_LOOKBACK = 10
MOMENTUM_LOOKBACK = 5

# Below this many completed games the trend analyzers report neutral defaults
MIN_GAMES_FOR_TRENDS = 3

HOT_FORM_THRESHOLD = 0.6
COLD_FORM_THRESHOLD = 0.4
MOMENTUM_VELOCITY_THRESHOLD = 5.0

INJURY_IMPACT_CAP = 25.0
KEY_PLAYER_IMPACT = 3.0

_SEVERITY_MULTIPLIER = {
    InjurySeverity.OUT: 1.0,
    InjurySeverity.DOUBTFUL: 1.0,
    InjurySeverity.QUESTIONABLE: 0.5,
    InjurySeverity.PROBABLE: 0.25,
    InjurySeverity.DAY_TO_DAY: 0.0,
}

# Importance assumed when the injury feed does not weight the player
_DEFAULT_IMPORTANCE = {
    InjurySeverity.OUT: 5.0,
    InjurySeverity.DOUBTFUL: 5.0,
    InjurySeverity.QUESTIONABLE: 3.0,
    InjurySeverity.PROBABLE: 2.0,
    InjurySeverity.DAY_TO_DAY: 0.0,
}


# =============================================================================
# Result types
# =============================================================================


@dataclass(frozen=True)
class BasicStats:
    games_played: int
    wins: int
    losses: int
    win_percentage: float  # [0, 1]
    average_score: float
    average_opponent_score: float
    score_differential: float
    offensive_rating: int  # 50 = league average scoring
    defensive_rating: int  # 50 = league average points allowed, higher is better


@dataclass(frozen=True)
class FormSummary:
    form: float  # simple win rate in window [0, 1]
    weighted_form: float  # recency-weighted win rate [0, 1]
    trend: str  # "hot" | "neutral" | "cold"
    streak: int  # positive = winning streak, negative = losing streak
    recent_record: str  # "W-L"
    margin_trend: float  # mean scoring margin in window
    dominance_rating: int  # [0, 100]


@dataclass(frozen=True)
class MomentumSummary:
    score: int  # [0, 100]
    trend: str  # "positive" | "neutral" | "negative"
    velocity: float


@dataclass(frozen=True)
class ConsistencySummary:
    score: int  # [0, 100]
    variance: float
    reliability: str  # "low" | "moderate" | "high" | "unknown"


@dataclass(frozen=True)
class ClutchSummary:
    rating: int  # [0, 100]
    close_game_record: str  # "W-L"
    clutch_factor: float  # [-10, 10]


@dataclass(frozen=True)
class KeyPlayer:
    name: str
    position: Optional[str]
    severity: str
    impact: float


@dataclass(frozen=True)
class InjuryImpact:
    impact: float  # [0, 25]
    severity: str  # "none" | "minor" | "moderate" | "severe"
    key_players: tuple[KeyPlayer, ...] = ()


@dataclass(frozen=True)
class TeamAnalytics:
    """Everything the matchup layer needs to know about one team."""

    team: TeamRef
    recent_games: tuple[GameRecord, ...]
    basic_stats: BasicStats
    form: FormSummary
    strength: int  # [0, 100]
    momentum: MomentumSummary
    consistency: ConsistencySummary
    clutch_performance: ClutchSummary
    injury_impact: InjuryImpact
    season_stats: Mapping[str, Any] = field(default_factory=dict)
    injuries: tuple[InjuryEntry, ...] = ()
    is_fallback: bool = False  # sport defaults substituted for unavailable data
    injuries_unavailable: bool = False  # injury report fetch failed; treated as empty

    @property
    def completed_game_count(self) -> int:
        return len(completed_games(self.recent_games, self.team.id))


NEUTRAL_FORM = FormSummary(
    form=0.5,
    weighted_form=0.5,
    trend="neutral",
    streak=0,
    recent_record="0-0",
    margin_trend=0.0,
    dominance_rating=50,
)
NEUTRAL_MOMENTUM = MomentumSummary(score=50, trend="neutral", velocity=0.0)
NEUTRAL_CONSISTENCY = ConsistencySummary(score=50, variance=0.0, reliability="unknown")
NEUTRAL_CLUTCH = ClutchSummary(rating=50, close_game_record="0-0", clutch_factor=0.0)
NO_INJURY_IMPACT = InjuryImpact(impact=0.0, severity="none")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# Game log helpers
# =============================================================================


def completed_games(games: Iterable[GameRecord], team_id: str) -> list[GameRecord]:
    """Completed games the team played, most recent first.

    Fixtures without both scores are excluded. Same-day games keep their
    input order.
    """
    played = [g for g in games if g.is_completed and g.involves(team_id)]
    return sorted(played, key=lambda g: g.date, reverse=True)


def point_differentials(games: Iterable[GameRecord], team_id: str) -> list[int]:
    """Team score minus opponent score per completed game, most recent first."""
    diffs = []
    for game in completed_games(games, team_id):
        team_score, opp_score = game.scores_for(team_id)
        diffs.append(team_score - opp_score)
    return diffs


def _record(margins: Sequence[int]) -> str:
    wins = sum(1 for m in margins if m > 0)
    return f"{wins}-{len(margins) - wins}"


# =============================================================================
# Basic stats
# =============================================================================


def offensive_rating(average_score: float, profile: SportProfile) -> int:
    """Scoring output relative to league average (league average = 75)."""
    return round((average_score / profile.league_average_score) * 50 + 25)


def defensive_rating(average_opponent_score: float, profile: SportProfile) -> int:
    """Points allowed relative to league average; fewer allowed rates higher."""
    return round(75 - (average_opponent_score / profile.league_average_score) * 25)


def default_basic_stats(profile: SportProfile) -> BasicStats:
    return BasicStats(
        games_played=0,
        wins=0,
        losses=0,
        win_percentage=0.5,
        average_score=profile.default_score,
        average_opponent_score=profile.default_score,
        score_differential=0.0,
        offensive_rating=50,
        defensive_rating=50,
    )


def extract_basic_stats(
    games: Iterable[GameRecord], team_id: str, profile: SportProfile
) -> BasicStats:
    """Win/loss counts and scoring averages over the team's completed games.

    Ties count as losses. With no completed games the sport default table is
    returned (win percentage 0.5, differential 0).
    """
    played = completed_games(games, team_id)
    if not played:
        return default_basic_stats(profile)

    wins = 0
    scored = 0
    allowed = 0
    for game in played:
        team_score, opp_score = game.scores_for(team_id)
        scored += team_score
        allowed += opp_score
        if team_score > opp_score:
            wins += 1

    n = len(played)
    average_score = scored / n
    average_opponent_score = allowed / n
    return BasicStats(
        games_played=n,
        wins=wins,
        losses=n - wins,
        win_percentage=wins / n,
        average_score=average_score,
        average_opponent_score=average_opponent_score,
        score_differential=average_score - average_opponent_score,
        offensive_rating=offensive_rating(average_score, profile),
        defensive_rating=defensive_rating(average_opponent_score, profile),
    )


# =============================================================================
# Form
# =============================================================================


def form_trend(form: float) -> str:
    if form > HOT_FORM_THRESHOLD:
        return "hot"
    if form < COLD_FORM_THRESHOLD:
        return "cold"
    return "neutral"


def _streak(margins: Sequence[int]) -> int:
    if not margins:
        return 0
    won_latest = margins[0] > 0
    run = 0
    for margin in margins:
        if (margin > 0) != won_latest:
            break
        run += 1
    return run if won_latest else -run


def dominance_rating(margins: Sequence[int]) -> int:
    """Margin-banded score: blowouts count more than narrow results."""
    if not margins:
        return 50

    score = 0
    for margin in margins:
        if margin > 14:
            score += 3
        elif margin > 7:
            score += 2
        elif margin > 0:
            score += 1
        elif margin > -7:
            score -= 1
        elif margin > -14:
            score -= 2
        else:
            score -= 3
    return int(_clamp(50 + score * 5, 0, 100))


def analyze_form(
    games: Iterable[GameRecord], team_id: str, lookback: int = ADVANCED_FORM_LOOKBACK
) -> FormSummary:
    """Win rate over the last `lookback` completed games.

    weighted_form gives game i (0 = most recent) a weight of lookback - i, so
    the latest result counts the most.

    Example:
        W W L over a lookback of 10 -> form 0.667, weights 10/9/8,
        weighted_form = 19/27 = 0.704, streak +2
    """
    window = completed_games(games, team_id)[:lookback]
    if not window:
        return NEUTRAL_FORM

    margins = []
    for game in window:
        team_score, opp_score = game.scores_for(team_id)
        margins.append(team_score - opp_score)

    wins = sum(1 for m in margins if m > 0)
    form = wins / len(margins)

    weighted_wins = 0
    total_weight = 0
    for index, margin in enumerate(margins):
        weight = lookback - index
        total_weight += weight
        if margin > 0:
            weighted_wins += weight
    weighted_form = weighted_wins / total_weight if total_weight > 0 else 0.5

    return FormSummary(
        form=form,
        weighted_form=weighted_form,
        trend=form_trend(form),
        streak=_streak(margins),
        recent_record=_record(margins),
        margin_trend=sum(margins) / len(margins),
        dominance_rating=dominance_rating(margins),
    )


# =============================================================================
# Momentum, consistency, clutch
# =============================================================================


def analyze_momentum(
    games: Iterable[GameRecord], team_id: str, lookback: int = MOMENTUM_LOOKBACK
) -> MomentumSummary:
    """Direction and speed of change in point differential.

    For each adjacent pair the change (more recent minus older) is added to
    velocity, and to a base score of 50 with weight lookback - i.
    """
    diffs = point_differentials(games, team_id)[:lookback]
    if len(diffs) < 2:
        return NEUTRAL_MOMENTUM

    score = 50.0
    velocity = 0.0
    for i in range(1, len(diffs)):
        change = diffs[i - 1] - diffs[i]
        velocity += change
        score += change * (lookback - i)

    if velocity > MOMENTUM_VELOCITY_THRESHOLD:
        trend = "positive"
    elif velocity < -MOMENTUM_VELOCITY_THRESHOLD:
        trend = "negative"
    else:
        trend = "neutral"

    return MomentumSummary(
        score=int(_clamp(round(score), 0, 100)),
        trend=trend,
        velocity=round(velocity, 1),
    )


def analyze_consistency(games: Iterable[GameRecord], team_id: str) -> ConsistencySummary:
    """Reliability of the scoring margin: 100 - 2 * population std dev."""
    diffs = point_differentials(games, team_id)
    if len(diffs) < MIN_GAMES_FOR_TRENDS:
        return NEUTRAL_CONSISTENCY

    mean = sum(diffs) / len(diffs)
    variance = sum((d - mean) ** 2 for d in diffs) / len(diffs)
    score = _clamp(100 - math.sqrt(variance) * 2, 0, 100)

    if score > 70:
        reliability = "high"
    elif score > 40:
        reliability = "moderate"
    else:
        reliability = "low"

    return ConsistencySummary(
        score=round(score),
        variance=round(variance, 1),
        reliability=reliability,
    )


def analyze_clutch(
    games: Iterable[GameRecord], team_id: str, profile: SportProfile
) -> ClutchSummary:
    """Record in games decided by no more than the sport's close-game margin."""
    close = [d for d in point_differentials(games, team_id) if abs(d) <= profile.close_game_threshold]
    if not close:
        return NEUTRAL_CLUTCH

    close_wins = sum(1 for d in close if d > 0)
    rate = close_wins / len(close)
    return ClutchSummary(
        rating=round(rate * 100),
        close_game_record=f"{close_wins}-{len(close) - close_wins}",
        clutch_factor=(rate - 0.5) * 20,
    )


# =============================================================================
# Injuries
# =============================================================================


def injury_severity_bucket(total_impact: float) -> str:
    if total_impact > 15:
        return "severe"
    if total_impact > 8:
        return "moderate"
    if total_impact > 3:
        return "minor"
    return "none"


def assess_injury_impact(injuries: Iterable[InjuryEntry]) -> InjuryImpact:
    """Sum severity-scaled player importance, capped at INJURY_IMPACT_CAP.

    out/doubtful count in full, questionable at half, probable at a quarter;
    day-to-day designations carry no weight. Players contributing more than
    KEY_PLAYER_IMPACT are listed as key players.
    """
    total = 0.0
    key_players = []
    for injury in injuries:
        importance = injury.importance
        if importance is None:
            importance = _DEFAULT_IMPORTANCE[injury.severity]
        player_impact = max(0.0, importance) * _SEVERITY_MULTIPLIER[injury.severity]
        total += player_impact

        if player_impact > KEY_PLAYER_IMPACT:
            key_players.append(
                KeyPlayer(
                    name=injury.player_name,
                    position=injury.position,
                    severity=injury.severity.value,
                    impact=player_impact,
                )
            )

    return InjuryImpact(
        impact=_clamp(total, 0.0, INJURY_IMPACT_CAP),
        severity=injury_severity_bucket(total),
        key_players=tuple(key_players),
    )


# =============================================================================
# Strength
# =============================================================================


def _base_strength(stats: BasicStats, form: float) -> float:
    strength = 50.0
    strength += (stats.win_percentage - 0.5) * 50  # +/-25
    strength += _clamp(stats.score_differential, -15.0, 15.0)  # +/-15
    strength += (form - 0.5) * 20  # +/-10
    return strength


def calculate_strength(stats: BasicStats, form: float) -> int:
    """Composite [0, 100] rating from win rate, scoring margin and form."""
    return int(_clamp(round(_base_strength(stats, form)), 0, 100))


def strength_of_schedule_adjustment(games: Sequence[GameRecord], team_id: str) -> float:
    """Extension point: needs opponent ratings, contributes nothing yet."""
    return 0.0


def home_away_balance_adjustment(games: Sequence[GameRecord], team_id: str) -> float:
    """Extension point: home/road split, contributes nothing yet."""
    return 0.0


def clutch_strength_adjustment(
    games: Sequence[GameRecord], team_id: str, profile: SportProfile
) -> float:
    """Extension point: close-game bonus on strength, contributes nothing yet."""
    return 0.0


def calculate_enhanced_strength(
    games: Sequence[GameRecord],
    team_id: str,
    stats: BasicStats,
    form: float,
    profile: SportProfile,
) -> int:
    strength = _base_strength(stats, form)
    strength += strength_of_schedule_adjustment(games, team_id)
    strength += home_away_balance_adjustment(games, team_id)
    strength += clutch_strength_adjustment(games, team_id, profile)
    return int(_clamp(round(strength), 0, 100))


# =============================================================================
# Aggregation
# =============================================================================


def build_team_analytics(
    team: TeamRef,
    games: Iterable[GameRecord],
    *,
    profile: SportProfile,
    injuries: Iterable[InjuryEntry] = (),
    season_stats: Optional[Mapping[str, Any]] = None,
    lookback: int = ADVANCED_FORM_LOOKBACK,
) -> TeamAnalytics:
    """Compose every per-team analyzer into one TeamAnalytics value.

    Args:
        team: The team being described
        games: Its game log in any order; games it did not play are ignored
        profile: Sport constants (close-game margin, default scores)
        injuries: Current injury report
        season_stats: Provider season summary, carried for data-quality checks
        lookback: Recent games kept (most recent first)

    Returns:
        TeamAnalytics with every bounded field inside its range
    """
    own_games = sorted((g for g in games if g.involves(team.id)), key=lambda g: g.date, reverse=True)
    recent = tuple(own_games[:lookback])
    injury_list = tuple(injuries)

    stats = extract_basic_stats(recent, team.id, profile)
    played = completed_games(recent, team.id)

    if len(played) < MIN_GAMES_FOR_TRENDS:
        log.debug(
            "%s has %d completed games - using neutral form/momentum/consistency/clutch",
            team.name,
            len(played),
        )
        form = NEUTRAL_FORM
        short_form = NEUTRAL_FORM.form
        momentum = NEUTRAL_MOMENTUM
        consistency = NEUTRAL_CONSISTENCY
        clutch = NEUTRAL_CLUTCH
    else:
        form = analyze_form(recent, team.id, lookback)
        short_form = analyze_form(recent, team.id, FORM_LOOKBACK).form
        momentum = analyze_momentum(recent, team.id)
        consistency = analyze_consistency(recent, team.id)
        clutch = analyze_clutch(recent, team.id, profile)

    return TeamAnalytics(
        team=team,
        recent_games=recent,
        basic_stats=stats,
        form=form,
        strength=calculate_enhanced_strength(recent, team.id, stats, short_form, profile),
        momentum=momentum,
        consistency=consistency,
        clutch_performance=clutch,
        injury_impact=assess_injury_impact(injury_list),
        season_stats=dict(season_stats or {}),
        injuries=injury_list,
    )


def default_team_analytics(team: TeamRef, profile: SportProfile) -> TeamAnalytics:
    """Sport-default analytics used when a team's data could not be fetched."""
    return TeamAnalytics(
        team=team,
        recent_games=(),
        basic_stats=default_basic_stats(profile),
        form=NEUTRAL_FORM,
        strength=50,
        momentum=NEUTRAL_MOMENTUM,
        consistency=NEUTRAL_CONSISTENCY,
        clutch_performance=NEUTRAL_CLUTCH,
        injury_impact=NO_INJURY_IMPACT,
        is_fallback=True,
    )
