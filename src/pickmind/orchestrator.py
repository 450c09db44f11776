"""Public entry point: scheduled game in, PredictionResult out.

For each game the orchestrator resolves the sport profile, pulls both teams'
data and the matchup context from a SportsDataSource concurrently, runs the
SportPredictor and stamps the result with data-quality and risk metadata.

Failure handling:
- Unsupported sport: raised before any fetch
- Team fetch failure: sport-default analytics plus a data-quality issue
  (or re-raised when fallback_on_fetch_error=False)
- Head-to-head / weather failure: neutral context, logged
- Batch: each game isolated; failures collected by game id
"""

from __future__ import annotations

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

from .analytics import TeamAnalytics, build_team_analytics, default_team_analytics
from .exceptions import DataSourceError, PredictionInvariantError
from .matchup import (
    INDOOR_WEATHER,
    NEUTRAL_HEAD_TO_HEAD,
    UNKNOWN_WEATHER,
    HeadToHead,
    MatchupContext,
    WeatherImpact,
    analyze_head_to_head,
    analyze_weather,
)
from .models import ScheduledGame, TeamRef
from .prediction import (
    KeyMatchup,
    ModelInfo,
    PredictedScore,
    Probabilities,
    RiskAssessment,
    SportPredictor,
    WinnerPick,
)
from .sources import SportsDataSource
from .sports import SportProfile, get_profile

log = logging.getLogger(__name__)

FULL_SAMPLE_GAMES = 5
THIN_SAMPLE_GAMES = 3
RECENT_GAMES_PENALTY = 15
SEASON_STATS_PENALTY = 10


@dataclass(frozen=True)
class DataQuality:
    score: int  # [0, 100]
    issues: tuple[str, ...]
    reliability: str  # "high" | "medium" | "low"


@dataclass(frozen=True)
class PredictionResult:
    game_id: str
    sport: str
    date: dt.date
    home_team: TeamRef
    away_team: TeamRef
    home_win_probability: float
    winner: WinnerPick
    confidence: int
    probabilities: Probabilities
    predicted_score: PredictedScore
    home_advantage: float
    factors: Dict[str, float]
    analysis: str
    key_matchups: tuple[KeyMatchup, ...]
    risk_assessment: RiskAssessment
    model: ModelInfo
    data_quality: DataQuality
    risk_factors: tuple[str, ...]
    generated_at: dt.datetime

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation (ISO dates, lists instead of tuples)."""
        return {
            "game_id": self.game_id,
            "sport": self.sport,
            "date": self.date.isoformat(),
            "home_team": self.home_team.model_dump(),
            "away_team": self.away_team.model_dump(),
            "home_win_probability": self.home_win_probability,
            "winner": asdict(self.winner),
            "confidence": self.confidence,
            "probabilities": asdict(self.probabilities),
            "predicted_score": asdict(self.predicted_score),
            "home_advantage": self.home_advantage,
            "factors": dict(self.factors),
            "analysis": self.analysis,
            "key_matchups": [asdict(m) for m in self.key_matchups],
            "risk_assessment": {
                "level": self.risk_assessment.level,
                "reasons": list(self.risk_assessment.reasons),
            },
            "model": {**asdict(self.model), "factors": list(self.model.factors)},
            "data_quality": {
                "score": self.data_quality.score,
                "issues": list(self.data_quality.issues),
                "reliability": self.data_quality.reliability,
            },
            "risk_factors": list(self.risk_factors),
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class BatchResult:
    predictions: List[PredictionResult] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)  # game id -> error message


def _reliability(score: int) -> str:
    if score > 80:
        return "high"
    if score > 60:
        return "medium"
    return "low"


def assess_data_quality(home: TeamAnalytics, away: TeamAnalytics) -> DataQuality:
    """Start at 100; -15 per side with fewer than 5 completed recent games,
    -10 per side without season stats. Fallback sides are called out too."""
    score = 100
    issues: List[str] = []

    for side, team in (("home", home), ("away", away)):
        if team.is_fallback:
            issues.append(f"{side.capitalize()} team data unavailable - using league defaults")
        if team.completed_game_count < FULL_SAMPLE_GAMES:
            score -= RECENT_GAMES_PENALTY
            issues.append(f"Limited {side} team recent games")
        if not team.season_stats:
            score -= SEASON_STATS_PENALTY
            issues.append(f"Missing {side} team season stats")
        if team.injuries_unavailable:
            issues.append(f"{side.capitalize()} team injury report unavailable")

    score = max(0, score)
    return DataQuality(score=score, issues=tuple(issues), reliability=_reliability(score))


def identify_risk_factors(home: TeamAnalytics, away: TeamAnalytics) -> tuple[str, ...]:
    risks: List[str] = []

    for side, team in (("Home", home), ("Away", away)):
        if team.injury_impact.severity != "none":
            risks.append(f"{side} team injury concerns ({team.injury_impact.severity})")
    for side, team in (("Home", home), ("Away", away)):
        if team.consistency.reliability == "low":
            risks.append(f"{side} team inconsistent performance")
    for side, team in (("Home", home), ("Away", away)):
        if team.form.trend == "cold":
            risks.append(f"{side} team poor recent form")

    if min(home.completed_game_count, away.completed_game_count) < THIN_SAMPLE_GAMES:
        risks.append("Limited recent game data")

    for side, team in (("Home", home), ("Away", away)):
        if team.is_fallback:
            risks.append(f"{side} team analytics are league defaults (data fetch failed)")
        elif team.injuries_unavailable:
            risks.append(f"{side} team injury report unavailable (fetch failed)")

    return tuple(risks)


class PredictionOrchestrator:
    """
    Runs predictions against a SportsDataSource.

    Each generate_prediction call scatters its four independent reads on its
    own short-lived thread pool; generate_predictions runs whole games on a
    separate pool, so nested submissions never wait on a shared executor.

    Example:
        >>> orch = PredictionOrchestrator(JsonFileSource("week7.json"))
        >>> result = orch.generate_prediction(game)
        >>> print(result.winner.name, result.confidence)
    """

    def __init__(
        self,
        source: SportsDataSource,
        *,
        lookback: int = 10,
        max_workers: int = 4,
        fallback_on_fetch_error: bool = True,
    ) -> None:
        if lookback < 1:
            raise ValueError("lookback must be >= 1")
        self.source = source
        self.lookback = lookback
        self.max_workers = max(1, max_workers)
        self.fallback_on_fetch_error = fallback_on_fetch_error

    # ---- per-side reads ----

    def _team_analytics(self, team: TeamRef, profile: SportProfile) -> TeamAnalytics:
        """Build one side's analytics.

        Without a game log the whole side falls back to sport defaults. A
        failed standings or injury read only empties that part.
        """
        try:
            games = self.source.fetch_recent_games(team.id, self.lookback)
        except DataSourceError as e:
            if not self.fallback_on_fetch_error:
                raise
            log.warning("Data fetch failed for %s (%s): %s - using defaults", team.name, team.id, e)
            return default_team_analytics(team, profile)

        try:
            season_stats = self.source.fetch_season_stats(team.id, profile.key)
        except DataSourceError as e:
            if not self.fallback_on_fetch_error:
                raise
            log.warning("Season stats fetch failed for %s (%s): %s", team.name, team.id, e)
            season_stats = {}

        injuries_unavailable = False
        try:
            injuries = self.source.fetch_injuries(team.id)
        except DataSourceError as e:
            if not self.fallback_on_fetch_error:
                raise
            log.warning("Injury fetch failed for %s (%s): %s", team.name, team.id, e)
            injuries = []
            injuries_unavailable = True

        analytics = build_team_analytics(
            team,
            games,
            profile=profile,
            injuries=injuries,
            season_stats=season_stats,
            lookback=self.lookback,
        )
        if injuries_unavailable:
            analytics = replace(analytics, injuries_unavailable=True)
        return analytics

    def _head_to_head(self, game: ScheduledGame, profile: SportProfile) -> HeadToHead:
        try:
            meetings = self.source.fetch_head_to_head(
                game.home_team.id, game.away_team.id, profile.key
            )
        except DataSourceError as e:
            log.warning("Head-to-head fetch failed for game %s: %s", game.id, e)
            return NEUTRAL_HEAD_TO_HEAD
        return analyze_head_to_head(meetings, game.home_team.id)

    def _weather(self, game: ScheduledGame, profile: SportProfile) -> WeatherImpact:
        if profile.indoor:
            return INDOOR_WEATHER
        try:
            report = self.source.fetch_weather(game.venue, game.date)
        except DataSourceError as e:
            log.warning("Weather fetch failed for game %s at %s: %s", game.id, game.venue, e)
            return UNKNOWN_WEATHER
        return analyze_weather(report, profile)

    # ---- public ----

    def generate_prediction(self, game: ScheduledGame) -> PredictionResult:
        profile = get_profile(game.sport)
        predictor = SportPredictor(profile)

        with ThreadPoolExecutor(max_workers=4, thread_name_prefix=f"game-{game.id}") as pool:
            home_f = pool.submit(self._team_analytics, game.home_team, profile)
            away_f = pool.submit(self._team_analytics, game.away_team, profile)
            h2h_f = pool.submit(self._head_to_head, game, profile)
            weather_f = pool.submit(self._weather, game, profile)

            home = home_f.result()
            away = away_f.result()
            context = MatchupContext(head_to_head=h2h_f.result(), weather=weather_f.result())

        output = predictor.predict(home, away, context)
        log.debug(
            "%s %s @ %s: %s %d%%",
            profile.label,
            game.away_team.name,
            game.home_team.name,
            output.winner.name,
            round(output.winner.probability * 100),
        )

        return PredictionResult(
            game_id=game.id,
            sport=profile.key,
            date=game.date,
            home_team=game.home_team,
            away_team=game.away_team,
            home_win_probability=output.home_win_probability,
            winner=output.winner,
            confidence=output.confidence,
            probabilities=output.probabilities,
            predicted_score=output.predicted_score,
            home_advantage=output.home_advantage,
            factors=output.factors.as_dict(),
            analysis=output.analysis,
            key_matchups=output.key_matchups,
            risk_assessment=output.risk_assessment,
            model=output.model,
            data_quality=assess_data_quality(home, away),
            risk_factors=identify_risk_factors(home, away),
            generated_at=dt.datetime.now(dt.timezone.utc),
        )

    def generate_predictions(self, games: Iterable[ScheduledGame]) -> BatchResult:
        """Predict every game independently; one failure never stops the rest.

        PredictionInvariantError is not isolated: it signals a calculator
        bug and is re-raised after the batch finishes.
        """
        game_list = list(games)
        batch = BatchResult()
        invariant_error: Optional[PredictionInvariantError] = None

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="batch") as pool:
            futures = [(g, pool.submit(self.generate_prediction, g)) for g in game_list]
            for game, future in futures:
                try:
                    batch.predictions.append(future.result())
                except PredictionInvariantError as e:
                    log.error("Invariant violated predicting game %s: %s", game.id, e)
                    invariant_error = invariant_error or e
                except Exception as e:
                    log.error("Prediction failed for game %s: %s", game.id, e)
                    batch.failures[game.id] = f"{type(e).__name__}: {e}"

        if invariant_error is not None:
            raise invariant_error

        log.info(
            "Generated %d predictions (%d failed)", len(batch.predictions), len(batch.failures)
        )
        return batch
