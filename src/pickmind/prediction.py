"""Sport-parameterised game prediction.

A single SportPredictor type serves every sport; the differences between
gridiron, court and diamond live in the SportProfile it is built with.

Algorithm (home perspective):
1. p_home = 0.5 + sum(matchup factors) + profile.home_advantage
2. Clamp p_home to [0.05, 0.95]; p_away = 1 - p_home
3. confidence = |p_home - 0.5| * 200 (0 = coin flip, 90 = 95/5)
4. Scores: each team's average output nudged by the strength, form and
   momentum differentials times the sport's score coefficients
5. Rationale: fixed sentence templates, each gated on the factor it talks
   about clearing ANALYSIS_NOISE_THRESHOLDS
6. Key matchups and a three-signal risk assessment

The predictor holds no state between calls: identical inputs give identical
output.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .analytics import TeamAnalytics
from .exceptions import PredictionInvariantError
from .matchup import FACTOR_BOUNDS, MatchupContext, MatchupFactors, calculate_matchup_factors
from .sports import SportProfile

PROBABILITY_FLOOR = 0.05
PROBABILITY_CEILING = 0.95

# A factor is only mentioned in the rationale when its magnitude reaches
# 10% of the largest value that factor can take.
ANALYSIS_NOISE_THRESHOLDS = {name: bound * 0.10 for name, bound in FACTOR_BOUNDS.items()}

STRENGTH_MISMATCH_GAP = 25
STRENGTH_EVEN_GAP = 10
SEVERE_WEATHER_IMPACT = -2

STRONG_OFFENSE_RATING = 70
WEAK_DEFENSE_RATING = 40
CLUTCH_RATING_GAP = 20

LOW_CONFIDENCE = 60
HIGH_RISK_SIGNALS = 3


@dataclass(frozen=True)
class WinnerPick:
    team_id: str
    name: str
    side: str  # "home" | "away"
    probability: float  # [0.5, 0.95]


@dataclass(frozen=True)
class Probabilities:
    home: int  # percent
    away: int  # percent, home + away == 100


@dataclass(frozen=True)
class PredictedScore:
    home: int
    away: int
    total: int
    spread: int  # home - away


@dataclass(frozen=True)
class KeyMatchup:
    type: str  # "advantage" | "clutch"
    description: str


@dataclass(frozen=True)
class RiskAssessment:
    level: str  # "low" | "medium" | "high"
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class ModelInfo:
    name: str
    version: str
    sport: str
    factors: tuple[str, ...]
    accuracy: str


@dataclass(frozen=True)
class ModelOutput:
    """What a SportPredictor produces for one game (no request metadata)."""

    home_win_probability: float
    winner: WinnerPick
    confidence: int
    probabilities: Probabilities
    predicted_score: PredictedScore
    home_advantage: float
    factors: MatchupFactors
    analysis: str
    key_matchups: tuple[KeyMatchup, ...]
    risk_assessment: RiskAssessment
    model: ModelInfo


def _is_signal(value: float, factor_name: str) -> bool:
    return abs(value) >= ANALYSIS_NOISE_THRESHOLDS[factor_name]


class SportPredictor:
    """Turns two TeamAnalytics plus matchup context into a ModelOutput."""

    def __init__(self, profile: SportProfile) -> None:
        self.profile = profile

    @property
    def model_info(self) -> ModelInfo:
        p = self.profile
        return ModelInfo(
            name=f"{p.model_name} v{p.model_version}",
            version=p.model_version,
            sport=p.label,
            factors=p.model_factors,
            accuracy=p.accuracy_note,
        )

    def predict(
        self,
        home: TeamAnalytics,
        away: TeamAnalytics,
        context: Optional[MatchupContext] = None,
    ) -> ModelOutput:
        context = context or MatchupContext()
        factors = calculate_matchup_factors(home, away, context)

        raw = 0.5 + factors.total() + self.profile.home_advantage
        if not math.isfinite(raw):
            raise PredictionInvariantError(f"Home win probability is not finite: {raw}")
        home_prob = max(PROBABILITY_FLOOR, min(PROBABILITY_CEILING, raw))
        away_prob = 1.0 - home_prob

        if home_prob > away_prob:
            winner = WinnerPick(home.team.id, home.team.name, "home", home_prob)
        else:
            winner = WinnerPick(away.team.id, away.team.name, "away", away_prob)

        confidence = abs(home_prob - 0.5) * 200
        home_pct = round(home_prob * 100)

        return ModelOutput(
            home_win_probability=home_prob,
            winner=winner,
            confidence=round(confidence),
            probabilities=Probabilities(home=home_pct, away=100 - home_pct),
            predicted_score=self._predict_score(home, away, factors),
            home_advantage=self.profile.home_advantage,
            factors=factors,
            analysis=self._analysis(home, away, factors, home_prob, context),
            key_matchups=self._key_matchups(home, away),
            risk_assessment=self._risk(home, away, confidence),
            model=self.model_info,
        )

    def _predict_score(
        self, home: TeamAnalytics, away: TeamAnalytics, factors: MatchupFactors
    ) -> PredictedScore:
        coef = self.profile.score_coefficients
        adjustment = (
            factors.strength_differential * coef.strength
            + factors.form_differential * coef.form
            + factors.momentum_differential * coef.momentum
        )
        home_score = max(0, round(home.basic_stats.average_score + adjustment))
        away_score = max(0, round(away.basic_stats.average_score - adjustment))
        return PredictedScore(
            home=home_score,
            away=away_score,
            total=home_score + away_score,
            spread=home_score - away_score,
        )

    def _analysis(
        self,
        home: TeamAnalytics,
        away: TeamAnalytics,
        factors: MatchupFactors,
        home_prob: float,
        context: MatchupContext,
    ) -> str:
        home_favored = home_prob > 0.5
        fav, dog = (home, away) if home_favored else (away, home)
        # flips home-perspective factors to the favorite's perspective
        toward_fav = 1 if home_favored else -1
        fav_name, dog_name = fav.team.name, dog.team.name

        sentences = [
            f"{fav_name} is favored with a {round(max(home_prob, 1 - home_prob) * 100)}% "
            "win probability."
        ]

        form_edge = factors.form_differential * toward_fav
        if _is_signal(form_edge, "form_differential"):
            if fav.form.trend == "hot" and dog.form.trend == "cold" and form_edge > 0:
                sentences.append(
                    f"{fav_name} enters this game in hot form while {dog_name} has struggled recently."
                )
            elif fav.form.trend == "cold" and form_edge < 0:
                sentences.append(
                    f"Despite being favored, {fav_name} has shown poor recent form, "
                    f"which could create an opportunity for {dog_name}."
                )

        strength_gap = fav.strength - dog.strength
        if strength_gap > STRENGTH_MISMATCH_GAP and _is_signal(
            factors.strength_differential, "strength_differential"
        ):
            sentences.append(
                "This appears to be a significant mismatch based on overall team strength."
            )
        elif abs(strength_gap) < STRENGTH_EVEN_GAP:
            sentences.append(
                "Both teams are evenly matched on overall strength, "
                "making this a potentially close contest."
            )

        momentum_edge = factors.momentum_differential * toward_fav
        if (
            fav.momentum.trend == "positive"
            and dog.momentum.trend == "negative"
            and momentum_edge > 0
            and _is_signal(momentum_edge, "momentum_differential")
        ):
            sentences.append(
                f"{fav_name} has positive momentum while {dog_name} is trending downward."
            )

        hurt, other = (away, home) if factors.injury_factor > 0 else (home, away)
        if (
            _is_signal(factors.injury_factor, "injury_factor")
            and hurt.injury_impact.severity != "none"
        ):
            sentences.append(
                f"{hurt.team.name} is dealing with {hurt.injury_impact.severity} injury concerns"
                f"{_key_player_note(hurt)} that could impact their performance."
            )
            if other.injury_impact.severity != "none":
                sentences.append(
                    f"{other.team.name} also has {other.injury_impact.severity} "
                    "injury issues to contend with."
                )

        h2h = context.head_to_head
        if h2h.advantage != "neutral" and _is_signal(
            factors.head_to_head_factor, "head_to_head_factor"
        ):
            leader = home if h2h.advantage == "home" else away
            sentences.append(
                f"{leader.team.name} has historically had the upper hand in this matchup "
                f"({home.team.name} {h2h.record} in {h2h.meetings} meetings)."
            )

        weather = context.weather
        if weather.impact < SEVERE_WEATHER_IMPACT and _is_signal(
            factors.weather_factor, "weather_factor"
        ):
            sentences.append(
                f"Weather conditions ({weather.conditions}) may favor defensive play "
                "and lower scoring."
            )

        return " ".join(sentences)

    def _key_matchups(self, home: TeamAnalytics, away: TeamAnalytics) -> tuple[KeyMatchup, ...]:
        matchups = []

        for offense, defense in ((home, away), (away, home)):
            if (
                offense.basic_stats.offensive_rating > STRONG_OFFENSE_RATING
                and defense.basic_stats.defensive_rating < WEAK_DEFENSE_RATING
            ):
                matchups.append(
                    KeyMatchup(
                        type="advantage",
                        description=(
                            f"{offense.team.name} strong offense vs "
                            f"{defense.team.name} weak defense"
                        ),
                    )
                )

        clutch_gap = home.clutch_performance.rating - away.clutch_performance.rating
        if abs(clutch_gap) > CLUTCH_RATING_GAP:
            clutch_team = home if clutch_gap > 0 else away
            matchups.append(
                KeyMatchup(
                    type="clutch",
                    description=f"{clutch_team.team.name} has significantly better clutch performance",
                )
            )

        return tuple(matchups)

    def _risk(self, home: TeamAnalytics, away: TeamAnalytics, confidence: float) -> RiskAssessment:
        reasons = []

        if confidence < LOW_CONFIDENCE:
            reasons.append("Low confidence prediction due to close matchup")

        if "low" in (home.consistency.reliability, away.consistency.reliability):
            reasons.append("Team inconsistency increases prediction uncertainty")

        if "severe" in (home.injury_impact.severity, away.injury_impact.severity):
            reasons.append("Significant injury concerns may impact game outcome")

        if len(reasons) >= HIGH_RISK_SIGNALS:
            level = "high"
        elif reasons:
            level = "medium"
        else:
            level = "low"

        return RiskAssessment(level=level, reasons=tuple(reasons))


def _key_player_note(team: TeamAnalytics) -> str:
    names = [p.name for p in team.injury_impact.key_players]
    if not names:
        return ""
    return f" ({', '.join(names)})"
