"""Output validation for predictions and slate tables.

Re-checks the guarantees every PredictionResult is supposed to carry:
- Probabilities are percentages summing to 100 inside [5, 95]
- Winner side and probability agree with the home win probability
- Score total/spread are consistent with the projected scores
- Factors stay inside their bounds; risk level matches its reasons
- Data-quality reliability matches its score

Usage:
    from pickmind.validation import validate_prediction

    result = validate_prediction(prediction)
    if not result.passed:
        for issue in result.issues:
            print(f"WARNING: {issue}")
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd

from .matchup import FACTOR_BOUNDS
from .orchestrator import PredictionResult
from .prediction import HIGH_RISK_SIGNALS, PROBABILITY_CEILING, PROBABILITY_FLOOR


@dataclass
class ValidationResult:
    """Result of a validation check."""

    passed: bool
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: dict = field(default_factory=dict)

    def __str__(self) -> str:
        status = "PASSED" if self.passed else "FAILED"
        lines = [f"Validation {status}"]
        if self.issues:
            lines.append(f"  Issues ({len(self.issues)}):")
            for issue in self.issues:
                lines.append(f"    - {issue}")
        if self.warnings:
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                lines.append(f"    - {warning}")
        return "\n".join(lines)


class PredictionValidator:
    """Validates single predictions and whole slate tables."""

    # Anything this close to a coin flip is flagged, not failed
    COIN_FLIP_CONFIDENCE = 10

    SLATE_REQUIRED_COLS = [
        "game_id",
        "sport",
        "home_team",
        "away_team",
        "home_win_pct",
        "away_win_pct",
        "pick",
        "confidence",
    ]

    def validate_prediction(self, result: PredictionResult) -> ValidationResult:
        issues: list[str] = []
        warnings: list[str] = []
        label = f"{result.away_team.name} @ {result.home_team.name}"

        p = result.home_win_probability
        if not PROBABILITY_FLOOR <= p <= PROBABILITY_CEILING:
            issues.append(f"Home win probability {p:.4f} outside clamp range: {label}")

        probs = result.probabilities
        if probs.home + probs.away != 100:
            issues.append(f"Probabilities sum to {probs.home + probs.away}: {label}")
        for side, pct in (("home", probs.home), ("away", probs.away)):
            if not 5 <= pct <= 95:
                issues.append(f"{side} probability {pct}% outside [5, 95]: {label}")

        if not 0 <= result.confidence <= 100:
            issues.append(f"Confidence {result.confidence} outside [0, 100]: {label}")

        expected_side = "home" if p > 0.5 else "away"
        if result.winner.side != expected_side:
            issues.append(f"Winner side {result.winner.side} disagrees with p_home={p:.3f}: {label}")
        if result.winner.probability < 0.5:
            issues.append(f"Winner probability {result.winner.probability:.3f} below 0.5: {label}")

        score = result.predicted_score
        if score.home < 0 or score.away < 0:
            issues.append(f"Negative projected score {score.home}-{score.away}: {label}")
        if score.total != score.home + score.away or score.spread != score.home - score.away:
            issues.append(f"Inconsistent total/spread for {score.home}-{score.away}: {label}")

        for name, bound in FACTOR_BOUNDS.items():
            value = result.factors.get(name)
            if value is None:
                issues.append(f"Missing factor {name}: {label}")
            elif abs(value) > bound + 1e-9:
                issues.append(f"Factor {name}={value:.4f} exceeds {bound}: {label}")

        risk = result.risk_assessment
        n = len(risk.reasons)
        expected_level = "high" if n >= HIGH_RISK_SIGNALS else "medium" if n else "low"
        if risk.level != expected_level:
            issues.append(f"Risk level {risk.level} with {n} reasons: {label}")

        dq = result.data_quality
        if not 0 <= dq.score <= 100:
            issues.append(f"Data quality score {dq.score} outside [0, 100]: {label}")
        expected_rel = "high" if dq.score > 80 else "medium" if dq.score > 60 else "low"
        if dq.reliability != expected_rel:
            issues.append(f"Data quality reliability {dq.reliability} for score {dq.score}: {label}")

        if not result.analysis.startswith(result.winner.name):
            issues.append(f"Analysis does not lead with the pick ({result.winner.name}): {label}")

        if result.confidence < self.COIN_FLIP_CONFIDENCE:
            warnings.append(f"Near coin-flip ({result.confidence}% confidence): {label}")
        if dq.reliability == "low":
            warnings.append(f"Low data quality ({dq.score}): {label}")

        return ValidationResult(
            passed=len(issues) == 0,
            issues=issues,
            warnings=warnings,
            stats={"game_id": result.game_id, "confidence": result.confidence},
        )

    def validate_slate(self, df: pd.DataFrame) -> ValidationResult:
        """Schema and sanity checks for a prediction slate table."""
        issues: list[str] = []
        warnings: list[str] = []
        stats = {"total_games": len(df), "duplicate_games": 0, "low_quality_games": 0}

        if df.empty:
            warnings.append("Slate is empty")
            return ValidationResult(passed=True, warnings=warnings, stats=stats)

        missing_cols = [col for col in self.SLATE_REQUIRED_COLS if col not in df.columns]
        if missing_cols:
            issues.append(f"Missing required columns: {missing_cols}")
            return ValidationResult(passed=False, issues=issues, stats=stats)

        dupes = df[df["game_id"].duplicated()]
        stats["duplicate_games"] = len(dupes)
        if len(dupes) > 0:
            issues.append(f"Duplicate game ids: {sorted(dupes['game_id'].unique())}")

        bad_sum = df[(df["home_win_pct"] + df["away_win_pct"]) != 100]
        for _, row in bad_sum.iterrows():
            issues.append(
                f"Probabilities do not sum to 100: {row['away_team']} @ {row['home_team']}"
            )

        if "data_quality" in df.columns:
            low = df[df["data_quality"] <= 60]
            stats["low_quality_games"] = len(low)
            if len(low) > 0:
                warnings.append(f"{len(low)} games have low data quality")

        return ValidationResult(passed=len(issues) == 0, issues=issues, warnings=warnings, stats=stats)


def validate_prediction(result: PredictionResult) -> ValidationResult:
    return PredictionValidator().validate_prediction(result)
