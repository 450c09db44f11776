"""Slate tables: every game for a date and sport, one row per prediction.

Builds the day's schedule from a data client, runs the orchestrator over it
and flattens the results into a pandas DataFrame sorted by confidence.
Graded slates join final scores and feed an AccuracyLedger.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import pandas as pd

from .client import SportsDataClient
from .config import Settings
from .models import ScheduledGame
from .orchestrator import BatchResult, PredictionOrchestrator, PredictionResult
from .tracking import AccuracyLedger
from .validation import PredictionValidator

log = logging.getLogger(__name__)


class ScheduleSource(Protocol):
    def games_by_date(self, date: dt.date, sport: str) -> List[ScheduledGame]: ...


def games_for_date(
    date: dt.date, sport: str, *, client: Optional[ScheduleSource] = None
) -> List[ScheduledGame]:
    """Scheduled games for one date and sport.

    Args:
        date: Game date
        sport: Sport key or alias ("nfl", "basketball", ...)
        client: Anything with games_by_date (creates a SportsDataClient if None)
    """
    c = client or SportsDataClient(Settings.from_env())
    close_client = client is None
    try:
        games = c.games_by_date(date, sport)
    finally:
        if close_client:
            c.close()  # type: ignore[union-attr]
    log.info("%d %s games scheduled on %s", len(games), sport, date)
    return games


def _row(result: PredictionResult) -> Dict[str, Any]:
    return {
        "game_id": result.game_id,
        "sport": result.sport,
        "date": result.date.isoformat(),
        "home_team_id": result.home_team.id,
        "home_team": result.home_team.name,
        "away_team_id": result.away_team.id,
        "away_team": result.away_team.name,
        "pick": result.winner.name,
        "pick_side": result.winner.side,
        "home_win_pct": result.probabilities.home,
        "away_win_pct": result.probabilities.away,
        "confidence": result.confidence,
        "proj_home": result.predicted_score.home,
        "proj_away": result.predicted_score.away,
        "proj_total": result.predicted_score.total,
        "proj_spread": result.predicted_score.spread,
        "risk_level": result.risk_assessment.level,
        "data_quality": result.data_quality.score,
        "reliability": result.data_quality.reliability,
        "risk_factors": "; ".join(result.risk_factors),
        "analysis": result.analysis,
        "model": result.model.name,
        "generated_at": result.generated_at.isoformat(),
    }


def prediction_slate(results: Iterable[PredictionResult]) -> pd.DataFrame:
    """Flatten predictions into a table, most confident pick first.

    Each result is validated; failures are logged, never dropped.
    """
    validator = PredictionValidator()
    rows = []
    for result in results:
        check = validator.validate_prediction(result)
        if not check.passed:
            log.warning("Prediction %s failed validation:\n%s", result.game_id, check)
        rows.append(_row(result))

    df = pd.DataFrame(rows)
    if len(df) > 0:
        df = df.sort_values(by=["confidence", "game_id"], ascending=[False, True]).reset_index(
            drop=True
        )
    return df


def build_slate(
    orchestrator: PredictionOrchestrator, games: Iterable[ScheduledGame]
) -> Tuple[pd.DataFrame, BatchResult]:
    """Predict a batch and return (slate table, raw batch with failures)."""
    batch = orchestrator.generate_predictions(games)
    for game_id, error in batch.failures.items():
        log.warning("Game %s omitted from slate: %s", game_id, error)
    return prediction_slate(batch.predictions), batch


def grade_slate(
    slate_df: pd.DataFrame,
    finals: Mapping[str, Tuple[int, int]],
    ledger: AccuracyLedger,
) -> pd.DataFrame:
    """Join final scores onto a slate and record every graded pick.

    Args:
        slate_df: Table from prediction_slate (or its saved CSV)
        finals: game id -> (home score, away score)
        ledger: Accuracy ledger to update in place

    Returns:
        Copy of the slate with home_score, away_score and correct columns;
        games without a final (or tied) have correct = NA
        Games the ledger has already graded are not counted again.
    """
    if slate_df.empty:
        return slate_df

    graded = slate_df.copy()
    graded["game_id"] = graded["game_id"].astype(str)
    graded["home_score"] = graded["game_id"].map(lambda g: finals.get(g, (None, None))[0])
    graded["away_score"] = graded["game_id"].map(lambda g: finals.get(g, (None, None))[1])

    outcomes = []
    for _, row in graded.iterrows():
        final = finals.get(row["game_id"])
        if final is None:
            outcomes.append(pd.NA)
            continue
        correct = ledger.record_pick(
            row["sport"], row["pick_side"] == "home", final[0], final[1], game_id=row["game_id"]
        )
        outcomes.append(pd.NA if correct is None else correct)
    graded["correct"] = pd.Series(outcomes, index=graded.index, dtype="boolean")

    n_graded = int(graded["correct"].notna().sum())
    log.info(
        "Graded %d of %d games (%d correct)",
        n_graded,
        len(graded),
        int(graded["correct"].fillna(False).sum()),
    )
    return graded
