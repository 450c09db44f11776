"""Prediction accuracy bookkeeping.

The ledger is owned by whoever grades predictions (the CLI `grade` command,
a notebook, a scheduled job). The prediction engine never reads or writes
it, so predictions stay pure.

Usage:
    ledger = AccuracyLedger.load(Path("data/accuracy.json"))
    ledger.record(result, home_score=27, away_score=20)
    ledger.save(Path("data/accuracy.json"))
    print(ledger.percentage("nfl"))
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .orchestrator import PredictionResult
from .sports import get_profile

log = logging.getLogger(__name__)


@dataclass
class SportAccuracy:
    correct: int = 0
    total: int = 0

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return round(self.correct / self.total * 100, 1)


class AccuracyLedger:
    """Per-sport correct/total counts of graded winner picks.

    Picks recorded with a game id are counted once; grading the same game
    again returns the stored outcome and leaves the counts alone.
    """

    def __init__(
        self,
        counts: Optional[Dict[str, SportAccuracy]] = None,
        graded: Optional[Dict[str, Dict[str, bool]]] = None,
    ) -> None:
        self._counts: Dict[str, SportAccuracy] = dict(counts or {})
        self._graded: Dict[str, Dict[str, bool]] = {
            sport: dict(games) for sport, games in (graded or {}).items()
        }
        self._lock = threading.Lock()

    def record_pick(
        self,
        sport: str,
        picked_home: bool,
        home_score: int,
        away_score: int,
        game_id: Optional[str] = None,
    ) -> Optional[bool]:
        """Grade one pick. Ties are not graded and return None."""
        if home_score == away_score:
            log.info("Tie %d-%d in %s game not graded", home_score, away_score, sport)
            return None

        key = get_profile(sport).key
        correct = picked_home == (home_score > away_score)
        with self._lock:
            seen = self._graded.setdefault(key, {})
            if game_id is not None and game_id in seen:
                log.debug("%s game %s already graded", key, game_id)
                return seen[game_id]

            entry = self._counts.setdefault(key, SportAccuracy())
            entry.total += 1
            if correct:
                entry.correct += 1
            if game_id is not None:
                seen[game_id] = correct
        return correct

    def record(self, result: PredictionResult, home_score: int, away_score: int) -> Optional[bool]:
        return self.record_pick(
            result.sport, result.winner.side == "home", home_score, away_score, result.game_id
        )

    def is_graded(self, sport: str, game_id: str) -> bool:
        return game_id in self._graded.get(get_profile(sport).key, {})

    def percentage(self, sport: str) -> float:
        entry = self._counts.get(get_profile(sport).key)
        return entry.percentage if entry else 0.0

    def counts(self, sport: str) -> SportAccuracy:
        entry = self._counts.get(get_profile(sport).key, SportAccuracy())
        return SportAccuracy(entry.correct, entry.total)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {
                sport: {
                    "correct": e.correct,
                    "total": e.total,
                    "percentage": e.percentage,
                    "graded": dict(sorted(self._graded.get(sport, {}).items())),
                }
                for sport, e in sorted(self._counts.items())
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, Any]]) -> "AccuracyLedger":
        return cls(
            counts={
                sport: SportAccuracy(correct=int(v.get("correct", 0)), total=int(v.get("total", 0)))
                for sport, v in data.items()
            },
            graded={
                sport: {str(g): bool(c) for g, c in v.get("graded", {}).items()}
                for sport, v in data.items()
            },
        )

    @classmethod
    def load(cls, path: Path) -> "AccuracyLedger":
        if not path.exists():
            return cls()
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
