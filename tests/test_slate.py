"""Tests for slate tables and grading."""

from __future__ import annotations

import pandas as pd
import pytest

from pickmind.orchestrator import PredictionOrchestrator
from pickmind.slate import build_slate, games_for_date, grade_slate, prediction_slate
from pickmind.sources import JsonFileSource
from pickmind.tracking import AccuracyLedger

from conftest import GAME_DAY


@pytest.fixture
def source(bundle_path):
    return JsonFileSource(bundle_path)


@pytest.fixture
def slate_df(source):
    df, _ = build_slate(PredictionOrchestrator(source), games_for_date(GAME_DAY, "nfl", client=source))
    return df


class TestBuildSlate:
    """Test slate construction."""

    def test_games_for_date_uses_given_client(self, source):
        games = games_for_date(GAME_DAY, "nfl", client=source)

        assert [g.id for g in games] == ["g1", "g2"]

    def test_one_row_per_prediction_most_confident_first(self, slate_df):
        assert len(slate_df) == 2
        assert list(slate_df["confidence"]) == sorted(slate_df["confidence"], reverse=True)
        assert (slate_df["home_win_pct"] + slate_df["away_win_pct"] == 100).all()
        assert slate_df.iloc[0]["pick"] == "Kansas City Chiefs"

    def test_columns(self, slate_df):
        for col in ("game_id", "pick_side", "proj_total", "risk_level", "data_quality", "analysis"):
            assert col in slate_df.columns

    def test_empty_results(self):
        assert prediction_slate([]).empty

    def test_failures_reported_separately(self, source):
        orch = PredictionOrchestrator(source, fallback_on_fetch_error=False)

        df, batch = build_slate(orch, games_for_date(GAME_DAY, "nfl", client=source))

        assert list(df["game_id"]) == ["g1"]
        assert set(batch.failures) == {"g2"}


class TestGradeSlate:
    """Test joining finals and recording accuracy."""

    def test_grades_and_records(self, slate_df, source):
        ledger = AccuracyLedger()

        graded = grade_slate(slate_df, source.final_scores(GAME_DAY, "nfl"), ledger)
        by_id = graded.set_index("game_id")

        # g1: Chiefs picked, won 27-20; g2: Broncos picked, lost 10-24
        assert by_id.loc["g1", "correct"] == True  # noqa: E712
        assert by_id.loc["g2", "correct"] == False  # noqa: E712
        assert by_id.loc["g1", "home_score"] == 27
        assert ledger.counts("nfl").total == 2
        assert ledger.percentage("nfl") == pytest.approx(50.0)

    def test_missing_finals_and_ties_are_not_graded(self, slate_df):
        ledger = AccuracyLedger()

        graded = grade_slate(slate_df, {"g1": (17, 17)}, ledger)

        assert graded["correct"].isna().all()
        assert ledger.counts("nfl").total == 0

    def test_grades_slate_read_back_from_csv(self, slate_df, source, tmp_path):
        path = tmp_path / "slate.csv"
        slate_df.to_csv(path, index=False)
        ledger = AccuracyLedger()

        graded = grade_slate(
            pd.read_csv(path, dtype={"game_id": str}), source.final_scores(GAME_DAY, "nfl"), ledger
        )

        assert int(graded["correct"].sum()) == 1

    def test_empty_slate(self):
        graded = grade_slate(pd.DataFrame(), {}, AccuracyLedger())

        assert graded.empty

    def test_regrading_does_not_double_count(self, slate_df, source):
        ledger = AccuracyLedger()
        finals = source.final_scores(GAME_DAY, "nfl")

        first = grade_slate(slate_df, finals, ledger)
        second = grade_slate(slate_df, finals, ledger)

        assert ledger.counts("nfl").total == 2
        assert ledger.counts("nfl").correct == 1
        assert list(second["correct"]) == list(first["correct"])
