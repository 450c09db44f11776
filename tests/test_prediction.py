"""Tests for the sport-parameterised predictor: probabilities, scores, rationale and risk."""

from __future__ import annotations

import dataclasses

import pytest

from pickmind.analytics import (
    ClutchSummary,
    ConsistencySummary,
    FormSummary,
    MomentumSummary,
    assess_injury_impact,
    build_team_analytics,
    default_team_analytics,
)
from pickmind.exceptions import PredictionInvariantError
from pickmind.matchup import HeadToHead, MatchupContext, WeatherImpact
from pickmind.models import InjuryEntry, TeamRef
from pickmind.prediction import ANALYSIS_NOISE_THRESHOLDS, SportPredictor
from pickmind.sports import COURT, DIAMOND, GRIDIRON

HOME = TeamRef(id="H", name="Home Team")
AWAY = TeamRef(id="A", name="Away Team")

INJURY_SENTENCE = "Significant injury concerns may impact game outcome"


def _analytics(team: TeamRef, profile=GRIDIRON, **changes):
    return dataclasses.replace(default_team_analytics(team, profile), is_fallback=False, **changes)


def _form(weighted: float, trend: str) -> FormSummary:
    return FormSummary(
        form=weighted,
        weighted_form=weighted,
        trend=trend,
        streak=0,
        recent_record="0-0",
        margin_trend=0.0,
        dominance_rating=50,
    )


class TestScenarios:
    """End-to-end predictor scenarios."""

    def test_stronger_home_team_indoor(self):
        """Strength 70 vs 50 on a court: home favored."""
        predictor = SportPredictor(COURT)

        out = predictor.predict(
            _analytics(HOME, COURT, strength=70), _analytics(AWAY, COURT, strength=50)
        )

        assert out.home_win_probability == pytest.approx(0.5 + 0.2 + 0.04)
        assert out.winner.side == "home"
        assert out.winner.team_id == "H"
        assert out.probabilities.home == 74
        assert out.probabilities.away == 26
        assert out.confidence == 48

    def test_identical_empty_teams_gridiron(self):
        """No games either side: only home advantage separates them."""
        home = build_team_analytics(HOME, [], profile=GRIDIRON)
        away = build_team_analytics(AWAY, [], profile=GRIDIRON)

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert out.probabilities.home == 53
        assert out.probabilities.away == 47
        assert out.confidence == 6
        assert out.predicted_score.home == 21
        assert out.predicted_score.away == 21

    def test_severe_away_injuries(self):
        """Away severe injury impact favors home and raises an injury risk."""
        injuries = [InjuryEntry(player_name=f"Starter {i}", severity="out") for i in range(4)]
        home = build_team_analytics(HOME, [], profile=GRIDIRON)
        away = build_team_analytics(AWAY, [], profile=GRIDIRON, injuries=injuries)

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert away.injury_impact.severity == "severe"
        assert out.factors.injury_factor > 0
        assert INJURY_SENTENCE in out.risk_assessment.reasons
        assert "Away Team is dealing with severe injury concerns (Starter 0" in out.analysis


class TestProbabilities:
    """Test clamping and probability bookkeeping."""

    def test_probability_clamped_high(self):
        out = SportPredictor(GRIDIRON).predict(
            _analytics(HOME, strength=100), _analytics(AWAY, strength=0)
        )

        assert out.home_win_probability == pytest.approx(0.95)
        assert out.probabilities.home == 95
        assert out.probabilities.away == 5
        assert out.confidence == 90

    def test_probability_clamped_low_picks_away(self):
        out = SportPredictor(GRIDIRON).predict(
            _analytics(HOME, strength=20), _analytics(AWAY, strength=80)
        )

        assert out.home_win_probability == pytest.approx(0.05)
        assert out.winner.side == "away"
        assert out.winner.name == "Away Team"
        assert out.winner.probability == pytest.approx(0.95)
        assert out.analysis.startswith("Away Team is favored with a 95% win probability.")
        assert "significant mismatch" in out.analysis

    @pytest.mark.parametrize("profile", [GRIDIRON, COURT, DIAMOND])
    def test_percentages_sum_to_100(self, profile):
        out = SportPredictor(profile).predict(
            _analytics(HOME, profile, strength=57), _analytics(AWAY, profile, strength=44)
        )

        assert out.probabilities.home + out.probabilities.away == 100
        assert 0 <= out.confidence <= 100

    def test_identical_teams_only_differ_by_home_advantage(self):
        """Swapping two identical teams gives the same home probability."""
        a = _analytics(HOME, strength=61)
        b = _analytics(AWAY, strength=61)
        predictor = SportPredictor(DIAMOND)

        assert predictor.predict(a, b).home_win_probability == pytest.approx(0.52)
        assert predictor.predict(b, a).home_win_probability == pytest.approx(0.52)

    def test_non_finite_probability_raises(self):
        """NaN slips past the bound check but never reaches a result."""
        home = _analytics(HOME, clutch_performance=ClutchSummary(50, "0-0", float("nan")))

        with pytest.raises(PredictionInvariantError):
            SportPredictor(GRIDIRON).predict(home, _analytics(AWAY))

    def test_out_of_range_factor_raises(self):
        home = _analytics(HOME, momentum=MomentumSummary(score=900, trend="positive", velocity=50))

        with pytest.raises(PredictionInvariantError):
            SportPredictor(GRIDIRON).predict(home, _analytics(AWAY))


class TestPredictedScore:
    """Test projected scores."""

    def test_adjustment_uses_sport_coefficients(self):
        """Court: 0.2 strength edge * 8 points = +/-1.6."""
        out = SportPredictor(COURT).predict(
            _analytics(HOME, COURT, strength=70), _analytics(AWAY, COURT, strength=50)
        )

        assert out.predicted_score.home == 112
        assert out.predicted_score.away == 108
        assert out.predicted_score.total == 220
        assert out.predicted_score.spread == 4

    def test_scores_never_negative(self):
        home = _analytics(HOME, DIAMOND, strength=100)
        away = _analytics(AWAY, DIAMOND, strength=0)
        away = dataclasses.replace(
            away, basic_stats=dataclasses.replace(away.basic_stats, average_score=0.5)
        )

        out = SportPredictor(DIAMOND).predict(home, away)

        assert out.predicted_score.away == 0


class TestAnalysis:
    """Test the rationale text."""

    def test_hot_form_mentioned_when_factor_is_signal(self):
        home = _analytics(HOME, strength=60, form=_form(0.8, "hot"))
        away = _analytics(AWAY, form=_form(0.2, "cold"))

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert "Home Team enters this game in hot form" in out.analysis

    def test_noise_level_form_not_mentioned(self):
        """Labels say hot/cold but the weighted difference is tiny."""
        home = _analytics(HOME, strength=60, form=_form(0.51, "hot"))
        away = _analytics(AWAY, form=_form(0.50, "cold"))

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert abs(out.factors.form_differential) < ANALYSIS_NOISE_THRESHOLDS["form_differential"]
        assert "hot form" not in out.analysis

    def test_form_sentence_requires_factor_toward_favorite(self):
        """A 'hot' favorite whose weighted form trails is not credited."""
        home = _analytics(HOME, strength=90, form=_form(0.3, "hot"))
        away = _analytics(AWAY, strength=30, form=_form(0.9, "cold"))

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert out.winner.side == "home"
        assert "hot form" not in out.analysis

    def test_momentum_sentence(self):
        home = _analytics(
            HOME, strength=65, momentum=MomentumSummary(score=80, trend="positive", velocity=12)
        )
        away = _analytics(AWAY, momentum=MomentumSummary(score=20, trend="negative", velocity=-12))

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert "Home Team has positive momentum while Away Team is trending downward." in out.analysis

    def test_even_strength_sentence(self):
        out = SportPredictor(GRIDIRON).predict(
            _analytics(HOME, strength=55), _analytics(AWAY, strength=50)
        )

        assert "evenly matched" in out.analysis

    def test_severe_weather_sentence(self):
        context = MatchupContext(weather=WeatherImpact(impact=-5, conditions="cold, windy"))

        out = SportPredictor(GRIDIRON).predict(_analytics(HOME), _analytics(AWAY), context)

        assert "Weather conditions (cold, windy) may favor defensive play" in out.analysis

    def test_mild_weather_not_mentioned(self):
        context = MatchupContext(weather=WeatherImpact(impact=-2, conditions="cold"))

        out = SportPredictor(GRIDIRON).predict(_analytics(HOME), _analytics(AWAY), context)

        assert "Weather conditions" not in out.analysis

    def test_injury_sentence_names_hurt_team(self):
        injured = assess_injury_impact(
            [InjuryEntry(player_name="Starting QB", severity="out", importance=10)]
        )
        away = _analytics(AWAY, injury_impact=injured)

        out = SportPredictor(GRIDIRON).predict(_analytics(HOME), away)

        assert injured.severity == "moderate"
        assert (
            "Away Team is dealing with moderate injury concerns (Starting QB) "
            "that could impact their performance." in out.analysis
        )

    def test_injuries_below_minor_not_mentioned(self):
        """A single importance-3 absence clears the factor threshold but buckets as none."""
        injured = assess_injury_impact(
            [InjuryEntry(player_name="Backup LB", severity="out", importance=3)]
        )
        away = _analytics(AWAY, injury_impact=injured)

        out = SportPredictor(GRIDIRON).predict(_analytics(HOME), away)

        assert injured.severity == "none"
        assert out.factors.injury_factor >= ANALYSIS_NOISE_THRESHOLDS["injury_factor"]
        assert "injury concerns" not in out.analysis
        assert "none injury" not in out.analysis

    def test_offsetting_injuries_not_mentioned(self):
        """Both sides hurt; the net difference is below the noise threshold."""
        home = _analytics(
            HOME,
            injury_impact=assess_injury_impact(
                [InjuryEntry(player_name="WR1", severity="out", importance=10)]
            ),
        )
        away = _analytics(
            AWAY,
            injury_impact=assess_injury_impact(
                [InjuryEntry(player_name="CB1", severity="out", importance=8)]
            ),
        )

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert abs(out.factors.injury_factor) < ANALYSIS_NOISE_THRESHOLDS["injury_factor"]
        assert "injury concerns" not in out.analysis

    def test_head_to_head_sentence(self):
        h2h = HeadToHead(
            advantage="away",
            factor=-2.0,
            recent_trend="away",
            record="1-4",
            recent_record="1-4",
            meetings=5,
        )

        out = SportPredictor(GRIDIRON).predict(
            _analytics(HOME), _analytics(AWAY), MatchupContext(head_to_head=h2h)
        )

        assert (
            "Away Team has historically had the upper hand in this matchup "
            "(Home Team 1-4 in 5 meetings)." in out.analysis
        )

    def test_noise_level_head_to_head_not_mentioned(self):
        h2h = HeadToHead(
            advantage="home",
            factor=0.4,
            recent_trend="even",
            record="3-2",
            recent_record="3-2",
            meetings=5,
        )

        out = SportPredictor(GRIDIRON).predict(
            _analytics(HOME), _analytics(AWAY), MatchupContext(head_to_head=h2h)
        )

        assert (
            abs(out.factors.head_to_head_factor) < ANALYSIS_NOISE_THRESHOLDS["head_to_head_factor"]
        )
        assert "upper hand" not in out.analysis


class TestKeyMatchupsAndRisk:
    """Test key matchups and the risk assessment."""

    def test_offense_vs_defense_matchup(self):
        home = _analytics(HOME)
        home = dataclasses.replace(
            home, basic_stats=dataclasses.replace(home.basic_stats, offensive_rating=80)
        )
        away = _analytics(AWAY)
        away = dataclasses.replace(
            away, basic_stats=dataclasses.replace(away.basic_stats, defensive_rating=30)
        )

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert [(m.type, m.description) for m in out.key_matchups] == [
            ("advantage", "Home Team strong offense vs Away Team weak defense")
        ]

    def test_clutch_gap_matchup(self):
        away = _analytics(AWAY, clutch_performance=ClutchSummary(80, "4-1", 6.0))

        out = SportPredictor(GRIDIRON).predict(_analytics(HOME), away)

        assert out.key_matchups[-1].type == "clutch"
        assert out.key_matchups[-1].description.startswith("Away Team")

    def test_confident_pick_is_low_risk(self):
        out = SportPredictor(COURT).predict(
            _analytics(HOME, COURT, strength=90), _analytics(AWAY, COURT, strength=40)
        )

        assert out.risk_assessment.level == "low"
        assert out.risk_assessment.reasons == ()

    def test_three_signals_is_high_risk(self):
        shaky = ConsistencySummary(score=20, variance=900.0, reliability="low")
        injuries = [InjuryEntry(player_name=f"P{i}", severity="out") for i in range(4)]
        home = _analytics(HOME, consistency=shaky)
        away = dataclasses.replace(
            build_team_analytics(AWAY, [], profile=GRIDIRON, injuries=injuries), consistency=shaky
        )

        out = SportPredictor(GRIDIRON).predict(home, away)

        assert out.risk_assessment.level == "high"
        assert len(out.risk_assessment.reasons) == 3

    def test_close_game_is_medium_risk(self):
        out = SportPredictor(GRIDIRON).predict(_analytics(HOME), _analytics(AWAY))

        assert out.risk_assessment.level == "medium"
        assert out.risk_assessment.reasons == ("Low confidence prediction due to close matchup",)


class TestModelInfoAndPurity:
    """Test model identity and determinism."""

    def test_model_info_from_profile(self):
        info = SportPredictor(COURT).model_info

        assert info.name == "Enhanced NBA Prediction Model v2.0"
        assert info.sport == "NBA"
        assert "pace" in info.factors

    def test_same_inputs_same_output(self):
        predictor = SportPredictor(GRIDIRON)
        home = _analytics(HOME, strength=58, form=_form(0.7, "hot"))
        away = _analytics(AWAY, strength=49)

        assert predictor.predict(home, away) == predictor.predict(home, away)
