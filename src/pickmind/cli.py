from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd
from dotenv import load_dotenv

from .client import SportsDataClient, WeatherClient
from .config import Settings
from .models import ScheduledGame, TeamRef
from .orchestrator import PredictionOrchestrator
from .slate import build_slate, games_for_date, grade_slate
from .sources import JsonFileSource
from .sports import get_profile
from .tracking import AccuracyLedger
from .validation import PredictionValidator, validate_prediction

log = logging.getLogger(__name__)

# =============================================================================
# Output File Naming Convention
# =============================================================================
# All output files follow the pattern:
#   pickmind_{data_type}_{identifiers}.{ext}
#
# Examples:
#   pickmind_prediction_2031995.json   - Single game prediction
#   pickmind_slate_nfl_2024-10-20.csv  - All NFL picks for a date
#   pickmind_graded_nfl_2024-10-20.csv - Same slate joined with finals
#   pickmind_accuracy.json             - Running per-sport accuracy ledger
# =============================================================================


def _write_outputs(df: pd.DataFrame, out_base: Path) -> None:
    """Write DataFrame to CSV and JSON formats.

    Args:
        df: DataFrame to write.
        out_base: Base path without extension (e.g., data/pickmind_slate_nfl_2024-10-20).
    """
    out_base.parent.mkdir(parents=True, exist_ok=True)

    csv_path = out_base.with_suffix(".csv")
    json_path = out_base.with_suffix(".json")

    df.to_csv(csv_path, index=False)
    df.to_json(json_path, orient="records", indent=2)

    print(f"Wrote {len(df)} rows:")
    print(f"  -> {csv_path}")
    print(f"  -> {json_path}")


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def _open_source(args: argparse.Namespace, settings: Settings) -> Any:
    if args.data:
        return JsonFileSource(args.data)
    weather = WeatherClient(settings) if settings.weather_api_key else None
    return SportsDataClient(settings, weather=weather)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pickmind")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--sport", type=str, required=True, help="nfl | nba | mlb")
        p.add_argument(
            "--date", type=_parse_date, default=dt.date.today(), help="YYYY-MM-DD (default: today)"
        )
        p.add_argument(
            "--data",
            type=Path,
            default=None,
            help="Offline JSON bundle instead of TheSportsDB",
        )

    p_pred = sub.add_parser("predict", help="Predict one game")
    common(p_pred)
    p_pred.add_argument("--home-id", type=str, required=True)
    p_pred.add_argument("--home-name", type=str, default=None)
    p_pred.add_argument("--away-id", type=str, required=True)
    p_pred.add_argument("--away-name", type=str, default=None)
    p_pred.add_argument("--venue", type=str, default=None)
    p_pred.add_argument("--game-id", type=str, default=None)

    p_slate = sub.add_parser("slate", help="Predict every game for a date and sport")
    common(p_slate)

    p_grade = sub.add_parser("grade", help="Grade a saved slate against final scores")
    common(p_grade)
    p_grade.add_argument(
        "--slate", type=Path, default=None, help="Slate CSV (default: the slate command's output)"
    )
    p_grade.add_argument(
        "--ledger", type=Path, default=None, help="Accuracy ledger JSON (default: out dir)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s"
    )

    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    out_dir = Path(settings.out_dir)
    sport = get_profile(args.sport).key

    source = _open_source(args, settings)
    try:
        orchestrator = PredictionOrchestrator(
            source, lookback=settings.lookback, max_workers=settings.max_workers
        )

        if args.cmd == "predict":
            game = ScheduledGame(
                id=args.game_id or f"{args.home_id}-{args.away_id}-{args.date.isoformat()}",
                sport=sport,
                date=args.date,
                venue=args.venue,
                home_team=TeamRef(id=args.home_id, name=args.home_name or args.home_id),
                away_team=TeamRef(id=args.away_id, name=args.away_name or args.away_id),
            )
            result = orchestrator.generate_prediction(game)
            check = validate_prediction(result)
            if not check.passed:
                log.warning("%s", check)

            path = out_dir / f"pickmind_prediction_{game.id}.json"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")

            print(f"{game.away_team.name} @ {game.home_team.name} ({args.date})")
            print(f"  Pick: {result.winner.name} ({result.confidence}% confidence)")
            print(
                f"  Score: {result.predicted_score.home}-{result.predicted_score.away} "
                f"(total {result.predicted_score.total})"
            )
            print(f"  Risk: {result.risk_assessment.level}  Data quality: {result.data_quality.score}")
            print(f"  {result.analysis}")
            print(f"  -> {path}")

        elif args.cmd == "slate":
            games = games_for_date(args.date, sport, client=source)
            if not games:
                print(f"No {sport} games found for {args.date}")
                return

            df, batch = build_slate(orchestrator, games)
            slate_check = PredictionValidator().validate_slate(df)
            if not slate_check.passed:
                print(slate_check)

            if not df.empty:
                _write_outputs(df, out_dir / f"pickmind_slate_{sport}_{args.date.isoformat()}")

            print(f"\nSlate summary for {sport} {args.date}:")
            print(f"  Games: {len(games)}")
            print(f"  Predicted: {len(batch.predictions)}")
            if batch.failures:
                print(f"  Failed: {len(batch.failures)}")
                for game_id, error in batch.failures.items():
                    print(f"    - {game_id}: {error}")

        elif args.cmd == "grade":
            slate_path = args.slate or out_dir / f"pickmind_slate_{sport}_{args.date.isoformat()}.csv"
            if not slate_path.exists():
                print(f"ERROR: slate not found: {slate_path}")
                raise SystemExit(1)
            ledger_path = args.ledger or out_dir / "pickmind_accuracy.json"

            slate_df = pd.read_csv(slate_path, dtype={"game_id": str})
            finals = source.final_scores(args.date, sport)
            ledger = AccuracyLedger.load(ledger_path)
            graded = grade_slate(slate_df, finals, ledger)
            ledger.save(ledger_path)

            _write_outputs(graded, out_dir / f"pickmind_graded_{sport}_{args.date.isoformat()}")
            counts = ledger.counts(sport)
            print(f"\n{sport} accuracy: {counts.correct}/{counts.total} ({ledger.percentage(sport)}%)")
            print(f"  -> {ledger_path}")

    finally:
        if hasattr(source, "close"):
            source.close()


if __name__ == "__main__":
    main()
