from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .cache import FileCache
from .config import Settings
from .exceptions import DataSourceClientError
from .http import RateLimiter, request_json
from .models import GameRecord, InjuryEntry, ScheduledGame, WeatherReport
from .sources import meetings_between
from .sports import get_profile

log = logging.getLogger(__name__)

# TheSportsDB league ids
LEAGUE_IDS = {
    "nfl": "4391",
    "nba": "4387",
    "mlb": "4424",
}

MM_PER_INCH = 25.4


class SportsDataClient:
    """
    TheSportsDB wrapper implementing the SportsDataSource reads:
      - /eventslast.php?id=<team>        recent results
      - /lookuptable.php?l=<league>&s=<season>  standings row as season stats
      - /eventsday.php?d=<date>&l=<league>      the day's fixtures

    The provider has no injury feed, so fetch_injuries always reports a
    healthy roster. Weather is delegated to an optional WeatherClient.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        weather: Optional["WeatherClient"] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.base_url = f"{settings.sportsdb_base_url.rstrip('/')}/{settings.sportsdb_api_key}"
        self._http = httpx.Client(base_url=self.base_url, transport=transport)
        self._cache = FileCache(settings.cache_dir, settings.cache_ttl_seconds)
        self._rl = RateLimiter(settings.rate_limit_rps)
        self.weather = weather

    def close(self) -> None:
        self._http.close()
        if self.weather is not None:
            self.weather.close()

    def __enter__(self) -> "SportsDataClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        cache_key = f"{self.base_url}{path}?{sorted(params.items())}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        payload = request_json(
            client=self._http,
            method="GET",
            url=path,
            params=params,
            timeout=self.settings.timeout_seconds,
            max_retries=self.settings.max_retries,
            backoff_base=self.settings.backoff_base_seconds,
            rate_limiter=self._rl,
        )
        if not isinstance(payload, dict):
            raise DataSourceClientError(f"Unexpected payload from {path}: {type(payload).__name__}")
        self._cache.set(cache_key, payload)
        return payload

    @staticmethod
    def _league_id(sport: str) -> str:
        return LEAGUE_IDS[get_profile(sport).key]

    @staticmethod
    def _events(raw: Optional[List[Dict[str, Any]]]) -> List[GameRecord]:
        games = []
        for event in raw or []:
            try:
                games.append(GameRecord.model_validate(event))
            except ValidationError as e:
                log.warning("Skipping malformed event %s: %s", event.get("idEvent"), e)
        return games

    # ---- SportsDataSource ----

    def fetch_recent_games(self, team_id: str, limit: int) -> List[GameRecord]:
        payload = self._get("/eventslast.php", {"id": team_id})
        games = sorted(self._events(payload.get("results")), key=lambda g: g.date, reverse=True)
        return games[:limit]

    def fetch_season_stats(self, team_id: str, sport: str) -> Dict[str, Any]:
        payload = self._get(
            "/lookuptable.php",
            {"l": self._league_id(sport), "s": self.settings.current_season},
        )
        for row in payload.get("table") or []:
            if str(row.get("idTeam")) == str(team_id):
                return {
                    "played": row.get("intPlayed"),
                    "wins": row.get("intWin"),
                    "losses": row.get("intLoss"),
                    "draws": row.get("intDraw"),
                    "points": row.get("intPoints"),
                    "points_for": row.get("intGoalsFor"),
                    "points_against": row.get("intGoalsAgainst"),
                    "point_difference": row.get("intGoalDifference"),
                }
        log.debug("Team %s not in %s standings for %s", team_id, sport, self.settings.current_season)
        return {}

    def fetch_injuries(self, team_id: str) -> List[InjuryEntry]:
        log.debug("TheSportsDB has no injury feed - team %s treated as healthy", team_id)
        return []

    def fetch_head_to_head(
        self, home_team_id: str, away_team_id: str, sport: str
    ) -> List[GameRecord]:
        recent = self.fetch_recent_games(home_team_id, self.settings.lookback)
        return meetings_between(recent, home_team_id, away_team_id)

    def fetch_weather(self, venue: Optional[str], date: dt.date) -> Optional[WeatherReport]:
        if self.weather is None or not venue:
            return None
        return self.weather.forecast(venue, date)

    # ---- schedule ----

    def games_by_date(self, date: dt.date, sport: str) -> List[ScheduledGame]:
        profile = get_profile(sport)
        payload = self._get(
            "/eventsday.php", {"d": date.isoformat(), "l": self._league_id(profile.key)}
        )
        games = []
        for event in payload.get("events") or []:
            try:
                games.append(ScheduledGame.from_event(event, profile.key))
            except ValidationError as e:
                log.warning("Skipping malformed fixture %s: %s", event.get("idEvent"), e)
        return games

    def final_scores(self, date: dt.date, sport: str) -> Dict[str, tuple[int, int]]:
        """Game id -> (home score, away score) for the day's completed games."""
        payload = self._get(
            "/eventsday.php", {"d": date.isoformat(), "l": self._league_id(sport)}
        )
        return {
            g.id: (g.home_score, g.away_score)  # type: ignore[misc]
            for g in self._events(payload.get("events"))
            if g.id and g.is_completed
        }


class WeatherClient:
    """
    OpenWeatherMap 5-day/3-hour forecast, looked up by venue name.

    Units are imperial (F, mph); rain and snow volumes (mm over 3h) are
    summed and converted to inches. The slot closest to the game's nominal
    start time is used.
    """

    GAME_START_UTC = dt.time(18, 0)

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        if not settings.weather_api_key:
            raise ValueError("WeatherClient requires PICKMIND_WEATHER_API_KEY")
        self.settings = settings
        self._http = httpx.Client(base_url=settings.weather_base_url, transport=transport)
        self._cache = FileCache(settings.cache_dir, settings.cache_ttl_seconds)
        self._rl = RateLimiter(0)

    def close(self) -> None:
        self._http.close()

    def forecast(self, venue: str, date: dt.date) -> Optional[WeatherReport]:
        params = {"q": venue, "appid": self.settings.weather_api_key, "units": "imperial"}
        cache_key = f"{self.settings.weather_base_url}/forecast?{venue}"
        payload = self._cache.get(cache_key)
        if payload is None:
            payload = request_json(
                client=self._http,
                method="GET",
                url="/forecast",
                params=params,
                timeout=self.settings.timeout_seconds,
                max_retries=self.settings.max_retries,
                backoff_base=self.settings.backoff_base_seconds,
                rate_limiter=self._rl,
            )
            self._cache.set(cache_key, payload)

        try:
            return self._closest_report(payload, date, venue)
        except (ValueError, TypeError, AttributeError) as e:
            # drop the bad payload so the next call refetches it
            self._cache.invalidate(cache_key)
            raise DataSourceClientError(f"Malformed forecast for {venue}: {e}") from e

    def _closest_report(
        self, payload: Any, date: dt.date, venue: str
    ) -> Optional[WeatherReport]:
        slots = payload.get("list") or []
        if not slots:
            return None

        kickoff = dt.datetime.combine(date, self.GAME_START_UTC, tzinfo=dt.timezone.utc).timestamp()
        best = min(slots, key=lambda s: abs(float(s.get("dt", 0)) - kickoff))
        # forecast only covers five days out
        if abs(float(best.get("dt", 0)) - kickoff) > 3 * 3600:
            log.debug("No forecast slot near %s for %s", date, venue)
            return None

        main = best.get("main") or {}
        wind = best.get("wind") or {}
        rain_mm = float((best.get("rain") or {}).get("3h", 0.0))
        snow_mm = float((best.get("snow") or {}).get("3h", 0.0))

        return WeatherReport(
            temperature=float(main.get("temp", 70.0)),
            wind_speed=float(wind.get("speed", 0.0)),
            precipitation=round((rain_mm + snow_mm) / MM_PER_INCH, 3),
        )
