from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import os


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    return default if val is None or val.strip() == "" else int(val)


def _env_float(key: str, default: float) -> float:
    val = os.getenv(key)
    return default if val is None or val.strip() == "" else float(val)


def _env_str(key: str, default: str) -> str:
    val = os.getenv(key)
    return default if val is None or val.strip() == "" else val


@dataclass(frozen=True)
class Settings:
    sportsdb_api_key: str = "3"
    sportsdb_base_url: str = "https://www.thesportsdb.com/api/v1/json"
    weather_api_key: str = ""
    weather_base_url: str = "https://api.openweathermap.org/data/2.5"
    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    # free tier allows roughly one request every two seconds
    rate_limit_rps: float = 0.5
    cache_dir: str = ".cache/pickmind"
    cache_ttl_seconds: int = 3600
    out_dir: str = "data"
    lookback: int = 10
    max_workers: int = 4
    season: str = ""

    @property
    def current_season(self) -> str:
        return self.season or str(date.today().year)

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            sportsdb_api_key=_env_str("PICKMIND_SPORTSDB_API_KEY", "3"),
            sportsdb_base_url=_env_str(
                "PICKMIND_SPORTSDB_BASE_URL", "https://www.thesportsdb.com/api/v1/json"
            ),
            weather_api_key=os.getenv("PICKMIND_WEATHER_API_KEY", "").strip(),
            weather_base_url=_env_str(
                "PICKMIND_WEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5"
            ),
            timeout_seconds=_env_float("PICKMIND_TIMEOUT_SECONDS", 15.0),
            max_retries=_env_int("PICKMIND_MAX_RETRIES", 3),
            backoff_base_seconds=_env_float("PICKMIND_BACKOFF_BASE_SECONDS", 1.0),
            rate_limit_rps=_env_float("PICKMIND_RATE_LIMIT_RPS", 0.5),
            cache_dir=_env_str("PICKMIND_CACHE_DIR", ".cache/pickmind"),
            cache_ttl_seconds=_env_int("PICKMIND_CACHE_TTL_SECONDS", 3600),
            out_dir=_env_str("PICKMIND_OUT_DIR", "data"),
            lookback=_env_int("PICKMIND_LOOKBACK", 10),
            max_workers=_env_int("PICKMIND_MAX_WORKERS", 4),
            season=_env_str("PICKMIND_SEASON", ""),
        )
