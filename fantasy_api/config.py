# fantasy_api/config.py
from __future__ import annotations

import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, "1" if default else "0").lower()
    return raw in {"1", "true", "yes", "on"}


# -------------------------
# Cricbuzz scraping
# -------------------------
CRICBUZZ_BASE_URL: str = _get_env("CRICBUZZ_BASE_URL", "https://www.cricbuzz.com")

LIVE_SCORES_PATH: str = _get_env("LIVE_SCORES_PATH", "/cricket-match/live-scores")
UPCOMING_PATH: str = _get_env("UPCOMING_PATH", "/cricket-schedule/upcoming-series")

# Identity headers sent with every page request
SCRAPER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
    "Accept": "text/html",
    "Accept-Language": "en-US,en;q=0.9",
}

SCRAPER_TIMEOUT_SECONDS: float = _get_env_float("SCRAPER_TIMEOUT_SECONDS", 15.0)

# Politeness delays between outbound requests
SCRAPER_DELAY_SECONDS: float = _get_env_float("SCRAPER_DELAY_SECONDS", 3.0)
MATCH_LIST_DELAY_SECONDS: float = _get_env_float("MATCH_LIST_DELAY_SECONDS", 0.25)

# Detail-page format lookups per listing call (last resort)
FORMAT_ENRICH_MAX: int = _get_env_int("FORMAT_ENRICH_MAX", 8)
FORMAT_ENRICH_DELAY_SECONDS: float = _get_env_float("FORMAT_ENRICH_DELAY_SECONDS", 0.15)


# -------------------------
# Cache TTLs (per purpose)
# -------------------------
MATCH_LIST_CACHE_TTL_SECONDS: int = _get_env_int("MATCH_LIST_CACHE_TTL_SECONDS", 60)
MATCH_FORMAT_CACHE_TTL_SECONDS: int = _get_env_int("MATCH_FORMAT_CACHE_TTL_SECONDS", 6 * 3600)
SQUADS_CACHE_TTL_SECONDS: int = _get_env_int("SQUADS_CACHE_TTL_SECONDS", 5 * 60)
SCORECARD_CACHE_TTL_SECONDS: int = _get_env_int("SCORECARD_CACHE_TTL_SECONDS", 60)


# -------------------------
# Selection + scoring
# -------------------------
MIN_PLAYERS_PER_SIDE: int = _get_env_int("MIN_PLAYERS_PER_SIDE", 6)
MAX_PLAYERS_PER_SIDE: int = _get_env_int("MAX_PLAYERS_PER_SIDE", 9)
CAPTAIN_MULTIPLIER: float = _get_env_float("CAPTAIN_MULTIPLIER", 2.0)


# -------------------------
# Background stats polling
# -------------------------
ENABLE_STATS_POLLING: bool = _get_env_bool("ENABLE_STATS_POLLING", True)
STATS_POLL_INTERVAL_SECONDS: int = _get_env_int("STATS_POLL_INTERVAL_SECONDS", 15 * 60)
STATS_POLL_MAX_SESSIONS: int = _get_env_int("STATS_POLL_MAX_SESSIONS", 10)
STATS_POLL_LOOKBACK_HOURS: int = _get_env_int("STATS_POLL_LOOKBACK_HOURS", 72)

LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO").upper()


def cache_ttls() -> dict:
    """Default TTL (seconds) for every cache purpose used by the scrapers."""
    return {
        "match_list": MATCH_LIST_CACHE_TTL_SECONDS,
        "match_format": MATCH_FORMAT_CACHE_TTL_SECONDS,
        "squads": SQUADS_CACHE_TTL_SECONDS,
        "scorecard": SCORECARD_CACHE_TTL_SECONDS,
    }


def validate_config() -> None:
    # Basic URL sanity
    if not CRICBUZZ_BASE_URL.startswith("http"):
        raise RuntimeError("CRICBUZZ_BASE_URL must start with http/https")

    if SCRAPER_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("SCRAPER_TIMEOUT_SECONDS must be positive")

    if SCRAPER_DELAY_SECONDS < 0 or MATCH_LIST_DELAY_SECONDS < 0 or FORMAT_ENRICH_DELAY_SECONDS < 0:
        raise RuntimeError("Scraper delays must not be negative")

    # TTL validation
    for purpose, ttl in cache_ttls().items():
        if ttl <= 0:
            raise RuntimeError(f"Cache TTL for {purpose} must be positive")

    if MIN_PLAYERS_PER_SIDE <= 0 or MAX_PLAYERS_PER_SIDE < MIN_PLAYERS_PER_SIDE:
        raise RuntimeError("MIN/MAX_PLAYERS_PER_SIDE are inconsistent")

    if STATS_POLL_INTERVAL_SECONDS <= 0:
        raise RuntimeError("STATS_POLL_INTERVAL_SECONDS must be positive")

    if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise RuntimeError(f"Unknown LOG_LEVEL: {LOG_LEVEL}")
