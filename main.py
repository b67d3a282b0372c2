# main.py
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from fantasy_api.config import LOG_LEVEL, validate_config
from fantasy_api.core import FantasyCore
from fantasy_api.errors import NotFound, PreconditionViolation, UpstreamUnavailable

logger = logging.getLogger(__name__)

# -----------------------
# App
# -----------------------
core = FantasyCore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging, config check, stats poller. Shutdown: stop poller and release clients."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    validate_config()
    if core.poller.start():
        logger.info("Stats polling started")
    yield
    core.close()


app = FastAPI(
    title="Fantasy Cricket Scoring API",
    version="0.1.0",
    description="Live match listings, squads, scorecard stats ingestion and fantasy points for friend-vs-friend sessions",
    lifespan=lifespan,
)


@app.get("/health")
def health_check():
    return {"status": "ok", "time": datetime.utcnow().isoformat() + "Z"}


# -----------------------
# Helpers
# -----------------------
def _run(fn: Callable[[], Any]) -> Any:
    """Translate core errors into HTTP errors."""
    try:
        return fn()
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PreconditionViolation as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _ensure_listing_non_empty(matches: List[Any], listing: str) -> None:
    if not matches:
        raise HTTPException(
            status_code=502,
            detail=f"Unable to fetch {listing} matches (listing empty or page layout changed)",
        )


# -----------------------
# Matches
# -----------------------
@app.get("/api/matches/live")
def get_live_matches(nocache: bool = False):
    matches = core.list_live_and_today_matches(use_cache=not nocache)
    _ensure_listing_non_empty(matches, "live")
    return {"count": len(matches), "matches": [asdict(m) for m in matches]}


@app.get("/api/matches/upcoming")
def get_upcoming_matches(nocache: bool = False):
    matches = core.list_upcoming_matches(use_cache=not nocache)
    _ensure_listing_non_empty(matches, "upcoming")
    return {"count": len(matches), "matches": [asdict(m) for m in matches]}


@app.get("/api/matches/{match_id}/squads")
def get_match_squads(match_id: str):
    squad = core.resolve_squad(match_id)
    if squad is None:
        raise HTTPException(status_code=404, detail=f"Squads not found for match {match_id}")
    return asdict(squad)


# -----------------------
# Rule sets + sessions
# -----------------------
class RuleIn(BaseModel):
    event: str
    points: float = 0
    multiplier: float = 1
    enabled: bool = True


class RuleSetRequest(BaseModel):
    user_id: str
    name: str = Field(..., min_length=1)
    rules: List[RuleIn]
    friend_id: Optional[str] = None
    is_template: bool = False
    description: str = ""


class SessionRequest(BaseModel):
    user_id: str
    friend_id: str
    rule_set_id: str
    real_match_id: str = Field(..., description="External match id (from /api/matches/*)")
    real_match_name: str = ""
    friend_name: Optional[str] = None


@app.post("/api/rulesets", status_code=201)
def create_rule_set(req: RuleSetRequest):
    rule_set = _run(
        lambda: core.create_rule_set(
            user_id=req.user_id,
            name=req.name,
            rules=[r.model_dump() for r in req.rules],
            friend_id=req.friend_id,
            is_template=req.is_template,
            description=req.description,
        )
    )
    return asdict(rule_set)


@app.post("/api/sessions", status_code=201)
def create_session(req: SessionRequest):
    session = _run(lambda: core.create_session(**req.model_dump()))
    return asdict(session)


@app.get("/api/sessions/{session_id}")
def get_session(session_id: str):
    return asdict(_run(lambda: core.get_session(session_id)))


# -----------------------
# Selection
# -----------------------
class SelectionRequest(BaseModel):
    user_players: List[str] = Field(..., description="6-9 unique player names or ids")
    user_captain: Optional[str] = None
    friend_players: List[str] = Field(..., description="6-9 unique player names or ids")
    friend_captain: Optional[str] = None


@app.put("/api/sessions/{session_id}/selection")
def put_selection(session_id: str, req: SelectionRequest):
    selection = _run(
        lambda: core.save_selection(
            session_id,
            req.user_players,
            req.user_captain,
            req.friend_players,
            req.friend_captain,
        )
    )
    return asdict(selection)


@app.post("/api/sessions/{session_id}/selection/freeze")
def post_freeze_selection(session_id: str):
    return asdict(_run(lambda: core.freeze_selection(session_id)))


# -----------------------
# Raw stats (manual entry)
# -----------------------
class StatRowIn(BaseModel):
    player_id: str = Field(..., min_length=1, description="Selected player name or id")
    runs: int = Field(0, ge=0)
    fours: int = Field(0, ge=0)
    sixes: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0)
    catches: int = Field(0, ge=0)
    runouts: int = Field(0, ge=0)


class StatsRequest(BaseModel):
    stats: List[StatRowIn]


@app.get("/api/sessions/{session_id}/stats")
def get_raw_stats(session_id: str):
    return [asdict(s) for s in _run(lambda: core.list_raw_stats(session_id))]


@app.post("/api/sessions/{session_id}/stats")
def post_raw_stats(session_id: str, req: StatsRequest):
    stats = _run(lambda: core.upsert_raw_stats(session_id, [s.model_dump() for s in req.stats]))
    return [asdict(s) for s in stats]


# -----------------------
# Scoring
# -----------------------
@app.post("/api/sessions/{session_id}/calculate")
def post_calculate(session_id: str, force: bool = False):
    return asdict(_run(lambda: core.calculate_session_points(session_id, force=force)))


@app.post("/api/sessions/{session_id}/refresh")
def post_refresh(session_id: str):
    return asdict(_run(lambda: core.refresh_session_stats(session_id)))


@app.get("/api/sessions/{session_id}/breakdown")
def get_breakdown(session_id: str) -> Dict[str, Any]:
    return _run(lambda: core.build_detailed_breakdown(session_id))


@app.get("/api/sessions/{session_id}/share")
def get_share_text(session_id: str, detailed: bool = False, user_name: Optional[str] = None):
    text = _run(lambda: core.share_text(session_id, detailed=detailed, user_name=user_name))
    return {"session_id": session_id, "text": text}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
