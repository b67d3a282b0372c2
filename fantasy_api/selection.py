# fantasy_api/selection.py
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

from fantasy_api.config import MAX_PLAYERS_PER_SIDE, MIN_PLAYERS_PER_SIDE
from fantasy_api.errors import NotFound, PreconditionViolation
from fantasy_api.models import Selection
from fantasy_api.store import SessionStore


def _clean_side(players: Optional[Sequence[str]], side: str) -> List[str]:
    if players is None or isinstance(players, (str, bytes)):
        raise ValueError(f"{side} players must be a list of player names or ids")

    cleaned = [str(p).strip() for p in players]
    if any(not p for p in cleaned):
        raise ValueError(f"{side} players must not contain empty entries")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError(f"{side} players must be unique")
    if not (MIN_PLAYERS_PER_SIDE <= len(cleaned) <= MAX_PLAYERS_PER_SIDE):
        raise ValueError(
            f"{side} must select between {MIN_PLAYERS_PER_SIDE} and {MAX_PLAYERS_PER_SIDE} players"
        )
    return cleaned


def _clean_captain(captain: Optional[str], players: List[str], side: str) -> Optional[str]:
    if captain is None or not str(captain).strip():
        return None
    cap = str(captain).strip()
    if cap not in players:
        raise ValueError(f"{side} captain must be one of the selected players")
    return cap


def save_selection(
    store: SessionStore,
    session_id: str,
    user_players: Sequence[str],
    user_captain: Optional[str],
    friend_players: Sequence[str],
    friend_captain: Optional[str],
) -> Selection:
    """
    Create or replace the selection for a session.

    Raises:
      NotFound                if the session does not exist
      PreconditionViolation   if the existing selection is frozen
      ValueError              on an invalid player list or captain
    """
    if store.get_session(session_id) is None:
        raise NotFound("MatchSession not found")

    users = _clean_side(user_players, "User")
    friends = _clean_side(friend_players, "Friend")
    u_cap = _clean_captain(user_captain, users, "User")
    f_cap = _clean_captain(friend_captain, friends, "Friend")

    existing = store.get_selection(session_id)
    if existing is not None and existing.is_frozen:
        raise PreconditionViolation("Selection is frozen and cannot be updated")

    return store.save_selection(
        Selection(
            session_id=str(session_id),
            user_players=users,
            user_captain=u_cap,
            friend_players=friends,
            friend_captain=f_cap,
            is_frozen=False,
        )
    )


def freeze_selection(store: SessionStore, session_id: str) -> Selection:
    """Freeze exactly once; a frozen selection is immutable from then on."""
    if store.get_session(session_id) is None:
        raise NotFound("MatchSession not found")

    existing = store.get_selection(session_id)
    if existing is None:
        raise NotFound("PlayerSelection not found")
    if existing.is_frozen:
        raise PreconditionViolation("Selection is already frozen")

    return store.save_selection(replace(existing, is_frozen=True))
