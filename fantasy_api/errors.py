# fantasy_api/errors.py
from __future__ import annotations


class FantasyError(Exception):
    """Base class for errors surfaced to callers of the scoring core."""
    pass


class NotFound(FantasyError):
    """Raised when a session, rule set or selection cannot be located."""
    pass


class PreconditionViolation(FantasyError):
    """Raised when an operation is requested in a state that does not allow it
    (selection not frozen, selection already frozen, match not started)."""
    pass


class UpstreamUnavailable(FantasyError):
    """Raised when the external scorecard could not be fetched or parsed and an
    operation cannot proceed without it. Nothing is written when this is raised."""
    pass
