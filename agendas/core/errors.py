"""Domain errors raised by the agenda services.

Every error carries a human-readable ``detail``. The API layer converts them
into JSON responses with the matching HTTP status, so route handlers never
build ``HTTPException`` objects for domain failures themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from agendas.models import Event


class AgendaError(Exception):
    """Base class for recoverable domain errors."""

    status_code = 400
    title = "Bad request"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AgendaError):
    """An agenda, event, membership, user or invitation does not exist."""

    status_code = 404
    title = "Not found"


class ForbiddenError(AgendaError):
    """The permission evaluator denied the action.

    ``detail`` is the reason of the rule that failed, suitable for showing to
    the user as-is.
    """

    status_code = 403
    title = "Permission denied"


class ConflictError(AgendaError):
    """Time overlap, stale transition or duplicate membership.

    Args:
        detail: Description of the conflict.
        conflicts: Events that overlap the requested slot, if any.
    """

    status_code = 409
    title = "Conflict"

    def __init__(self, detail: str, conflicts: Sequence["Event"] = ()):
        super().__init__(detail)
        self.conflicts = list(conflicts)


class InvalidError(AgendaError):
    """Malformed input the caller can correct and retry."""

    status_code = 400
    title = "Invalid request"
