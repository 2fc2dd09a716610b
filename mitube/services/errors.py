"""
mitube.services.errors — Stats error taxonomy
==============================================

``NotFoundError`` subclasses :class:`LookupError` and maps to HTTP 404;
``PersistenceError`` wraps storage failures on a primary update and maps
to HTTP 503.  Malformed view metadata is coerced, never raised.
"""

from __future__ import annotations


class StatsError(Exception):
    """Base class for stats subsystem failures."""


class NotFoundError(StatsError, LookupError):
    """The referenced video, user, or stats record does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class PersistenceError(StatsError):
    """The stats store rejected or failed a write."""
