"""
Domain errors for the matching engine.

The event-driven path uses these to decide whether a trigger message is
acknowledged or left for broker redelivery; the web layer maps them to
HTTP status codes.
"""


class MatchingError(Exception):
    """Base class for matching engine errors."""
    pass


class CollaboratorUnavailableError(MatchingError):
    """A collaborator service could not be reached, timed out or returned 5xx."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service} unavailable: {message}")
        self.service = service


class EntityNotFoundError(MatchingError):
    """The collaborator service does not know the requested entity."""

    def __init__(self, side: str, entity_id: str):
        super().__init__(f"{side} {entity_id} not found")
        self.side = side
        self.entity_id = entity_id


class MalformedEventError(MatchingError):
    """An inbound event could not be turned into a trigger."""
    pass


class MalformedSnapshotError(MatchingError):
    """A collaborator record could not be parsed into a snapshot."""
    pass


class MatchNotFoundError(MatchingError):
    """No match exists with the given id."""

    def __init__(self, match_id):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id


class InvalidStatusError(MatchingError):
    """The requested status is not part of the match lifecycle."""
    pass


class InvalidStatusTransitionError(MatchingError):
    """The match exists but cannot move from its current status to the requested one."""

    def __init__(self, match_id, current: str, requested: str):
        super().__init__(f"Match {match_id} cannot move from '{current}' to '{requested}'")
        self.match_id = match_id
        self.current = current
        self.requested = requested
