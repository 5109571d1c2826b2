"""Exceptions raised by the closing engine."""


class ClosingEngineError(Exception):
    """Base class for closing engine errors."""


class NotFoundError(ClosingEngineError, LookupError):
    """A unit or project id did not resolve in the repository."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class LockedStateError(ClosingEngineError):
    """The statement of adjustments is locked and cannot be changed."""

    def __init__(self, unit_id: int):
        self.unit_id = unit_id
        super().__init__(
            f"SOA for unit {unit_id} is locked and cannot be recalculated. Unlock required."
        )


class PreconditionNotMetError(ClosingEngineError):
    """A lock workflow transition was requested from the wrong state."""
