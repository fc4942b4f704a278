"""Trigger: the unit of work the matching pipeline processes."""

from dataclasses import dataclass

from core.snapshots import SIDES

SOURCE_EVENT = "event"
SOURCE_MANUAL = "manual"
SOURCE_RECONCILIATION = "reconciliation"
TRIGGER_SOURCES = (SOURCE_EVENT, SOURCE_MANUAL, SOURCE_RECONCILIATION)


@dataclass(frozen=True)
class Trigger:
    """Identifies which entity changed and who asked for matching."""
    side: str
    entity_id: str
    source: str = SOURCE_EVENT

    def __post_init__(self):
        if self.side not in SIDES:
            raise ValueError(f"Unknown trigger side '{self.side}'")
        if self.source not in TRIGGER_SOURCES:
            raise ValueError(f"Unknown trigger source '{self.source}'")
        if not self.entity_id:
            raise ValueError("Trigger requires an entity id")

    def as_dict(self) -> dict:
        return {'side': self.side, 'id': self.entity_id, 'source': self.source}

    def __str__(self):
        return f"{self.source}:{self.side}:{self.entity_id}"
