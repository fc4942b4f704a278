"""Maps inbound domain events to pipeline triggers."""

import logging
import threading
from typing import Any, Dict, Optional

from core.errors import MalformedEventError
from core.triggers import Trigger, SOURCE_EVENT
from events.messages import EVENT_SIDES, ID_KEYS, canonical_event_type

logger = logging.getLogger(__name__)


class EventTriggerRouter:
    def __init__(self, pipeline):
        self.pipeline = pipeline

    @staticmethod
    def resolve(event_type: str, payload: Dict[str, Any]) -> Optional[Trigger]:
        """Build the trigger for an event, or None when the type is not ours."""
        side = EVENT_SIDES.get(canonical_event_type(event_type))
        if side is None:
            return None

        for key in ID_KEYS[side]:
            value = payload.get(key)
            if value not in (None, ""):
                return Trigger(side=side, entity_id=str(value), source=SOURCE_EVENT)

        raise MalformedEventError(
            f"Event '{event_type}' carries none of {', '.join(ID_KEYS[side])}"
        )

    def handle(
        self,
        event_type: str,
        payload: Dict[str, Any],
        stop_event: Optional[threading.Event] = None
    ):
        trigger = self.resolve(event_type, payload)
        if trigger is None:
            logger.debug(f"Ignoring event type '{event_type}'")
            return None
        return self.pipeline.run_trigger(trigger, stop_event=stop_event)
