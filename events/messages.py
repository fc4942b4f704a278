"""
Wire formats for the broker.

Inbound stream entries carry two fields: ``type`` (the routing key) and
``payload`` (a JSON object). Outbound batch events use the same layout.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from core.errors import MalformedEventError
from core.snapshots import SUBJECT, OPPORTUNITY

logger = logging.getLogger(__name__)

SUBJECT_CREATED = "subject.created"
SUBJECT_UPDATED = "subject.updated"
OPPORTUNITY_CREATED = "opportunity.created"
MATCH_CREATED_BATCH = "match.created-batch"

# Routing keys used by the profile and project services before the rename.
LEGACY_EVENT_ALIASES = {
    "user.created": SUBJECT_CREATED,
    "user.updated": SUBJECT_UPDATED,
    "project.created": OPPORTUNITY_CREATED,
}

EVENT_SIDES = {
    SUBJECT_CREATED: SUBJECT,
    SUBJECT_UPDATED: SUBJECT,
    OPPORTUNITY_CREATED: OPPORTUNITY,
}

# Payload keys holding the entity id, in lookup order.
ID_KEYS = {
    SUBJECT: ("subjectId", "userId", "id"),
    OPPORTUNITY: ("opportunityId", "projectId", "id"),
}


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def canonical_event_type(event_type: str) -> str:
    return LEGACY_EVENT_ALIASES.get(event_type, event_type)


def decode_entry(fields: Dict[Any, Any]) -> Tuple[str, Dict[str, Any]]:
    """Turn a raw stream entry into (event_type, payload).

    Raises:
        MalformedEventError: missing type, or payload is not a JSON object.
    """
    decoded = {_text(k): v for k, v in (fields or {}).items()}

    event_type = decoded.get("type")
    if event_type is None:
        raise MalformedEventError("Stream entry has no 'type' field")

    raw_payload = decoded.get("payload")
    if raw_payload is None:
        return _text(event_type), {}

    try:
        payload = json.loads(_text(raw_payload))
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedEventError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedEventError(f"Payload must be a JSON object, got {type(payload).__name__}")

    return _text(event_type), payload


def encode_entry(event_type: str, payload: Dict[str, Any]) -> Dict[str, str]:
    return {"type": event_type, "payload": json.dumps(payload, default=str)}


def build_batch_payload(result, preview_size: int) -> Dict[str, Any]:
    """Outbound match.created-batch payload for a completed trigger."""
    trigger = result.trigger
    id_key = "subject_id" if trigger.side == SUBJECT else "opportunity_id"
    return {
        "trigger": trigger.as_dict(),
        id_key: trigger.entity_id,
        "match_count": result.created,
        "preview": [m.as_dict() for m in result.top_matches(preview_size)],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
