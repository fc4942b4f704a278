"""Read-only entity snapshots fetched from the collaborator services.

Snapshots are plain dataclasses parsed from the collaborators' JSON. The
matching engine never mutates them and never persists them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from core.errors import MalformedSnapshotError

SUBJECT = "subject"
OPPORTUNITY = "opportunity"
SIDES = (SUBJECT, OPPORTUNITY)


def _entity_id(payload: Dict[str, Any]) -> Optional[str]:
    value = payload.get("_id", payload.get("id"))
    if isinstance(value, dict):
        # populated reference, e.g. {"_id": ..., "profile": {...}}
        value = value.get("_id", value.get("id"))
    if value is None or value == "":
        return None
    return str(value)


def _string_list(value: Any, name: str = "value") -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple, set)):
        raise MalformedSnapshotError(f"'{name}' must be a list or a comma-separated string, got {type(value).__name__}")
    return [str(item) for item in value if item is not None and str(item).strip()]


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedSnapshotError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _optional_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise MalformedSnapshotError(f"Expected a scalar, got {type(value).__name__}")
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class SubjectSnapshot:
    """A candidate: the skills holder being matched."""
    id: str
    skills: List[str] = field(default_factory=list)
    experience: Optional[str] = None
    location: Optional[str] = None
    availability: Optional[str] = None
    project_types: Optional[List[str]] = None
    interests: Optional[List[str]] = None
    is_active: bool = True

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SubjectSnapshot":
        if not isinstance(payload, dict):
            raise MalformedSnapshotError(f"Subject payload must be an object, got {type(payload).__name__}")

        subject_id = _entity_id(payload)
        if subject_id is None:
            raise MalformedSnapshotError("Subject payload has no id")

        profile = _section(payload, "profile")
        preferences = _section(payload, "preferences")

        project_types = preferences.get("projectTypes")
        interests = preferences.get("interests")

        return cls(
            id=subject_id,
            skills=_string_list(profile.get("skills"), "skills"),
            experience=_optional_string(profile.get("experience")),
            location=_optional_string(profile.get("location")),
            availability=_optional_string(preferences.get("availability")),
            project_types=_string_list(project_types, "projectTypes") if project_types is not None else None,
            interests=_string_list(interests, "interests") if interests is not None else None,
            is_active=bool(payload.get("isActive", True)),
        )


@dataclass(frozen=True)
class OpportunitySnapshot:
    """A project or role and the skills it asks for.

    ``required_skills`` is ``None`` when the opportunity declares no skill
    requirements at all, and an empty list when it explicitly requires no skills.
    """
    id: str
    title: Optional[str] = None
    required_skills: Optional[List[str]] = None
    optional_skills: List[str] = field(default_factory=list)
    difficulty: Optional[str] = None
    estimated_duration: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    collaborator_ids: Set[str] = field(default_factory=set)
    status: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status is None or self.status == "active"

    def has_collaborator(self, subject_id: str) -> bool:
        return subject_id in self.collaborator_ids

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "OpportunitySnapshot":
        if not isinstance(payload, dict):
            raise MalformedSnapshotError(f"Opportunity payload must be an object, got {type(payload).__name__}")

        opportunity_id = _entity_id(payload)
        if opportunity_id is None:
            raise MalformedSnapshotError("Opportunity payload has no id")

        collaborators = payload.get("collaborators") or []
        if not isinstance(collaborators, list):
            raise MalformedSnapshotError(f"'collaborators' must be a list, got {type(collaborators).__name__}")

        collaborator_ids = set()
        for collaborator in collaborators:
            if isinstance(collaborator, dict):
                user_ref = collaborator.get("userId")
                user_id = _entity_id(user_ref) if isinstance(user_ref, dict) else user_ref
            else:
                user_id = collaborator
            if user_id:
                collaborator_ids.add(str(user_id))

        required = payload.get("requiredSkills")

        return cls(
            id=opportunity_id,
            title=_optional_string(payload.get("title")),
            required_skills=_string_list(required, "requiredSkills") if required is not None else None,
            optional_skills=_string_list(payload.get("optionalSkills"), "optionalSkills"),
            difficulty=_optional_string(payload.get("difficulty")),
            estimated_duration=_optional_string(payload.get("estimatedDuration")),
            location=_optional_string(payload.get("location")),
            category=_optional_string(payload.get("category")),
            tags=_string_list(payload.get("tags"), "tags"),
            collaborator_ids=collaborator_ids,
            status=_optional_string(payload.get("status")),
        )
