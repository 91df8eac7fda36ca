"""Normalize raw clinical resources into timeline events.

The ten timeline resource types share few field names, so every derived field
is resolved through a fixed fallback list or a per-type rule table:

- occurred_at: first parseable candidate from ``OCCURRED_AT_CANDIDATES``
- title: ``TITLE_RULES`` keyed by resource type
- practitioner: participant individual, then performer actor, then performer reference

Nothing in this module raises on malformed input. A field that cannot be
resolved is left empty (or the sentinel date / type-name title).
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..models import UNKNOWN_OCCURRED_AT, ResourceType, TimelineEvent
from .field_readers import (
    first_object,
    get_code_text,
    get_object,
    get_string,
    get_text,
    parse_fhir_datetime,
    read_display,
    read_reference_id,
)

logger = logging.getLogger(__name__)

# Tried in order, first parseable value wins. "period" is read through its "start".
OCCURRED_AT_CANDIDATES: tuple[str, ...] = (
    "effectiveDateTime",
    "issued",
    "recordedDate",
    "occurrenceDateTime",
    "performedDateTime",
    "authoredOn",
    "created",
    "date",
    "period",
)

PERIOD_CANDIDATE = "period"


# =============================================================================
# TITLE RULES
# =============================================================================


def _encounter_title(resource: dict[str, Any]) -> str | None:
    status = get_text(resource, "status")
    return f"Encounter ({status})" if status else "Encounter"


def _concept_title(field_name: str) -> Callable[[dict[str, Any]], str | None]:
    def rule(resource: dict[str, Any]) -> str | None:
        return get_code_text(resource, field_name)

    return rule


def _medication_title(resource: dict[str, Any]) -> str | None:
    # R4 carries medicationCodeableConcept, R5 nests the concept under medication
    return get_code_text(resource, "medicationCodeableConcept") or get_code_text(
        get_object(resource, "medication"), "concept"
    )


TITLE_RULES: dict[ResourceType, Callable[[dict[str, Any]], str | None]] = {
    ResourceType.ENCOUNTER: _encounter_title,
    ResourceType.CONDITION: _concept_title("code"),
    ResourceType.OBSERVATION: _concept_title("code"),
    ResourceType.PROCEDURE: _concept_title("code"),
    ResourceType.DIAGNOSTIC_REPORT: _concept_title("code"),
    ResourceType.ALLERGY_INTOLERANCE: _concept_title("code"),
    ResourceType.MEDICATION_REQUEST: _medication_title,
    ResourceType.IMMUNIZATION: _concept_title("vaccineCode"),
    ResourceType.DOCUMENT_REFERENCE: _concept_title("type"),
    ResourceType.DEVICE: _concept_title("type"),
}


# =============================================================================
# FIELD RESOLUTION
# =============================================================================


def resolve_occurred_at(resource: dict[str, Any]) -> datetime:
    """Return the event time of a resource, or ``UNKNOWN_OCCURRED_AT``."""
    for field_name in OCCURRED_AT_CANDIDATES:
        if field_name == PERIOD_CANDIDATE:
            occurred_at = parse_fhir_datetime(get_string(get_object(resource, field_name), "start"))
        else:
            occurred_at = parse_fhir_datetime(resource.get(field_name))
        if occurred_at is not None:
            return occurred_at
    return UNKNOWN_OCCURRED_AT


def resolve_title(resource_type: ResourceType, resource: dict[str, Any]) -> str:
    rule = TITLE_RULES.get(resource_type)
    title = rule(resource) if rule else None
    return title or resource_type.value


def resolve_practitioner_display(resource: dict[str, Any]) -> str | None:
    """Display name of whoever performed or attended the event.

    Tries, in order: ``participant[0].individual``, ``performer[0].actor``
    and ``performer[0].reference``. The first non-blank display wins.
    """
    participant = first_object(resource, "participant")
    display = read_display(get_object(participant, "individual"))
    if display:
        return display

    performer = first_object(resource, "performer")
    return read_display(get_object(performer, "actor")) or read_display(
        get_object(performer, "reference")
    )


def build_details(resource: dict[str, Any], encounter_id: str | None) -> dict[str, str]:
    details = {}
    status = get_text(resource, "status")
    if status:
        details["status"] = status
    if encounter_id:
        details["encounterId"] = encounter_id
    return details


def extract_event(resource_type: ResourceType, resource: dict[str, Any]) -> TimelineEvent:
    """Build a ``TimelineEvent`` from one raw resource.

    Args:
        resource_type: Resource type the record was fetched as
        resource: Raw resource dictionary from a bundle entry

    Returns:
        Normalized, immutable timeline event

    Example:
        >>> event = extract_event(
        ...     ResourceType.CONDITION,
        ...     {"code": {"text": "Hypertension"}, "recordedDate": "2020-03-01"},
        ... )
        >>> event.title
        'Hypertension'
    """
    resource_type = ResourceType(resource_type)

    event_id = get_text(resource, "id")
    if event_id is None:
        event_id = uuid.uuid4().hex
        logger.debug(f"{resource_type.value} resource without id, generated {event_id}")

    encounter_id = read_reference_id(resource, "encounter")

    return TimelineEvent(
        resource_type=resource_type,
        id=event_id,
        occurred_at=resolve_occurred_at(resource),
        title=resolve_title(resource_type, resource),
        encounter_id=encounter_id,
        organization_display=read_display(get_object(resource, "serviceProvider")),
        practitioner_display=resolve_practitioner_display(resource),
        details=build_details(resource, encounter_id),
    )
