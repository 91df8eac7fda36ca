"""Patient demographic summary and timeline-derived encounter statistics."""

from collections.abc import Sequence
from typing import Any

from ..models import PatientSummary, ResourceType, TimelineEvent
from .field_readers import first_object, get_string, parse_fhir_date


def format_patient_name(raw_patient: Any) -> str | None:
    """Render the first ``name`` entry as "given... family".

    Blank parts are dropped; an empty result is ``None``.
    """
    name = first_object(raw_patient, "name")
    if name is None:
        return None

    parts = []
    given = name.get("given")
    if isinstance(given, list):
        parts.extend(part.strip() for part in given if isinstance(part, str) and part.strip())

    family = get_string(name, "family")
    if family and family.strip():
        parts.append(family.strip())

    return " ".join(parts) or None


def summarize_patient(raw_patient: Any, patient_id: str) -> PatientSummary:
    """Build the demographic part of a ``PatientSummary``.

    Encounter statistics are left unset; see ``with_encounter_statistics``.

    Args:
        raw_patient: Parsed Patient resource
        patient_id: Id the patient was requested with

    Returns:
        PatientSummary with name, gender and birth_date
    """
    return PatientSummary(
        patient_id=patient_id,
        name=format_patient_name(raw_patient),
        gender=get_string(raw_patient, "gender"),
        birth_date=parse_fhir_date(get_string(raw_patient, "birthDate")),
    )


def with_encounter_statistics(
    summary: PatientSummary, events: Sequence[TimelineEvent]
) -> PatientSummary:
    """Return ``summary`` with encounter count and latest encounter date.

    ``events`` must already be sorted newest first: the first Encounter found
    is taken as the latest one.
    """
    encounters = [event for event in events if event.resource_type is ResourceType.ENCOUNTER]
    return summary.model_copy(
        update={
            "encounter_count": len(encounters),
            "latest_encounter_date": encounters[0].occurred_at if encounters else None,
        }
    )
