"""FHIR search query construction for timeline resource types.

Every search is scoped to one patient and capped at ``PAGE_SIZE`` results.
Resource types with a date search parameter additionally get ``ge``/``le``
comparators for the requested range; the others ignore the range.
"""

from datetime import date
from urllib.parse import quote

from ..models import ResourceType

PAGE_SIZE = 200

# Search parameter used for date range filtering, per resource type.
# Types missing from this table do not support date filtering.
DATE_SEARCH_PARAMETERS: dict[ResourceType, str] = {
    ResourceType.ENCOUNTER: "date",
    ResourceType.OBSERVATION: "date",
    ResourceType.PROCEDURE: "date",
    ResourceType.IMMUNIZATION: "date",
    ResourceType.DIAGNOSTIC_REPORT: "date",
    ResourceType.CONDITION: "recorded-date",
}


def build_patient_path(patient_id: str) -> str:
    """Relative read path for the patient resource itself."""
    return f"Patient/{quote(patient_id, safe='')}"


def build_patient_query(
    resource_type: ResourceType,
    patient_id: str,
    from_date: date | None = None,
    to_date: date | None = None,
) -> str:
    """Build the relative search URL for one resource type.

    Args:
        resource_type: Resource type to search
        patient_id: Patient the search is scoped to (escaped here)
        from_date: Inclusive lower bound, ignored for types without a date parameter
        to_date: Inclusive upper bound, ignored for types without a date parameter

    Returns:
        Relative search URL, e.g. ``"Condition?patient=p1&_count=200&recorded-date=ge2020-01-01"``

    Example:
        >>> build_patient_query(ResourceType.DEVICE, "p1", date(2020, 1, 1))
        'Device?patient=p1&_count=200'
    """
    resource_type = ResourceType(resource_type)
    query_parts = [f"patient={quote(patient_id, safe='')}", f"_count={PAGE_SIZE}"]

    date_parameter = DATE_SEARCH_PARAMETERS.get(resource_type)
    if date_parameter:
        if from_date is not None:
            query_parts.append(f"{date_parameter}=ge{from_date.isoformat()}")
        if to_date is not None:
            query_parts.append(f"{date_parameter}=le{to_date.isoformat()}")

    return f"{resource_type.value}?{'&'.join(query_parts)}"
