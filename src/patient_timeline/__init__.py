"""Patient timeline aggregation over a FHIR REST API.

Usage:
    from src.patient_timeline import FhirHttpClient, PatientTimelineService

    async with FhirHttpClient() as client:
        result = await PatientTimelineService(client).get_timeline("example")
"""

from .client import FhirHttpClient, ResourceFetcher
from .models import (
    TIMELINE_RESOURCE_TYPES,
    UNKNOWN_OCCURRED_AT,
    PatientSummary,
    PatientTimelineResult,
    ResourceType,
    TimelineEvent,
    TimelineRequest,
)
from .timeline import PatientTimelineService

__all__ = [
    "FhirHttpClient",
    "ResourceFetcher",
    "PatientTimelineService",
    "PatientSummary",
    "PatientTimelineResult",
    "ResourceType",
    "TimelineEvent",
    "TimelineRequest",
    "TIMELINE_RESOURCE_TYPES",
    "UNKNOWN_OCCURRED_AT",
]
