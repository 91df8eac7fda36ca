"""Timeline query building, resource normalization and aggregation.

This package turns FHIR search results into a single chronological
timeline for one patient.
"""

from .aggregator import PatientTimelineService, merge_events
from .bundle_parser import parse_bundle
from .event_extractor import extract_event
from .patient_summary import summarize_patient, with_encounter_statistics
from .query_builder import PAGE_SIZE, build_patient_path, build_patient_query

__all__ = [
    "PatientTimelineService",
    "merge_events",
    "parse_bundle",
    "extract_event",
    "summarize_patient",
    "with_encounter_statistics",
    "PAGE_SIZE",
    "build_patient_path",
    "build_patient_query",
]
