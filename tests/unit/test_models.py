"""Unit tests for the pydantic models."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from src.patient_timeline.models import (
    TIMELINE_RESOURCE_TYPES,
    UNKNOWN_OCCURRED_AT,
    PatientSummary,
    PatientTimelineResult,
    ResourceType,
    TimelineEvent,
    TimelineRequest,
)


class TestResourceType:
    def test_fetch_order(self):
        assert [t.value for t in TIMELINE_RESOURCE_TYPES] == [
            "Encounter",
            "Condition",
            "AllergyIntolerance",
            "Immunization",
            "Device",
            "Observation",
            "Procedure",
            "DiagnosticReport",
            "DocumentReference",
            "MedicationRequest",
        ]

    def test_lookup_by_name(self):
        assert ResourceType("DiagnosticReport") is ResourceType.DIAGNOSTIC_REPORT


class TestTimelineRequest:
    def test_patient_id_is_stripped(self):
        assert TimelineRequest(patient_id="  p1 ").patient_id == "p1"

    @pytest.mark.parametrize("patient_id", ["", "   "])
    def test_blank_patient_id_rejected(self, patient_id):
        with pytest.raises(ValidationError):
            TimelineRequest(patient_id=patient_id)

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError, match="must not be after"):
            TimelineRequest(patient_id="p1", from_date=date(2021, 1, 2), to_date=date(2021, 1, 1))

    def test_same_day_range_allowed(self):
        request = TimelineRequest(
            patient_id="p1", from_date=date(2021, 1, 1), to_date=date(2021, 1, 1)
        )

        assert request.from_date == request.to_date

    def test_open_ranges(self):
        assert TimelineRequest(patient_id="p1", from_date=date(2021, 1, 1)).to_date is None
        assert TimelineRequest(patient_id="p1", to_date=date(2021, 1, 1)).from_date is None


class TestTimelineEvent:
    def test_frozen(self):
        event = TimelineEvent(
            resource_type=ResourceType.DEVICE,
            id="d1",
            occurred_at=UNKNOWN_OCCURRED_AT,
            title="Device",
        )

        with pytest.raises(ValidationError):
            event.title = "changed"

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            TimelineEvent(
                resource_type=ResourceType.DEVICE,
                id="d1",
                occurred_at=UNKNOWN_OCCURRED_AT,
                title="",
            )

    def test_has_known_date(self):
        event = TimelineEvent(
            resource_type=ResourceType.DEVICE,
            id="d1",
            occurred_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
            title="Device",
        )

        assert event.has_known_date

    def test_sentinel_sorts_before_real_dates(self):
        assert UNKNOWN_OCCURRED_AT < datetime(1, 1, 2, tzinfo=timezone.utc)


class TestPatientTimelineResult:
    def test_total_events(self):
        event = TimelineEvent(
            resource_type=ResourceType.DEVICE, id="d1", occurred_at=UNKNOWN_OCCURRED_AT, title="x"
        )
        result = PatientTimelineResult(summary=PatientSummary(patient_id="p1"), events=[event])

        assert result.total_events == 1

    def test_negative_encounter_count_rejected(self):
        with pytest.raises(ValidationError):
            PatientSummary(patient_id="p1", encounter_count=-1)

    def test_json_dump(self):
        result = PatientTimelineResult(summary=PatientSummary(patient_id="p1"))

        dumped = result.model_dump(mode="json")

        assert dumped == {
            "summary": {
                "patient_id": "p1",
                "name": None,
                "gender": None,
                "birth_date": None,
                "encounter_count": None,
                "latest_encounter_date": None,
            },
            "events": [],
        }
