"""Unit tests for the patient summary helpers."""

from datetime import date, datetime, timezone

from src.patient_timeline.models import (
    UNKNOWN_OCCURRED_AT,
    PatientSummary,
    ResourceType,
    TimelineEvent,
)
from src.patient_timeline.timeline.patient_summary import (
    format_patient_name,
    summarize_patient,
    with_encounter_statistics,
)


def _event(resource_type, event_id, occurred_at):
    return TimelineEvent(
        resource_type=resource_type, id=event_id, occurred_at=occurred_at, title=event_id
    )


class TestFormatPatientName:
    def test_given_then_family(self, patient_resource):
        assert format_patient_name(patient_resource) == "Peter James Chalmers"

    def test_family_only(self):
        assert format_patient_name({"name": [{"family": "Doe"}]}) == "Doe"

    def test_blank_parts_dropped(self):
        raw = {"name": [{"given": [" ", "Ann ", 7], "family": "  "}]}

        assert format_patient_name(raw) == "Ann"

    def test_no_usable_parts(self):
        assert format_patient_name({"name": [{"text": "Ann Doe"}]}) is None

    def test_no_name(self):
        assert format_patient_name({}) is None
        assert format_patient_name({"name": []}) is None


class TestSummarizePatient:
    def test_demographics(self, patient_resource):
        summary = summarize_patient(patient_resource, "example")

        assert summary.patient_id == "example"
        assert summary.name == "Peter James Chalmers"
        assert summary.gender == "male"
        assert summary.birth_date == date(1974, 12, 25)
        assert summary.encounter_count is None
        assert summary.latest_encounter_date is None

    def test_empty_patient(self):
        summary = summarize_patient({"resourceType": "Patient"}, "p1")

        assert summary.model_dump() == PatientSummary(patient_id="p1").model_dump()

    def test_invalid_birth_date(self):
        summary = summarize_patient({"birthDate": "1974-13-01"}, "p1")

        assert summary.birth_date is None


class TestWithEncounterStatistics:
    def test_counts_encounters_and_takes_first(self):
        events = [
            _event(ResourceType.OBSERVATION, "o1", datetime(2023, 1, 1, tzinfo=timezone.utc)),
            _event(ResourceType.ENCOUNTER, "e2", datetime(2022, 1, 1, tzinfo=timezone.utc)),
            _event(ResourceType.ENCOUNTER, "e1", datetime(2021, 1, 1, tzinfo=timezone.utc)),
        ]

        summary = with_encounter_statistics(PatientSummary(patient_id="p1"), events)

        assert summary.encounter_count == 2
        assert summary.latest_encounter_date == datetime(2022, 1, 1, tzinfo=timezone.utc)

    def test_no_encounters(self):
        events = [_event(ResourceType.CONDITION, "c1", datetime(2023, 1, 1, tzinfo=timezone.utc))]

        summary = with_encounter_statistics(PatientSummary(patient_id="p1"), events)

        assert summary.encounter_count == 0
        assert summary.latest_encounter_date is None

    def test_undated_encounter(self):
        events = [_event(ResourceType.ENCOUNTER, "e1", UNKNOWN_OCCURRED_AT)]

        summary = with_encounter_statistics(PatientSummary(patient_id="p1"), events)

        assert summary.encounter_count == 1
        assert summary.latest_encounter_date == UNKNOWN_OCCURRED_AT

    def test_original_is_unchanged(self):
        original = PatientSummary(patient_id="p1", name="Ann")

        updated = with_encounter_statistics(original, [])

        assert original.encounter_count is None
        assert updated.encounter_count == 0
        assert updated.name == "Ann"
