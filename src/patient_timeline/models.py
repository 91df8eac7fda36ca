"""Pydantic models for the patient timeline service.

This module defines the data structures returned by the timeline aggregator:
the normalized ``TimelineEvent``, the ``PatientSummary`` snapshot and the
``PatientTimelineResult`` aggregate root, plus the validated request model.

All response models are frozen: a result is built once per request and never
mutated afterwards, so it can be handed to any number of consumers.
"""

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Sorts after every real timestamp when ordering newest first.
UNKNOWN_OCCURRED_AT = datetime.min.replace(tzinfo=timezone.utc)


class ResourceType(str, Enum):
    """FHIR resource types aggregated into the timeline.

    Declaration order is the fixed fetch order. It is also the tie-break order
    for events sharing the same timestamp.
    """

    ENCOUNTER = "Encounter"
    CONDITION = "Condition"
    ALLERGY_INTOLERANCE = "AllergyIntolerance"
    IMMUNIZATION = "Immunization"
    DEVICE = "Device"
    OBSERVATION = "Observation"
    PROCEDURE = "Procedure"
    DIAGNOSTIC_REPORT = "DiagnosticReport"
    DOCUMENT_REFERENCE = "DocumentReference"
    MEDICATION_REQUEST = "MedicationRequest"


TIMELINE_RESOURCE_TYPES: tuple[ResourceType, ...] = tuple(ResourceType)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class TimelineRequest(BaseModel):
    """Request model for fetching a patient's timeline."""

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(..., description="FHIR logical id of the patient")
    from_date: date | None = Field(
        None, description="Only events on or after this date (types with a date search parameter)"
    )
    to_date: date | None = Field(
        None, description="Only events on or before this date (types with a date search parameter)"
    )

    @field_validator("patient_id")
    @classmethod
    def validate_patient_id(cls, value: str) -> str:
        """Strip surrounding whitespace and reject blank ids.

        Args:
            value: Patient ID to validate

        Returns:
            Stripped patient ID

        Raises:
            ValueError: If the patient ID is blank
        """
        value = value.strip()
        if not value:
            raise ValueError("patient_id must not be blank")
        return value

    @model_validator(mode="after")
    def validate_date_range(self) -> "TimelineRequest":
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError(
                f"from_date ({self.from_date}) must not be after to_date ({self.to_date})"
            )
        return self


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class TimelineEvent(BaseModel):
    """One normalized clinical occurrence in a patient's timeline."""

    model_config = ConfigDict(frozen=True)

    resource_type: ResourceType = Field(..., description="FHIR resource type of the source record")
    id: str = Field(
        ..., min_length=1, description="Source resource id, or a generated one if it had none"
    )
    occurred_at: datetime = Field(
        ..., description="Resolved event time; UNKNOWN_OCCURRED_AT when no date was found"
    )
    title: str = Field(..., min_length=1, description="One-line human readable label")
    encounter_id: str | None = Field(None, description="Id of the referenced Encounter")
    organization_display: str | None = Field(None, description="Service provider display name")
    practitioner_display: str | None = Field(None, description="Participant/performer display")
    details: dict[str, str] = Field(default_factory=dict, description="Auxiliary facts")

    @property
    def has_known_date(self) -> bool:
        return self.occurred_at != UNKNOWN_OCCURRED_AT


class PatientSummary(BaseModel):
    """Demographic snapshot plus statistics derived from the timeline events."""

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(..., description="FHIR logical id of the patient")
    name: str | None = Field(None, description="Given names followed by family name")
    gender: str | None = Field(None, description="Administrative gender as recorded")
    birth_date: date | None = Field(None, description="Date of birth")
    encounter_count: int | None = Field(
        None, ge=0, description="Number of Encounter events in the timeline"
    )
    latest_encounter_date: datetime | None = Field(
        None, description="Most recent Encounter occurred_at in the timeline"
    )


class PatientTimelineResult(BaseModel):
    """Summary and events for one patient, newest event first."""

    model_config = ConfigDict(frozen=True)

    summary: PatientSummary = Field(..., description="Patient summary")
    events: list[TimelineEvent] = Field(
        default_factory=list, description="Timeline events ordered by occurred_at descending"
    )

    @property
    def total_events(self) -> int:
        return len(self.events)
