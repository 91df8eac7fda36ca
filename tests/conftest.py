"""Pytest configuration and shared fixtures for the patient timeline tests.

Test Organization:
-------------------
tests/
├── unit/                    # Fast, isolated tests, no network
│   ├── test_query_builder.py
│   ├── test_event_extractor.py
│   ├── test_aggregator.py   # Service with an in-memory fetcher
│   └── ...
├── integration/             # httpx client + service over a mock transport
│   └── test_timeline_http_flow.py
└── conftest.py              # This file - shared fixtures

Fixtures provide FHIR-shaped sample resources and ``FakeFetcher``, an
in-memory ``ResourceFetcher`` that records every requested path.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Register custom markers.

    - @pytest.mark.unit: Fast, isolated unit tests
    - @pytest.mark.integration: HTTP client and service wired together
    - @pytest.mark.slow: Tests that take > 1 second
    """
    config.addinivalue_line("markers", "unit: Fast unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests across components")
    config.addinivalue_line("markers", "slow: Tests that take more than 1 second")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location.

    - tests/unit/* → @pytest.mark.unit
    - tests/integration/* → @pytest.mark.integration
    """
    for item in items:
        test_path = Path(item.fspath)

        if "unit" in test_path.parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in test_path.parts:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# FAKE FETCHER
# =============================================================================


def make_bundle(*resources: dict[str, Any], **extra: Any) -> dict[str, Any]:
    """Wrap resources in a searchset bundle."""
    return {
        "resourceType": "Bundle",
        "type": "searchset",
        "entry": [{"resource": resource} for resource in resources],
        **extra,
    }


class FakeFetcher:
    """In-memory ResourceFetcher.

    Documents and errors are looked up by exact path first, then by the part
    before ``?`` (the resource type for searches). Unknown searches return an
    empty bundle; an unknown patient path is a KeyError so tests notice.
    """

    def __init__(
        self,
        documents: dict[str, Any] | None = None,
        errors: dict[str, Exception] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.documents = documents or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.calls: list[str] = []

    @staticmethod
    def _lookup(table: dict[str, Any], relative_path: str) -> Any:
        if relative_path in table:
            return table[relative_path]
        return table.get(relative_path.split("?", 1)[0])

    async def fetch(self, relative_path: str) -> dict[str, Any]:
        self.calls.append(relative_path)

        delay = self._lookup(self.delays, relative_path)
        await asyncio.sleep(delay or 0)

        error = self._lookup(self.errors, relative_path)
        if error is not None:
            raise error

        document = self._lookup(self.documents, relative_path)
        if document is not None:
            return document
        if relative_path.startswith("Patient/"):
            raise KeyError(relative_path)
        return make_bundle()

    @property
    def searched_types(self) -> list[str]:
        return [call.split("?", 1)[0] for call in self.calls if "?" in call]


@pytest.fixture
def fetcher_factory() -> Callable[..., FakeFetcher]:
    """Build FakeFetcher instances inside a test."""
    return FakeFetcher


@pytest.fixture
def bundle_factory() -> Callable[..., dict[str, Any]]:
    return make_bundle


# =============================================================================
# TEST DATA FIXTURES
# =============================================================================


@pytest.fixture
def patient_resource() -> dict[str, Any]:
    return {
        "resourceType": "Patient",
        "id": "example",
        "name": [
            {"use": "official", "family": "Chalmers", "given": ["Peter", "James"]},
            {"use": "usual", "given": ["Jim"]},
        ],
        "gender": "male",
        "birthDate": "1974-12-25",
    }


@pytest.fixture
def encounter_resource() -> dict[str, Any]:
    return {
        "resourceType": "Encounter",
        "id": "enc-1",
        "status": "finished",
        "serviceProvider": {"reference": "Organization/org-1", "display": "General Hospital"},
        "participant": [
            {"individual": {"reference": "Practitioner/pr-1", "display": "Dr. Adam Careful"}}
        ],
        "period": {"start": "2021-06-15T10:00:00Z", "end": "2021-06-15T11:00:00Z"},
    }


@pytest.fixture
def condition_resource() -> dict[str, Any]:
    return {
        "resourceType": "Condition",
        "id": "cond-1",
        "code": {
            "text": "Hypertension",
            "coding": [{"system": "http://snomed.info/sct", "display": "Hypertensive disorder"}],
        },
        "recordedDate": "2020-03-01",
        "encounter": {"reference": "Encounter/enc-1"},
    }


@pytest.fixture
def observation_resource() -> dict[str, Any]:
    return {
        "resourceType": "Observation",
        "id": "obs-1",
        "status": "final",
        "code": {
            "coding": [{"system": "http://loinc.org", "code": "8867-4", "display": "Heart rate"}]
        },
        "effectiveDateTime": "2022-01-10T08:30:00+02:00",
        "performer": [{"reference": {"reference": "Practitioner/pr-2", "display": "Nurse Joy"}}],
        "encounter": {"reference": "Encounter/enc-2"},
    }


@pytest.fixture
def immunization_resource() -> dict[str, Any]:
    return {
        "resourceType": "Immunization",
        "id": "imm-1",
        "status": "completed",
        "vaccineCode": {"coding": [{"display": "Influenza, seasonal"}]},
        "occurrenceDateTime": "2019-10-01",
        "performer": [{"actor": {"reference": "Practitioner/pr-3", "display": "Dr. Vax"}}],
    }
