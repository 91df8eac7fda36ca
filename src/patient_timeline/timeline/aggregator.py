"""Patient timeline aggregation across all clinical resource types.

This module assembles a patient's complete clinical timeline from the ten
timeline resource collections of a FHIR server.

Aggregation Strategy:
- Reads the Patient resource first; a missing or unreachable patient fails
  the request before any search is issued
- Searches each resource type (fixed order), sequentially or concurrently
- Extracts one normalized event per bundle entry, per-type results kept apart
- Folds per-type results in the fixed type order, then sorts newest first
- Derives encounter statistics from the sorted events
"""

import asyncio
import logging
from datetime import date
from itertools import chain
from operator import attrgetter
from typing import Any

from pydantic import ValidationError

from src.config.settings import FetchMode, PartialFailurePolicy, settings

from ..client.fhir_client import ResourceFetcher
from ..exceptions import TimelineCancelledError, UpstreamError, convert_to_timeline_exception
from ..logging_config import correlation_scope
from ..models import (
    TIMELINE_RESOURCE_TYPES,
    PatientTimelineResult,
    ResourceType,
    TimelineEvent,
    TimelineRequest,
)
from .bundle_parser import parse_bundle
from .event_extractor import extract_event
from .patient_summary import summarize_patient, with_encounter_statistics
from .query_builder import build_patient_path, build_patient_query

logger = logging.getLogger(__name__)


def merge_events(per_type_events: list[tuple[TimelineEvent, ...]]) -> list[TimelineEvent]:
    """Fold per-type event tuples into one list, newest first.

    The sort is stable, so events with equal ``occurred_at`` keep fetch order:
    resource-type order first, then bundle entry order.
    """
    return sorted(
        chain.from_iterable(per_type_events), key=attrgetter("occurred_at"), reverse=True
    )


class PatientTimelineService:
    """Builds ``PatientTimelineResult`` objects from a FHIR ``ResourceFetcher``.

    The service holds no per-request state and can be shared between
    concurrent requests.

    Attributes:
        fetcher: Source of FHIR documents
        fetch_mode: Sequential or concurrent resource-type searches
        partial_failure_policy: Abort or skip when one resource-type search fails
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        fetch_mode: FetchMode | None = None,
        partial_failure_policy: PartialFailurePolicy | None = None,
    ):
        self.fetcher = fetcher
        self.fetch_mode = FetchMode(fetch_mode or settings.timeline_fetch_mode)
        self.partial_failure_policy = PartialFailurePolicy(
            partial_failure_policy or settings.timeline_partial_failure_policy
        )

    async def get_timeline(
        self,
        patient_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PatientTimelineResult:
        """Retrieve the complete clinical timeline for a patient.

        Args:
            patient_id: FHIR logical id of the patient
            from_date: Optional inclusive lower date bound
            to_date: Optional inclusive upper date bound
            cancel_event: Optional signal; once set, the in-flight fetch is
                abandoned and the request fails with TimelineCancelledError

        Returns:
            Patient summary plus all events ordered newest first

        Raises:
            TimelineValidationError: If the request arguments are invalid
            UpstreamError: If the patient or (under the "fail" policy) any
                resource-type search cannot be fetched
            TimelineCancelledError: If cancel_event was set before completion
        """
        try:
            request = TimelineRequest(patient_id=patient_id, from_date=from_date, to_date=to_date)
        except ValidationError as e:
            raise convert_to_timeline_exception(e, context={"patient_id": patient_id}) from e

        with correlation_scope():
            return await self._build_timeline(request, cancel_event)

    async def _build_timeline(
        self, request: TimelineRequest, cancel_event: asyncio.Event | None
    ) -> PatientTimelineResult:
        logger.info(
            f"\n{'=' * 70}\n"
            f"PATIENT TIMELINE QUERY:\n"
            f"  Patient ID: {request.patient_id}\n"
            f"  Date Range: {request.from_date} to {request.to_date}\n"
            f"  Fetch Mode: {self.fetch_mode.value}\n"
            f"  Partial Failure Policy: {self.partial_failure_policy.value}\n"
            f"{'=' * 70}"
        )

        patient = await self._fetch(build_patient_path(request.patient_id), cancel_event)
        summary = summarize_patient(patient, request.patient_id)

        if self.fetch_mode is FetchMode.CONCURRENT:
            per_type_events = await self._gather_concurrently(request, cancel_event)
        else:
            per_type_events = [
                await self._fetch_resource_events(resource_type, request, cancel_event)
                for resource_type in TIMELINE_RESOURCE_TYPES
            ]

        events = merge_events(per_type_events)
        summary = with_encounter_statistics(summary, events)

        logger.info(
            f"✓ Retrieved {len(events)} timeline events "
            f"({summary.encounter_count} encounters) for patient {request.patient_id}"
        )
        return PatientTimelineResult(summary=summary, events=events)

    async def _gather_concurrently(
        self, request: TimelineRequest, cancel_event: asyncio.Event | None
    ) -> list[tuple[TimelineEvent, ...]]:
        """Search all resource types at once, results in fixed type order.

        The first failure cancels the searches still in flight and is re-raised.
        """
        tasks = [
            asyncio.create_task(
                self._fetch_resource_events(resource_type, request, cancel_event),
                name=f"timeline-{resource_type.value}",
            )
            for resource_type in TIMELINE_RESOURCE_TYPES
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _fetch_resource_events(
        self,
        resource_type: ResourceType,
        request: TimelineRequest,
        cancel_event: asyncio.Event | None,
    ) -> tuple[TimelineEvent, ...]:
        query = build_patient_query(
            resource_type, request.patient_id, request.from_date, request.to_date
        )
        try:
            bundle = await self._fetch(query, cancel_event)
        except UpstreamError as e:
            if self.partial_failure_policy is not PartialFailurePolicy.SKIP:
                raise
            logger.warning(f"Skipping {resource_type.value} events after upstream failure: {e}")
            return ()

        events = tuple(
            extract_event(resource_type, resource)
            for resource in parse_bundle(resource_type, bundle)
        )
        logger.debug(f"{resource_type.value}: {len(events)} events")
        return events

    async def _fetch(
        self, relative_path: str, cancel_event: asyncio.Event | None
    ) -> dict[str, Any]:
        """Run one network round trip, abandoning it if ``cancel_event`` fires."""
        if cancel_event is None:
            return await self.fetcher.fetch(relative_path)

        if cancel_event.is_set():
            raise self._cancelled(relative_path)

        fetch_task = asyncio.ensure_future(self.fetcher.fetch(relative_path))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not fetch_task.done():
                fetch_task.cancel()
                await asyncio.gather(fetch_task, return_exceptions=True)

        if fetch_task.cancelled():
            raise self._cancelled(relative_path)
        return fetch_task.result()

    @staticmethod
    def _cancelled(relative_path: str) -> TimelineCancelledError:
        logger.info(f"Timeline request cancelled before completing {relative_path}")
        return TimelineCancelledError(
            message="Timeline request was cancelled", details={"path": relative_path}
        )
