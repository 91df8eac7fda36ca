"""Command line entry point for fetching a patient timeline.

Usage:
    python -m src.patient_timeline example                       # Table output
    python -m src.patient_timeline example --from 2020-01-01     # Date range
    python -m src.patient_timeline example --json                # JSON output
    python -m src.patient_timeline example --concurrent          # Parallel searches
    python -m src.patient_timeline example --skip-failed-types   # Degrade on failures
"""

import argparse
import asyncio
import logging
import sys
from datetime import date

from rich.console import Console
from rich.table import Table

from src.config.settings import FetchMode, PartialFailurePolicy, settings

from .client import FhirHttpClient
from .exceptions import TimelineServiceError
from .logging_config import configure_logging
from .models import PatientTimelineResult
from .timeline import PatientTimelineService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patient-timeline",
        description="Aggregate a patient's FHIR clinical history into one timeline",
    )
    parser.add_argument("patient_id", help="FHIR logical id of the patient")
    parser.add_argument(
        "--from", dest="from_date", type=date.fromisoformat, help="Start date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--to", dest="to_date", type=date.fromisoformat, help="End date (YYYY-MM-DD)"
    )
    parser.add_argument("--base-url", help=f"FHIR base URL (default: {settings.fhir_base_url})")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument(
        "--concurrent", action="store_true", help="Search all resource types concurrently"
    )
    parser.add_argument(
        "--skip-failed-types",
        action="store_true",
        help="Treat a failed resource-type search as empty instead of aborting",
    )
    return parser


def render_table(result: PatientTimelineResult, console: Console) -> None:
    """Print the summary line and one table row per event."""
    summary = result.summary
    console.print(
        f"[bold]{summary.name or summary.patient_id}[/bold] "
        f"gender={summary.gender or '-'} born={summary.birth_date or '-'} "
        f"encounters={summary.encounter_count} latest={summary.latest_encounter_date or '-'}"
    )

    table = Table(title=f"Timeline ({result.total_events} events)", show_header=True)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Title")
    table.add_column("Practitioner")
    table.add_column("Organization")
    table.add_column("Status")

    for event in result.events:
        table.add_row(
            event.occurred_at.isoformat() if event.has_known_date else "unknown",
            event.resource_type.value,
            event.title,
            event.practitioner_display or "",
            event.organization_display or "",
            event.details.get("status", ""),
        )

    console.print(table)


async def run(args: argparse.Namespace) -> PatientTimelineResult:
    async with FhirHttpClient(base_url=args.base_url) as client:
        service = PatientTimelineService(
            client,
            fetch_mode=FetchMode.CONCURRENT if args.concurrent else None,
            partial_failure_policy=PartialFailurePolicy.SKIP if args.skip_failed_types else None,
        )
        return await service.get_timeline(args.patient_id, args.from_date, args.to_date)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, settings.log_format)

    try:
        settings.validate_configuration()
        result = asyncio.run(run(args))
    except TimelineServiceError as e:
        logger.error(f"✗ {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        render_table(result, Console())
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
