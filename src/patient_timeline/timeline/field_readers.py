"""Tolerant readers for loosely typed FHIR JSON.

Every helper here returns ``None`` for anything absent, wrong-typed or
unparsable instead of raising. The extractors build on these so a single odd
resource never fails a whole timeline request.

Key Features:
    - String / object / first-list-entry accessors
    - Coded concept text resolution (text, then coding display)
    - Reference id and display extraction
    - FHIR date and dateTime parsing (partial dates included)
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

# FHIR allows reduced precision dates: "2020" and "2020-03"
_PARTIAL_DATE_PATTERN = re.compile(r"^(\d{4})(?:-(\d{2}))?$")


def get_string(element: Any, name: str) -> str | None:
    """Return ``element[name]`` when it is a string, else ``None``."""
    if not isinstance(element, dict):
        return None
    value = element.get(name)
    return value if isinstance(value, str) else None


def get_text(element: Any, name: str) -> str | None:
    """Like ``get_string`` but treats blank strings as absent."""
    value = get_string(element, name)
    if value is None or not value.strip():
        return None
    return value


def get_object(element: Any, name: str) -> dict[str, Any] | None:
    if not isinstance(element, dict):
        return None
    value = element.get(name)
    return value if isinstance(value, dict) else None


def first_object(element: Any, name: str) -> dict[str, Any] | None:
    """Return the first entry of list ``element[name]`` if it is an object.

    Only the first entry is considered; a list starting with a non-object
    yields ``None`` rather than searching further.
    """
    if not isinstance(element, dict):
        return None
    values = element.get(name)
    if not isinstance(values, list) or not values:
        return None
    first = values[0]
    return first if isinstance(first, dict) else None


def get_code_text(element: Any, name: str) -> str | None:
    """Resolve the human readable text of a coded concept field.

    Prefers the concept's own ``text``, then the first ``coding`` entry that
    carries a ``display``.

    Args:
        element: Resource or sub-object holding the concept
        name: Field name of the coded concept (e.g., "code", "vaccineCode")

    Returns:
        Concept text or None

    Example:
        >>> get_code_text({"code": {"coding": [{"display": "Asthma"}]}}, "code")
        'Asthma'
    """
    concept = get_object(element, name)
    if concept is None:
        return None

    text = get_text(concept, "text")
    if text is not None:
        return text

    codings = concept.get("coding")
    if isinstance(codings, list):
        for coding in codings:
            display = get_text(coding, "display")
            if display is not None:
                return display

    return None


def read_reference_id(element: Any, name: str) -> str | None:
    """Extract the target id from a reference field.

    Handles ``"Encounter/123"`` (trailing segment) and ``"urn:uuid:abc"``
    (the uuid) forms, as found in server responses and transaction bundles.

    Args:
        element: Resource holding the reference
        name: Reference field name (e.g., "encounter")

    Returns:
        Referenced id or None
    """
    reference = get_text(get_object(element, name), "reference")
    if reference is None:
        return None

    if reference.startswith("urn:uuid:"):
        target = reference[len("urn:uuid:"):]
    else:
        target = reference.rstrip().split("/")[-1]

    return target if target.strip() else None


def read_display(reference: Any) -> str | None:
    """Return the cached ``display`` of a reference object."""
    return get_text(reference, "display")


def parse_fhir_datetime(value: Any) -> datetime | None:
    """Parse a FHIR date or dateTime string into an aware datetime.

    Accepts ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` and ISO 8601 date-times with
    ``Z`` or a numeric offset. Values without a zone are taken as UTC.

    Args:
        value: Raw JSON value

    Returns:
        Timezone-aware datetime or None when unparsable

    Example:
        >>> parse_fhir_datetime("2021-06-15T10:00:00Z")
        datetime.datetime(2021, 6, 15, 10, 0, tzinfo=datetime.timezone.utc)
    """
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        match = _PARTIAL_DATE_PATTERN.match(text)
        if match:
            parsed = datetime(int(match.group(1)), int(match.group(2) or 1), 1)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparsable FHIR dateTime: {text!r}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_fhir_date(value: Any) -> date | None:
    """Parse a full FHIR ``date`` (``YYYY-MM-DD``) into a calendar date."""
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        logger.debug(f"Unparsable FHIR date: {value!r}")
        return None
