"""Unwrap FHIR searchset bundles into their resource records."""

import logging
from typing import Any

from ..models import ResourceType
from .field_readers import get_string, get_object

logger = logging.getLogger(__name__)


def parse_bundle(resource_type: ResourceType, document: Any) -> list[dict[str, Any]]:
    """Return the resources of a search result bundle, in entry order.

    A missing or non-list ``entry`` means "no results", not an error. Entries
    without an object ``resource`` are skipped, as are entries holding a
    different resource type than the one searched for (``include`` matches
    or an ``OperationOutcome`` carried in the bundle).

    Args:
        resource_type: Resource type the search was issued for
        document: Parsed JSON body of the search response

    Returns:
        List of raw resource dictionaries
    """
    resource_type = ResourceType(resource_type)
    if not isinstance(document, dict):
        return []

    if _has_next_page(document):
        logger.warning(
            f"{resource_type.value} search returned more results than one page; "
            f"only the first page is included in the timeline"
        )

    entries = document.get("entry")
    if not isinstance(entries, list):
        return []

    resources = []
    for index, entry in enumerate(entries):
        resource = get_object(entry, "resource")
        if resource is None:
            logger.debug(f"Skipping {resource_type.value} bundle entry {index}: no resource")
            continue

        declared_type = get_string(resource, "resourceType")
        if declared_type is not None and declared_type != resource_type.value:
            logger.debug(
                f"Skipping {resource_type.value} bundle entry {index}: holds {declared_type}"
            )
            continue

        resources.append(resource)

    return resources


def _has_next_page(document: dict[str, Any]) -> bool:
    links = document.get("link")
    if not isinstance(links, list):
        return False
    return any(get_string(link, "relation") == "next" for link in links)
