"""Async HTTP client for the FHIR REST API.

The timeline aggregator depends only on the ``ResourceFetcher`` protocol:
one coroutine that turns a relative path into a parsed JSON object or raises
an ``UpstreamError``. ``FhirHttpClient`` is the httpx implementation used in
production; tests substitute in-memory fetchers.

No retries happen here. A failed round trip surfaces immediately so the
caller decides whether to retry the whole request.
"""

import logging
from typing import Any, Protocol

import httpx

from src.config.settings import settings

from ..exceptions import (
    UpstreamHttpError,
    UpstreamNotFoundError,
    UpstreamProtocolError,
    convert_to_timeline_exception,
)

logger = logging.getLogger(__name__)


class ResourceFetcher(Protocol):
    """Anything able to GET a FHIR path relative to the server base."""

    async def fetch(self, relative_path: str) -> dict[str, Any]:
        """Fetch and parse one FHIR document.

        Raises:
            UpstreamError: On non-success status, transport fault or unparsable body
        """
        ...


class FhirHttpClient:
    """FHIR REST client built on ``httpx.AsyncClient``.

    Attributes:
        base_url: FHIR server base URL, relative paths are resolved against it
        request_timeout: Maximum seconds to wait for one round trip
        error_body_limit: Response body characters kept on upstream errors

    Example:
        >>> async with FhirHttpClient() as client:
        ...     patient = await client.fetch("Patient/example")
    """

    def __init__(
        self,
        base_url: str | None = None,
        request_timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        error_body_limit: int | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Overrides ``settings.fhir_base_url``
            request_timeout: Overrides ``settings.fhir_request_timeout``
            client: Pre-built httpx client (not closed by this instance)
            error_body_limit: Overrides ``settings.fhir_error_body_limit``
        """
        self.base_url = base_url or settings.fhir_base_url
        self.request_timeout = request_timeout or settings.fhir_request_timeout
        self.error_body_limit = (
            settings.fhir_error_body_limit if error_body_limit is None else error_body_limit
        )

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.request_timeout,
            headers={"Accept": settings.fhir_accept_header},
        )

    async def fetch(self, relative_path: str) -> dict[str, Any]:
        """GET ``relative_path`` and return the parsed JSON object.

        Args:
            relative_path: Path relative to the base URL, query string included
                (e.g., "Encounter?patient=example&_count=200")

        Returns:
            Parsed JSON document

        Raises:
            UpstreamNotFoundError: Server answered 404
            UpstreamHttpError: Server answered any other non-2xx status
            UpstreamTransportError: Connection failure or timeout
            UpstreamProtocolError: Body is not a JSON object
        """
        logger.debug(f"GET {relative_path}")

        try:
            response = await self._client.get(relative_path)
        except httpx.HTTPError as e:
            logger.error(f"FHIR request failed for {relative_path}: {e}")
            raise convert_to_timeline_exception(e, context={"path": relative_path}) from e

        if not response.is_success:
            raise self._http_error(relative_path, response)

        try:
            document = response.json()
        except ValueError as e:
            raise UpstreamProtocolError(
                message="FHIR response body is not valid JSON",
                details={
                    "path": relative_path,
                    "content_type": response.headers.get("content-type"),
                },
                original_exception=e,
            ) from e

        if not isinstance(document, dict):
            raise UpstreamProtocolError(
                message="FHIR response body is not a JSON object",
                details={"path": relative_path, "json_type": type(document).__name__},
            )

        return document

    def _http_error(self, relative_path: str, response: httpx.Response) -> UpstreamHttpError:
        body = response.text[: self.error_body_limit]
        error_class = UpstreamNotFoundError if response.status_code == 404 else UpstreamHttpError
        logger.error(f"FHIR API error for {relative_path}: {response.status_code}")
        message = f"FHIR API error: {response.status_code} {response.reason_phrase}. {body}"
        return error_class(
            message=message.rstrip(),
            details={"path": relative_path},
            status_code=response.status_code,
            response_body=body,
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FhirHttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url='{self.base_url}')"
