"""FHIR server access."""

from .fhir_client import FhirHttpClient, ResourceFetcher

__all__ = ["FhirHttpClient", "ResourceFetcher"]
