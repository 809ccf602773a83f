"""
Retrieval of the DID configuration resource.

Fetches ``<domain>/.well-known/did-configuration.json`` over HTTPS.
https://identity.foundation/.well-known/resources/did-configuration/
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from did_linkage.errors import HTTPStatusError, TransportError

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/did-configuration.json"
MAX_ERROR_BODY = 512


def well_known_url(domain: str) -> str:
    """Build the DID configuration URL for a domain.

    https://example.com -> https://example.com/.well-known/did-configuration.json
    https://example.com/ -> https://example.com/.well-known/did-configuration.json
    """
    return domain.rstrip("/") + WELL_KNOWN_PATH


def close_response(response: Any) -> None:
    """Release a response body, logging instead of raising on failure."""
    try:
        response.close()
    except Exception as e:
        logger.warning("Failed to close response body: %s", e)


class ConfigurationFetcher:
    """Fetches raw DID configuration documents."""

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the fetcher.

        Args:
            http_client: Transport to use. Never closed by the fetcher.
                A short-lived client is created per fetch if not provided.
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.http_client = http_client
        self.timeout = timeout
        self.verify_ssl = verify_ssl

    def fetch(self, domain: str) -> bytes:
        """Fetch the DID configuration published by ``domain``.

        Args:
            domain: Origin including scheme, e.g. "https://example.com".

        Returns:
            The raw response body.

        Raises:
            TransportError: If the request could not be completed.
            HTTPStatusError: If the endpoint did not answer 200.
        """
        url = well_known_url(domain)
        scheme = url.split("://", 1)[0].lower() if "://" in url else ""
        if scheme not in ("http", "https"):
            raise TransportError(url, "missing protocol scheme")

        if self.http_client is not None:
            return self._fetch_with(self.http_client, url)

        with httpx.Client(timeout=self.timeout, verify=self.verify_ssl) as client:
            return self._fetch_with(client, url)

    def _fetch_with(self, client: httpx.Client, url: str) -> bytes:
        logger.debug("Fetching DID configuration from %s", url)
        try:
            request = client.build_request(
                "GET", url, headers={"Accept": "application/json"}
            )
            response = client.send(request, stream=True)
        except httpx.InvalidURL as e:
            raise TransportError(url, str(e)) from e
        except httpx.RequestError as e:
            raise TransportError(url, str(e)) from e

        try:
            body = response.read()
        except httpx.RequestError as e:
            raise TransportError(url, str(e)) from e
        finally:
            close_response(response)

        if response.status_code != httpx.codes.OK:
            message = body.decode("utf-8", errors="replace")[:MAX_ERROR_BODY]
            raise HTTPStatusError(url, response.status_code, message)

        return body
