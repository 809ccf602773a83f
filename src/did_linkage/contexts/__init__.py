"""
JSON-LD context resolution.

Supplies the context documents for both published versions of the DID
Configuration specification (legacy v0.0 and current v1) plus the W3C
credentials v1 context, so that configuration parsing and linked-data
proof canonicalization work without live access to context registries.
"""

from __future__ import annotations

import json
import logging
import threading
from importlib import resources
from typing import Any

import httpx

from did_linkage.errors import ContextLoadError

logger = logging.getLogger(__name__)

CONTEXT_V0 = "https://identity.foundation/.well-known/contexts/did-configuration-v0.0.jsonld"
CONTEXT_V1 = "https://identity.foundation/.well-known/did-configuration/v1"
CREDENTIALS_V1 = "https://www.w3.org/2018/credentials/v1"

DOMAIN_LINKAGE_CONTEXTS = {CONTEXT_V0: "v0", CONTEXT_V1: "v1"}

# Expanded IRIs of the ``linked_dids`` term, keyed by context version.
LINKED_DIDS_IRIS = {
    "https://identity.foundation/.well-known/contexts/did-configuration-v0.0#linked_dids": "v0",
    "https://identity.foundation/.well-known/resources/did-configuration/#linked_dids": "v1",
}

DOMAIN_LINKAGE_TYPE = "DomainLinkageCredential"

_BUNDLED_FILES = {
    CONTEXT_V0: "did-configuration-v0.0.jsonld",
    CONTEXT_V1: "did-configuration-v1.jsonld",
    CREDENTIALS_V1: "credentials-v1.jsonld",
}


def bundled_contexts() -> dict[str, dict[str, Any]]:
    """Read the context documents shipped with the package."""
    package = resources.files(__name__)
    return {
        url: json.loads(package.joinpath(filename).read_text(encoding="utf-8"))
        for url, filename in _BUNDLED_FILES.items()
    }


class ContextLoader:
    """pyld-compatible JSON-LD document loader.

    Instances are callables accepting ``(url, options)`` and returning a pyld
    RemoteDocument. Pre-seeded documents are served from memory. Unknown
    URLs fail unless ``allow_remote`` is set, in which case they are fetched
    once and memoized.
    """

    def __init__(
        self,
        documents: dict[str, dict[str, Any]] | None = None,
        allow_remote: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self.allow_remote = allow_remote
        self.timeout = timeout
        self._documents: dict[str, dict[str, Any]] = dict(documents or {})
        self._lock = threading.Lock()

    def __call__(self, url: str, options: dict[str, Any] | None = None) -> dict[str, Any]:
        return {
            "contextUrl": None,
            "documentUrl": url,
            "document": self.load(url),
        }

    def __contains__(self, url: str) -> bool:
        return url in self._documents

    def add(self, url: str, document: dict[str, Any]) -> None:
        """Seed a context document."""
        with self._lock:
            self._documents[url] = document

    def load(self, url: str) -> dict[str, Any]:
        """Return the context document for ``url``.

        Raises:
            ContextLoadError: If the document is not seeded and cannot be fetched.
        """
        document = self._documents.get(url)
        if document is not None:
            return document

        if not self.allow_remote:
            raise ContextLoadError(url, "not available offline")

        document = self._fetch(url)
        with self._lock:
            self._documents.setdefault(url, document)
        return document

    def _fetch(self, url: str) -> dict[str, Any]:
        logger.debug("Fetching remote JSON-LD context %s", url)
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                response = client.get(
                    url,
                    headers={"Accept": "application/ld+json, application/json"},
                )
                response.raise_for_status()
                document = response.json()
        except httpx.HTTPStatusError as e:
            raise ContextLoadError(url, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ContextLoadError(url, str(e)) from e
        except ValueError as e:
            raise ContextLoadError(url, "invalid JSON") from e

        if not isinstance(document, dict):
            raise ContextLoadError(url, "context document is not a JSON object")
        return document


def bundled_context_loader(allow_remote: bool = False) -> ContextLoader:
    """Create a loader pre-seeded with the bundled context documents."""
    return ContextLoader(bundled_contexts(), allow_remote=allow_remote)
