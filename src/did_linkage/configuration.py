"""
DID configuration resource parsing.

Decodes the well-known document into a LinkageConfiguration and checks that
it declares one of the recognized domain linkage contexts. Individual
``linked_dids`` entries are left untouched; see did_linkage.credential.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable

from pyld import jsonld

from did_linkage.contexts import DOMAIN_LINKAGE_CONTEXTS, LINKED_DIDS_IRIS
from did_linkage.errors import ContextLoadError, StructuralError

LINKED_DIDS = "linked_dids"

DocumentLoader = Callable[..., dict[str, Any]]


@dataclass
class LinkageConfiguration:
    """Parsed DID configuration resource."""

    context: str | list[Any]
    version: str
    linked_dids: list[Any] = field(default_factory=list)


def parse_configuration(
    data: bytes | str,
    document_loader: DocumentLoader | None,
) -> LinkageConfiguration:
    """Parse a DID configuration resource.

    Args:
        data: The raw JSON document.
        document_loader: JSON-LD loader used to resolve the declared context.

    Returns:
        The parsed LinkageConfiguration. ``linked_dids`` may be empty.

    Raises:
        StructuralError: If the document is not JSON, declares no recognized
            context, or lacks the ``linked_dids`` property.
    """
    try:
        document = json.loads(data)
    except ValueError as e:
        raise StructuralError(f"invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise StructuralError("document must be a JSON object")

    if "@context" not in document:
        raise StructuralError.missing_property("@context")
    context = document["@context"]

    version = _context_version(document, document_loader)

    if LINKED_DIDS not in document:
        raise StructuralError.missing_property(LINKED_DIDS)

    linked_dids = document[LINKED_DIDS]
    if not isinstance(linked_dids, list):
        raise StructuralError(
            f"property '{LINKED_DIDS}' must be an array", property_name=LINKED_DIDS
        )

    return LinkageConfiguration(context=context, version=version, linked_dids=linked_dids)


def _context_version(
    document: dict[str, Any],
    document_loader: DocumentLoader | None,
) -> str:
    """Determine which DID configuration context version a document uses."""
    declared = document["@context"]
    urls = [declared] if isinstance(declared, str) else declared
    if not isinstance(urls, list):
        urls = [urls]

    known = [u for u in urls if isinstance(u, str) and u in DOMAIN_LINKAGE_CONTEXTS]

    if document_loader is None:
        raise StructuralError(
            f"no JSON-LD document loader configured to resolve context {declared!r}"
        )

    if known:
        url = known[0]
        try:
            document_loader(url, {})
        except ContextLoadError as e:
            raise StructuralError(str(e)) from e
        except jsonld.JsonLdError as e:
            raise StructuralError(f"unable to load JSON-LD context {url}: {e}") from e
        return DOMAIN_LINKAGE_CONTEXTS[url]

    # No well-known URL: accept documents whose own context maps linked_dids
    # onto one of the recognized IRIs.
    probe = {"@context": declared, LINKED_DIDS: ["probe"]}
    try:
        expanded = jsonld.expand(probe, {"documentLoader": document_loader})
    except (jsonld.JsonLdError, ContextLoadError) as e:
        raise StructuralError(f"unable to process @context {declared!r}: {e}") from e

    for node in expanded:
        for key in node:
            if key in LINKED_DIDS_IRIS:
                return LINKED_DIDS_IRIS[key]

    raise StructuralError(f"unrecognized @context {declared!r}", property_name="@context")
