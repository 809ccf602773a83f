"""
DID resolution.

DIDResolverRegistry dispatches a DID to the resolver registered for its
method. Bundled resolvers:

- WebDIDResolver: did:web (https://w3c-ccg.github.io/did-method-web/)
- HTTPBindingResolver: any method served by a DID resolution HTTP(S)
  endpoint, e.g. a Universal Resolver driver (GET <endpoint>/<did>)
- KeyDIDResolver: did:key, see did_linkage.did_key
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from did_linkage.errors import ResolutionError

logger = logging.getLogger(__name__)


@dataclass
class PublicKeyJWK:
    """Public key in JWK format (EC or OKP)."""

    kty: str
    crv: str
    x: str
    y: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublicKeyJWK:
        """Create PublicKeyJWK from a JWK dictionary."""
        return cls(
            kty=data.get("kty", ""),
            crv=data.get("crv", ""),
            x=data.get("x", ""),
            y=data.get("y", ""),
        )


@dataclass
class VerificationMethod:
    """DID Document verification method."""

    id: str
    type: str
    controller: str
    public_key_jwk: PublicKeyJWK | None = None
    public_key_base58: str | None = None
    public_key_multibase: str | None = None


@dataclass
class DIDDocument:
    """W3C DID Document."""

    id: str
    verification_methods: list[VerificationMethod]
    authentication: list[str] = field(default_factory=list)
    assertion_method: list[str] = field(default_factory=list)

    def get_verification_method(self, method_id: str) -> VerificationMethod | None:
        """Get a verification method by absolute or relative (#fragment) ID."""
        if method_id.startswith("#"):
            method_id = self.id + method_id
        for vm in self.verification_methods:
            if vm.id == method_id:
                return vm
        return None

    def assertion_methods(self) -> list[VerificationMethod]:
        """Verification methods authorized for assertions, in document order."""
        methods = []
        for ref in self.assertion_method:
            vm = self.get_verification_method(ref)
            if vm is not None:
                methods.append(vm)
        return methods


class DIDResolver(Protocol):
    """A method-specific DID resolver."""

    method: str

    def resolve(self, did: str) -> DIDDocument: ...


def did_method(did: str) -> str:
    """Return the method name of a DID ("did:web:example.com" -> "web")."""
    parts = did.split(":", 2)
    if len(parts) < 3 or parts[0] != "did" or not parts[1] or not parts[2]:
        raise ResolutionError(f"Invalid DID: {did}")
    return parts[1]


class DIDResolverRegistry:
    """Dispatch table of DID resolvers keyed by DID method."""

    def __init__(self, resolvers: list[DIDResolver] | None = None) -> None:
        self._resolvers: dict[str, DIDResolver] = {}
        for resolver in resolvers or []:
            self.register(resolver)

    @property
    def methods(self) -> list[str]:
        return sorted(self._resolvers)

    def register(self, resolver: DIDResolver) -> None:
        """Register a resolver, replacing any previous one for its method."""
        self._resolvers[resolver.method] = resolver

    def resolve(self, did: str) -> DIDDocument:
        """Resolve a DID (fragments and queries are ignored).

        Raises:
            ResolutionError: If no resolver handles the method or resolution fails.
        """
        base_did = did.split("#")[0].split("?")[0]
        method = did_method(base_did)
        resolver = self._resolvers.get(method)
        if resolver is None:
            raise ResolutionError(f"No resolver registered for DID method '{method}'")
        logger.debug("Resolving %s via %s", base_did, type(resolver).__name__)
        return resolver.resolve(base_did)


def parse_did_document(data: dict[str, Any], did: str) -> DIDDocument:
    """Parse a DID Document from JSON.

    Relative verification method IDs ("#key-1") are made absolute against
    the document ID. Embedded methods in verification relationships and the
    legacy "publicKey" array are collected as well.

    Raises:
        ResolutionError: If the document is invalid.
    """
    if not isinstance(data, dict):
        raise ResolutionError(f"DID Document for {did} is not a JSON object")

    doc_id = data.get("id", "")
    if doc_id != did:
        raise ResolutionError(f"DID Document id mismatch: expected {did}, got {doc_id}")

    verification_methods: list[VerificationMethod] = []
    raw_methods = list(data.get("verificationMethod", [])) + list(data.get("publicKey", []))
    for relationship in ("authentication", "assertionMethod"):
        raw_methods.extend(
            item for item in data.get(relationship, []) if isinstance(item, dict)
        )

    seen: set[str] = set()
    for vm_data in raw_methods:
        if not isinstance(vm_data, dict):
            continue
        vm = _parse_verification_method(vm_data, doc_id)
        if vm.id in seen:
            continue
        seen.add(vm.id)
        verification_methods.append(vm)

    return DIDDocument(
        id=doc_id,
        verification_methods=verification_methods,
        authentication=_parse_verification_relationship(data.get("authentication", []), doc_id),
        assertion_method=_parse_verification_relationship(data.get("assertionMethod", []), doc_id),
    )


def _parse_verification_method(vm_data: dict[str, Any], doc_id: str) -> VerificationMethod:
    """Parse a verification method object.

    Args:
        vm_data: The method as it appears in the DID Document.
        doc_id: The DID Document id, used for relative method ids.

    Returns:
        The VerificationMethod with an absolute id.
    """
    public_key_jwk = None
    if isinstance(vm_data.get("publicKeyJwk"), dict):
        public_key_jwk = PublicKeyJWK.from_dict(vm_data["publicKeyJwk"])

    return VerificationMethod(
        id=_absolute_id(vm_data.get("id", ""), doc_id),
        type=vm_data.get("type", ""),
        controller=vm_data.get("controller", doc_id),
        public_key_jwk=public_key_jwk,
        public_key_base58=vm_data.get("publicKeyBase58"),
        public_key_multibase=vm_data.get("publicKeyMultibase"),
    )


def _parse_verification_relationship(items: list[Any], doc_id: str) -> list[str]:
    """Parse a verification relationship array into absolute method IDs.

    Items can be either strings (references) or objects (embedded methods).
    """
    result: list[str] = []
    for item in items:
        if isinstance(item, str):
            result.append(_absolute_id(item, doc_id))
        elif isinstance(item, dict) and "id" in item:
            result.append(_absolute_id(item["id"], doc_id))
    return result


def _absolute_id(method_id: str, doc_id: str) -> str:
    if method_id.startswith("#"):
        return doc_id + method_id
    return method_id


class WebDIDResolver:
    """Resolver for did:web DID method."""

    method = "web"

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the DID resolver.

        Args:
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._cache: dict[str, DIDDocument] = {}

    def _did_to_url(self, did: str) -> str:
        """Convert a did:web identifier to its resolution URL.

        did:web:example.com -> https://example.com/.well-known/did.json
        did:web:example.com:path:to:doc -> https://example.com/path/to/doc/did.json
        did:web:example.com%3A8080 -> https://example.com:8080/.well-known/did.json

        Raises:
            ResolutionError: If the DID format is invalid.
        """
        if not did.startswith("did:web:"):
            raise ResolutionError(f"Invalid did:web identifier: {did}")

        domain_path = did[8:].split("#")[0]
        parts = domain_path.split(":")
        domain = parts[0].replace("%3A", ":")

        if len(parts) > 1:
            path = "/" + "/".join(quote(p, safe="") for p in parts[1:]) + "/did.json"
        else:
            path = "/.well-known/did.json"

        return f"https://{domain}{path}"

    def resolve(self, did: str) -> DIDDocument:
        """Resolve a did:web identifier to its DID Document.

        Raises:
            ResolutionError: If resolution fails.
        """
        base_did = did.split("#")[0]
        if base_did in self._cache:
            return self._cache[base_did]

        url = self._did_to_url(did)
        data = _fetch_json(
            url,
            did,
            timeout=self.timeout,
            verify_ssl=self.verify_ssl,
            accept="application/did+ld+json, application/json",
        )

        doc = parse_did_document(data, base_did)
        self._cache[base_did] = doc
        return doc

    def clear_cache(self) -> None:
        """Clear the resolution cache."""
        self._cache.clear()


class HTTPBindingResolver:
    """Resolver backed by a DID resolution HTTP endpoint.

    Issues ``GET <endpoint>/<did>`` and accepts either a DID Resolution
    Result (``{"didDocument": ...}``) or a bare DID Document.
    """

    def __init__(
        self,
        endpoint: str,
        method: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the resolver.

        Args:
            endpoint: Base URL of the resolution service.
            method: DID method served by the endpoint, e.g. "ion".
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.endpoint = endpoint.rstrip("/")
        self.method = method
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._cache: dict[str, DIDDocument] = {}

    def resolve(self, did: str) -> DIDDocument:
        """Resolve a DID through the endpoint.

        Raises:
            ResolutionError: If resolution fails.
        """
        if did in self._cache:
            return self._cache[did]

        data = _fetch_json(
            f"{self.endpoint}/{did}",
            did,
            timeout=self.timeout,
            verify_ssl=self.verify_ssl,
            accept='application/ld+json;profile="https://w3id.org/did-resolution", '
            "application/did+ld+json, application/json",
        )

        document = data.get("didDocument", data) if isinstance(data, dict) else data
        doc = parse_did_document(document, did)
        self._cache[did] = doc
        return doc

    def clear_cache(self) -> None:
        """Clear the resolution cache."""
        self._cache.clear()


def _fetch_json(url: str, did: str, timeout: float, verify_ssl: bool, accept: str) -> Any:
    """GET a JSON document for DID resolution.

    Args:
        url: The URL to fetch.
        did: The DID being resolved, reported in errors.
        timeout: HTTP request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates.
        accept: Value of the Accept header.

    Returns:
        The decoded JSON body.

    Raises:
        ResolutionError: On transport errors, non-2xx status or invalid JSON.
    """
    try:
        with httpx.Client(timeout=timeout, verify=verify_ssl) as client:
            response = client.get(url, headers={"Accept": accept})
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as e:
        raise ResolutionError(
            f"HTTP error resolving {did}: {e.response.status_code}"
        ) from e
    except httpx.RequestError as e:
        raise ResolutionError(f"Network error resolving {did}: {e}") from e
    except ValueError as e:
        raise ResolutionError(f"Invalid JSON in DID Document for {did}") from e
