"""
Domain linkage verifier.

Proves that the controller of a DID published, at
``<domain>/.well-known/did-configuration.json``, a domain linkage credential
signed by a key of that DID.

Flow: fetch -> parse -> per linked DID entry (normalize -> resolve and
verify proof -> match). The first entry passing every step wins; entry
errors are collected and the scan continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import httpx

from did_linkage.configuration import parse_configuration
from did_linkage.credential import NormalizedCredential, normalize
from did_linkage.did_key import KeyDIDResolver
from did_linkage.did_resolver import DIDResolverRegistry
from did_linkage.errors import (
    CredentialFormatError,
    DomainLinkageError,
    LinkageMismatchError,
    NoLinkageFoundError,
    ResolutionError,
    SignatureVerificationError,
)
from did_linkage.fetcher import ConfigurationFetcher
from did_linkage.linkage import check_linkage
from did_linkage.proof import ProofVerifier

logger = logging.getLogger(__name__)

ENTRY_ERRORS = (
    CredentialFormatError,
    ResolutionError,
    SignatureVerificationError,
    LinkageMismatchError,
)


class VerificationStatus(Enum):
    """Overall verification status."""

    VERIFIED = "verified"
    FAILED = "failed"


class Stage(Enum):
    """Per-entry pipeline stage at which an entry was rejected."""

    NORMALIZING = "normalizing"
    VERIFYING = "verifying"
    MATCHING = "matching"


@dataclass
class EntryDiagnostic:
    """Why one ``linked_dids`` entry was rejected."""

    index: int
    stage: Stage
    error: DomainLinkageError

    def __str__(self) -> str:
        return f"linked_dids[{self.index}] ({self.stage.value}): {self.error}"


@dataclass
class VerificationContext:
    """State of a single verification call."""

    did: str
    domain: str
    registry: DIDResolverRegistry
    document_loader: Callable[..., Any] | None
    fetcher: ConfigurationFetcher


@dataclass
class LinkageResult:
    """Outcome of a DID/domain verification."""

    status: VerificationStatus
    did: str
    domain: str
    credential: NormalizedCredential | None = None
    error: DomainLinkageError | None = None
    diagnostics: list[EntryDiagnostic] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.status == VerificationStatus.VERIFIED


def default_registry() -> DIDResolverRegistry:
    """Registry used when none is configured: did:key only."""
    return DIDResolverRegistry([KeyDIDResolver()])


class DomainLinkageVerifier:
    """Verifies DID to domain linkage via the DID configuration resource."""

    def __init__(
        self,
        document_loader: Callable[..., Any] | None = None,
        vdr_registry: DIDResolverRegistry | None = None,
        http_client: httpx.Client | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the verifier.

        Args:
            document_loader: JSON-LD context loader. Without one, configuration
                contexts cannot be resolved and parsing fails.
            vdr_registry: DID resolver registry. Defaults to did:key only.
            http_client: Transport for the configuration fetch.
            timeout: HTTP request timeout in seconds, when no client is given.
            verify_ssl: Whether to verify SSL certificates, when no client is given.
        """
        self.document_loader = document_loader
        self.vdr_registry = vdr_registry or default_registry()
        self.fetcher = ConfigurationFetcher(
            http_client=http_client, timeout=timeout, verify_ssl=verify_ssl
        )

    def verify(self, did: str, domain: str) -> LinkageResult:
        """Verify that ``did`` and ``domain`` are linked.

        Never raises for verification failures; the reason is reported in
        the returned LinkageResult.
        """
        context = VerificationContext(
            did=did,
            domain=domain,
            registry=self.vdr_registry,
            document_loader=self.document_loader,
            fetcher=self.fetcher,
        )
        diagnostics: list[EntryDiagnostic] = []
        try:
            credential = self._run(context, diagnostics)
        except DomainLinkageError as e:
            logger.info("Linkage between %s and %s not verified: %s", did, domain, e)
            return LinkageResult(
                status=VerificationStatus.FAILED,
                did=did,
                domain=domain,
                error=e,
                diagnostics=diagnostics,
            )

        logger.info("Verified linkage between %s and %s", did, domain)
        return LinkageResult(
            status=VerificationStatus.VERIFIED,
            did=did,
            domain=domain,
            credential=credential,
            diagnostics=diagnostics,
        )

    def verify_did_and_domain(self, did: str, domain: str) -> NormalizedCredential:
        """Verify that ``did`` and ``domain`` are linked.

        Returns:
            The credential that established the linkage.

        Raises:
            TransportError: If the configuration could not be fetched.
            HTTPStatusError: If the endpoint did not answer 200.
            StructuralError: If the configuration document is unusable.
            NoLinkageFoundError: If no linked DID entry verified.
        """
        context = VerificationContext(
            did=did,
            domain=domain,
            registry=self.vdr_registry,
            document_loader=self.document_loader,
            fetcher=self.fetcher,
        )
        return self._run(context, [])

    def _run(
        self,
        context: VerificationContext,
        diagnostics: list[EntryDiagnostic],
    ) -> NormalizedCredential:
        raw = context.fetcher.fetch(context.domain)
        configuration = parse_configuration(raw, context.document_loader)
        logger.debug(
            "DID configuration %s (%s) lists %d linked DID(s)",
            context.domain,
            configuration.version,
            len(configuration.linked_dids),
        )

        proof_verifier = ProofVerifier(context.registry, context.document_loader)

        for index, entry in enumerate(configuration.linked_dids):
            credential = self._check_entry(context, proof_verifier, index, entry, diagnostics)
            if credential is not None:
                return credential

        raise NoLinkageFoundError(context.did, context.domain, diagnostics)

    def _check_entry(
        self,
        context: VerificationContext,
        proof_verifier: ProofVerifier,
        index: int,
        entry: Any,
        diagnostics: list[EntryDiagnostic],
    ) -> NormalizedCredential | None:
        stage = Stage.NORMALIZING
        try:
            credential = normalize(entry)
            stage = Stage.VERIFYING
            proof_verifier.verify(credential)
            stage = Stage.MATCHING
            check_linkage(credential, context.did, context.domain)
        except ENTRY_ERRORS as e:
            diagnostic = EntryDiagnostic(index=index, stage=stage, error=e)
            logger.debug("Skipping %s", diagnostic)
            diagnostics.append(diagnostic)
            return None
        return credential


def verify_did_and_domain(did: str, domain: str, **options: Any) -> NormalizedCredential:
    """Convenience function to verify a DID/domain linkage.

    Args:
        did: The DID expected to control the domain.
        domain: The origin, e.g. "https://example.com".
        **options: Keyword arguments for DomainLinkageVerifier.

    Returns:
        The credential that established the linkage.
    """
    verifier = DomainLinkageVerifier(**options)
    return verifier.verify_did_and_domain(did, domain)
