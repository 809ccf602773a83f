"""
Error taxonomy for domain linkage verification.

Abort-class errors (TransportError, HTTPStatusError, StructuralError) stop
a verification call immediately. Entry-scoped errors (CredentialFormatError,
ResolutionError, SignatureVerificationError, LinkageMismatchError) are
collected per ``linked_dids`` entry and summarized by NoLinkageFoundError.
"""

from __future__ import annotations

from typing import Any


class DomainLinkageError(Exception):
    """Base class for all domain linkage verification errors."""


class TransportError(DomainLinkageError):
    """Raised when the configuration could not be retrieved at all.

    Covers DNS failures, refused connections, timeouts and malformed URLs.
    The underlying exception is chained as ``__cause__``.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"GET {url}: {message}")


class HTTPStatusError(DomainLinkageError):
    """Raised when the well-known endpoint answers with a non-200 status."""

    def __init__(self, url: str, status_code: int, body: str) -> None:
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"endpoint {url} returned status '{status_code}' and message '{body}'"
        )


class StructuralError(DomainLinkageError):
    """Raised when the configuration document itself is unusable."""

    def __init__(self, message: str, property_name: str | None = None) -> None:
        self.property_name = property_name
        super().__init__(f"did configuration: {message}")

    @classmethod
    def missing_property(cls, name: str) -> StructuralError:
        return cls(f"property '{name}' is required", property_name=name)


class ContextLoadError(DomainLinkageError):
    """Raised when a JSON-LD context document cannot be supplied."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        super().__init__(f"unable to load JSON-LD context {url}: {reason}")


class CredentialFormatError(DomainLinkageError):
    """Raised when a ``linked_dids`` entry cannot be decoded."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        super().__init__(f"invalid credential '{field}': {reason}")


class ResolutionError(DomainLinkageError):
    """Raised when the issuer DID or its verification method cannot be found."""


class SignatureVerificationError(DomainLinkageError):
    """Raised when the trust chain resolved but the proof does not verify."""


class LinkageMismatchError(DomainLinkageError):
    """Raised when a valid credential links a different DID or origin."""

    def __init__(self, reason: str, expected: Any = None, actual: Any = None) -> None:
        self.reason = reason
        self.expected = expected
        self.actual = actual
        message = reason
        if expected is not None or actual is not None:
            message = f"{reason}: expected {expected!r}, got {actual!r}"
        super().__init__(message)


class NoLinkageFoundError(DomainLinkageError):
    """Raised when no entry in ``linked_dids`` links the DID to the domain."""

    def __init__(self, did: str, domain: str, diagnostics: list[Any]) -> None:
        self.did = did
        self.domain = domain
        self.diagnostics = diagnostics
        count = len(diagnostics)
        if count == 0:
            message = f"no linked DIDs published for {domain}"
        else:
            last = diagnostics[-1]
            message = (
                f"none of {count} linked DID credential(s) at {domain} "
                f"verified for {did}; last error: {last}"
            )
        super().__init__(message)
