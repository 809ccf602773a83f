"""
Linkage matching.

Decides whether a verified credential binds the requested DID to the
requested origin.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from did_linkage.contexts import DOMAIN_LINKAGE_CONTEXTS, DOMAIN_LINKAGE_TYPE
from did_linkage.credential import CredentialFormat, NormalizedCredential
from did_linkage.errors import LinkageMismatchError

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_origin(origin: str) -> str:
    """Normalize an origin for comparison.

    Lower-cases scheme and host, drops default ports and trailing slashes.
    "HTTPS://Example.com:443/" -> "https://example.com"
    """
    stripped = origin.strip().rstrip("/")
    parts = urlsplit(stripped)
    if not parts.scheme or not parts.hostname:
        return stripped

    scheme = parts.scheme.lower()
    netloc = parts.hostname.lower()
    try:
        port = parts.port
    except ValueError:
        return stripped
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    return f"{scheme}://{netloc}{parts.path.rstrip('/')}"


def check_linkage(credential: NormalizedCredential, did: str, domain: str) -> None:
    """Check that ``credential`` links ``did`` to ``domain``.

    Raises:
        LinkageMismatchError: Naming the first rule the credential breaks.
    """
    if credential.subject_id != did:
        raise LinkageMismatchError("credentialSubject.id mismatch", did, credential.subject_id)

    if normalize_origin(credential.origin) != normalize_origin(domain):
        raise LinkageMismatchError(
            "credentialSubject.origin mismatch", domain, credential.origin
        )

    if DOMAIN_LINKAGE_TYPE not in credential.types:
        raise LinkageMismatchError(
            f"type must include '{DOMAIN_LINKAGE_TYPE}'", actual=credential.types
        )

    if not any(c in DOMAIN_LINKAGE_CONTEXTS for c in credential.contexts if isinstance(c, str)):
        raise LinkageMismatchError(
            "@context must include a DID configuration context", actual=credential.contexts
        )

    if credential.issuer != credential.subject_id:
        raise LinkageMismatchError(
            "issuer must equal credentialSubject.id", credential.subject_id, credential.issuer
        )

    if credential.format is CredentialFormat.JWT:
        for claim in ("iss", "sub"):
            value = credential.claims.get(claim)
            if value is not None and value != credential.subject_id:
                raise LinkageMismatchError(
                    f"'{claim}' claim must equal credentialSubject.id",
                    credential.subject_id,
                    value,
                )


def matches(credential: NormalizedCredential, did: str, domain: str) -> bool:
    """Return True if ``credential`` links ``did`` to ``domain``."""
    try:
        check_linkage(credential, did, domain)
    except LinkageMismatchError:
        return False
    return True
