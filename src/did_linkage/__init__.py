"""
DID Linkage - DID to domain linkage verification library.

Supports:
- DID Configuration resources (v0.0 and v1 contexts)
- Domain linkage credentials as compact JWTs or linked-data credentials
- did:key, did:web and HTTP-binding DID resolution
- Ed25519, P-256, P-384 and secp256k1 signatures
"""

from did_linkage.contexts import ContextLoader, bundled_context_loader
from did_linkage.credential import CredentialFormat, NormalizedCredential, normalize
from did_linkage.did_key import KeyDIDResolver
from did_linkage.did_resolver import (
    DIDDocument,
    DIDResolverRegistry,
    HTTPBindingResolver,
    WebDIDResolver,
)
from did_linkage.errors import (
    CredentialFormatError,
    DomainLinkageError,
    HTTPStatusError,
    LinkageMismatchError,
    NoLinkageFoundError,
    ResolutionError,
    SignatureVerificationError,
    StructuralError,
    TransportError,
)
from did_linkage.verifier import (
    DomainLinkageVerifier,
    LinkageResult,
    verify_did_and_domain,
)

__version__ = "0.1.0"

__all__ = [
    "ContextLoader",
    "bundled_context_loader",
    "CredentialFormat",
    "NormalizedCredential",
    "normalize",
    "DIDDocument",
    "DIDResolverRegistry",
    "HTTPBindingResolver",
    "KeyDIDResolver",
    "WebDIDResolver",
    "DomainLinkageError",
    "TransportError",
    "HTTPStatusError",
    "StructuralError",
    "CredentialFormatError",
    "ResolutionError",
    "SignatureVerificationError",
    "LinkageMismatchError",
    "NoLinkageFoundError",
    "DomainLinkageVerifier",
    "LinkageResult",
    "verify_did_and_domain",
]
