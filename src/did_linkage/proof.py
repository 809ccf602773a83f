"""
Proof verification for domain linkage credentials.

Resolves the issuer DID, selects the verification method referenced by the
proof and checks the signature.

Supported:
- Compact JWT: EdDSA, ES256, ES256K, ES384
- Linked data, detached JWS (b64=false) over URDNA2015 canonicalization:
  Ed25519Signature2018, EcdsaSecp256k1Signature2019, EcdsaSecp256r1Signature2019
- Linked data, Data Integrity: ecdsa-jcs-2022, eddsa-jcs-2022
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Callable

from pyld import jsonld

from did_linkage.credential import JWTProof, LinkedDataProof, NormalizedCredential
from did_linkage.did_resolver import DIDDocument, DIDResolverRegistry, VerificationMethod
from did_linkage.encoding import b64url_decode, canonicalize_json, multibase_decode
from did_linkage.errors import (
    ContextLoadError,
    CredentialFormatError,
    ResolutionError,
    SignatureVerificationError,
)
from did_linkage.keys import load_public_key, verify_signature

logger = logging.getLogger(__name__)

# Linked-data suites signed with a detached JWS, and the JOSE alg each expects.
JWS_SUITES = {
    "Ed25519Signature2018": "EdDSA",
    "EcdsaSecp256k1Signature2019": "ES256K",
    "EcdsaSecp256r1Signature2019": "ES256",
}

DATA_INTEGRITY_PROOF = "DataIntegrityProof"
JCS_CRYPTOSUITES = {"ecdsa-jcs-2022", "eddsa-jcs-2022"}


def canonicalize_rdf(document: dict[str, Any], document_loader: Callable[..., Any]) -> bytes:
    """Canonicalize a JSON-LD document with URDNA2015 into N-Quads."""
    try:
        normalized = jsonld.normalize(
            document,
            {
                "algorithm": "URDNA2015",
                "format": "application/n-quads",
                "documentLoader": document_loader,
            },
        )
    except (jsonld.JsonLdError, ContextLoadError) as e:
        raise SignatureVerificationError(f"JSON-LD canonicalization failed: {e}") from e
    return normalized.encode("utf-8")


def jws_verify_data(
    proof_options: dict[str, Any],
    document: dict[str, Any],
    document_loader: Callable[..., Any],
) -> bytes:
    """Compute the bytes signed by a linked-data signature suite.

    SHA-256 of the canonical proof options followed by SHA-256 of the
    canonical document. The proof options take the document's @context
    when they carry none of their own.
    """
    options = dict(proof_options)
    options.setdefault("@context", document.get("@context"))
    options_hash = hashlib.sha256(canonicalize_rdf(options, document_loader)).digest()
    document_hash = hashlib.sha256(canonicalize_rdf(document, document_loader)).digest()
    return options_hash + document_hash


def jcs_verify_data(proof_options: dict[str, Any], document: dict[str, Any]) -> bytes:
    """Compute the hash data signed by the *-jcs-2022 cryptosuites."""
    options = dict(proof_options)
    if "@context" not in options and "@context" in document:
        options["@context"] = document["@context"]
    options_hash = hashlib.sha256(canonicalize_json(options).encode("utf-8")).digest()
    document_hash = hashlib.sha256(canonicalize_json(document).encode("utf-8")).digest()
    return options_hash + document_hash


class ProofVerifier:
    """Verifies the proof of a normalized credential against its issuer's DID."""

    def __init__(
        self,
        registry: DIDResolverRegistry,
        document_loader: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            registry: DID resolver registry used to resolve issuers.
            document_loader: JSON-LD loader for linked-data canonicalization.
        """
        self.registry = registry
        self.document_loader = document_loader

    def verify(self, credential: NormalizedCredential) -> bool:
        """Verify the credential's proof.

        Returns:
            True when the signature verifies.

        Raises:
            ResolutionError: If the issuer or verification method cannot be found.
            SignatureVerificationError: If the signature is invalid or unsupported.
        """
        did_document = self.registry.resolve(credential.issuer)

        proof = credential.proof
        if isinstance(proof, JWTProof):
            self._verify_jwt(proof, did_document)
        else:
            self._verify_linked_data(proof, did_document)
        return True

    def _verification_methods(
        self,
        did_document: DIDDocument,
        method_id: str | None,
    ) -> list[VerificationMethod]:
        if method_id is None:
            methods = did_document.assertion_methods()
            if not methods:
                raise ResolutionError(
                    f"No assertion methods in DID Document {did_document.id}"
                )
            return methods

        controller = method_id.split("#")[0]
        if controller != did_document.id:
            raise ResolutionError(
                f"Verification method {method_id} is not controlled by issuer {did_document.id}"
            )

        vm = did_document.get_verification_method(method_id)
        if vm is None:
            raise ResolutionError(
                f"Verification method {method_id} not found in DID Document"
            )
        return [vm]

    def _verify_jwt(self, proof: JWTProof, did_document: DIDDocument) -> None:
        methods = self._verification_methods(did_document, proof.verification_method)
        for vm in methods:
            key = load_public_key(vm)
            if verify_signature(key, proof.signature, proof.signing_input, alg=proof.alg):
                logger.debug("JWT signature verified with %s", vm.id)
                return
        raise SignatureVerificationError(
            f"Invalid JWT signature for issuer {did_document.id}"
        )

    def _verify_linked_data(self, proof: LinkedDataProof, did_document: DIDDocument) -> None:
        vm = self._verification_methods(did_document, proof.verification_method)[0]
        key = load_public_key(vm)

        if proof.type in JWS_SUITES:
            valid = self._verify_detached_jws(proof, key)
        elif proof.type == DATA_INTEGRITY_PROOF:
            valid = self._verify_data_integrity(proof, key)
        else:
            raise SignatureVerificationError(f"Unsupported proof type: {proof.type}")

        if not valid:
            raise SignatureVerificationError(
                f"Invalid {proof.type} signature by {proof.verification_method}"
            )
        logger.debug("%s verified with %s", proof.type, vm.id)

    def _verify_detached_jws(self, proof: LinkedDataProof, key: Any) -> bool:
        if not proof.jws:
            raise CredentialFormatError("proof.jws", f"required by {proof.type}")
        if self.document_loader is None:
            raise SignatureVerificationError(
                f"{proof.type} requires a JSON-LD document loader"
            )

        parts = proof.jws.split(".")
        if len(parts) != 3 or parts[1]:
            raise CredentialFormatError("proof.jws", "expected detached JWS 'header..signature'")
        encoded_header, _, encoded_signature = parts

        try:
            header = json.loads(b64url_decode(encoded_header))
            signature = b64url_decode(encoded_signature)
        except ValueError as e:
            raise CredentialFormatError("proof.jws", str(e)) from e
        if not isinstance(header, dict):
            raise CredentialFormatError("proof.jws", "header is not a JSON object")

        crit = header.get("crit", [])
        if not isinstance(crit, list):
            raise CredentialFormatError("proof.jws", "'crit' header must be an array")
        if header.get("b64") is not False or "b64" not in crit:
            raise SignatureVerificationError("Detached JWS must use unencoded payload (b64=false)")

        alg = header.get("alg")
        if alg != JWS_SUITES[proof.type]:
            raise SignatureVerificationError(
                f"JWS algorithm {alg} does not match proof type {proof.type}"
            )

        verify_data = jws_verify_data(proof.options, proof.document, self.document_loader)
        signing_input = encoded_header.encode("ascii") + b"." + verify_data
        return verify_signature(key, signature, signing_input, alg=alg)

    def _verify_data_integrity(self, proof: LinkedDataProof, key: Any) -> bool:
        if proof.cryptosuite not in JCS_CRYPTOSUITES:
            raise SignatureVerificationError(f"Unsupported cryptosuite: {proof.cryptosuite}")
        if not proof.proof_value:
            raise CredentialFormatError("proof.proofValue", f"required by {proof.cryptosuite}")

        try:
            if proof.proof_value[0] in ("z", "u"):
                signature = multibase_decode(proof.proof_value)
            else:
                signature = b64url_decode(proof.proof_value)
        except ValueError as e:
            raise CredentialFormatError("proof.proofValue", str(e)) from e

        alg = "EdDSA" if proof.cryptosuite == "eddsa-jcs-2022" else None
        verify_data = jcs_verify_data(proof.options, proof.document)
        return verify_signature(key, signature, verify_data, alg=alg)
