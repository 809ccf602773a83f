"""
Domain linkage credential normalization.

A ``linked_dids`` entry is either a compact JWT (string) or a linked-data
credential (JSON object). Both are reduced to a NormalizedCredential so
proof verification and linkage matching never look at the encoding again.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from did_linkage.encoding import b64url_decode
from did_linkage.errors import CredentialFormatError

SIGNATURE_FIELDS = ("jws", "proofValue", "signatureValue")


class CredentialFormat(Enum):
    """Encoding of a linked DID entry."""

    JWT = "jwt"
    LINKED_DATA = "linked_data"


@dataclass
class JWTProof:
    """Envelope signature of a compact JWT credential."""

    header: dict[str, Any]
    signing_input: bytes
    signature: bytes
    alg: str
    verification_method: str | None = None


@dataclass
class LinkedDataProof:
    """Embedded ``proof`` of a linked-data credential."""

    type: str
    verification_method: str
    options: dict[str, Any]
    document: dict[str, Any]
    jws: str | None = None
    proof_value: str | None = None
    cryptosuite: str | None = None


Proof = Union[JWTProof, LinkedDataProof]


@dataclass
class NormalizedCredential:
    """Encoding-independent view of a domain linkage credential."""

    format: CredentialFormat
    issuer: str
    subject_id: str
    origin: str
    types: list[str]
    contexts: list[Any]
    proof: Proof
    issuance_date: str | None = None
    expiration_date: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


def normalize(entry: Any) -> NormalizedCredential:
    """Normalize one ``linked_dids`` entry.

    Args:
        entry: A compact JWT string or a linked-data credential object.

    Returns:
        The NormalizedCredential.

    Raises:
        CredentialFormatError: If the entry cannot be decoded.
    """
    if isinstance(entry, str):
        return _from_jwt(entry)
    if isinstance(entry, dict):
        return _from_linked_data(entry)
    raise CredentialFormatError(
        "linked_dids", f"unsupported entry type {type(entry).__name__}"
    )


def _from_jwt(token: str) -> NormalizedCredential:
    """Normalize a compact JWT carrying the credential in its ``vc`` claim.

    Args:
        token: The compact serialization "header.payload.signature".

    Returns:
        The NormalizedCredential with a JWTProof.
    """
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise CredentialFormatError(
            "jwt", f"expected 3 dot-separated segments, got {len(parts)}"
        )
    encoded_header, encoded_payload, encoded_signature = parts

    header = _decode_segment(encoded_header, "header")
    payload = _decode_segment(encoded_payload, "payload")
    try:
        signature = b64url_decode(encoded_signature)
    except ValueError as e:
        raise CredentialFormatError("signature", str(e)) from e

    alg = header.get("alg")
    if not isinstance(alg, str) or not alg:
        raise CredentialFormatError("alg", "missing from JWT header")

    vc = payload.get("vc")
    if not isinstance(vc, dict):
        raise CredentialFormatError("vc", "missing verifiable credential claim")

    issuer = _issuer_id(vc.get("issuer")) or payload.get("iss")
    if not isinstance(issuer, str) or not issuer:
        raise CredentialFormatError("issuer", "missing from credential and 'iss' claim")

    subject = _require_dict(vc, "credentialSubject")
    subject_id = subject.get("id") or payload.get("sub")
    if not isinstance(subject_id, str) or not subject_id:
        raise CredentialFormatError("credentialSubject.id", "missing")

    kid = header.get("kid")
    if isinstance(kid, str) and kid.startswith("#"):
        kid = issuer + kid

    proof = JWTProof(
        header=header,
        signing_input=f"{encoded_header}.{encoded_payload}".encode("ascii"),
        signature=signature,
        alg=alg,
        verification_method=kid if isinstance(kid, str) and kid else None,
    )

    claims = {k: payload[k] for k in ("iss", "sub", "nbf", "exp", "jti") if k in payload}

    return NormalizedCredential(
        format=CredentialFormat.JWT,
        issuer=issuer,
        subject_id=subject_id,
        origin=_require_origin(subject),
        types=_as_list(vc.get("type")),
        contexts=_as_list(vc.get("@context")),
        proof=proof,
        issuance_date=vc.get("issuanceDate"),
        expiration_date=vc.get("expirationDate"),
        claims=claims,
    )


def _from_linked_data(credential: dict[str, Any]) -> NormalizedCredential:
    """Normalize a linked-data credential with an embedded proof.

    Args:
        credential: The credential object, proof included.

    Returns:
        The NormalizedCredential with a LinkedDataProof.
    """
    issuer = _issuer_id(credential.get("issuer"))
    if not isinstance(issuer, str) or not issuer:
        raise CredentialFormatError("issuer", "missing or not a string")

    subject = _require_dict(credential, "credentialSubject")
    subject_id = subject.get("id")
    if not isinstance(subject_id, str) or not subject_id:
        raise CredentialFormatError("credentialSubject.id", "missing")

    raw_proof = credential.get("proof")
    if isinstance(raw_proof, list) and len(raw_proof) == 1:
        raw_proof = raw_proof[0]
    if not isinstance(raw_proof, dict):
        raise CredentialFormatError("proof", "missing or not a single proof object")

    proof_type = raw_proof.get("type")
    if not isinstance(proof_type, str) or not proof_type:
        raise CredentialFormatError("proof.type", "missing")

    verification_method = raw_proof.get("verificationMethod")
    if isinstance(verification_method, dict):
        verification_method = verification_method.get("id")
    if not isinstance(verification_method, str) or not verification_method:
        raise CredentialFormatError("proof.verificationMethod", "missing")
    if verification_method.startswith("#"):
        verification_method = issuer + verification_method

    for name in SIGNATURE_FIELDS:
        if name in raw_proof and not isinstance(raw_proof[name], str):
            raise CredentialFormatError(f"proof.{name}", "must be a string")
    if not any(raw_proof.get(name) for name in SIGNATURE_FIELDS):
        raise CredentialFormatError("proof.jws", "no signature value in proof")

    cryptosuite = raw_proof.get("cryptosuite")
    if cryptosuite is not None and not isinstance(cryptosuite, str):
        raise CredentialFormatError("proof.cryptosuite", "must be a string")

    options = {k: v for k, v in raw_proof.items() if k not in SIGNATURE_FIELDS}
    document = {k: v for k, v in credential.items() if k != "proof"}

    proof = LinkedDataProof(
        type=proof_type,
        verification_method=verification_method,
        options=options,
        document=document,
        jws=raw_proof.get("jws"),
        proof_value=raw_proof.get("proofValue") or raw_proof.get("signatureValue"),
        cryptosuite=cryptosuite,
    )

    return NormalizedCredential(
        format=CredentialFormat.LINKED_DATA,
        issuer=issuer,
        subject_id=subject_id,
        origin=_require_origin(subject),
        types=_as_list(credential.get("type")),
        contexts=_as_list(credential.get("@context")),
        proof=proof,
        issuance_date=credential.get("issuanceDate"),
        expiration_date=credential.get("expirationDate"),
    )


def _decode_segment(encoded: str, name: str) -> dict[str, Any]:
    """Decode one base64url JSON segment of a JWT.

    Args:
        encoded: The base64url encoded segment.
        name: Segment name reported in errors.

    Returns:
        The decoded JSON object.
    """
    try:
        data = json.loads(b64url_decode(encoded))
    except ValueError as e:
        raise CredentialFormatError(name, f"undecodable JWT segment: {e}") from e
    if not isinstance(data, dict):
        raise CredentialFormatError(name, "JWT segment is not a JSON object")
    return data


def _require_dict(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return ``data[name]`` as an object, unwrapping a one-element list."""
    value = data.get(name)
    if isinstance(value, list) and len(value) == 1:
        value = value[0]
    if not isinstance(value, dict):
        raise CredentialFormatError(name, "missing or not an object")
    return value


def _require_origin(subject: dict[str, Any]) -> str:
    origin = subject.get("origin")
    if not isinstance(origin, str) or not origin:
        raise CredentialFormatError("credentialSubject.origin", "missing")
    return origin


def _issuer_id(issuer: Any) -> str | None:
    """Extract the issuer DID from a string or an object with ``id``.

    Args:
        issuer: The ``issuer`` property of a credential.

    Returns:
        The issuer DID, or None if there is no string id.
    """
    if isinstance(issuer, dict):
        issuer = issuer.get("id")
    if isinstance(issuer, str):
        return issuer
    return None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
