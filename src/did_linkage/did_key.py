"""
Resolver for the did:key method.

did:key documents are derived from the identifier itself, so resolution
needs no network access.
https://w3c-ccg.github.io/did-method-key/
"""

from __future__ import annotations

import base58
from cryptography.hazmat.primitives.asymmetric import ec

from did_linkage.did_resolver import DIDDocument, PublicKeyJWK, VerificationMethod
from did_linkage.encoding import b64url_encode, multibase_decode
from did_linkage.errors import ResolutionError

# Multicodec varint prefixes of the supported public key types.
ED25519_PUB = b"\xed\x01"
SECP256K1_PUB = b"\xe7\x01"
P256_PUB = b"\x80\x24"
P384_PUB = b"\x81\x24"

_EC_CODECS: dict[bytes, tuple[str, ec.EllipticCurve]] = {
    SECP256K1_PUB: ("secp256k1", ec.SECP256K1()),
    P256_PUB: ("P-256", ec.SECP256R1()),
    P384_PUB: ("P-384", ec.SECP384R1()),
}


class KeyDIDResolver:
    """Resolver for did:key DID method."""

    method = "key"

    def __init__(self) -> None:
        self._cache: dict[str, DIDDocument] = {}

    def resolve(self, did: str) -> DIDDocument:
        """Expand a did:key identifier into its DID Document.

        Raises:
            ResolutionError: If the identifier is malformed or uses an
                unsupported key type.
        """
        base_did = did.split("#")[0]
        if base_did in self._cache:
            return self._cache[base_did]

        if not base_did.startswith("did:key:"):
            raise ResolutionError(f"Invalid did:key identifier: {did}")

        fingerprint = base_did[8:]
        if not fingerprint.startswith("z"):
            raise ResolutionError(f"did:key must use base58btc multibase: {did}")

        try:
            decoded = multibase_decode(fingerprint)
        except ValueError as e:
            raise ResolutionError(f"Invalid did:key encoding {did}: {e}") from e

        vm_id = f"{base_did}#{fingerprint}"
        codec, key_bytes = decoded[:2], decoded[2:]

        if codec == ED25519_PUB:
            if len(key_bytes) != 32:
                raise ResolutionError(f"Invalid Ed25519 key length in {did}")
            vm = VerificationMethod(
                id=vm_id,
                type="Ed25519VerificationKey2018",
                controller=base_did,
                public_key_base58=base58.b58encode(key_bytes).decode("ascii"),
            )
        elif codec in _EC_CODECS:
            vm = VerificationMethod(
                id=vm_id,
                type="JsonWebKey2020",
                controller=base_did,
                public_key_jwk=_ec_jwk(codec, key_bytes, did),
            )
        else:
            raise ResolutionError(f"Unsupported did:key codec 0x{decoded[:2].hex()}: {did}")

        doc = DIDDocument(
            id=base_did,
            verification_methods=[vm],
            authentication=[vm_id],
            assertion_method=[vm_id],
        )
        self._cache[base_did] = doc
        return doc


def _ec_jwk(codec: bytes, key_bytes: bytes, did: str) -> PublicKeyJWK:
    """Build an EC JWK from a compressed or uncompressed did:key point.

    Args:
        codec: The two-byte multicodec prefix.
        key_bytes: The encoded point.
        did: The DID being resolved, reported in errors.

    Returns:
        The PublicKeyJWK.
    """
    crv, curve = _EC_CODECS[codec]
    try:
        public_key = ec.EllipticCurvePublicKey.from_encoded_point(curve, key_bytes)
    except ValueError as e:
        raise ResolutionError(f"Invalid {crv} point in {did}: {e}") from e

    numbers = public_key.public_numbers()
    size = (curve.key_size + 7) // 8
    return PublicKeyJWK(
        kty="EC",
        crv=crv,
        x=b64url_encode(numbers.x.to_bytes(size, "big")),
        y=b64url_encode(numbers.y.to_bytes(size, "big")),
    )
