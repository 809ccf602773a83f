"""
Public key loading and raw signature checks.

Converts DID Document verification methods into cryptography public keys
and verifies Ed25519 and ECDSA (P-256, P-384, secp256k1) signatures.
"""

from __future__ import annotations

from typing import Union

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from did_linkage.did_resolver import PublicKeyJWK, VerificationMethod
from did_linkage.encoding import b64url_decode, multibase_decode
from did_linkage.errors import ResolutionError, SignatureVerificationError

PublicKey = Union[ed25519.Ed25519PublicKey, ec.EllipticCurvePublicKey]

_JWK_CURVES: dict[str, ec.EllipticCurve] = {
    "P-256": ec.SECP256R1(),
    "P-384": ec.SECP384R1(),
    "secp256k1": ec.SECP256K1(),
}

_MULTICODEC_CURVES: dict[bytes, ec.EllipticCurve] = {
    b"\xe7\x01": ec.SECP256K1(),
    b"\x80\x24": ec.SECP256R1(),
    b"\x81\x24": ec.SECP384R1(),
}

# JOSE algorithm -> curve name it requires ("Ed25519" for EdDSA).
ALGORITHM_CURVES = {
    "EdDSA": "Ed25519",
    "ES256": "secp256r1",
    "ES256K": "secp256k1",
    "ES384": "secp384r1",
}

_BASE58_EC_TYPES = {
    "EcdsaSecp256k1VerificationKey2019": ec.SECP256K1(),
    "EcdsaSecp256r1VerificationKey2019": ec.SECP256R1(),
}


def load_public_key(method: VerificationMethod) -> PublicKey:
    """Build a public key from a verification method.

    Raises:
        ResolutionError: If the method carries no supported key material.
    """
    try:
        if method.public_key_jwk is not None:
            return _jwk_to_public_key(method.public_key_jwk)
        if method.public_key_base58:
            raw = base58.b58decode(method.public_key_base58)
            curve = _BASE58_EC_TYPES.get(method.type)
            if curve is not None:
                return ec.EllipticCurvePublicKey.from_encoded_point(curve, raw)
            return ed25519.Ed25519PublicKey.from_public_bytes(raw)
        if method.public_key_multibase:
            return _multikey_to_public_key(multibase_decode(method.public_key_multibase))
    except ValueError as e:
        raise ResolutionError(f"Invalid public key in {method.id}: {e}") from e

    raise ResolutionError(f"No supported public key material in {method.id}")


def _jwk_to_public_key(jwk: PublicKeyJWK) -> PublicKey:
    """Convert a JWK to a public key object.

    Args:
        jwk: The public key JWK (OKP Ed25519 or EC P-256, P-384, secp256k1).

    Returns:
        The public key.

    Raises:
        ValueError: If the key type or curve is not supported.
    """
    if jwk.kty == "OKP":
        if jwk.crv != "Ed25519":
            raise ValueError(f"unsupported OKP curve {jwk.crv}")
        return ed25519.Ed25519PublicKey.from_public_bytes(b64url_decode(jwk.x))

    if jwk.kty == "EC":
        curve = _JWK_CURVES.get(jwk.crv)
        if curve is None:
            raise ValueError(f"unsupported EC curve {jwk.crv}")
        x = int.from_bytes(b64url_decode(jwk.x), byteorder="big")
        y = int.from_bytes(b64url_decode(jwk.y), byteorder="big")
        return ec.EllipticCurvePublicNumbers(x, y, curve).public_key()

    raise ValueError(f"unsupported key type {jwk.kty}")


def _multikey_to_public_key(decoded: bytes) -> PublicKey:
    """Convert multicodec-prefixed key bytes to a public key object.

    Args:
        decoded: The multibase-decoded key.

    Returns:
        The public key.

    Raises:
        ValueError: If the multicodec is not supported.
    """
    codec = decoded[:2]
    if codec == b"\xed\x01":
        return ed25519.Ed25519PublicKey.from_public_bytes(decoded[2:])
    if codec in _MULTICODEC_CURVES:
        return ec.EllipticCurvePublicKey.from_encoded_point(
            _MULTICODEC_CURVES[codec], decoded[2:]
        )
    # Ed25519VerificationKey2020 predecessors carried the bare 32-byte key.
    if len(decoded) == 32:
        return ed25519.Ed25519PublicKey.from_public_bytes(decoded)
    raise ValueError(f"unsupported multicodec 0x{codec.hex()}")


def key_curve(key: PublicKey) -> str:
    """Return the curve name of ``key``, "Ed25519" for Ed25519 keys."""
    if isinstance(key, ed25519.Ed25519PublicKey):
        return "Ed25519"
    return key.curve.name


def verify_signature(
    key: PublicKey,
    signature: bytes,
    data: bytes,
    alg: str | None = None,
) -> bool:
    """Verify a signature over ``data``.

    ECDSA signatures may be raw ``r||s`` (JOSE) or DER encoded. The hash
    follows the curve: SHA-384 for P-384, SHA-256 otherwise.

    Args:
        key: The signer's public key.
        signature: The signature bytes.
        data: The signed bytes.
        alg: JOSE algorithm, checked against the key curve when given.

    Returns:
        True if the signature is valid, False otherwise.

    Raises:
        SignatureVerificationError: If ``alg`` does not fit the key.
    """
    curve = key_curve(key)
    if alg is not None:
        expected = ALGORITHM_CURVES.get(alg)
        if expected is None:
            raise SignatureVerificationError(f"Unsupported JWS algorithm: {alg}")
        if expected != curve:
            raise SignatureVerificationError(
                f"Algorithm {alg} does not match {curve} key"
            )

    if isinstance(key, ed25519.Ed25519PublicKey):
        try:
            key.verify(signature, data)
            return True
        except InvalidSignature:
            return False

    size = (key.curve.key_size + 7) // 8
    if len(signature) == 2 * size:
        r = int.from_bytes(signature[:size], byteorder="big")
        s = int.from_bytes(signature[size:], byteorder="big")
        signature = encode_dss_signature(r, s)

    algorithm = hashes.SHA384() if size == 48 else hashes.SHA256()
    try:
        key.verify(signature, data, ec.ECDSA(algorithm))
        return True
    except InvalidSignature:
        return False
    except ValueError:
        # Not valid DER either
        return False
