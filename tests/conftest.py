"""Shared fixtures: keys, DIDs and signed domain linkage credentials."""

import json
from pathlib import Path

import base58
import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from did_linkage.contexts import CONTEXT_V0, CONTEXT_V1, CREDENTIALS_V1, bundled_context_loader
from did_linkage.encoding import b64url_encode
from did_linkage.proof import jcs_verify_data, jws_verify_data

VECTORS = Path(__file__).parent / "vectors"

TEST_DOMAIN = "https://identity.foundation"
WELL_KNOWN = "https://identity.foundation/.well-known/did-configuration.json"
IDENTITY_FOUNDATION_DID = "did:key:z6MkoTHsgNNrby8JzCNQ1iRLyW5QQ6R8Xuu6AA8igGrMVPUM"


def ed25519_did_key(public_key):
    raw = public_key.public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )
    return "did:key:z" + base58.b58encode(b"\xed\x01" + raw).decode()


def p256_did_key(public_key):
    point = public_key.public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
    )
    return "did:key:z" + base58.b58encode(b"\x80\x24" + point).decode()


def key_id(did):
    return f"{did}#{did[8:]}"


def linkage_credential(did, origin=TEST_DOMAIN, context=CONTEXT_V1):
    """Build an unsigned domain linkage credential."""
    return {
        "@context": [CREDENTIALS_V1, context],
        "issuer": did,
        "issuanceDate": "2020-12-04T14:08:28-06:00",
        "expirationDate": "2025-12-04T14:08:28-06:00",
        "type": ["VerifiableCredential", "DomainLinkageCredential"],
        "credentialSubject": {
            "id": did,
            "origin": origin,
        },
    }


def sign_ed25519_2018(credential, private_key, verification_method, loader):
    """Attach an Ed25519Signature2018 detached-JWS proof."""
    header = {"alg": "EdDSA", "b64": False, "crit": ["b64"]}
    encoded_header = b64url_encode(json.dumps(header, separators=(",", ":")).encode())
    options = {
        "type": "Ed25519Signature2018",
        "created": "2020-12-04T20:08:28.540Z",
        "proofPurpose": "assertionMethod",
        "verificationMethod": verification_method,
    }
    verify_data = jws_verify_data(options, credential, loader)
    signature = private_key.sign(encoded_header.encode() + b"." + verify_data)

    signed = dict(credential)
    signed["proof"] = dict(options, jws=f"{encoded_header}..{b64url_encode(signature)}")
    return signed


def sign_ecdsa_jcs_2022(credential, private_key, verification_method):
    """Attach a DataIntegrityProof (ecdsa-jcs-2022) proof."""
    options = {
        "type": "DataIntegrityProof",
        "cryptosuite": "ecdsa-jcs-2022",
        "created": "2025-01-15T10:00:00Z",
        "proofPurpose": "assertionMethod",
        "verificationMethod": verification_method,
    }
    verify_data = jcs_verify_data(options, credential)
    signature = private_key.sign(verify_data, ec.ECDSA(hashes.SHA256()))

    signed = dict(credential)
    signed["proof"] = dict(options, proofValue="z" + base58.b58encode(signature).decode())
    return signed


def sign_jwt(credential, private_key, kid, alg="EdDSA", claims=None):
    """Encode a credential as a compact JWT with a nested ``vc`` claim."""
    header = {"alg": alg, "kid": kid, "typ": "JWT"}
    payload = {
        "iss": credential["issuer"],
        "sub": credential["credentialSubject"]["id"],
        "nbf": 1607112508,
        "exp": 1764888508,
        "vc": credential,
    }
    payload.update(claims or {})

    signing_input = (
        b64url_encode(json.dumps(header).encode())
        + "."
        + b64url_encode(json.dumps(payload).encode())
    )
    if alg == "EdDSA":
        signature = private_key.sign(signing_input.encode())
    else:
        der = private_key.sign(signing_input.encode(), ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        signature = r.to_bytes(32, "big") + s.to_bytes(32, "big")
    return f"{signing_input}.{b64url_encode(signature)}"


def did_configuration(entries, context=CONTEXT_V1):
    return json.dumps({"@context": context, "linked_dids": entries}).encode()


@pytest.fixture
def loader():
    return bundled_context_loader()


@pytest.fixture
def ed25519_key():
    """Ed25519 key pair with its did:key."""
    private_key = ed25519.Ed25519PrivateKey.generate()
    return private_key, ed25519_did_key(private_key.public_key())


@pytest.fixture
def p256_key():
    """P-256 key pair with its did:key."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, p256_did_key(private_key.public_key())


@pytest.fixture
def signed_ld_credential(ed25519_key, loader):
    private_key, did = ed25519_key
    credential = sign_ed25519_2018(linkage_credential(did), private_key, key_id(did), loader)
    return did, credential


@pytest.fixture
def signed_jwt_credential(ed25519_key):
    private_key, did = ed25519_key
    credential = linkage_credential(did, context=CONTEXT_V0)
    return did, sign_jwt(credential, private_key, key_id(did))


@pytest.fixture
def identity_foundation_configuration():
    """DID configuration published by identity.foundation, signed Ed25519Signature2018."""
    return (VECTORS / "identity_foundation_did_configuration.json").read_bytes()


@pytest.fixture
def ion_configuration():
    return (VECTORS / "ion_did_configuration.json").read_bytes()


@pytest.fixture
def ion_did_document():
    return json.loads((VECTORS / "ion_did_document.json").read_text())
