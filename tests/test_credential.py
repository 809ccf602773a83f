"""Tests for credential normalization."""

import json

import pytest

from did_linkage.contexts import CONTEXT_V0
from did_linkage.credential import CredentialFormat, JWTProof, LinkedDataProof, normalize
from did_linkage.encoding import b64url_encode
from did_linkage.errors import CredentialFormatError

from conftest import TEST_DOMAIN, key_id, linkage_credential


def encode_segment(data):
    return b64url_encode(json.dumps(data).encode())


class TestNormalizeLinkedData:
    """Tests for linked-data credentials."""

    def test_normalize(self, signed_ld_credential):
        did, credential = signed_ld_credential

        normalized = normalize(credential)

        assert normalized.format == CredentialFormat.LINKED_DATA
        assert normalized.issuer == did
        assert normalized.subject_id == did
        assert normalized.origin == TEST_DOMAIN
        assert "DomainLinkageCredential" in normalized.types
        assert normalized.expiration_date == "2025-12-04T14:08:28-06:00"
        assert isinstance(normalized.proof, LinkedDataProof)
        assert normalized.proof.type == "Ed25519Signature2018"
        assert normalized.proof.verification_method == key_id(did)
        assert "proof" not in normalized.proof.document
        assert "jws" not in normalized.proof.options

    def test_issuer_object(self, signed_ld_credential):
        did, credential = signed_ld_credential
        credential["issuer"] = {"id": did, "name": "Example"}

        assert normalize(credential).issuer == did

    def test_relative_verification_method(self, signed_ld_credential):
        did, credential = signed_ld_credential
        credential["proof"]["verificationMethod"] = "#key-1"

        assert normalize(credential).proof.verification_method == f"{did}#key-1"

    def test_missing_proof(self, ed25519_key):
        _, did = ed25519_key

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(linkage_credential(did))

        assert exc_info.value.field == "proof"

    def test_missing_signature(self, signed_ld_credential):
        _, credential = signed_ld_credential
        del credential["proof"]["jws"]

        with pytest.raises(CredentialFormatError, match="no signature value"):
            normalize(credential)

    def test_missing_origin(self, signed_ld_credential):
        _, credential = signed_ld_credential
        credential["credentialSubject"] = {"id": credential["issuer"]}

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(credential)

        assert exc_info.value.field == "credentialSubject.origin"

    def test_missing_verification_method(self, signed_ld_credential):
        _, credential = signed_ld_credential
        del credential["proof"]["verificationMethod"]

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(credential)

        assert exc_info.value.field == "proof.verificationMethod"

    def test_issuer_id_not_string(self, signed_ld_credential):
        _, credential = signed_ld_credential
        credential["issuer"] = {"id": 5}

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(credential)

        assert exc_info.value.field == "issuer"

    @pytest.mark.parametrize("name", ["jws", "proofValue", "signatureValue"])
    def test_signature_not_string(self, signed_ld_credential, name):
        _, credential = signed_ld_credential
        credential["proof"] = dict(credential["proof"], **{name: 12345})

        with pytest.raises(CredentialFormatError, match="must be a string") as exc_info:
            normalize(credential)

        assert exc_info.value.field == f"proof.{name}"

    def test_cryptosuite_not_string(self, signed_ld_credential):
        _, credential = signed_ld_credential
        credential["proof"] = dict(credential["proof"], cryptosuite=["eddsa-jcs-2022"])

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(credential)

        assert exc_info.value.field == "proof.cryptosuite"


class TestNormalizeJWT:
    """Tests for compact JWT credentials."""

    def test_normalize(self, signed_jwt_credential):
        did, token = signed_jwt_credential

        normalized = normalize(token)

        assert normalized.format == CredentialFormat.JWT
        assert normalized.issuer == did
        assert normalized.subject_id == did
        assert normalized.origin == TEST_DOMAIN
        assert CONTEXT_V0 in normalized.contexts
        assert normalized.claims["iss"] == did
        assert isinstance(normalized.proof, JWTProof)
        assert normalized.proof.alg == "EdDSA"
        assert normalized.proof.verification_method == key_id(did)
        assert normalized.proof.signing_input == token.rsplit(".", 1)[0].encode()

    def test_wrong_segment_count(self):
        with pytest.raises(CredentialFormatError, match="expected 3 dot-separated segments"):
            normalize("abc.def")

    def test_undecodable_payload(self):
        token = encode_segment({"alg": "EdDSA"}) + ".!!!.c2ln"

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(token)

        assert exc_info.value.field == "payload"

    def test_missing_vc_claim(self):
        token = ".".join(
            [encode_segment({"alg": "EdDSA"}), encode_segment({"iss": "did:example:1"}), "c2ln"]
        )

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(token)

        assert exc_info.value.field == "vc"

    def test_missing_alg(self):
        token = ".".join([encode_segment({}), encode_segment({"vc": {}}), "c2ln"])

        with pytest.raises(CredentialFormatError) as exc_info:
            normalize(token)

        assert exc_info.value.field == "alg"

    def test_subject_and_issuer_from_claims(self):
        vc = {
            "type": ["VerifiableCredential", "DomainLinkageCredential"],
            "credentialSubject": {"origin": TEST_DOMAIN},
        }
        token = ".".join(
            [
                encode_segment({"alg": "ES256K", "kid": "#key-1"}),
                encode_segment({"iss": "did:example:1", "sub": "did:example:1", "vc": vc}),
                "c2ln",
            ]
        )

        normalized = normalize(token)

        assert normalized.issuer == "did:example:1"
        assert normalized.subject_id == "did:example:1"
        assert normalized.proof.verification_method == "did:example:1#key-1"

    def test_ion_interop(self, ion_configuration, ion_did_document):
        token = json.loads(ion_configuration)["linked_dids"][0]

        normalized = normalize(token)

        assert normalized.issuer == ion_did_document["id"]
        assert normalized.origin == "https://did.rohitgulati.com/"
        assert normalized.proof.alg == "ES256K"
        assert normalized.proof.verification_method.endswith(
            "#66dd51fe0cac4f1aae812d0aa109bc2avcSigningKey-2e975"
        )
        assert len(normalized.proof.signature) == 64


def test_unsupported_entry_type():
    with pytest.raises(CredentialFormatError, match="unsupported entry type int"):
        normalize(42)
