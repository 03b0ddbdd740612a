"""Integration tests for the issuance workflow.

Tests the complete path a host takes:
- Loading configuration from a file plus environment key material
- Issuing a signed Response around a signed assertion
- Encrypting the assertion to a service provider
- Verifying the result against the trusted fingerprint
"""

import base64
import json
from dataclasses import dataclass, replace
from pathlib import Path

import pytest
from lxml import etree

from saml_idp.config import get_config, load_config, set_config
from saml_idp.models.saml import AssertionRequest, EncryptionOptions
from saml_idp.namespaces import NSMAP, NameIdFormats
from saml_idp.saml import SamlResponse, SignedDocument
from saml_idp.saml.certificates import certificate_fingerprint
from saml_idp.saml.encryptor import Encryptor
from saml_idp.saml.verifier import has_valid_signature

NS = NSMAP

pytestmark = pytest.mark.integration


@dataclass
class User:
    id: str
    email_address: str
    display_name: str


@pytest.fixture
def process_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, certificate_pem, private_key_pem):
    """Load configuration the way a host does at start-up."""
    path = tmp_path / "saml_idp.json"
    path.write_text(json.dumps({
        "entity_id": "https://idp.example",
        "name_id_formats": {"email_address": "email_address", "persistent": "id"},
        "attributes": {
            "displayName": {"name": "urn:oid:2.16.840.1.113730.3.1.241", "getter": "display_name"},
            "emailAddress": None,
        },
        "session_expiry": 28800,
    }), encoding="utf-8")
    monkeypatch.setenv("SAML_IDP_CERTIFICATE", certificate_pem)
    monkeypatch.setenv("SAML_IDP_PRIVATE_KEY", private_key_pem)

    return set_config(load_config(path))


@pytest.fixture
def request_for_user():
    def _request(**overrides) -> AssertionRequest:
        values = dict(
            issuer_uri="https://idp.example",
            principal=User(id="u-42", email_address="jane@example.com", display_name="Jane Doe"),
            audience_uri="https://sp.example",
            saml_request_id="_authn-1",
            saml_acs_url="https://sp.example/acs",
        )
        values.update(overrides)
        return AssertionRequest.create(**values)

    return _request


class TestIssuanceWorkflow:
    """Test issuing and verifying complete responses."""

    def test_signed_response(self, process_config, request_for_user, certificate):
        fingerprint = certificate_fingerprint(certificate)
        request = request_for_user()

        encoded = SamlResponse(get_config(), request).encoded()

        xml = base64.b64decode(encoded)
        document = SignedDocument(xml)
        assert document.signed
        assert document.valid_signature(fingerprint)

        response = etree.fromstring(xml)
        assertion = response.find("saml:Assertion", NS)
        assert assertion.get("ID") == f"_{request.reference_id}"
        assert has_valid_signature(assertion, fingerprint)
        assert assertion.findtext("saml:Subject/saml:NameID", namespaces=NS) == "jane@example.com"
        assert assertion.find("saml:AuthnStatement", NS).get("SessionNotOnOrAfter")

        attributes = {
            a.get("FriendlyName"): [v.text for v in a.findall("saml:AttributeValue", NS)]
            for a in assertion.findall("saml:AttributeStatement/saml:Attribute", NS)
        }
        assert attributes == {"displayName": ["Jane Doe"], "emailAddress": ["jane@example.com"]}

    def test_requested_name_id_format(self, process_config, request_for_user):
        request = request_for_user(name_id_format=NameIdFormats.PERSISTENT)

        response = etree.fromstring(SamlResponse(process_config, request).build().encode("utf-8"))

        name_id = response.find("saml:Assertion/saml:Subject/saml:NameID", NS)
        assert name_id.text == "u-42"
        assert name_id.get("Format") == NameIdFormats.PERSISTENT

    def test_encrypted_assertion(self, process_config, request_for_user, other_material, certificate):
        sp_key, sp_certificate = other_material
        request = request_for_user(
            encryption_options=EncryptionOptions(certificate=sp_certificate, block_encryption="aes256-gcm")
        )

        xml = SamlResponse(process_config, request).build()

        assert "jane@example.com" not in xml
        response = etree.fromstring(xml.encode("utf-8"))
        assert has_valid_signature(response, certificate_fingerprint(certificate))

        decrypted = Encryptor.decrypt(response.find("saml:EncryptedAssertion", NS), sp_key)
        assert has_valid_signature(decrypted, certificate_fingerprint(certificate))
        assert "Jane Doe" in decrypted

    def test_tampered_response_rejected(self, process_config, request_for_user, certificate):
        xml = SamlResponse(process_config, request_for_user()).build()

        tampered = xml.replace("https://sp.example/acs", "https://evil.example/acs")

        assert has_valid_signature(tampered, certificate_fingerprint(certificate)) is False

    def test_untrusted_fingerprint(self, process_config, request_for_user, other_material):
        xml = SamlResponse(process_config, request_for_user()).build()

        assert SignedDocument(xml).valid_signature(certificate_fingerprint(other_material[1])) is False

    def test_session_expiry_override(self, process_config, request_for_user):
        request = request_for_user(session_expiry=0)

        response = etree.fromstring(SamlResponse(process_config, request).build().encode("utf-8"))

        statement = response.find("saml:Assertion/saml:AuthnStatement", NS)
        assert statement.get("SessionNotOnOrAfter") is None

    def test_assertion_only_signature(self, process_config, request_for_user, certificate):
        request = replace(request_for_user(), saml_request_id=None)

        xml = SamlResponse(process_config, request, signed_response=False).build()

        response = etree.fromstring(xml.encode("utf-8"))
        assert response.find("ds:Signature", NS) is None
        assert "InResponseTo" not in response.attrib
        assert has_valid_signature(response, certificate_fingerprint(certificate))
