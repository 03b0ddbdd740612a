"""Unit tests for assertion encryption."""

import pytest
from lxml import etree

from saml_idp.models.saml import EncryptionOptions
from saml_idp.namespaces import NSMAP
from saml_idp.saml.assertion_builder import AssertionBuilder
from saml_idp.saml.certificates import certificate_body, certificate_fingerprint
from saml_idp.saml.encryptor import ELEMENT_TYPE, Encryptor
from saml_idp.saml.verifier import has_valid_signature
from saml_idp.utils.exceptions import EncryptionError

NS = NSMAP

PLAIN_ASSERTION = (
    '<saml:Assertion xmlns:saml="urn:oasis:names:tc:SAML:2.0:assertion" ID="_a1">'
    "<saml:Issuer>https://idp.example</saml:Issuer>"
    "</saml:Assertion>"
)


@pytest.fixture
def sp_key(other_material):
    return other_material[0]


@pytest.fixture
def sp_certificate(other_material):
    return other_material[1]


class TestEncryptStructure:
    """Test the encrypted envelope."""

    def test_envelope(self, sp_certificate):
        encrypted = Encryptor(EncryptionOptions(certificate=sp_certificate)).encrypt_tree(PLAIN_ASSERTION)

        assert etree.QName(encrypted).localname == "EncryptedAssertion"
        data = encrypted.find("xenc:EncryptedData", NS)
        assert data.get("Type") == ELEMENT_TYPE
        assert data.find("xenc:EncryptionMethod", NS).get("Algorithm") == (
            "http://www.w3.org/2001/04/xmlenc#aes256-cbc"
        )
        key = data.find("ds:KeyInfo/xenc:EncryptedKey", NS)
        assert key.find("xenc:EncryptionMethod", NS).get("Algorithm") == (
            "http://www.w3.org/2001/04/xmlenc#rsa-oaep-mgf1p"
        )
        assert key.findtext(
            "ds:KeyInfo/ds:X509Data/ds:X509Certificate", namespaces=NS
        ) == certificate_body(sp_certificate)
        assert data.findtext("xenc:CipherData/xenc:CipherValue", namespaces=NS)

    def test_plaintext_not_visible(self, sp_certificate):
        encrypted = Encryptor(EncryptionOptions(certificate=sp_certificate)).encrypt(PLAIN_ASSERTION)

        assert "https://idp.example" not in encrypted

    def test_gcm_algorithm_uri(self, sp_certificate):
        options = EncryptionOptions(certificate=sp_certificate, block_encryption="aes128-gcm",
                                    key_transport="rsa-oaep")
        encrypted = Encryptor(options).encrypt_tree(PLAIN_ASSERTION)

        data = encrypted.find("xenc:EncryptedData", NS)
        assert data.find("xenc:EncryptionMethod", NS).get("Algorithm") == (
            "http://www.w3.org/2009/xmlenc11#aes128-gcm"
        )
        assert data.find("ds:KeyInfo/xenc:EncryptedKey/xenc:EncryptionMethod", NS).get(
            "Algorithm"
        ) == "http://www.w3.org/2009/xmlenc11#rsa-oaep"


class TestRoundTrip:
    """Test decryption recovers the assertion."""

    @pytest.mark.parametrize("block", ["aes128-cbc", "aes256-cbc", "aes128-gcm", "aes256-gcm"])
    def test_block_ciphers(self, sp_certificate, sp_key, block):
        options = EncryptionOptions(certificate=sp_certificate, block_encryption=block)
        encrypted = Encryptor(options).encrypt(PLAIN_ASSERTION)

        assert Encryptor.decrypt(encrypted, sp_key) == PLAIN_ASSERTION

    def test_signed_assertion_still_verifies(self, assertion_request, idp_config, signature_options,
                                             certificate, sp_certificate, sp_key):
        signed = AssertionBuilder(assertion_request, idp_config).signed(signature_options)
        encrypted = Encryptor(EncryptionOptions(certificate=sp_certificate)).encrypt(signed)

        decrypted = Encryptor.decrypt(encrypted, sp_key)
        assert has_valid_signature(decrypted, certificate_fingerprint(certificate)) is True

    def test_wrong_key(self, sp_certificate, private_key):
        encrypted = Encryptor(EncryptionOptions(certificate=sp_certificate)).encrypt(PLAIN_ASSERTION)

        with pytest.raises(EncryptionError):
            Encryptor.decrypt(encrypted, private_key)

    def test_tampered_gcm_ciphertext(self, sp_certificate, sp_key):
        options = EncryptionOptions(certificate=sp_certificate, block_encryption="aes256-gcm")
        encrypted = Encryptor(options).encrypt_tree(PLAIN_ASSERTION)
        cipher_value = encrypted.find("xenc:EncryptedData/xenc:CipherData/xenc:CipherValue", NS)
        cipher_value.text = ("B" if cipher_value.text[20] == "A" else "A").join(
            [cipher_value.text[:20], cipher_value.text[21:]]
        )

        with pytest.raises(EncryptionError):
            Encryptor.decrypt(encrypted, sp_key)


class TestErrors:
    """Test rejected options and envelopes."""

    def test_unsupported_block_cipher(self, sp_certificate):
        with pytest.raises(EncryptionError, match="Unsupported block encryption"):
            Encryptor(EncryptionOptions(certificate=sp_certificate, block_encryption="des-cbc"))

    def test_unsupported_key_transport(self, sp_certificate):
        with pytest.raises(EncryptionError, match="Unsupported key transport"):
            Encryptor(EncryptionOptions(certificate=sp_certificate, key_transport="rsa-1_5"))

    def test_decrypt_without_encrypted_data(self, sp_key):
        with pytest.raises(EncryptionError, match="No xenc:EncryptedData"):
            Encryptor.decrypt("<empty/>", sp_key)

    def test_decrypt_malformed(self, sp_key):
        with pytest.raises(EncryptionError):
            Encryptor.decrypt("<broken", sp_key)
