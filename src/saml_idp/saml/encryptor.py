"""XML Encryption of assertions for a service provider.

Wraps a serialized assertion in ``saml:EncryptedAssertion/xenc:EncryptedData``
following XML Encryption 1.0/1.1. A fresh content-encryption key (CEK)
encrypts the assertion with AES; the CEK is wrapped with the service
provider certificate's RSA public key (OAEP) and carried in
``ds:KeyInfo/xenc:EncryptedKey``.

The cryptographic primitives come from the cryptography library.
"""

import base64
import logging
import os
from typing import Any, Dict, Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from lxml import etree

from ..models.saml import EncryptionOptions
from ..namespaces import ASSERTION, ENCRYPTION, SIGNATURE, ds_tag, saml_tag, xenc_tag
from ..utils.exceptions import EncryptionError
from .certificates import certificate_body

logger = logging.getLogger(__name__)

XMLENC11 = "http://www.w3.org/2009/xmlenc11#"
ELEMENT_TYPE = f"{ENCRYPTION}Element"
SHA1_DIGEST = f"{SIGNATURE}sha1"

# name -> (algorithm URI, key size in bytes, mode)
BLOCK_ENCRYPTION_ALGORITHMS: Dict[str, Tuple[str, int, str]] = {
    "aes128-cbc": (f"{ENCRYPTION}aes128-cbc", 16, "cbc"),
    "aes256-cbc": (f"{ENCRYPTION}aes256-cbc", 32, "cbc"),
    "aes128-gcm": (f"{XMLENC11}aes128-gcm", 16, "gcm"),
    "aes256-gcm": (f"{XMLENC11}aes256-gcm", 32, "gcm"),
}

KEY_TRANSPORT_ALGORITHMS: Dict[str, str] = {
    "rsa-oaep-mgf1p": f"{ENCRYPTION}rsa-oaep-mgf1p",
    "rsa-oaep": f"{XMLENC11}rsa-oaep",
}

GCM_NONCE_SIZE = 12
CBC_IV_SIZE = 16

NS = {"saml": ASSERTION, "xenc": ENCRYPTION, "ds": SIGNATURE}


def _oaep() -> asym_padding.OAEP:
    # Both transports default to SHA-1 digest and MGF1 with SHA-1
    return asym_padding.OAEP(
        mgf=asym_padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None,
    )


def _block_algorithm(name: str) -> Tuple[str, int, str]:
    try:
        return BLOCK_ENCRYPTION_ALGORITHMS[name.lower()]
    except KeyError:
        raise EncryptionError(
            f"Unsupported block encryption algorithm: {name}. "
            f"Must be one of: {', '.join(BLOCK_ENCRYPTION_ALGORITHMS)}"
        ) from None


def _key_transport_uri(name: str) -> str:
    try:
        return KEY_TRANSPORT_ALGORITHMS[name.lower()]
    except KeyError:
        raise EncryptionError(
            f"Unsupported key transport algorithm: {name}. "
            f"Must be one of: {', '.join(KEY_TRANSPORT_ALGORITHMS)}"
        ) from None


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _encrypt_content(plaintext: bytes, key: bytes, mode: str) -> bytes:
    if mode == "gcm":
        nonce = os.urandom(GCM_NONCE_SIZE)
        # AESGCM appends the 16 byte tag to the ciphertext
        return nonce + AESGCM(key).encrypt(nonce, plaintext, None)

    iv = os.urandom(CBC_IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def _decrypt_content(data: bytes, key: bytes, mode: str) -> bytes:
    if mode == "gcm":
        nonce, ciphertext = data[:GCM_NONCE_SIZE], data[GCM_NONCE_SIZE:]
        return AESGCM(key).decrypt(nonce, ciphertext, None)

    iv, ciphertext = data[:CBC_IV_SIZE], data[CBC_IV_SIZE:]
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    # Only the last pad byte (the pad length) is significant
    pad_length = padded[-1] if padded else 0
    if not 0 < pad_length <= CBC_IV_SIZE:
        raise ValueError("Invalid block padding in decrypted content")
    return padded[:-pad_length]


class Encryptor:
    """Encrypt serialized assertions to a service provider certificate.

    Attributes:
        options: Certificate and algorithm settings

    Example:
        >>> encryptor = Encryptor(EncryptionOptions(certificate=sp_cert))
        >>> encrypted = encryptor.encrypt(signed_assertion_xml)
        >>> "EncryptedAssertion" in encrypted
        True
    """

    def __init__(self, options: EncryptionOptions) -> None:
        """Validate the options.

        Raises:
            EncryptionError: If the certificate is not RSA or an algorithm
                is unsupported
        """
        self.options = options
        self.block_uri, self.key_size, self.mode = _block_algorithm(options.block_encryption)
        self.key_transport_uri = _key_transport_uri(options.key_transport)

        public_key = options.certificate.public_key()
        if not isinstance(public_key, RSAPublicKey):
            raise EncryptionError(
                "Encryption certificate must carry an RSA public key "
                "for key transport."
            )
        self.public_key = public_key

    def encrypt_tree(self, xml: Union[str, bytes]) -> etree._Element:
        """Encrypt ``xml`` and return the ``saml:EncryptedAssertion`` element.

        Raises:
            EncryptionError: If the content cannot be encrypted
        """
        plaintext = xml.encode("utf-8") if isinstance(xml, str) else xml
        cek = os.urandom(self.key_size)

        try:
            cipher_value = _encrypt_content(plaintext, cek, self.mode)
            wrapped_key = self.public_key.encrypt(cek, _oaep())
        except (ValueError, TypeError) as e:
            logger.error(f"Assertion encryption failed: {e}")
            raise EncryptionError(
                f"Failed to encrypt assertion with {self.options.block_encryption}: {e}"
            ) from e

        encrypted_assertion = etree.Element(
            saml_tag("EncryptedAssertion"),
            nsmap={"saml": ASSERTION, "xenc": ENCRYPTION, "ds": SIGNATURE},
        )
        encrypted_data = etree.SubElement(
            encrypted_assertion, xenc_tag("EncryptedData"), Type=ELEMENT_TYPE
        )
        etree.SubElement(encrypted_data, xenc_tag("EncryptionMethod"), Algorithm=self.block_uri)

        key_info = etree.SubElement(encrypted_data, ds_tag("KeyInfo"))
        encrypted_key = etree.SubElement(key_info, xenc_tag("EncryptedKey"))
        key_method = etree.SubElement(
            encrypted_key, xenc_tag("EncryptionMethod"), Algorithm=self.key_transport_uri
        )
        etree.SubElement(key_method, ds_tag("DigestMethod"), Algorithm=SHA1_DIGEST)

        cert_key_info = etree.SubElement(encrypted_key, ds_tag("KeyInfo"))
        x509_data = etree.SubElement(cert_key_info, ds_tag("X509Data"))
        x509_cert = etree.SubElement(x509_data, ds_tag("X509Certificate"))
        x509_cert.text = certificate_body(self.options.certificate)

        key_cipher_data = etree.SubElement(encrypted_key, xenc_tag("CipherData"))
        etree.SubElement(key_cipher_data, xenc_tag("CipherValue")).text = _b64(wrapped_key)

        cipher_data = etree.SubElement(encrypted_data, xenc_tag("CipherData"))
        etree.SubElement(cipher_data, xenc_tag("CipherValue")).text = _b64(cipher_value)

        logger.debug(
            f"Encrypted assertion ({len(plaintext)} bytes) with "
            f"{self.options.block_encryption}/{self.options.key_transport}"
        )
        return encrypted_assertion

    def encrypt(self, xml: Union[str, bytes]) -> str:
        """Encrypt ``xml`` and serialize the ``saml:EncryptedAssertion``."""
        return etree.tostring(self.encrypt_tree(xml), encoding="unicode")

    @staticmethod
    def decrypt(encrypted_xml: Union[str, bytes, etree._Element], private_key: Any) -> str:
        """Recover the plaintext assertion from an encrypted envelope.

        This is the service provider side of :meth:`encrypt`; the engine
        uses it to check round trips.

        Args:
            encrypted_xml: ``saml:EncryptedAssertion`` or ``xenc:EncryptedData``
            private_key: RSA private key matching the encryption certificate

        Returns:
            Decrypted assertion XML

        Raises:
            EncryptionError: If the envelope is malformed or decryption fails
        """
        if not isinstance(private_key, RSAPrivateKey):
            raise EncryptionError("Decryption requires an RSA private key.")

        try:
            if isinstance(encrypted_xml, etree._Element):
                root = encrypted_xml
            else:
                data = (
                    encrypted_xml.encode("utf-8")
                    if isinstance(encrypted_xml, str)
                    else encrypted_xml
                )
                root = etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            raise EncryptionError(f"Encrypted assertion is not well-formed XML: {e}") from e

        encrypted_data = (
            root if root.tag == xenc_tag("EncryptedData")
            else root.find(".//xenc:EncryptedData", NS)
        )
        if encrypted_data is None:
            raise EncryptionError("No xenc:EncryptedData element found.")

        block_uri = encrypted_data.find("xenc:EncryptionMethod", NS)
        wrapped_key = encrypted_data.findtext(
            "ds:KeyInfo/xenc:EncryptedKey/xenc:CipherData/xenc:CipherValue", namespaces=NS
        )
        cipher_value = encrypted_data.findtext("xenc:CipherData/xenc:CipherValue", namespaces=NS)
        if block_uri is None or not wrapped_key or not cipher_value:
            raise EncryptionError(
                "Encrypted data is missing EncryptionMethod, EncryptedKey or CipherValue."
            )

        matches = [
            (size, mode)
            for uri, size, mode in BLOCK_ENCRYPTION_ALGORITHMS.values()
            if uri == block_uri.get("Algorithm")
        ]
        if not matches:
            raise EncryptionError(
                f"Unsupported block encryption algorithm: {block_uri.get('Algorithm')}"
            )
        key_size, mode = matches[0]

        try:
            cek = private_key.decrypt(base64.b64decode(wrapped_key), _oaep())
            if len(cek) != key_size:
                raise ValueError(f"Unwrapped key has {len(cek)} bytes, expected {key_size}")
            plaintext = _decrypt_content(base64.b64decode(cipher_value), cek, mode)
        except (InvalidTag, ValueError, TypeError) as e:
            logger.warning(f"Assertion decryption failed: {type(e).__name__}")
            raise EncryptionError(f"Failed to decrypt assertion: {e}") from e

        return plaintext.decode("utf-8")
