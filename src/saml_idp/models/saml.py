"""Data models for SAML issuance and certificate handling.

This module defines dataclasses for assertion requests, signing and
encryption options, NameID formats, and issued assertion metadata.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Union

from cryptography import x509

from ..namespaces import AuthnContextClassRef

# A getter is either a callable taking the principal or a symbolic name
Getter = Union[str, Callable[[Any], Any], None]


def generate_reference_id() -> str:
    """Generate a unique reference id for a new assertion or response.

    Returns:
        UUID4 string; the XML ID is derived from it by prefixing ``_``

    Example:
        >>> reference_id = generate_reference_id()
        >>> len(reference_id)
        36
    """
    return str(uuid.uuid4())


@dataclass
class CertificateInfo:
    """Certificate information for display and logging.

    Contains extracted metadata from X.509 certificates without
    exposing sensitive key material.

    Attributes:
        subject: Certificate subject Distinguished Name (DN)
        issuer: Certificate issuer Distinguished Name (DN)
        not_before: Certificate validity start date
        not_after: Certificate expiration date
        serial_number: Certificate serial number
        key_size: Public key size in bits (e.g., 2048, 4096)
        fingerprint: SHA-1 fingerprint, colon separated
    """

    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    serial_number: int
    key_size: Optional[int]
    fingerprint: str


@dataclass(frozen=True)
class NameIdFormat:
    """A NameID format URI paired with the strategy that extracts its value.

    Attributes:
        name: Full NameID format URI
        getter: Callable taking the principal, or a symbolic attribute name
    """

    name: str
    getter: Getter


@dataclass(frozen=True)
class SignatureOptions:
    """Key material and algorithms used to sign a document.

    Attributes:
        private_key: Private key matching ``certificate``
        certificate: Signing certificate, embedded in KeyInfo
        algorithm: Signature algorithm name (sha256, sha384, sha512)
        c14n_algorithm: Canonicalization method name (exc-c14n, c14n, c14n11)
    """

    private_key: Any
    certificate: x509.Certificate
    algorithm: str = "sha256"
    c14n_algorithm: str = "exc-c14n"


@dataclass(frozen=True)
class EncryptionOptions:
    """Settings for encrypting an assertion to a service provider.

    Attributes:
        certificate: Service provider encryption certificate (RSA)
        block_encryption: Content cipher (aes128-cbc, aes256-cbc, aes128-gcm, aes256-gcm)
        key_transport: Key transport algorithm (rsa-oaep-mgf1p, rsa-oaep)
    """

    certificate: x509.Certificate
    block_encryption: str = "aes256-cbc"
    key_transport: str = "rsa-oaep-mgf1p"


@dataclass(frozen=True)
class AssertionRequest:
    """Caller-supplied inputs for issuing one assertion.

    Attributes:
        reference_id: Unique id; the assertion ID is ``"_" + reference_id``
        issuer_uri: IdP entity id
        principal: Authenticated principal (see ``models.principal``)
        audience_uri: Service provider entity id
        saml_request_id: ID of the AuthnRequest being answered
        saml_acs_url: Assertion consumer service URL
        algorithm: Signature algorithm name; None uses the configured one
        authn_context_classref: Authentication context class URI
        name_id_format: Requested NameID format URI, if any
        expiry: Assertion lifetime in seconds
        session_expiry: Session lifetime in seconds; 0 means no bound,
            None means use the configured default
        encryption_options: Optional encryption settings
    """

    reference_id: str
    issuer_uri: str
    principal: Any
    audience_uri: str
    saml_request_id: Optional[str]
    saml_acs_url: str
    algorithm: Optional[str] = None
    authn_context_classref: str = AuthnContextClassRef.PASSWORD_PROTECTED
    name_id_format: Optional[str] = None
    expiry: int = 60 * 60
    session_expiry: Optional[int] = None
    encryption_options: Optional[EncryptionOptions] = None

    @classmethod
    def create(cls, **kwargs: Any) -> "AssertionRequest":
        """Build a request, generating a reference id when none is given.

        Example:
            >>> request = AssertionRequest.create(
            ...     issuer_uri="https://idp.example",
            ...     principal=principal,
            ...     audience_uri="https://sp.example",
            ...     saml_request_id="_req1",
            ...     saml_acs_url="https://sp.example/acs",
            ... )
        """
        if not kwargs.get("reference_id"):
            kwargs["reference_id"] = generate_reference_id()
        return cls(**kwargs)


@dataclass
class SAMLAssertion:
    """Issued SAML 2.0 assertion with metadata.

    Attributes:
        assertion_id: Assertion ID attribute value
        issuer: Assertion issuer (entity identifier)
        name_id: Subject NameID value
        name_id_format: Subject NameID format URI
        audience: Intended audience (service provider entity id)
        issue_instant: Timestamp when assertion was issued
        not_before: Start of validity period
        not_on_or_after: End of validity period
        session_not_on_or_after: End of session, or None when unbounded
        xml_content: Full SAML assertion XML string
        signature: Base64 signature value (empty until signed)
        certificate_subject: Subject DN from signing certificate
        attributes: Resolved attribute values keyed by friendly name
    """

    assertion_id: str
    issuer: str
    name_id: str
    name_id_format: str
    audience: str
    issue_instant: datetime
    not_before: datetime
    not_on_or_after: datetime
    session_not_on_or_after: Optional[datetime]
    xml_content: str
    signature: str = ""
    certificate_subject: str = ""
    attributes: dict = field(default_factory=dict)
