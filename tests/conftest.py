"""
Shared pytest configuration and fixtures.

This module provides fixtures used across the unit and integration suites:
an RSA signing key with a self-signed certificate generated with the
cryptography library, PEM copies of them, and a ready-to-use IdP
configuration.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, Optional, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from saml_idp.config import reset_config
from saml_idp.config.schema import AttributeConfig, IdpConfig, NameIdFormatConfig, SigningConfig
from saml_idp.models.principal import MappingPrincipal
from saml_idp.models.saml import AssertionRequest, SignatureOptions


def generate_key_and_certificate(
    common_name: str = "Test IdP Certificate",
    days_valid: int = 365,
    not_before: Optional[datetime] = None,
) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """Generate an RSA key and a self-signed certificate with SKI/AKI extensions."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "TestOrg"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])

    start = not_before or datetime.now(timezone.utc) - timedelta(days=1)
    cert = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        start
    ).not_valid_after(
        start + timedelta(days=days_valid)
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(private_key.public_key()),
        critical=False,
    ).sign(private_key, hashes.SHA256())

    return private_key, cert


def key_to_pem(private_key: rsa.RSAPrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def cert_to_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture
def make_key_and_certificate():
    """Factory for extra key pairs with custom validity."""
    return generate_key_and_certificate


@pytest.fixture(scope="session")
def signing_material() -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """IdP signing key and certificate, generated once per session."""
    return generate_key_and_certificate()


@pytest.fixture(scope="session")
def other_material() -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """A second, unrelated key pair (untrusted signer / SP encryption key)."""
    return generate_key_and_certificate(common_name="Other Certificate")


@pytest.fixture
def private_key(signing_material):
    return signing_material[0]


@pytest.fixture
def certificate(signing_material):
    return signing_material[1]


@pytest.fixture
def private_key_pem(private_key) -> str:
    return key_to_pem(private_key)


@pytest.fixture
def certificate_pem(certificate) -> str:
    return cert_to_pem(certificate)


@pytest.fixture
def signature_options(private_key, certificate) -> SignatureOptions:
    return SignatureOptions(private_key=private_key, certificate=certificate)


@pytest.fixture
def idp_config(certificate_pem, private_key_pem) -> IdpConfig:
    """IdP configuration with inline signing material and two attributes."""
    return IdpConfig(
        entity_id="https://idp.example",
        name_id_formats=[
            NameIdFormatConfig(name="email_address", getter="email"),
            NameIdFormatConfig(name="persistent", getter="id"),
        ],
        attributes={
            "emailAddress": AttributeConfig(getter="email"),
            "groups": None,
        },
        signing=SigningConfig(certificate=certificate_pem, private_key=private_key_pem),
    )


@pytest.fixture
def principal() -> MappingPrincipal:
    return MappingPrincipal({
        "email": "jane@example.com",
        "id": "u-1001",
        "groups": ["staff", "admins"],
    })


@pytest.fixture
def assertion_request(principal) -> AssertionRequest:
    return AssertionRequest(
        reference_id="abc123",
        issuer_uri="https://idp.example",
        principal=principal,
        audience_uri="https://sp.example",
        saml_request_id="_request-1",
        saml_acs_url="https://sp.example/acs",
        expiry=3600,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_process_config() -> Generator[None, None, None]:
    """Reset the process-wide configuration around each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
