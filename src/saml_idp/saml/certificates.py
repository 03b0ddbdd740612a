"""Certificate and key material handling.

This module parses PEM encoded certificates and private keys supplied by the
hosting process (reading them from disk or a secret store is the host's job),
computes certificate fingerprints, and converts material into the forms the
signing and encryption code needs.
"""

import base64
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)

from ..models.saml import CertificateInfo, SignatureOptions
from ..utils.exceptions import CertificateLoadError
from .algorithms import DEFAULT_FINGERPRINT_ALGORITHM, fingerprint_hash

logger = logging.getLogger(__name__)

PEMData = Union[str, bytes]

PEM_CERT_HEADER = "-----BEGIN CERTIFICATE-----"
PEM_CERT_FOOTER = "-----END CERTIFICATE-----"


def _as_bytes(data: PEMData) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def load_pem_certificate_data(data: PEMData) -> x509.Certificate:
    """Parse a PEM certificate.

    A bare base64 body without the BEGIN/END lines is accepted too, since
    that is how certificates appear inside ds:X509Certificate.

    Args:
        data: PEM text or bytes

    Returns:
        Parsed X.509 certificate

    Raises:
        CertificateLoadError: If the data is not a valid certificate

    Example:
        >>> cert = load_pem_certificate_data(pem_text)
        >>> cert.subject.rfc4514_string()
        'CN=Test IdP'
    """
    text = _as_bytes(data).decode("utf-8", errors="replace").strip()
    if PEM_CERT_HEADER not in text:
        text = format_certificate_body(text)
    try:
        return x509.load_pem_x509_certificate(text.encode("utf-8"))
    except ValueError as e:
        raise CertificateLoadError(
            f"Failed to parse PEM certificate: {e}. "
            f"Ensure the value contains a single X.509 certificate."
        ) from e


def load_pem_private_key_data(data: PEMData, password: Optional[bytes] = None) -> Any:
    """Parse a PEM private key.

    Args:
        data: PEM text or bytes
        password: Optional password for an encrypted key

    Returns:
        Private key object

    Raises:
        CertificateLoadError: If the key cannot be parsed or decrypted
    """
    try:
        return serialization.load_pem_private_key(_as_bytes(data), password=password)
    except (ValueError, TypeError) as e:
        raise CertificateLoadError(
            f"Failed to parse PEM private key: {e}. "
            f"Check the key data and password."
        ) from e


def certificate_fingerprint(
    cert: x509.Certificate, algorithm: str = DEFAULT_FINGERPRINT_ALGORITHM
) -> str:
    """Compute the fingerprint of a certificate.

    Returns:
        Upper-case hex digest of the DER encoding, bytes separated by colons

    Example:
        >>> certificate_fingerprint(cert)
        '9E:2A:...'
    """
    digest = cert.fingerprint(fingerprint_hash(algorithm))
    return ":".join(f"{byte:02X}" for byte in digest)


def normalize_fingerprint(fingerprint: str) -> str:
    """Normalize a fingerprint for comparison (no separators, lower case)."""
    return "".join(ch for ch in fingerprint.lower() if ch in "0123456789abcdef")


def fingerprint_matches(
    cert: x509.Certificate,
    fingerprint: str,
    algorithm: str = DEFAULT_FINGERPRINT_ALGORITHM,
) -> bool:
    """Check whether ``cert`` has the expected fingerprint."""
    expected = normalize_fingerprint(fingerprint or "")
    if not expected:
        return False
    return normalize_fingerprint(certificate_fingerprint(cert, algorithm)) == expected


def get_certificate_info(cert: x509.Certificate) -> CertificateInfo:
    """Extract certificate information for display and logging.

    Args:
        cert: X.509 certificate

    Returns:
        CertificateInfo dataclass with certificate details
    """
    public_key = cert.public_key()
    key_size = public_key.key_size if hasattr(public_key, "key_size") else None

    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        serial_number=cert.serial_number,
        key_size=key_size,
        fingerprint=certificate_fingerprint(cert),
    )


def is_certificate_current(cert: x509.Certificate, now: Optional[datetime] = None) -> bool:
    """Return True when ``now`` falls inside the certificate validity period."""
    now = now or datetime.now(timezone.utc)
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def check_expiration_warning(cert: x509.Certificate, warning_days: int = 30) -> bool:
    """Check if certificate is expiring soon and log warning.

    Args:
        cert: X.509 certificate to check
        warning_days: Number of days before expiration to warn (default: 30)

    Returns:
        True if certificate expires within warning_days, False otherwise
    """
    now = datetime.now(timezone.utc)
    warning_date = now + timedelta(days=warning_days)

    if cert.not_valid_after_utc < warning_date:
        days_remaining = (cert.not_valid_after_utc - now).days
        logger.warning(
            f"Signing certificate expiring soon: {days_remaining} days remaining "
            f"(expires: {cert.not_valid_after_utc.strftime('%Y-%m-%d')})"
        )
        return True

    return False


def certificate_body(cert: x509.Certificate) -> str:
    """Return the base64 DER body of a certificate, as used in ds:X509Certificate."""
    return base64.b64encode(cert.public_bytes(Encoding.DER)).decode("ascii")


def format_certificate_body(body: str) -> str:
    """Wrap a bare base64 certificate body in PEM armour."""
    compact = "".join(body.split())
    lines = [compact[i:i + 64] for i in range(0, len(compact), 64)]
    return "\n".join([PEM_CERT_HEADER, *lines, PEM_CERT_FOOTER]) + "\n"


def signature_options_from_config(signing: Any) -> SignatureOptions:
    """Build SignatureOptions from a signing configuration section.

    Args:
        signing: Object with ``certificate``, ``private_key``,
            ``private_key_password``, ``algorithm`` and ``c14n_algorithm``
            (see ``config.schema.SigningConfig``)

    Raises:
        CertificateLoadError: If the certificate or key is missing or invalid
    """
    if not signing.certificate:
        raise CertificateLoadError(
            "No signing certificate configured. "
            "Set signing.certificate (or SAML_IDP_CERTIFICATE) to PEM data."
        )
    if not signing.private_key:
        raise CertificateLoadError(
            "No signing private key configured. "
            "Set signing.private_key (or SAML_IDP_PRIVATE_KEY) to PEM data."
        )
    password = signing.private_key_password
    certificate = load_pem_certificate_data(signing.certificate)
    check_expiration_warning(certificate)
    return SignatureOptions(
        private_key=load_pem_private_key_data(
            signing.private_key,
            password.encode("utf-8") if password else None,
        ),
        certificate=certificate,
        algorithm=signing.algorithm,
        c14n_algorithm=signing.c14n_algorithm,
    )


def convert_to_pem(cert: x509.Certificate) -> bytes:
    """Convert certificate to PEM format bytes."""
    return cert.public_bytes(Encoding.PEM)


def convert_key_to_pem(private_key: Any) -> bytes:
    """Convert a private key to unencrypted PKCS8 PEM bytes."""
    return private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    )
