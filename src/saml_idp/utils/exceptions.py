"""Custom exception classes for the SAML IdP engine.

All exceptions inherit from SamlIdpError to allow catching all custom exceptions.

Signature verification never raises: trust failures are reported as ``False``
by the verifier. The exceptions below cover issuance failures only.
"""


class SamlIdpError(Exception):
    """Base exception for all SAML IdP custom exceptions."""

    pass


class ValidationError(SamlIdpError):
    """Raised when assertion request values are invalid.

    Examples:
        - Empty reference id (an XML ID needs a non-empty value)
        - Empty issuer or audience URI
        - Non-positive assertion lifetime
    """

    pass


class ConfigurationError(SamlIdpError):
    """Raised when configuration loading or validation fails.

    Configuration errors are fatal and must not be retried.

    Examples:
        - Encryption requested without encryption options
        - No NameID format configured
        - Unsupported signature or digest algorithm
        - Invalid configuration file format
    """

    pass


class SAMLError(SamlIdpError):
    """Base exception for SAML processing errors."""

    pass


class CertificateLoadError(SAMLError):
    """Raised when certificate or key material cannot be parsed.

    Examples:
        - Malformed PEM data
        - Wrong private key password
        - Private key missing when signing is requested
    """

    pass


class SigningError(SAMLError):
    """Raised when an XML document cannot be signed.

    A signing failure is deterministic, so callers should surface it
    instead of retrying.

    Examples:
        - Document has no root element to sign
        - Key and certificate rejected by the signing library
        - Signature sibling path does not resolve
    """

    pass


class EncryptionError(SAMLError):
    """Raised when the encryption collaborator cannot encrypt or decrypt.

    Examples:
        - Unsupported block encryption or key transport algorithm
        - Certificate without an RSA public key
        - Ciphertext that does not decrypt with the given key
    """

    pass


class MissingNameIdError(SAMLError):
    """Raised when the negotiated NameID getter yields no value.

    An assertion without a subject identifier cannot be issued, unlike
    attributes which degrade to empty value lists.
    """

    pass
