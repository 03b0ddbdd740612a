"""XML namespace and URI constants used by SAML 2.0 documents.

Values are fixed by the OASIS SAML 2.0 and W3C XML Signature/Encryption
specifications and must match byte for byte.
"""

METADATA = "urn:oasis:names:tc:SAML:2.0:metadata"
ASSERTION = "urn:oasis:names:tc:SAML:2.0:assertion"
PROTOCOL = "urn:oasis:names:tc:SAML:2.0:protocol"
SIGNATURE = "http://www.w3.org/2000/09/xmldsig#"
ENCRYPTION = "http://www.w3.org/2001/04/xmlenc#"

# Prefix map used when building and querying documents
NSMAP = {
    "saml": ASSERTION,
    "samlp": PROTOCOL,
    "ds": SIGNATURE,
    "xenc": ENCRYPTION,
    "md": METADATA,
}


class Statuses:
    SUCCESS = "urn:oasis:names:tc:SAML:2.0:status:Success"


class Consents:
    UNSPECIFIED = "urn:oasis:names:tc:SAML:2.0:consent:unspecified"


class AuthnContextClassRef:
    PASSWORD = "urn:oasis:names:tc:SAML:2.0:ac:classes:Password"
    PASSWORD_PROTECTED = (
        "urn:oasis:names:tc:SAML:2.0:ac:classes:PasswordProtectedTransport"
    )


class Methods:
    BEARER = "urn:oasis:names:tc:SAML:2.0:cm:bearer"


class AttributeNameFormats:
    URI = "urn:oasis:names:tc:SAML:2.0:attrname-format:uri"


class NameIdFormats:
    EMAIL_ADDRESS = "urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"
    UNSPECIFIED = "urn:oasis:names:tc:SAML:1.1:nameid-format:unspecified"
    TRANSIENT = "urn:oasis:names:tc:SAML:2.0:nameid-format:transient"
    PERSISTENT = "urn:oasis:names:tc:SAML:2.0:nameid-format:persistent"


def saml_tag(name: str) -> str:
    """Return the Clark-notation tag for a SAML assertion element."""
    return f"{{{ASSERTION}}}{name}"


def samlp_tag(name: str) -> str:
    """Return the Clark-notation tag for a SAML protocol element."""
    return f"{{{PROTOCOL}}}{name}"


def ds_tag(name: str) -> str:
    """Return the Clark-notation tag for an XML Signature element."""
    return f"{{{SIGNATURE}}}{name}"


def xenc_tag(name: str) -> str:
    """Return the Clark-notation tag for an XML Encryption element."""
    return f"{{{ENCRYPTION}}}{name}"
