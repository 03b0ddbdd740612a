"""Models module.

This module provides data models and the principal interface.
"""

from saml_idp.models.principal import (
    MappingPrincipal,
    ObjectPrincipal,
    Principal,
    as_principal,
)
from saml_idp.models.saml import (
    AssertionRequest,
    CertificateInfo,
    EncryptionOptions,
    NameIdFormat,
    SAMLAssertion,
    SignatureOptions,
    generate_reference_id,
)

__all__ = [
    "AssertionRequest",
    "CertificateInfo",
    "EncryptionOptions",
    "MappingPrincipal",
    "NameIdFormat",
    "ObjectPrincipal",
    "Principal",
    "SAMLAssertion",
    "SignatureOptions",
    "as_principal",
    "generate_reference_id",
]
