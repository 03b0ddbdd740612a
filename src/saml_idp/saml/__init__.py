"""SAML 2.0 assertion issuance, signing, encryption and verification.

This module provides functionality for:
- Negotiating the NameID format and resolving attributes of a principal
- Building SAML 2.0 assertions and responses with lxml
- Signing documents with enveloped XML signatures (using SignXML)
- Verifying signed documents against a certificate fingerprint
- Encrypting assertions for a service provider
"""

from saml_idp.saml.algorithms import c14n_algorithm, signature_algorithm
from saml_idp.saml.assertion_builder import (
    AssertionBuilder,
    build_assertion,
    format_saml_time,
)
from saml_idp.saml.attributes import AttributeResolver, ResolvedAttribute, get_values_for
from saml_idp.saml.certificates import (
    certificate_fingerprint,
    get_certificate_info,
    load_pem_certificate_data,
    load_pem_private_key_data,
    normalize_fingerprint,
    signature_options_from_config,
)
from saml_idp.saml.encryptor import Encryptor
from saml_idp.saml.name_id import (
    NameIdFormatter,
    build_name_id_format,
    choose_name_id_format,
    resolve_name_id,
)
from saml_idp.saml.response_builder import ResponseBuilder, encode_response
from saml_idp.saml.saml_response import SamlResponse
from saml_idp.saml.signer import (
    ASSERTION_SIGNATURE_SIBLING,
    RESPONSE_SIGNATURE_SIBLING,
    SAMLSigner,
    sign_root_element,
    signature_value,
)
from saml_idp.saml.verifier import SignedDocument, has_valid_signature, is_signed

__all__ = [
    # NameID and attributes
    "NameIdFormatter",
    "build_name_id_format",
    "choose_name_id_format",
    "resolve_name_id",
    "AttributeResolver",
    "ResolvedAttribute",
    "get_values_for",
    # Building
    "AssertionBuilder",
    "build_assertion",
    "format_saml_time",
    "ResponseBuilder",
    "SamlResponse",
    "encode_response",
    # Signing
    "ASSERTION_SIGNATURE_SIBLING",
    "RESPONSE_SIGNATURE_SIBLING",
    "SAMLSigner",
    "sign_root_element",
    "signature_value",
    "signature_algorithm",
    "c14n_algorithm",
    # Verification
    "SignedDocument",
    "has_valid_signature",
    "is_signed",
    # Encryption
    "Encryptor",
    # Certificates
    "certificate_fingerprint",
    "get_certificate_info",
    "load_pem_certificate_data",
    "load_pem_private_key_data",
    "normalize_fingerprint",
    "signature_options_from_config",
]
