"""XML signing module using signxml library.

This module embeds enveloped XML Signatures (XMLDSig) into SAML documents.
The signed element is referenced by its ``ID`` attribute, and the Signature
element can be moved to the position the SAML schema requires (directly
after ``Issuer``) once it has been created.
"""

import copy
import logging
from typing import Dict, Optional, Union

from lxml import etree
from signxml import SignatureConstructionMethod, XMLSigner
from signxml.exceptions import InvalidInput

from ..models.saml import SignatureOptions
from ..namespaces import NSMAP, SIGNATURE
from ..utils.exceptions import CertificateLoadError, SigningError
from .algorithms import c14n_algorithm, signature_algorithm
from .certificates import convert_key_to_pem, convert_to_pem, get_certificate_info

logger = logging.getLogger(__name__)

# XPath of the element the Signature must follow, per document type
ASSERTION_SIGNATURE_SIBLING = "/saml:Assertion/saml:Issuer"
RESPONSE_SIGNATURE_SIBLING = "/samlp:Response/saml:Issuer"

XMLInput = Union[str, bytes, etree._Element, etree._ElementTree]


def _root_of(doc: XMLInput) -> Optional[etree._Element]:
    if isinstance(doc, (str, bytes)):
        data = doc.encode("utf-8") if isinstance(doc, str) else doc
        try:
            return etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            raise SigningError(
                f"Invalid XML structure, cannot sign: {e}. "
                f"Ensure the document is well-formed XML."
            ) from e
    if isinstance(doc, etree._ElementTree):
        return doc.getroot()
    return doc


def insert_after(element: etree._Element, sibling: etree._Element) -> None:
    """Move ``element`` so it immediately follows ``sibling``.

    Works for a freshly created element as well as one already in the tree.
    """
    sibling.addnext(element)


def sign_root_element(
    doc: XMLInput,
    signature_options: SignatureOptions,
    previous_sibling_path: Optional[str] = None,
    namespaces: Optional[Dict[str, str]] = None,
) -> etree._Element:
    """Sign the root element of ``doc`` with an enveloped signature.

    The input is not modified; a signed copy of the root is returned. The
    reference URI is ``#`` plus the root's ``ID`` attribute, and signxml is
    told explicitly that ``ID`` is the identifier attribute.

    Args:
        doc: Document to sign (XML string/bytes, element or tree)
        signature_options: Key, certificate and algorithms
        previous_sibling_path: Optional XPath of the element the Signature
            must follow, e.g. ``/saml:Assertion/saml:Issuer``
        namespaces: Prefix map for ``previous_sibling_path``; defaults to the
            SAML prefixes (saml, samlp, ds, xenc, md)

    Returns:
        Signed root element

    Raises:
        SigningError: If there is no root or ID to reference, the key or
            certificate is rejected, or the sibling path does not resolve
        ConfigurationError: If an algorithm name is not supported

    Example:
        >>> signed = sign_root_element(
        ...     assertion_xml, options, ASSERTION_SIGNATURE_SIBLING
        ... )
        >>> signed[1].tag
        '{http://www.w3.org/2000/09/xmldsig#}Signature'
    """
    root = _root_of(doc)
    if root is None or not isinstance(root.tag, str):
        raise SigningError("Document has no root element to sign.")

    tag_to_sign = etree.QName(root).localname
    reference_id = root.get("ID")
    if not reference_id:
        raise SigningError(
            f"Root element {tag_to_sign} has no ID attribute. "
            f"The signature reference needs an ID to point at."
        )

    method, digest = signature_algorithm(signature_options.algorithm)
    signer = XMLSigner(
        method=SignatureConstructionMethod.enveloped,
        signature_algorithm=method,
        digest_algorithm=digest,
        c14n_algorithm=c14n_algorithm(signature_options.c14n_algorithm),
    )

    try:
        signed = signer.sign(
            copy.deepcopy(root),
            key=convert_key_to_pem(signature_options.private_key),
            cert=convert_to_pem(signature_options.certificate),
            reference_uri=f"#{reference_id}",
            id_attribute="ID",
        )
    except (InvalidInput, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Signing {tag_to_sign} {reference_id} failed: {e}")
        raise SigningError(
            f"Failed to sign {tag_to_sign} {reference_id}: {e}. "
            f"Verify the private key matches the certificate."
        ) from e

    if previous_sibling_path:
        ns = dict(namespaces or NSMAP)
        ns.setdefault("ds", SIGNATURE)
        signature = signed.find("ds:Signature", {"ds": SIGNATURE})
        matches = signed.xpath(previous_sibling_path, namespaces=ns)
        if signature is None or not matches or not isinstance(matches[0], etree._Element):
            raise SigningError(
                f"Cannot place Signature after {previous_sibling_path}: "
                f"path does not match an element of {tag_to_sign}."
            )
        insert_after(signature, matches[0])

    logger.debug(f"Signed {tag_to_sign} {reference_id} ({signature_options.algorithm})")
    return signed


def signature_value(signed: etree._Element) -> str:
    """Return the base64 SignatureValue of the root's own Signature."""
    value = signed.findtext("ds:Signature/ds:SignatureValue", namespaces={"ds": SIGNATURE})
    return "".join((value or "").split())


class SAMLSigner:
    """Sign SAML documents with a configured key and certificate.

    Attributes:
        signature_options: Key, certificate and algorithm settings

    Example:
        >>> signer = SAMLSigner(signature_options_from_config(config.signing))
        >>> signed = signer.sign_tree(assertion, ASSERTION_SIGNATURE_SIBLING)
        >>> signature_value(signed) != ""
        True
    """

    def __init__(self, signature_options: SignatureOptions) -> None:
        """Initialize the signer.

        Raises:
            CertificateLoadError: If the certificate or private key is missing
            ConfigurationError: If the algorithm is unsupported
        """
        if signature_options.certificate is None:
            raise CertificateLoadError(
                "Signature options must contain a valid certificate. "
                "Configure signing.certificate with PEM data."
            )
        if signature_options.private_key is None:
            raise CertificateLoadError(
                "Signature options must contain a private key for signing. "
                "Configure signing.private_key with PEM data."
            )
        # Fail early on unsupported algorithm names
        signature_algorithm(signature_options.algorithm)
        c14n_algorithm(signature_options.c14n_algorithm)

        self.signature_options = signature_options
        self.certificate_subject = get_certificate_info(signature_options.certificate).subject
        logger.debug(
            f"SAMLSigner initialized: algorithm={signature_options.algorithm}, "
            f"certificate={self.certificate_subject}"
        )

    def sign_tree(
        self,
        doc: XMLInput,
        previous_sibling_path: Optional[str] = None,
    ) -> etree._Element:
        """Sign the root of ``doc`` (see :func:`sign_root_element`)."""
        return sign_root_element(doc, self.signature_options, previous_sibling_path)

    def sign(
        self,
        doc: XMLInput,
        previous_sibling_path: Optional[str] = None,
    ) -> str:
        """Sign ``doc`` and return the serialized signed XML."""
        return etree.tostring(self.sign_tree(doc, previous_sibling_path), encoding="unicode")
