"""XML signature verification against a trusted certificate fingerprint.

Verification is soft: every failure (malformed XML, digest or signature
mismatch, fingerprint mismatch, missing or expired certificate) yields
``False``. The cause is logged at WARNING with its class so operators can
tell infrastructure errors from untrusted senders, but callers only ever
see a boolean trust decision.
"""

import logging
import time
from typing import Optional, Union

from lxml import etree
from signxml import XMLVerifier
from signxml.exceptions import InvalidDigest, InvalidInput, InvalidSignature

from ..logging_audit.audit import log_audit_event
from ..namespaces import SIGNATURE
from ..utils.exceptions import SamlIdpError
from .algorithms import DEFAULT_FINGERPRINT_ALGORITHM
from .certificates import (
    convert_to_pem,
    fingerprint_matches,
    is_certificate_current,
    load_pem_certificate_data,
)

logger = logging.getLogger(__name__)

DS_NS = {"ds": SIGNATURE}

XMLInput = Union[str, bytes, etree._Element, etree._ElementTree]


class UntrustedDocument(Exception):
    """Internal signal for a trust check that failed before cryptography ran."""


def _parse(doc: XMLInput) -> etree._Element:
    if isinstance(doc, etree._ElementTree):
        doc = doc.getroot()
    if isinstance(doc, etree._Element):
        # Detach from any enclosing tree before verifying
        doc = etree.tostring(doc, with_tail=False)
    if isinstance(doc, str):
        doc = doc.encode("utf-8")
    return etree.fromstring(doc)


def _find_signature(root: etree._Element) -> Optional[etree._Element]:
    if root.tag == f"{{{SIGNATURE}}}Signature":
        return root
    return root.find(".//ds:Signature", DS_NS)


def is_signed(doc: XMLInput) -> bool:
    """Return True when a ``ds:Signature`` element exists anywhere in ``doc``.

    Unparseable input is reported as unsigned.

    Example:
        >>> is_signed("<a ID='_1'/>")
        False
    """
    try:
        root = _parse(doc)
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.warning(f"Cannot inspect document for a signature: {type(e).__name__}: {e}")
        return False
    return _find_signature(root) is not None


def _verify(
    root: etree._Element, fingerprint: str, fingerprint_algorithm: str
) -> etree._Element:
    signature = _find_signature(root)
    if signature is None:
        raise UntrustedDocument("document is not signed")

    signed_element = signature.getparent()
    reference_uri = signature.find("ds:SignedInfo/ds:Reference", DS_NS)
    if signed_element is None or reference_uri is None:
        raise UntrustedDocument("signature has no enclosing element or no reference")
    if reference_uri.get("URI") != f"#{signed_element.get('ID')}":
        raise UntrustedDocument(
            f"signature references {reference_uri.get('URI')!r}, "
            f"not its enclosing element"
        )

    cert_body = signature.findtext("ds:KeyInfo/ds:X509Data/ds:X509Certificate", namespaces=DS_NS)
    if not cert_body or not cert_body.strip():
        raise UntrustedDocument("signature carries no X509Certificate")

    certificate = load_pem_certificate_data(cert_body)
    if not fingerprint_matches(certificate, fingerprint, fingerprint_algorithm):
        raise UntrustedDocument("certificate fingerprint does not match")
    if not is_certificate_current(certificate):
        raise UntrustedDocument("certificate is outside its validity period")

    result = XMLVerifier().verify(
        root,
        x509_cert=convert_to_pem(certificate),
        id_attribute="ID",
    )
    return result.signed_xml


def has_valid_signature(
    doc: XMLInput,
    fingerprint: str,
    fingerprint_algorithm: str = DEFAULT_FINGERPRINT_ALGORITHM,
) -> bool:
    """Check ``doc``'s signature against a trusted certificate fingerprint.

    The first signature in document order is checked: it must reference
    its enclosing element by ID, carry a certificate with the expected
    fingerprint, and validate cryptographically.

    Args:
        doc: Signed document (XML string/bytes, element or tree)
        fingerprint: Expected certificate fingerprint (hex, separators and
            case ignored)
        fingerprint_algorithm: Digest the fingerprint was computed with
            (sha1 or sha256)

    Returns:
        True when the document is trusted, False otherwise. Never raises.

    Example:
        >>> has_valid_signature(signed_xml, certificate_fingerprint(cert))
        True
        >>> has_valid_signature(signed_xml, "00:11:22")
        False
    """
    start_time = time.time()
    trusted = False
    reason = ""

    try:
        root = _parse(doc)
        _verify(root, fingerprint, fingerprint_algorithm)
        trusted = True
    except UntrustedDocument as e:
        reason = str(e)
        logger.warning(f"Signature not trusted: {reason}")
    except (InvalidSignature, InvalidDigest) as e:
        reason = type(e).__name__
        logger.warning(f"Signature verification failed ({reason}): {e}")
    except (InvalidInput, SamlIdpError, etree.XMLSyntaxError, ValueError) as e:
        reason = type(e).__name__
        logger.warning(f"Signed document could not be verified ({reason}): {e}")
    except Exception as e:
        reason = type(e).__name__
        logger.warning(f"Unexpected error during signature verification ({reason}): {e}")

    details = {
        "status": "success",
        "trusted": trusted,
        "duration": time.time() - start_time,
    }
    if reason:
        details["reason"] = reason
    log_audit_event("SIGNATURE_VERIFIED", details)
    return trusted


class SignedDocument:
    """An inbound XML document whose signature may be checked.

    Attributes:
        document: The wrapped document as received

    Example:
        >>> document = SignedDocument(xml_string)
        >>> if document.signed and document.valid_signature(fingerprint):
        ...     accept(document)
    """

    def __init__(self, document: XMLInput) -> None:
        self.document = document

    @property
    def signed(self) -> bool:
        return is_signed(self.document)

    def valid_signature(
        self,
        fingerprint: str,
        fingerprint_algorithm: str = DEFAULT_FINGERPRINT_ALGORITHM,
    ) -> bool:
        if not self.signed:
            return False
        return has_valid_signature(self.document, fingerprint, fingerprint_algorithm)
