"""SAML 2.0 Response construction.

Wraps a finished assertion (signed, or an ``EncryptedAssertion``) in a
``samlp:Response`` carrying a Success status, and optionally signs the
response itself with the Signature placed right after its Issuer.
"""

import base64
import logging
from datetime import datetime
from typing import Optional, Union

from lxml import etree

from ..models.saml import SignatureOptions
from ..namespaces import ASSERTION, PROTOCOL, Consents, Statuses, saml_tag, samlp_tag
from ..utils.exceptions import ValidationError
from .assertion_builder import format_saml_time, utc_now
from .signer import RESPONSE_SIGNATURE_SIBLING, SAMLSigner

logger = logging.getLogger(__name__)


def encode_response(xml: Union[str, bytes]) -> str:
    """Base64 encode a serialized response for the HTTP-POST binding."""
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    return base64.b64encode(data).decode("ascii")


class ResponseBuilder:
    """Build a ``samlp:Response`` around one assertion.

    Attributes:
        response_id: Reference id; the response ID is ``"_" + response_id``
        issuer_uri: IdP entity id
        saml_acs_url: Destination assertion consumer service URL
        saml_request_id: ID of the AuthnRequest being answered, if any
        assertion_xml: Serialized assertion or EncryptedAssertion

    Example:
        >>> builder = ResponseBuilder(
        ...     "resp1", "https://idp.example", "https://sp.example/acs",
        ...     "_req1", signed_assertion_xml,
        ... )
        >>> builder.signed(signature_options)
        '<samlp:Response ... ID="_resp1" ...'
    """

    def __init__(
        self,
        response_id: str,
        issuer_uri: str,
        saml_acs_url: str,
        saml_request_id: Optional[str],
        assertion_xml: Union[str, bytes],
        now: Optional[datetime] = None,
    ) -> None:
        if not response_id:
            raise ValidationError("Response id cannot be empty.")
        self.response_id = response_id
        self.issuer_uri = issuer_uri
        self.saml_acs_url = saml_acs_url
        self.saml_request_id = saml_request_id
        self.assertion_xml = assertion_xml
        self.now = now or utc_now()

    @property
    def response_id_string(self) -> str:
        return f"_{self.response_id}"

    def build_tree(self) -> etree._Element:
        """Assemble the unsigned response tree.

        Raises:
            ValidationError: If the assertion XML is not well-formed
        """
        response = etree.Element(
            samlp_tag("Response"),
            nsmap={"samlp": PROTOCOL, "saml": ASSERTION},
            ID=self.response_id_string,
            Version="2.0",
            IssueInstant=format_saml_time(self.now),
            Destination=self.saml_acs_url,
            Consent=Consents.UNSPECIFIED,
        )
        if self.saml_request_id:
            response.set("InResponseTo", self.saml_request_id)

        issuer = etree.SubElement(response, saml_tag("Issuer"))
        issuer.text = self.issuer_uri

        status = etree.SubElement(response, samlp_tag("Status"))
        etree.SubElement(status, samlp_tag("StatusCode"), Value=Statuses.SUCCESS)

        data = self.assertion_xml
        try:
            assertion = etree.fromstring(data.encode("utf-8") if isinstance(data, str) else data)
        except etree.XMLSyntaxError as e:
            raise ValidationError(
                f"Assertion XML is not well-formed, cannot embed it in a response: {e}"
            ) from e
        response.append(assertion)

        logger.debug(f"Built response {self.response_id_string} to {self.saml_acs_url}")
        return response

    def raw(self) -> str:
        return etree.tostring(self.build_tree(), encoding="unicode")

    def signed(self, signature_options: SignatureOptions) -> str:
        """Sign the response, placing its Signature right after Issuer."""
        return SAMLSigner(signature_options).sign(self.build_tree(), RESPONSE_SIGNATURE_SIBLING)

    def encoded(self, signature_options: Optional[SignatureOptions] = None) -> str:
        """Base64 of the signed response, or of the raw one without options."""
        xml = self.signed(signature_options) if signature_options else self.raw()
        return encode_response(xml)
