"""End-to-end issuance of a SAML Response.

Runs the full pipeline for one authentication: build the assertion, sign
it, encrypt it when the request carries encryption options, wrap it in a
Response and sign the response.
"""

import logging
import time
from dataclasses import replace
from typing import Optional

from ..config.schema import IdpConfig
from ..logging_audit.audit import log_audit_event
from ..models.saml import AssertionRequest, SignatureOptions, generate_reference_id
from .algorithms import C14N_ALGORITHMS, c14n_algorithm
from .assertion_builder import AssertionBuilder
from .certificates import signature_options_from_config
from .response_builder import ResponseBuilder, encode_response

logger = logging.getLogger(__name__)

# An embedded assertion keeps a valid signature only under exclusive c14n;
# inclusive methods pull in the Response's namespace declarations.
EMBEDDED_ASSERTION_C14N = "exc-c14n"


class SamlResponse:
    """Issue a complete SAML Response for an assertion request.

    Attributes:
        config: IdP configuration
        request: Assertion inputs
        response_id: Reference id of the response
        signed_response: Whether to sign the Response element
        signed_assertion: Whether to sign the Assertion element

    Example:
        >>> response = SamlResponse(config, request)
        >>> form_value = response.encoded()
    """

    def __init__(
        self,
        config: IdpConfig,
        request: AssertionRequest,
        response_id: Optional[str] = None,
        signed_response: bool = True,
        signed_assertion: bool = True,
        signature_options: Optional[SignatureOptions] = None,
    ) -> None:
        self.config = config
        self.request = request
        self.response_id = response_id or generate_reference_id()
        self.signed_response = signed_response
        self.signed_assertion = signed_assertion
        self._signature_options = signature_options
        self.assertion_builder = AssertionBuilder(request, config)

    @property
    def signature_options(self) -> SignatureOptions:
        if self._signature_options is None:
            self._signature_options = signature_options_from_config(self.config.signing)
        return self._signature_options

    @property
    def assertion_signature_options(self) -> SignatureOptions:
        """Signature options for the assertion embedded in the response.

        Same key and algorithm as :attr:`signature_options`, canonicalized
        with exclusive c14n whatever the configured method.
        """
        options = self.signature_options
        embedded = C14N_ALGORITHMS[EMBEDDED_ASSERTION_C14N]
        if c14n_algorithm(options.c14n_algorithm) is not embedded:
            logger.debug(
                f"Signing embedded assertion {self.assertion_builder.assertion_id} with "
                f"{EMBEDDED_ASSERTION_C14N} instead of {options.c14n_algorithm}"
            )
            options = replace(options, c14n_algorithm=EMBEDDED_ASSERTION_C14N)
        return options

    def assertion_xml(self) -> str:
        """Serialized assertion in the form it is embedded in the response."""
        builder = self.assertion_builder
        if self.request.encryption_options is not None:
            if self.signed_assertion:
                return builder.encrypt(sign=True, signature_options=self.assertion_signature_options)
            return builder.encrypt(sign=False)
        if self.signed_assertion:
            return builder.signed(self.assertion_signature_options)
        return builder.raw()

    def build(self) -> str:
        """Build the response XML.

        Raises:
            SamlIdpError subclasses on configuration, signing or encryption failure
        """
        start_time = time.time()
        response_builder = ResponseBuilder(
            self.response_id,
            self.request.issuer_uri,
            self.request.saml_acs_url,
            self.request.saml_request_id,
            self.assertion_xml(),
            now=self.assertion_builder.now,
        )
        if self.signed_response:
            xml = response_builder.signed(self.signature_options)
        else:
            xml = response_builder.raw()

        log_audit_event(
            "RESPONSE_ISSUED",
            {
                "status": "success",
                "response_id": response_builder.response_id_string,
                "assertion_id": self.assertion_builder.assertion_id,
                "issuer": self.request.issuer_uri,
                "audience": self.request.audience_uri,
                "signed": self.signed_response,
                "encrypted": self.request.encryption_options is not None,
                "duration": time.time() - start_time,
            },
        )
        return xml

    def encoded(self) -> str:
        """Base64 encoded response, ready for the HTTP-POST binding."""
        return encode_response(self.build())
