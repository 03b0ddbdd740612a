"""SAML 2.0 assertion construction.

This module assembles the assertion tree with lxml in the order the SAML
schema requires: Issuer, Subject, Conditions, AuthnStatement and an
optional AttributeStatement. Every timestamp of one assertion is derived
from a single ``now`` captured when the builder is created, so all time
fields are mutually consistent.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from functools import cached_property
from typing import Any, List, Optional

from lxml import etree

from ..config.schema import IdpConfig
from ..logging_audit.audit import log_audit_event
from ..models.saml import AssertionRequest, NameIdFormat, SAMLAssertion, SignatureOptions
from ..namespaces import ASSERTION, Methods, saml_tag
from ..utils.exceptions import ConfigurationError, ValidationError
from .attributes import AttributeResolver, ResolvedAttribute
from .certificates import signature_options_from_config
from .encryptor import Encryptor
from .name_id import NameIdFormatter, resolve_name_id
from .signer import ASSERTION_SIGNATURE_SIBLING, SAMLSigner, signature_value

logger = logging.getLogger(__name__)

SAML_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Clock skew allowance, applied to NotBefore only
CLOCK_SKEW = timedelta(seconds=5)
# Lifetime of the bearer SubjectConfirmationData
SUBJECT_CONFIRMATION_WINDOW = timedelta(minutes=3)


def format_saml_time(value: datetime) -> str:
    """Format a datetime as a SAML timestamp (UTC, second precision, Z suffix).

    Example:
        >>> format_saml_time(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        '2024-01-02T03:04:05Z'
    """
    return value.astimezone(timezone.utc).strftime(SAML_TIME_FORMAT)


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _validate_request(request: AssertionRequest) -> None:
    """Validate the request fields the builder relies on.

    Raises:
        ValidationError: If a required value is empty or a lifetime is invalid
    """
    if not request.reference_id or not str(request.reference_id).strip():
        raise ValidationError(
            "Assertion reference id cannot be empty. "
            "Use generate_reference_id() to create one."
        )
    if not request.issuer_uri or not request.issuer_uri.strip():
        raise ValidationError(
            "Assertion issuer cannot be empty. "
            "Provide the IdP entity id as issuer_uri."
        )
    if not request.audience_uri or not request.audience_uri.strip():
        raise ValidationError(
            "Assertion audience cannot be empty. "
            "Provide the service provider entity id as audience_uri."
        )
    if not request.saml_acs_url or not request.saml_acs_url.strip():
        raise ValidationError(
            "Assertion consumer service URL cannot be empty. "
            "Provide the service provider ACS URL as saml_acs_url."
        )
    if request.expiry <= 0:
        raise ValidationError(
            f"Assertion expiry must be positive, got {request.expiry} seconds."
        )
    if request.session_expiry is not None and request.session_expiry < 0:
        raise ValidationError(
            f"Session expiry cannot be negative, got {request.session_expiry} seconds. "
            f"Use 0 for a session without an expiry bound."
        )


class AssertionBuilder:
    """Build one SAML 2.0 assertion for an authenticated principal.

    A builder is created per issuance call and is not reentrant. The
    configuration is only read.

    Attributes:
        request: Caller supplied assertion inputs
        config: IdP configuration (NameID formats, attributes, signing)
        now: Issuance instant shared by every timestamp of the assertion
        session_expiry: Effective session lifetime in seconds (0 = unbounded)

    Example:
        >>> builder = AssertionBuilder(
        ...     AssertionRequest.create(
        ...         reference_id="abc123",
        ...         issuer_uri="https://idp.example",
        ...         principal=MappingPrincipal({"email": "jane@example.com"}),
        ...         audience_uri="https://sp.example",
        ...         saml_request_id="_req1",
        ...         saml_acs_url="https://sp.example/acs",
        ...     ),
        ...     config,
        ... )
        >>> builder.raw()
        '<saml:Assertion xmlns:saml=... ID="_abc123" ...'
    """

    def __init__(
        self,
        request: AssertionRequest,
        config: IdpConfig,
        now: Optional[datetime] = None,
    ) -> None:
        _validate_request(request)
        self.request = request
        self.config = config
        self.now = (now or utc_now()).astimezone(timezone.utc).replace(microsecond=0)
        self.session_expiry = (
            request.session_expiry
            if request.session_expiry is not None
            else config.session_expiry
        )

    @property
    def assertion_id(self) -> str:
        return f"_{self.request.reference_id}"

    @cached_property
    def name_id_format(self) -> NameIdFormat:
        """Negotiated NameID format, computed once per builder."""
        return NameIdFormatter(
            self.config.name_id_formats, self.request.name_id_format
        ).chosen()

    @cached_property
    def name_id(self) -> str:
        return resolve_name_id(self.name_id_format, self.request.principal)

    @cached_property
    def attributes(self) -> Optional[List[ResolvedAttribute]]:
        return AttributeResolver(self.request.principal, self.config.attributes).resolve()

    @property
    def not_before(self) -> datetime:
        return self.now - CLOCK_SKEW

    @property
    def not_on_or_after_condition(self) -> datetime:
        return self.now + timedelta(seconds=self.request.expiry)

    @property
    def not_on_or_after_subject(self) -> datetime:
        return self.now + SUBJECT_CONFIRMATION_WINDOW

    @property
    def session_not_on_or_after(self) -> Optional[datetime]:
        if self.session_expiry == 0:
            return None
        return self.now + timedelta(seconds=self.session_expiry)

    def build_tree(self) -> etree._Element:
        """Assemble the unsigned assertion tree.

        Returns:
            ``saml:Assertion`` root element

        Raises:
            ConfigurationError: If no NameID format is configured
            MissingNameIdError: If the principal has no NameID value
        """
        assertion = etree.Element(
            saml_tag("Assertion"),
            nsmap={"saml": ASSERTION},
            ID=self.assertion_id,
            IssueInstant=format_saml_time(self.now),
            Version="2.0",
        )

        issuer = etree.SubElement(assertion, saml_tag("Issuer"))
        issuer.text = self.request.issuer_uri

        self._add_subject(assertion)
        self._add_conditions(assertion)
        self._add_authn_statement(assertion)
        self._add_attribute_statement(assertion)

        logger.debug(
            f"Built assertion {self.assertion_id} for audience {self.request.audience_uri}"
        )
        return assertion

    def _add_subject(self, assertion: etree._Element) -> None:
        subject = etree.SubElement(assertion, saml_tag("Subject"))

        name_id = etree.SubElement(subject, saml_tag("NameID"), Format=self.name_id_format.name)
        name_id.text = self.name_id

        confirmation = etree.SubElement(
            subject, saml_tag("SubjectConfirmation"), Method=Methods.BEARER
        )
        data = etree.SubElement(confirmation, saml_tag("SubjectConfirmationData"))
        # Unsolicited (IdP-initiated) responses answer no request
        if self.request.saml_request_id:
            data.set("InResponseTo", self.request.saml_request_id)
        data.set("NotOnOrAfter", format_saml_time(self.not_on_or_after_subject))
        data.set("Recipient", self.request.saml_acs_url)

    def _add_conditions(self, assertion: etree._Element) -> None:
        conditions = etree.SubElement(
            assertion,
            saml_tag("Conditions"),
            NotBefore=format_saml_time(self.not_before),
            NotOnOrAfter=format_saml_time(self.not_on_or_after_condition),
        )
        restriction = etree.SubElement(conditions, saml_tag("AudienceRestriction"))
        audience = etree.SubElement(restriction, saml_tag("Audience"))
        audience.text = self.request.audience_uri

    def _add_authn_statement(self, assertion: etree._Element) -> None:
        statement = etree.SubElement(
            assertion,
            saml_tag("AuthnStatement"),
            AuthnInstant=format_saml_time(self.now),
            SessionIndex=self.assertion_id,
        )
        session_end = self.session_not_on_or_after
        if session_end is not None:
            statement.set("SessionNotOnOrAfter", format_saml_time(session_end))

        context = etree.SubElement(statement, saml_tag("AuthnContext"))
        class_ref = etree.SubElement(context, saml_tag("AuthnContextClassRef"))
        class_ref.text = self.request.authn_context_classref

    def _add_attribute_statement(self, assertion: etree._Element) -> None:
        if self.attributes is None:
            return

        statement = etree.SubElement(assertion, saml_tag("AttributeStatement"))
        for attribute in self.attributes:
            element = etree.SubElement(
                statement,
                saml_tag("Attribute"),
                Name=attribute.name,
                NameFormat=attribute.name_format,
                FriendlyName=attribute.friendly_name,
            )
            for value in attribute.values:
                value_element = etree.SubElement(element, saml_tag("AttributeValue"))
                value_element.text = str(value)

    def raw(self) -> str:
        """Serialize the unsigned assertion."""
        return etree.tostring(self.build_tree(), encoding="unicode")

    def _signature_options(self, signature_options: Optional[SignatureOptions]) -> SignatureOptions:
        options = signature_options or signature_options_from_config(self.config.signing)
        if self.request.algorithm and self.request.algorithm != options.algorithm:
            options = SignatureOptions(
                private_key=options.private_key,
                certificate=options.certificate,
                algorithm=self.request.algorithm,
                c14n_algorithm=options.c14n_algorithm,
            )
        return options

    def signed_tree(self, signature_options: Optional[SignatureOptions] = None) -> etree._Element:
        """Build and sign the assertion, Signature placed right after Issuer.

        Args:
            signature_options: Key material and algorithms; defaults to the
                configured signing section. The request's algorithm, when
                set, overrides the configured one.

        Raises:
            SigningError: If signing fails
            CertificateLoadError: If no usable key material is configured
        """
        signer = SAMLSigner(self._signature_options(signature_options))
        return signer.sign_tree(self.build_tree(), ASSERTION_SIGNATURE_SIBLING)

    def signed(self, signature_options: Optional[SignatureOptions] = None) -> str:
        """Serialize the signed assertion (see :meth:`signed_tree`)."""
        return etree.tostring(self.signed_tree(signature_options), encoding="unicode")

    def encrypt(
        self,
        sign: bool = False,
        signature_options: Optional[SignatureOptions] = None,
    ) -> str:
        """Encrypt the assertion into a ``saml:EncryptedAssertion``.

        Args:
            sign: Encrypt the signed form when True, the raw form otherwise
            signature_options: Passed to :meth:`signed` when ``sign`` is True

        Raises:
            ConfigurationError: If the request carries no encryption options
            EncryptionError: If the encryption step fails
        """
        options = self.request.encryption_options
        if options is None:
            raise ConfigurationError(
                "Encryption requested but no encryption options were supplied. "
                "Set encryption_options on the AssertionRequest."
            )

        xml = self.signed(signature_options) if sign else self.raw()
        return Encryptor(options).encrypt(xml)

    def build(
        self,
        sign: bool = True,
        signature_options: Optional[SignatureOptions] = None,
    ) -> SAMLAssertion:
        """Build the assertion and return it with its metadata.

        Args:
            sign: Sign the assertion (default True)
            signature_options: Overrides the configured signing material

        Returns:
            SAMLAssertion with xml_content and validity metadata
        """
        start_time = time.time()

        if sign:
            tree = self.signed_tree(signature_options)
            signature = signature_value(tree)
        else:
            tree = self.build_tree()
            signature = ""

        assertion = SAMLAssertion(
            assertion_id=self.assertion_id,
            issuer=self.request.issuer_uri,
            name_id=self.name_id,
            name_id_format=self.name_id_format.name,
            audience=self.request.audience_uri,
            issue_instant=self.now,
            not_before=self.not_before,
            not_on_or_after=self.not_on_or_after_condition,
            session_not_on_or_after=self.session_not_on_or_after,
            xml_content=etree.tostring(tree, encoding="unicode"),
            signature=signature,
            attributes={
                attribute.friendly_name: [str(v) for v in attribute.values]
                for attribute in (self.attributes or [])
            },
        )

        log_audit_event(
            "ASSERTION_ISSUED",
            {
                "status": "success",
                "assertion_id": self.assertion_id,
                "issuer": self.request.issuer_uri,
                "audience": self.request.audience_uri,
                "name_id": self.name_id,
                "signed": sign,
                "duration": time.time() - start_time,
            },
        )
        return assertion


def build_assertion(request: AssertionRequest, config: IdpConfig, **kwargs: Any) -> SAMLAssertion:
    """Convenience wrapper: ``AssertionBuilder(request, config).build(**kwargs)``."""
    return AssertionBuilder(request, config).build(**kwargs)
