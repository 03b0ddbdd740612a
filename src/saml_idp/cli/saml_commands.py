"""SAML CLI commands for issuing and verifying assertions.

This module provides CLI commands including:
- assertion: build (and by default sign) an assertion or a full response
- verify: check a signed document against a trusted certificate fingerprint
- fingerprint: print the fingerprint of a certificate
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
from lxml import etree

from saml_idp.config.schema import IdpConfig
from saml_idp.models.principal import MappingPrincipal
from saml_idp.models.saml import AssertionRequest, EncryptionOptions, SignatureOptions
from saml_idp.saml.algorithms import DEFAULT_C14N_ALGORITHM
from saml_idp.saml.assertion_builder import AssertionBuilder
from saml_idp.saml.certificates import (
    certificate_fingerprint,
    get_certificate_info,
    load_pem_certificate_data,
    load_pem_private_key_data,
    signature_options_from_config,
)
from saml_idp.saml.name_id import normalize_formats
from saml_idp.saml.response_builder import encode_response
from saml_idp.saml.saml_response import SamlResponse
from saml_idp.saml.verifier import has_valid_signature, is_signed
from saml_idp.utils.exceptions import SamlIdpError, ValidationError

logger = logging.getLogger(__name__)


def _config_from(ctx: click.Context) -> IdpConfig:
    obj = ctx.find_root().obj or {}
    config = obj.get("config")
    return config if config is not None else IdpConfig()


def _parse_attributes(pairs: Tuple[str, ...]) -> Dict[str, list]:
    """Parse repeated ``name=value`` options into a multi-valued mapping."""
    values: Dict[str, list] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(
                f"Attribute must be given as name=value, got {pair!r}",
                param_hint="--attribute",
            )
        values.setdefault(name, []).append(value)
    return values


def _principal_for(subject: str, config: IdpConfig, attributes: Dict[str, list]) -> MappingPrincipal:
    # The subject answers every symbolic NameID query
    values: Dict[str, object] = dict(attributes)
    for fmt in normalize_formats(config.name_id_formats):
        if isinstance(fmt.getter, str):
            values.setdefault(fmt.getter, subject)

    asserted = None
    if attributes:
        asserted = dict(config.attributes)
        asserted.update({name: None for name in attributes if name not in asserted})
    return MappingPrincipal(values, asserted_attributes=asserted)


def _signature_options(
    config: IdpConfig,
    cert: Optional[Path],
    key: Optional[Path],
    key_password: Optional[str],
) -> SignatureOptions:
    if not cert and not key:
        return signature_options_from_config(config.signing)
    if not (cert and key):
        raise click.UsageError("Signing with files requires both --cert and --key.")
    return SignatureOptions(
        private_key=load_pem_private_key_data(
            key.read_bytes(),
            key_password.encode("utf-8") if key_password else None,
        ),
        certificate=load_pem_certificate_data(cert.read_bytes()),
        algorithm=config.signing.algorithm,
        c14n_algorithm=config.signing.c14n_algorithm or DEFAULT_C14N_ALGORITHM,
    )


def _format_xml_output(xml_content: str, pretty: bool) -> str:
    # Only used for unsigned output
    if not pretty:
        return xml_content
    root = etree.fromstring(xml_content.encode("utf-8"))
    return etree.tostring(root, pretty_print=True, encoding="unicode")


@click.command(name="assertion")
@click.option("--subject", required=True, help="NameID value of the principal")
@click.option("--issuer", default=None, help="Issuer entity id (default: configured entity_id)")
@click.option("--audience", required=True, help="Service provider entity id")
@click.option("--acs-url", required=True, help="Assertion consumer service URL")
@click.option("--request-id", default=None, help="ID of the AuthnRequest being answered")
@click.option("--reference-id", default=None, help="Assertion reference id (default: random)")
@click.option("--name-id-format", default=None, help="Requested NameID format URI")
@click.option("--expiry", type=int, default=None, help="Assertion lifetime in seconds")
@click.option("--session-expiry", type=int, default=None, help="Session lifetime in seconds (0 = never)")
@click.option(
    "--attribute",
    "attributes",
    multiple=True,
    help="Principal attribute as name=value (repeatable)",
)
@click.option("--sign/--no-sign", default=True, help="Sign the assertion (default: sign)")
@click.option("--cert", type=click.Path(exists=True, path_type=Path), help="PEM signing certificate")
@click.option("--key", type=click.Path(exists=True, path_type=Path), help="PEM private key")
@click.option("--key-password", default=None, help="Private key password")
@click.option(
    "--encrypt-cert",
    type=click.Path(exists=True, path_type=Path),
    help="Encrypt to this PEM service provider certificate",
)
@click.option("--response", "wrap_response", is_flag=True, help="Wrap the assertion in a signed samlp:Response")
@click.option("--encode", is_flag=True, help="Base64 encode the output")
@click.option("--output", type=click.Path(path_type=Path), help="Save output to file")
@click.option("--pretty", is_flag=True, help="Pretty print unsigned output")
@click.pass_context
def assertion(
    ctx: click.Context,
    subject: str,
    issuer: Optional[str],
    audience: str,
    acs_url: str,
    request_id: Optional[str],
    reference_id: Optional[str],
    name_id_format: Optional[str],
    expiry: Optional[int],
    session_expiry: Optional[int],
    attributes: Tuple[str, ...],
    sign: bool,
    cert: Optional[Path],
    key: Optional[Path],
    key_password: Optional[str],
    encrypt_cert: Optional[Path],
    wrap_response: bool,
    encode: bool,
    output: Optional[Path],
    pretty: bool,
) -> None:
    """Issue a SAML 2.0 assertion for SUBJECT.

    Examples:

        # Signed assertion, key material from files
        saml-idp assertion --subject jane@example.com \\
            --issuer https://idp.example --audience https://sp.example \\
            --acs-url https://sp.example/acs \\
            --cert certs/idp.pem --key certs/idp-key.pem

        # Signed response with an encrypted assertion, base64 encoded
        saml-idp assertion --subject jane@example.com --audience https://sp.example \\
            --acs-url https://sp.example/acs --encrypt-cert certs/sp.pem \\
            --response --encode
    """
    config = _config_from(ctx)
    try:
        issuer_uri = issuer or config.entity_id
        if not issuer_uri:
            raise click.UsageError(
                "No issuer given. Use --issuer or configure entity_id."
            )

        encryption_options = None
        if encrypt_cert:
            encryption_options = EncryptionOptions(
                certificate=load_pem_certificate_data(encrypt_cert.read_bytes())
            )

        request = AssertionRequest.create(
            reference_id=reference_id,
            issuer_uri=issuer_uri,
            principal=_principal_for(subject, config, _parse_attributes(attributes)),
            audience_uri=audience,
            saml_request_id=request_id,
            saml_acs_url=acs_url,
            name_id_format=name_id_format,
            expiry=expiry if expiry is not None else config.assertion_expiry,
            session_expiry=session_expiry,
            encryption_options=encryption_options,
        )

        signature_options = (
            _signature_options(config, cert, key, key_password)
            if sign or wrap_response
            else None
        )

        logger.info(f"Issuing assertion _{request.reference_id} for {audience}")
        if wrap_response:
            xml = SamlResponse(
                config,
                request,
                signed_assertion=sign,
                signature_options=signature_options,
            ).build()
        else:
            builder = AssertionBuilder(request, config)
            if encryption_options is not None:
                xml = builder.encrypt(sign=sign, signature_options=signature_options)
            elif sign:
                xml = builder.signed(signature_options)
            else:
                xml = builder.raw()

        if encode:
            result = encode_response(xml)
        else:
            result = _format_xml_output(xml, pretty and not sign and not wrap_response)

        if output:
            output.write_text(result, encoding="utf-8")
            click.echo(
                click.style("✓", fg="green", bold=True) + f" Assertion saved to: {output}"
            )
        else:
            click.echo(result)

    except click.UsageError:
        raise
    except ValidationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + f" Validation error: {e}", err=True)
        logger.error(f"Validation error during assertion issuance: {e}")
        raise click.exceptions.Exit(1)
    except SamlIdpError as e:
        click.echo(
            click.style("✗", fg="red", bold=True) + f" Assertion issuance failed: {e}",
            err=True,
        )
        logger.error(f"Assertion issuance failed: {e}")
        raise click.exceptions.Exit(1)


@click.command(name="verify")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--fingerprint", "expected", required=True, help="Trusted certificate fingerprint")
@click.option(
    "--fingerprint-algorithm",
    type=click.Choice(["sha1", "sha256"]),
    default=None,
    help="Fingerprint digest (default: configured, sha1)",
)
@click.pass_context
def verify(
    ctx: click.Context,
    file: Path,
    expected: str,
    fingerprint_algorithm: Optional[str],
) -> None:
    """Verify the signature of a SAML document in FILE.

    Exits with status 1 when the document is unsigned or not trusted.

    Examples:

        saml-idp verify response.xml --fingerprint 9E:2A:4B:...
    """
    config = _config_from(ctx)
    algorithm = fingerprint_algorithm or config.signing.fingerprint_algorithm
    document = file.read_bytes()

    if not is_signed(document):
        click.echo(click.style("✗", fg="red", bold=True) + " Document is not signed")
        raise click.exceptions.Exit(1)

    if has_valid_signature(document, expected, algorithm):
        click.echo(click.style("✓", fg="green", bold=True) + " Signature trusted")
        return

    click.echo(
        click.style("✗", fg="red", bold=True)
        + " Signature not trusted (see log for the cause)"
    )
    raise click.exceptions.Exit(1)


@click.command(name="fingerprint")
@click.argument("cert", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--algorithm",
    type=click.Choice(["sha1", "sha256"]),
    default="sha1",
    help="Fingerprint digest (default: sha1)",
)
@click.option("--verbose", is_flag=True, help="Show certificate details")
def fingerprint(cert: Path, algorithm: str, verbose: bool) -> None:
    """Print the fingerprint of the PEM certificate CERT.

    Examples:

        saml-idp fingerprint certs/idp.pem --algorithm sha256
    """
    try:
        certificate = load_pem_certificate_data(cert.read_bytes())
    except SamlIdpError as e:
        click.echo(click.style("✗", fg="red", bold=True) + f" {e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(certificate_fingerprint(certificate, algorithm))

    if verbose:
        info = get_certificate_info(certificate)
        click.echo(f"  Subject:     {info.subject}")
        click.echo(f"  Issuer:      {info.issuer}")
        click.echo(f"  Valid from:  {info.not_before.strftime('%Y-%m-%d')}")
        click.echo(f"  Valid until: {info.not_after.strftime('%Y-%m-%d')}")
        click.echo(f"  Key size:    {info.key_size}")
