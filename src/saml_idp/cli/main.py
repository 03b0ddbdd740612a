"""Main CLI entry point for the SAML IdP engine.

This module provides the main Click command group for the saml-idp CLI.
"""

from pathlib import Path
from typing import Optional

import click

from saml_idp import __version__
from saml_idp.cli.saml_commands import assertion, fingerprint, verify
from saml_idp.config import load_config
from saml_idp.logging_audit import configure_logging
from saml_idp.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="saml-idp")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/saml_idp.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-pii",
    is_flag=True,
    help="Redact NameIDs and e-mail addresses from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_pii: bool,
) -> None:
    """SAML IdP - issue and verify SAML 2.0 assertions.

    Common usage:

        # Issue a signed assertion
        saml-idp assertion --subject jane@example.com \\
            --audience https://sp.example --acs-url https://sp.example/acs \\
            --cert certs/idp.pem --key certs/idp-key.pem

        # Check a signed document against a trusted fingerprint
        saml-idp verify response.xml --fingerprint 9E:2A:...

        # Print the fingerprint of a certificate
        saml-idp fingerprint certs/idp.pem

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["redact_pii"] = redact_pii
    ctx.obj["log_file"] = log_file

    # Precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact_pii_setting = redact_pii if redact_pii else config_obj.logging.redact_pii

    configure_logging(
        level=log_level, log_file=log_file_path, redact_pii=redact_pii_setting
    )


cli.add_command(assertion)
cli.add_command(verify)
cli.add_command(fingerprint)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        saml-idp config validate config/saml_idp.json
    """
    try:
        config_obj = load_config(config_file)

        click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
        click.echo(f"\nConfiguration file: {config_file}")
        click.echo(f"\nEntity id:       {config_obj.entity_id or 'Not configured'}")
        click.echo(
            "NameID formats:  "
            + ", ".join(fmt.name for fmt in config_obj.name_id_formats)
        )
        click.echo(f"Attributes:      {', '.join(config_obj.attributes) or 'None'}")
        click.echo(f"Session expiry:  {config_obj.session_expiry or 'never'}")
        click.echo(f"Assertion expiry: {config_obj.assertion_expiry}s")

        click.echo("\nSigning:")
        signing = config_obj.signing
        click.echo(f"  Certificate: {'configured' if signing.certificate else 'Not configured'}")
        click.echo(f"  Private key: {'configured' if signing.private_key else 'Not configured'}")
        click.echo(f"  Algorithm:   {signing.algorithm} ({signing.c14n_algorithm})")

        click.echo("\nLogging:")
        click.echo(f"  Level:       {config_obj.logging.level}")
        click.echo(f"  Log file:    {config_obj.logging.log_file}")
        click.echo(f"  Redact PII:  {config_obj.logging.redact_pii}")

    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"saml-idp version {__version__}")


if __name__ == "__main__":
    cli()
