"""Command line interface for the SAML IdP engine."""
