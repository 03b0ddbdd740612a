"""SAML 2.0 identity provider engine.

Builds, signs and optionally encrypts SAML assertions and responses, and
verifies signed documents against a trusted certificate fingerprint.
"""

__version__ = "0.1.0"
