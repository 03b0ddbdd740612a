"""Config module.

This module provides configuration management functionality.
"""

from saml_idp.config.manager import (
    get_config,
    get_logging_config,
    get_signing_config,
    load_config,
    reset_config,
    set_config,
)
from saml_idp.config.schema import (
    AttributeConfig,
    IdpConfig,
    LoggingConfig,
    NameIdFormatConfig,
    SigningConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    # Helper functions
    "get_signing_config",
    "get_logging_config",
    # Configuration models
    "IdpConfig",
    "NameIdFormatConfig",
    "AttributeConfig",
    "SigningConfig",
    "LoggingConfig",
]
