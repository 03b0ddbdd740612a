"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Default configuration dictionary
# This is used as a fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "entity_id": None,
    # First entry is the default NameID format
    "name_id_formats": [
        {"name": "email_address", "getter": "email"},
        {"name": "transient", "getter": "id"},
        {"name": "persistent", "getter": "id"},
    ],
    "attributes": {},
    # 0 means sessions never expire (no SessionNotOnOrAfter)
    "session_expiry": 0,
    "assertion_expiry": 3600,
    "signing": {
        # No default key material - must be provided by the host
        "certificate": None,
        "private_key": None,
        "algorithm": "sha256",
        "c14n_algorithm": "exc-c14n",
        "fingerprint_algorithm": "sha1",
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/saml-idp.log",
        # Do not redact PII by default (user must opt-in for privacy)
        "redact_pii": False,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/saml_idp.json"
