"""Configuration manager for loading and sharing the IdP configuration.

This module provides configuration loading from JSON files and environment
variables, and the process-wide configuration value that hosts build once at
start-up and pass to builders and verifiers.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from saml_idp.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from saml_idp.config.schema import IdpConfig, LoggingConfig, SigningConfig
from saml_idp.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "SAML_IDP_"

_config: Optional[IdpConfig] = None
_config_lock = threading.Lock()


def load_config(config_path: Optional[Path] = None) -> IdpConfig:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (SAML_IDP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/saml_idp.json

    Returns:
        Validated IdpConfig instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("custom/saml_idp.json"))
        >>> config.signing.algorithm
        'sha256'
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)

    _check_sensitive_values(config_dict)

    config_dict = _apply_env_overrides(config_dict)

    try:
        return IdpConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Raises:
        ConfigurationError: If JSON is malformed or unreadable
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
            logger.info(f"Loaded configuration from {config_path}")
            return config_dict
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            ) from e

    logger.info(f"Config file not found: {config_path}. Using default configuration.")
    # Return a deep copy of defaults to avoid mutation
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with SAML_IDP_ prefix.

    Environment variables follow the pattern: SAML_IDP_<FIELD>
    For example: SAML_IDP_ENTITY_ID, SAML_IDP_LOG_LEVEL
    """
    if entity_id := os.getenv(f"{ENV_PREFIX}ENTITY_ID"):
        config_dict["entity_id"] = entity_id
        logger.debug("Override: entity_id from environment")

    if session_expiry := os.getenv(f"{ENV_PREFIX}SESSION_EXPIRY"):
        config_dict["session_expiry"] = _parse_int("SESSION_EXPIRY", session_expiry)
        logger.debug("Override: session_expiry from environment")

    if assertion_expiry := os.getenv(f"{ENV_PREFIX}ASSERTION_EXPIRY"):
        config_dict["assertion_expiry"] = _parse_int("ASSERTION_EXPIRY", assertion_expiry)
        logger.debug("Override: assertion_expiry from environment")

    # Signing section
    if certificate := os.getenv(f"{ENV_PREFIX}CERTIFICATE"):
        config_dict.setdefault("signing", {})["certificate"] = certificate
        logger.debug("Override: signing certificate from environment")

    if private_key := os.getenv(f"{ENV_PREFIX}PRIVATE_KEY"):
        config_dict.setdefault("signing", {})["private_key"] = private_key
        logger.debug("Override: signing private key from environment")

    if key_password := os.getenv(f"{ENV_PREFIX}PRIVATE_KEY_PASSWORD"):
        config_dict.setdefault("signing", {})["private_key_password"] = key_password
        logger.debug("Override: private key password from environment")

    if algorithm := os.getenv(f"{ENV_PREFIX}ALGORITHM"):
        config_dict.setdefault("signing", {})["algorithm"] = algorithm
        logger.debug("Override: signing algorithm from environment")

    # Logging section
    if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        config_dict.setdefault("logging", {})["level"] = log_level
        logger.debug("Override: log_level from environment")

    if log_file := os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config_dict.setdefault("logging", {})["log_file"] = log_file
        logger.debug("Override: log_file from environment")

    if redact_pii := os.getenv(f"{ENV_PREFIX}REDACT_PII"):
        config_dict.setdefault("logging", {})["redact_pii"] = _parse_bool(redact_pii)
        logger.debug("Override: redact_pii from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid integer in {ENV_PREFIX}{name}: {value!r}"
        ) from e


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when secrets are stored in the configuration file.

    Private keys and passwords belong in environment variables or a secret
    store, not in configuration files.
    """
    signing = config_dict.get("signing") or {}
    if signing.get("private_key") or signing.get("private_key_password"):
        logger.warning(
            "WARNING: Private key material found in configuration file! "
            f"Use the {ENV_PREFIX}PRIVATE_KEY and {ENV_PREFIX}PRIVATE_KEY_PASSWORD "
            "environment variables instead."
        )


def get_config() -> IdpConfig:
    """Return the process-wide configuration, loading it on first use.

    Initialization is guarded by a lock so concurrent first calls load the
    configuration once; later calls read it without locking.
    """
    global _config
    config = _config
    if config is not None:
        return config
    with _config_lock:
        if _config is None:
            _config = load_config()
            logger.debug("Process configuration initialized")
        return _config


def set_config(config: IdpConfig) -> IdpConfig:
    """Install ``config`` as the process-wide configuration.

    Hosts that build their configuration programmatically call this once at
    start-up instead of relying on the lazy file/environment load.
    """
    global _config
    with _config_lock:
        _config = config
    return config


def reset_config() -> None:
    """Forget the process-wide configuration (used by tests)."""
    global _config
    with _config_lock:
        _config = None


def get_signing_config(config: IdpConfig) -> SigningConfig:
    """Get signing configuration."""
    return config.signing


def get_logging_config(config: IdpConfig) -> LoggingConfig:
    """Get logging configuration."""
    return config.logging
