"""Logging configuration and logger factory for the SAML IdP engine.

This module provides centralized logging configuration with support for:
- Console and file handlers with different log levels
- Log rotation to prevent unbounded file growth
- PII redaction via custom formatters
- Per-operation log levels (assertion, signing, verification, encryption)
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .formatters import PIIRedactingFormatter

if TYPE_CHECKING:
    from ..config.schema import LoggingConfig

# Constants
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "saml-idp.log"
MAX_LOG_FILE_SIZE = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

# Handlers added by configure_logging; other root handlers are left alone
_installed_handlers: List[logging.Handler] = []

# Operation-specific logger names
OPERATION_LOGGERS = {
    "assertion": "saml_idp.saml.assertion_builder",
    "response": "saml_idp.saml.response_builder",
    "signing": "saml_idp.saml.signer",
    "verification": "saml_idp.saml.verifier",
    "encryption": "saml_idp.saml.encryptor",
}

logger = logging.getLogger(__name__)


def _numeric_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return numeric_level


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    redact_pii: bool = False,
) -> None:
    """Configure logging for the SAML IdP engine.

    Sets up both console and file handlers with appropriate log levels and formatting.
    This function is idempotent - it can be called multiple times safely.

    Args:
        level: Log level for console output (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               File handler always uses DEBUG level.
        log_file: Path to log file. If None, uses SAML_IDP_LOG_FILE environment
                 variable if set, else DEFAULT_LOG_FILE.
        redact_pii: Whether to redact NameIDs and e-mail addresses from logs

    Raises:
        ValueError: If invalid log level is provided
        RuntimeError: If log directory cannot be created

    Example:
        >>> configure_logging(level="DEBUG", redact_pii=True)
        >>> configure_logging(level="INFO", log_file=Path("custom/idp.log"))
    """
    global _installed_handlers

    numeric_level = _numeric_level(level)

    if log_file is None:
        env_log_file = os.environ.get("SAML_IDP_LOG_FILE")
        log_file = Path(env_log_file) if env_log_file else DEFAULT_LOG_FILE

    log_dir = log_file.parent
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeError(
            f"Failed to create log directory: {log_dir}. "
            f"Ensure write permissions are available. Error: {e}"
        ) from e

    root_logger = logging.getLogger()

    # Replace the handlers of a previous call to avoid duplicates
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers = []

    root_logger.setLevel(logging.DEBUG)

    formatter = PIIRedactingFormatter(fmt=DEFAULT_LOG_FORMAT, redact_pii=redact_pii)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    try:
        file_handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)
    except OSError as e:
        # Log to console if file handler fails, but don't fail completely
        root_logger.warning(
            f"Failed to create file handler for {log_file}: {e}. "
            f"Logging to console only."
        )


def configure_logging_from_config(config: "LoggingConfig") -> None:
    """Configure logging from a LoggingConfig section."""
    configure_logging(
        level=config.level,
        log_file=config.log_file,
        redact_pii=config.redact_pii,
    )


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger for the specified module (call with ``__name__``)."""
    return logging.getLogger(module_name)


def get_operation_logger(operation: str) -> logging.Logger:
    """Get the logger of one engine operation.

    Supported operations: assertion, response, signing, verification, encryption.

    Raises:
        ValueError: If operation is not a recognized type
    """
    if operation not in OPERATION_LOGGERS:
        raise ValueError(
            f"Unknown operation: {operation}. "
            f"Must be one of: {', '.join(OPERATION_LOGGERS.keys())}"
        )
    return logging.getLogger(OPERATION_LOGGERS[operation])


def set_operation_log_level(operation: str, level: str) -> None:
    """Set log level for a specific operation at runtime.

    Example:
        >>> set_operation_log_level("verification", "DEBUG")

    Raises:
        ValueError: If operation or level is invalid
    """
    operation_logger = get_operation_logger(operation)
    operation_logger.setLevel(_numeric_level(level))
    logger.debug("Set %s logger level to %s", operation_logger.name, level.upper())
