"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_SIGNATURE_ALGORITHMS = ["sha256", "sha384", "sha512"]
VALID_C14N_ALGORITHMS = ["exc-c14n", "c14n", "c14n11"]
VALID_FINGERPRINT_ALGORITHMS = ["sha1", "sha256"]


class NameIdFormatConfig(BaseModel):
    """A supported NameID format.

    Attributes:
        name: Short name (email_address, persistent, ...) or full format URI
        getter: Principal attribute name or callable producing the NameID value;
            defaults to the short name
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="NameID format short name or URI")
    getter: Optional[Union[str, Callable[..., Any]]] = None


class AttributeConfig(BaseModel):
    """Options for one asserted attribute.

    Attributes:
        name: Attribute Name; defaults to the friendly name
        name_format: Attribute NameFormat URI; defaults to attrname-format:uri
        getter: Principal attribute name or callable; defaults to the friendly name
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: Optional[str] = None
    name_format: Optional[str] = None
    getter: Optional[Union[str, Callable[..., Any]]] = None


class SigningConfig(BaseModel):
    """Signing key material and algorithms.

    Attributes:
        certificate: PEM encoded signing certificate
        private_key: PEM encoded private key
        private_key_password: Password for an encrypted private key
        algorithm: Signature algorithm (sha256, sha384, sha512)
        c14n_algorithm: Canonicalization method (exc-c14n, c14n, c14n11)
        fingerprint_algorithm: Digest for certificate fingerprints (sha1, sha256)
    """

    certificate: Optional[str] = None
    private_key: Optional[str] = Field(default=None, repr=False)
    private_key_password: Optional[str] = Field(default=None, repr=False)
    algorithm: str = Field(default="sha256", description="Signature algorithm")
    c14n_algorithm: str = Field(default="exc-c14n", description="Canonicalization method")
    fingerprint_algorithm: str = Field(default="sha1", description="Fingerprint digest")

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Validate signature algorithm.

        Raises:
            ValueError: If algorithm is not sha256, sha384 or sha512
        """
        v_lower = v.lower().replace("rsa-", "")
        if v_lower not in VALID_SIGNATURE_ALGORITHMS:
            raise ValueError(
                f"Invalid signature algorithm: {v}. "
                f"Must be one of: {', '.join(VALID_SIGNATURE_ALGORITHMS)}"
            )
        return v_lower

    @field_validator("c14n_algorithm")
    @classmethod
    def validate_c14n_algorithm(cls, v: str) -> str:
        """Validate canonicalization method."""
        if v not in VALID_C14N_ALGORITHMS:
            raise ValueError(
                f"Invalid c14n_algorithm: {v}. "
                f"Must be one of: {', '.join(VALID_C14N_ALGORITHMS)}"
            )
        return v

    @field_validator("fingerprint_algorithm")
    @classmethod
    def validate_fingerprint_algorithm(cls, v: str) -> str:
        """Validate fingerprint digest."""
        v_lower = v.lower()
        if v_lower not in VALID_FINGERPRINT_ALGORITHMS:
            raise ValueError(
                f"Invalid fingerprint_algorithm: {v}. "
                f"Must be one of: {', '.join(VALID_FINGERPRINT_ALGORITHMS)}"
            )
        return v_lower


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_pii: Whether to redact principal identifiers from logs
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/saml-idp.log"),
        description="Log file path"
    )
    redact_pii: bool = Field(
        default=False,
        description="Redact e-mail addresses and NameIDs from logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Raises:
            ValueError: If log level is not valid
        """
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return v_upper


class IdpConfig(BaseModel):
    """Root configuration model.

    Built once per process and passed to builders and verifiers; the engine
    only reads it.

    Attributes:
        entity_id: IdP entity id, used as the default Issuer
        name_id_formats: Supported NameID formats, first is the default
        attributes: Default asserted attributes keyed by friendly name
        session_expiry: Default session lifetime in seconds (0 = no bound)
        assertion_expiry: Default assertion lifetime in seconds
        signing: Signing key material and algorithms
        logging: Logging configuration

    Example:
        >>> config = IdpConfig(
        ...     entity_id="https://idp.example",
        ...     name_id_formats=[NameIdFormatConfig(name="email_address", getter="email")],
        ... )
        >>> config.session_expiry
        0
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    entity_id: Optional[str] = None
    name_id_formats: List[NameIdFormatConfig] = Field(
        default_factory=lambda: [NameIdFormatConfig(name="email_address")]
    )
    attributes: Dict[str, Optional[AttributeConfig]] = Field(default_factory=dict)
    session_expiry: int = Field(default=0, ge=0, description="Session lifetime in seconds")
    assertion_expiry: int = Field(default=60 * 60, ge=1, description="Assertion lifetime in seconds")
    signing: SigningConfig = SigningConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("name_id_formats", mode="before")
    @classmethod
    def coerce_name_id_formats(cls, v: Any) -> Any:
        """Accept ``{name: getter}`` mappings and bare names as well as lists."""
        if isinstance(v, dict):
            return [{"name": name, "getter": getter} for name, getter in v.items()]
        if isinstance(v, (list, tuple)):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v
