"""NameID format negotiation.

The IdP configures an ordered list of NameID formats, each paired with a
getter that extracts the identifier from the principal. The first entry is
the default; a service provider may request a specific one.
"""

import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence, Union

from ..models.principal import as_principal
from ..models.saml import Getter, NameIdFormat
from ..namespaces import NameIdFormats
from ..utils.exceptions import ConfigurationError, MissingNameIdError
from ..utils.naming import underscore

logger = logging.getLogger(__name__)

# Short names accepted in configuration, mapped to the format URI.
# The URI version segment (1.1 or 2.0) is the one the format is defined in.
SHORT_NAMES = {
    "email_address": NameIdFormats.EMAIL_ADDRESS,
    "unspecified": NameIdFormats.UNSPECIFIED,
    "x509_subject_name": "urn:oasis:names:tc:SAML:1.1:nameid-format:X509SubjectName",
    "windows_domain_qualified_name": (
        "urn:oasis:names:tc:SAML:1.1:nameid-format:WindowsDomainQualifiedName"
    ),
    "kerberos": "urn:oasis:names:tc:SAML:2.0:nameid-format:kerberos",
    "entity": "urn:oasis:names:tc:SAML:2.0:nameid-format:entity",
    "transient": NameIdFormats.TRANSIENT,
    "persistent": NameIdFormats.PERSISTENT,
}

FormatEntry = Union[NameIdFormat, str, Sequence[Any], Mapping]


def expand_format_name(name: str) -> str:
    """Expand a configured short name into a full NameID format URI.

    Full URIs are returned unchanged.

    Raises:
        ConfigurationError: If the short name is not a known format

    Example:
        >>> expand_format_name("email_address")
        'urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress'
    """
    if name.startswith("urn:"):
        return name
    key = underscore(name)
    if key not in SHORT_NAMES:
        raise ConfigurationError(
            f"Unknown NameID format: {name}. "
            f"Use a full URI or one of: {', '.join(SHORT_NAMES)}"
        )
    return SHORT_NAMES[key]


def _default_getter(name: str) -> str:
    # persistent -> "persistent", ...:emailAddress -> "email_address"
    return underscore(name.rsplit(":", 1)[-1])


def build_name_id_format(name: str, getter: Getter = None) -> NameIdFormat:
    """Build a :class:`NameIdFormat` from a short name or URI and a getter."""
    return NameIdFormat(
        name=expand_format_name(name),
        getter=getter if getter else _default_getter(name),
    )


def _coerce(entry: FormatEntry) -> NameIdFormat:
    if isinstance(entry, NameIdFormat):
        return entry
    if isinstance(entry, str):
        return build_name_id_format(entry)
    if isinstance(entry, Mapping):
        return build_name_id_format(entry["name"], entry.get("getter"))
    if hasattr(entry, "name") and hasattr(entry, "getter"):
        return build_name_id_format(entry.name, entry.getter)
    name, getter = entry
    return build_name_id_format(name, getter)


def normalize_formats(formats: Union[Mapping, Iterable[FormatEntry], None]) -> List[NameIdFormat]:
    """Normalize configured formats into an ordered list of NameIdFormat.

    Accepts a mapping of ``{name: getter}``, or an iterable of
    NameIdFormat objects, names, ``(name, getter)`` pairs or
    ``{"name": ..., "getter": ...}`` dicts.
    """
    if not formats:
        return []
    if isinstance(formats, Mapping):
        return [build_name_id_format(name, getter) for name, getter in formats.items()]
    return [_coerce(entry) for entry in formats]


def choose_name_id_format(
    formats: Sequence[NameIdFormat], requested: Optional[str] = None
) -> NameIdFormat:
    """Pick the NameID format for an assertion.

    Args:
        formats: IdP supported formats, first entry is the default
        requested: Format URI requested by the service provider, if any

    Returns:
        The requested format when supported, else the default

    Raises:
        ConfigurationError: If no format is configured at all
    """
    if not formats:
        raise ConfigurationError(
            "No NameID format configured. "
            "Configure at least one entry in name_id_formats."
        )
    if requested:
        for candidate in formats:
            if candidate.name == requested:
                return candidate
        logger.debug(
            f"Requested NameID format {requested} not supported, "
            f"falling back to {formats[0].name}"
        )
    return formats[0]


class NameIdFormatter:
    """Negotiate between supported and requested NameID formats.

    Example:
        >>> formatter = NameIdFormatter(
        ...     {"email_address": "email", "persistent": "uid"},
        ...     requested=NameIdFormats.PERSISTENT,
        ... )
        >>> formatter.chosen().getter
        'uid'
    """

    def __init__(
        self,
        formats: Union[Mapping, Iterable[FormatEntry], None],
        requested: Optional[str] = None,
    ) -> None:
        self.formats = normalize_formats(formats)
        self.requested = requested

    def all(self) -> List[str]:
        return [fmt.name for fmt in self.formats]

    def chosen(self) -> NameIdFormat:
        return choose_name_id_format(self.formats, self.requested)


def resolve_name_id(name_id_format: NameIdFormat, principal: Any) -> str:
    """Extract the NameID value for ``principal`` using the format's getter.

    Raises:
        MissingNameIdError: If the getter yields no value
    """
    getter = name_id_format.getter
    if callable(getter):
        value = getter(principal)
    else:
        value = as_principal(principal).get_attribute(str(getter))

    if isinstance(value, (list, tuple)):
        value = value[0] if value else None

    if value is None or value == "":
        raise MissingNameIdError(
            f"Principal has no value for NameID format {name_id_format.name} "
            f"(getter={getter!r}). Configure a getter the principal can answer."
        )
    return str(value)
