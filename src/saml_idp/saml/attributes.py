"""Attribute resolution for the assertion AttributeStatement.

Attribute values are pulled from the principal with configurable getters.
Resolution never fails: a principal that cannot answer a query contributes
an empty value list, and the attribute is still emitted without values.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional

from ..models.principal import as_principal
from ..models.saml import Getter
from ..namespaces import AttributeNameFormats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAttribute:
    """One attribute ready to be written into an AttributeStatement.

    Attributes:
        friendly_name: Configured friendly name
        name: Attribute Name (explicit override or the friendly name)
        name_format: Attribute NameFormat URI
        values: Resolved values, possibly empty
    """

    friendly_name: str
    name: str
    name_format: str
    values: List[Any]


def _as_list(result: Any) -> List[Any]:
    if result is None:
        return []
    if isinstance(result, (list, tuple, set, frozenset)):
        return list(result)
    return [result]


def get_values_for(principal: Any, friendly_name: str, getter: Getter = None) -> List[Any]:
    """Resolve the values of one attribute for ``principal``.

    Resolution order:
        1. callable getter: called with the principal
        2. non-empty symbolic getter: asked of the principal by name
        3. no getter: the friendly name is asked of the principal

    A blank (empty string) getter yields no values.

    Example:
        >>> principal = MappingPrincipal({"email_address": "jane@example.com"})
        >>> get_values_for(principal, "emailAddress")
        ['jane@example.com']
        >>> get_values_for(principal, "phone")
        []
    """
    if callable(getter):
        return _as_list(getter(principal))
    if getter is None:
        query = friendly_name
    elif str(getter).strip():
        query = str(getter)
    else:
        return []
    return _as_list(as_principal(principal).get_attribute(query))


class AttributeResolver:
    """Resolve the attributes asserted for a principal.

    Attribute maps have the shape ``{friendly_name: options}`` where options
    is None or a mapping with optional ``name``, ``name_format`` and
    ``getter`` keys. A map returned by the principal's
    ``asserted_attributes()`` takes priority over the configured map.

    Attributes:
        principal: The principal being asserted
        configured: Attribute map from configuration, if any
    """

    def __init__(self, principal: Any, configured: Optional[Mapping] = None) -> None:
        self.principal = principal
        self.configured = configured

    def asserted_attributes(self) -> Optional[Mapping]:
        """Return the attribute map in effect, or None when there is none."""
        override = getattr(as_principal(self.principal), "asserted_attributes", None)
        if callable(override):
            override = override()
        if override:
            return override
        if self.configured:
            return self.configured
        return None

    def resolve(self) -> Optional[List[ResolvedAttribute]]:
        """Resolve every asserted attribute, preserving configured order.

        Returns:
            List of resolved attributes, or None when no attribute map exists
        """
        attribute_map = self.asserted_attributes()
        if attribute_map is None:
            return None

        resolved: List[ResolvedAttribute] = []
        for friendly_name, options in attribute_map.items():
            options = options or {}
            if not isinstance(options, Mapping):
                options = _options_from_object(options)
            values = get_values_for(self.principal, str(friendly_name), options.get("getter"))
            if not values:
                logger.debug(f"No values for attribute {friendly_name}, emitting it empty")
            resolved.append(
                ResolvedAttribute(
                    friendly_name=str(friendly_name),
                    name=options.get("name") or str(friendly_name),
                    name_format=options.get("name_format") or AttributeNameFormats.URI,
                    values=values,
                )
            )
        return resolved


def _options_from_object(options: Any) -> Mapping:
    # pydantic AttributeConfig or any object exposing the same fields
    return {
        "name": getattr(options, "name", None),
        "name_format": getattr(options, "name_format", None),
        "getter": getattr(options, "getter", None),
    }
