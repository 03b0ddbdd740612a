"""Principal capability interface.

The engine never inspects concrete user types. Anything that can answer
"value(s) for a named attribute" is a principal; integrations either
implement :class:`Principal` directly or wrap their objects with one of the
adapters below.
"""

from collections.abc import Mapping
from typing import Any, Optional, Protocol, runtime_checkable

from ..utils.naming import underscore


@runtime_checkable
class Principal(Protocol):
    """Capability interface for the subject of an assertion.

    ``get_attribute`` must return ``None`` when the principal cannot answer
    the query; it must not raise for unknown names. A principal may also
    define ``asserted_attributes()`` returning an attribute map that takes
    priority over the configured defaults.
    """

    def get_attribute(self, name: str) -> Any:
        ...


class ObjectPrincipal:
    """Adapt an arbitrary object by looking up snake_case attributes.

    Plain attributes are returned as is; zero-argument methods are called.

    Example:
        >>> class User:
        ...     email_address = "jane@example.com"
        ...     def groups(self):
        ...         return ["staff", "admins"]
        >>> principal = ObjectPrincipal(User())
        >>> principal.get_attribute("emailAddress")
        'jane@example.com'
        >>> principal.get_attribute("phone") is None
        True
    """

    def __init__(self, obj: Any) -> None:
        self.obj = obj

    def get_attribute(self, name: str) -> Any:
        query = underscore(name)
        if not query or query.startswith("_"):
            return None
        value = getattr(self.obj, query, None)
        if callable(value):
            value = value()
        return value

    def asserted_attributes(self) -> Optional[Mapping]:
        override = getattr(self.obj, "asserted_attributes", None)
        if callable(override):
            override = override()
        return override

    def __repr__(self) -> str:
        return f"ObjectPrincipal({self.obj!r})"


class MappingPrincipal:
    """Principal backed by a dictionary of attribute values.

    Keys are matched exactly first, then by their snake_case form.

    Example:
        >>> principal = MappingPrincipal({"email_address": "jane@example.com"})
        >>> principal.get_attribute("emailAddress")
        'jane@example.com'
    """

    def __init__(
        self,
        values: Mapping,
        asserted_attributes: Optional[Mapping] = None,
    ) -> None:
        self.values = dict(values)
        self._asserted_attributes = asserted_attributes

    def get_attribute(self, name: str) -> Any:
        if name in self.values:
            return self.values[name]
        return self.values.get(underscore(name))

    def asserted_attributes(self) -> Optional[Mapping]:
        return self._asserted_attributes

    def __repr__(self) -> str:
        return f"MappingPrincipal(keys={sorted(self.values)})"


def as_principal(obj: Any) -> Principal:
    """Return ``obj`` as a :class:`Principal`, wrapping it when needed."""
    if isinstance(obj, Principal):
        return obj
    if isinstance(obj, Mapping):
        return MappingPrincipal(obj)
    return ObjectPrincipal(obj)
