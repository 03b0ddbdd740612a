"""Unit tests for attribute resolution and principal adapters."""

import pytest

from saml_idp.config.schema import AttributeConfig
from saml_idp.models.principal import MappingPrincipal, ObjectPrincipal, as_principal
from saml_idp.namespaces import AttributeNameFormats
from saml_idp.saml.attributes import AttributeResolver, get_values_for


class User:
    """Plain object principal used in tests."""

    email_address = "jane@example.com"
    first_name = "Jane"
    _secret = "hidden"

    def groups(self):
        return ["staff", "admins"]


class UserWithOverride(User):
    def asserted_attributes(self):
        return {"firstName": {"name": "urn:oid:2.5.4.42"}}


class TestPrincipalAdapters:
    """Test the principal capability adapters."""

    def test_object_principal_underscores_queries(self):
        principal = ObjectPrincipal(User())

        assert principal.get_attribute("emailAddress") == "jane@example.com"
        assert principal.get_attribute("first_name") == "Jane"

    def test_object_principal_calls_methods(self):
        assert ObjectPrincipal(User()).get_attribute("groups") == ["staff", "admins"]

    def test_object_principal_unknown_and_private(self):
        principal = ObjectPrincipal(User())

        assert principal.get_attribute("phone") is None
        assert principal.get_attribute("_secret") is None

    def test_mapping_principal_exact_then_underscored(self):
        principal = MappingPrincipal({"emailAddress": "exact", "first_name": "Jane"})

        assert principal.get_attribute("emailAddress") == "exact"
        assert principal.get_attribute("firstName") == "Jane"

    def test_as_principal(self):
        assert isinstance(as_principal({"a": 1}), MappingPrincipal)
        assert isinstance(as_principal(User()), ObjectPrincipal)
        principal = MappingPrincipal({})
        assert as_principal(principal) is principal


class TestGetValuesFor:
    """Test value resolution order."""

    def test_callable_getter_scalar_is_wrapped(self):
        assert get_values_for(User(), "first", lambda p: p.first_name) == ["Jane"]

    def test_callable_getter_sequence(self):
        assert get_values_for(User(), "roles", lambda p: ("a", "b")) == ["a", "b"]

    def test_symbolic_getter(self):
        assert get_values_for(User(), "mail", "emailAddress") == ["jane@example.com"]

    def test_friendly_name_fallback(self):
        assert get_values_for(User(), "firstName") == ["Jane"]

    def test_missing_query_yields_empty_list(self):
        """Test a principal lacking the attribute yields no values, not an error."""
        assert get_values_for(User(), "phoneNumber") == []
        assert get_values_for(User(), "mail", "telephone") == []

    def test_blank_getter_yields_empty_list(self):
        assert get_values_for(User(), "firstName", "") == []

    def test_callable_returning_none(self):
        assert get_values_for(User(), "x", lambda p: None) == []


class TestAttributeResolver:
    """Test attribute map resolution."""

    def test_configured_attributes(self):
        resolver = AttributeResolver(
            User(),
            {
                "emailAddress": None,
                "mail": {"name": "urn:oid:0.9.2342.19200300.100.1.3", "getter": "email_address"},
            },
        )

        resolved = resolver.resolve()

        assert [a.friendly_name for a in resolved] == ["emailAddress", "mail"]
        assert resolved[0].name == "emailAddress"
        assert resolved[0].name_format == AttributeNameFormats.URI
        assert resolved[0].values == ["jane@example.com"]
        assert resolved[1].name == "urn:oid:0.9.2342.19200300.100.1.3"

    def test_pydantic_attribute_options(self):
        resolver = AttributeResolver(
            User(),
            {"givenName": AttributeConfig(name_format="urn:custom", getter="first_name")},
        )

        (attribute,) = resolver.resolve()

        assert attribute.name == "givenName"
        assert attribute.name_format == "urn:custom"
        assert attribute.values == ["Jane"]

    def test_principal_override_takes_priority(self):
        resolver = AttributeResolver(UserWithOverride(), {"emailAddress": None})

        (attribute,) = resolver.resolve()

        assert attribute.friendly_name == "firstName"
        assert attribute.name == "urn:oid:2.5.4.42"
        assert attribute.values == ["Jane"]

    def test_no_attribute_map(self):
        assert AttributeResolver(User(), None).resolve() is None
        assert AttributeResolver(User(), {}).resolve() is None

    @pytest.mark.parametrize("options", [None, {"getter": "missing"}])
    def test_missing_values_still_resolved(self, options):
        (attribute,) = AttributeResolver(User(), {"phone": options}).resolve()

        assert attribute.values == []
