"""Name conversion helpers.

Principals answer queries by snake_case names, while SAML uses lowerCamelCase
in NameID format URIs and often CamelCase in attribute friendly names.
"""

import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def underscore(name: str) -> str:
    """Convert a CamelCase or dashed name to snake_case.

    Example:
        >>> underscore("emailAddress")
        'email_address'
        >>> underscore("eduPersonPrincipalName")
        'edu_person_principal_name'
        >>> underscore("X509SubjectName")
        'x509_subject_name'
    """
    result = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    result = _WORD_BOUNDARY.sub(r"\1_\2", result)
    return result.replace("-", "_").lower()

