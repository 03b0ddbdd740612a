"""Signature, digest, canonicalization and fingerprint algorithm tables.

Configuration refers to algorithms by short names; this module maps them to
the signxml enums and cryptography hash classes.
"""

from typing import Tuple

from cryptography.hazmat.primitives import hashes
from signxml import CanonicalizationMethod, DigestAlgorithm, SignatureMethod

from ..utils.exceptions import ConfigurationError

SIGNATURE_ALGORITHMS = {
    "sha256": (SignatureMethod.RSA_SHA256, DigestAlgorithm.SHA256),
    "sha384": (SignatureMethod.RSA_SHA384, DigestAlgorithm.SHA384),
    "sha512": (SignatureMethod.RSA_SHA512, DigestAlgorithm.SHA512),
}

C14N_ALGORITHMS = {
    "exc-c14n": CanonicalizationMethod.EXCLUSIVE_XML_CANONICALIZATION_1_0,
    "c14n": CanonicalizationMethod.CANONICAL_XML_1_0,
    "c14n11": CanonicalizationMethod.CANONICAL_XML_1_1,
}

FINGERPRINT_ALGORITHMS = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
}

DEFAULT_ALGORITHM = "sha256"
DEFAULT_C14N_ALGORITHM = "exc-c14n"
DEFAULT_FINGERPRINT_ALGORITHM = "sha1"


def _normalize(name: str) -> str:
    name = name.strip().lower()
    for prefix in ("rsa-", "rsa_"):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return name.replace("-", "")


def signature_algorithm(name: str) -> Tuple[SignatureMethod, DigestAlgorithm]:
    """Look up the signature method and digest algorithm for ``name``.

    Accepts ``sha256`` style and ``RSA-SHA256`` style names.

    Raises:
        ConfigurationError: If the algorithm is unknown or SHA-1 based

    Example:
        >>> method, digest = signature_algorithm("RSA-SHA256")
        >>> method is SignatureMethod.RSA_SHA256
        True
    """
    key = _normalize(name or DEFAULT_ALGORITHM)
    if key == "sha1":
        raise ConfigurationError(
            "SHA-1 signatures are not supported. "
            "Use one of: " + ", ".join(SIGNATURE_ALGORITHMS)
        )
    if key not in SIGNATURE_ALGORITHMS:
        raise ConfigurationError(
            f"Unsupported signature algorithm: {name}. "
            f"Supported algorithms: {', '.join(SIGNATURE_ALGORITHMS)}"
        )
    return SIGNATURE_ALGORITHMS[key]


def c14n_algorithm(name: str) -> CanonicalizationMethod:
    """Look up the canonicalization method for ``name``.

    Full algorithm URIs are accepted as well as the short names.

    Raises:
        ConfigurationError: If the method is unknown
    """
    name = name or DEFAULT_C14N_ALGORITHM
    if name in C14N_ALGORITHMS:
        return C14N_ALGORITHMS[name]
    for method in C14N_ALGORITHMS.values():
        if method.value == name:
            return method
    raise ConfigurationError(
        f"Unsupported canonicalization method: {name}. "
        f"Supported methods: {', '.join(C14N_ALGORITHMS)}"
    )


def fingerprint_hash(name: str) -> hashes.HashAlgorithm:
    """Return a cryptography hash instance for certificate fingerprints.

    Raises:
        ConfigurationError: If the algorithm is unknown
    """
    key = _normalize(name or DEFAULT_FINGERPRINT_ALGORITHM)
    if key not in FINGERPRINT_ALGORITHMS:
        raise ConfigurationError(
            f"Unsupported fingerprint algorithm: {name}. "
            f"Supported algorithms: {', '.join(FINGERPRINT_ALGORITHMS)}"
        )
    return FINGERPRINT_ALGORITHMS[key]()
