from .digest import EMPTY_LOG_HASH, digest
from .ids import generate_certificate_id, is_well_formed, validate_identifier_format
from .jcs import canonical_bytes, canonicalize
from .keys import KeyProvider, KeySources, normalize_pem
from .payload import CertificatePayload, normalize_timestamp

__all__ = [
    "EMPTY_LOG_HASH",
    "CertificatePayload",
    "KeyProvider",
    "KeySources",
    "canonical_bytes",
    "canonicalize",
    "digest",
    "generate_certificate_id",
    "is_well_formed",
    "normalize_pem",
    "normalize_timestamp",
    "validate_identifier_format",
]
