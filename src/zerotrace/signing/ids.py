"""Certificate identifiers: ``ZT-<epoch ms>-<random hex>``."""
from __future__ import annotations

import re
import secrets
import time

from ..errors import MalformedIdentifier

ID_PREFIX = "ZT"
# 10 digits covers second-precision clocks, 13 the usual millisecond ones
ID_PATTERN = re.compile(r"ZT-[0-9]{10,15}-[A-F0-9]{8,}", re.IGNORECASE | re.ASCII)


def generate_certificate_id(now_ms: int | None = None) -> str:
    ts = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{ID_PREFIX}-{ts}-{secrets.token_hex(4).upper()}"


def is_well_formed(value: object) -> bool:
    return isinstance(value, str) and ID_PATTERN.fullmatch(value) is not None


def validate_identifier_format(value: object) -> dict:
    return {"wellFormed": is_well_formed(value)}


def require_well_formed(value: object) -> str:
    if not is_well_formed(value):
        raise MalformedIdentifier(value)
    return value  # type: ignore[return-value]
