from __future__ import annotations

import hashlib

EMPTY_LOG_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def digest(data: bytes | str) -> str:
    """Lowercase hex SHA-256 of ``data`` (str is hashed as UTF-8).

    An empty log is valid input and yields ``EMPTY_LOG_HASH``.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()
