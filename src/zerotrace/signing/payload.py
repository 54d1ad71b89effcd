"""The signed payload and the timestamp rules it depends on.

Storage keeps the wipe timestamp as integer epoch milliseconds, so anything
finer is lost on the way to disk. The payload therefore carries the timestamp
already truncated to milliseconds; the string signed at creation is then the
same string rebuilt from the stored record at verification.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ids import is_well_formed
from .jcs import canonical_bytes

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")
_HEX64 = re.compile(r"[0-9a-f]{64}")


def _parse_iso(value: str) -> datetime:
    s = value.strip()
    if s[-1:] in ("Z", "z"):
        s = s[:-1] + "+00:00"
    # datetime only holds microseconds; drop nanosecond digits some clients send
    s = _EXCESS_FRACTION.sub(r"\1", s)
    return datetime.fromisoformat(s)


def _as_utc(value: str | datetime | None) -> datetime:
    if value is None:
        dt = datetime.now(timezone.utc)
    elif isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = _parse_iso(value)
    else:
        raise TypeError(f"unsupported timestamp type {type(value)!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"timestamp out of range: {value!r}") from e


def normalize_timestamp(value: str | datetime | None = None) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC, truncated to milliseconds.

    ``None`` means now. Naive datetimes are taken as UTC. Raises ValueError for
    strings that are not ISO-8601. Normalizing a normalized value is a no-op.
    """
    dt = _as_utc(value)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_to_ms(value: str | datetime) -> int:
    return (_as_utc(value) - EPOCH) // _ONE_MS


def timestamp_from_ms(ms: int) -> str:
    return normalize_timestamp(EPOCH + ms * _ONE_MS)


class CertificatePayload(BaseModel):
    """Exactly the fields covered by a certificate signature.

    ``serialNumber`` is always present in the signed form, as null when the
    device reported none. Unknown fields are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str
    subject_id: str = Field(alias="subjectId")
    device_model: str = Field(alias="deviceModel")
    serial_number: str | None = Field(alias="serialNumber")
    method: str
    timestamp: str
    log_hash: str = Field(alias="logHash")

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        if not is_well_formed(v):
            raise ValueError(f"malformed certificate id {v!r}")
        return v

    @field_validator("serial_number", mode="before")
    @classmethod
    def _empty_serial_is_null(cls, v: Any) -> Any:
        return v or None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalize_ts(cls, v: Any) -> str:
        if not isinstance(v, (str, datetime)):
            raise ValueError("timestamp must be an ISO-8601 string or datetime")
        return normalize_timestamp(v)

    @field_validator("log_hash", mode="before")
    @classmethod
    def _check_log_hash(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.lower()
            if not _HEX64.fullmatch(v):
                raise ValueError("logHash must be 64 hex characters")
        return v

    def signing_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def canonical(self) -> bytes:
        return canonical_bytes(self.signing_fields())
