from __future__ import annotations

from pydantic import BaseModel

from ..signing.payload import CertificatePayload, timestamp_from_ms


class CertificateRecord(BaseModel):
    id: str
    subject_id: str
    device_model: str
    serial_number: str | None = None
    method: str
    ts_ms: int  # wipe completion, epoch milliseconds
    log_hash: str
    signature: str
    uploaded: bool = False
    created_at_ms: int

    @property
    def timestamp(self) -> str:
        return timestamp_from_ms(self.ts_ms)

    def to_payload(self) -> CertificatePayload:
        """Rebuild the signed payload from stored fields alone."""
        return CertificatePayload(
            id=self.id,
            subject_id=self.subject_id,
            device_model=self.device_model,
            serial_number=self.serial_number,
            method=self.method,
            timestamp=self.timestamp,
            log_hash=self.log_hash,
        )


class WipeLogRecord(BaseModel):
    id: str  # same as the owning certificate
    raw_log: str
    device_path: str | None = None
    duration_seconds: float | None = None
    exit_code: int | None = None
    created_at_ms: int
