"""Create and verify wipe certificates against a store.

Create: id -> log digest -> normalized timestamp -> payload -> signature ->
persist (wipe log first, so a certificate never points at a missing log).
Verify: load record -> rebuild payload from stored fields -> check signature,
and the stored log digest when a log was uploaded. A stored record that no
longer parses is reported as found but invalid.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime

from pydantic import BaseModel

from .errors import CorruptRecord, MalformedIdentifier
from .signing.digest import digest
from .signing.ids import generate_certificate_id, is_well_formed, validate_identifier_format
from .signing.keys import KeyProvider
from .signing.payload import CertificatePayload, normalize_timestamp, timestamp_to_ms
from .signing.sign import CertificateSigner, CertificateVerifier
from .store.files import CertificateStore
from .store.models import CertificateRecord, WipeLogRecord


class CreatedCertificate(BaseModel):
    id: str
    signature: str
    log_hash: str
    timestamp: str


class VerificationReport(BaseModel):
    found: bool
    corrupt: bool = False
    signature_valid: bool = False
    log_hash_matches: bool = False
    certificate: CertificateRecord | None = None
    wipe_log: WipeLogRecord | None = None

    @property
    def verified(self) -> bool:
        return self.found and self.signature_valid and self.log_hash_matches


class CertificateService:
    def __init__(self, store: CertificateStore, keys: KeyProvider):
        self.store = store
        self.keys = keys

    def create_certificate(
        self,
        subject_id: str,
        device_model: str,
        method: str,
        serial_number: str | None = None,
        timestamp: str | datetime | None = None,
        raw_log: str | None = None,
        device_path: str | None = None,
        duration_seconds: float | None = None,
        exit_code: int | None = None,
    ) -> CreatedCertificate:
        # Resolve the signer first so a missing key fails before any write
        signer = CertificateSigner.from_provider(self.keys)
        cert_id = generate_certificate_id()
        log_hash = digest(raw_log or "")
        ts = normalize_timestamp(timestamp)
        payload = CertificatePayload(
            id=cert_id,
            subject_id=subject_id,
            device_model=device_model,
            serial_number=serial_number,
            method=method,
            timestamp=ts,
            log_hash=log_hash,
        )
        signature = signer.sign(payload)
        now_ms = int(time.time() * 1000)
        uploaded = bool(raw_log)
        # Log first: a stored certificate must never reference a missing log
        if uploaded:
            self.store.save_wipe_log(WipeLogRecord(
                id=cert_id,
                raw_log=raw_log,
                device_path=device_path,
                duration_seconds=duration_seconds,
                exit_code=exit_code,
                created_at_ms=now_ms,
            ))
        self.store.save_certificate(CertificateRecord(
            id=cert_id,
            subject_id=payload.subject_id,
            device_model=payload.device_model,
            serial_number=payload.serial_number,
            method=payload.method,
            ts_ms=timestamp_to_ms(payload.timestamp),
            log_hash=log_hash,
            signature=signature,
            uploaded=uploaded,
            created_at_ms=now_ms,
        ))
        logging.info("Issued certificate %s (uploaded=%s)", cert_id, uploaded)
        return CreatedCertificate(id=cert_id, signature=signature, log_hash=log_hash, timestamp=payload.timestamp)

    def verify_certificate(self, cert_id: str) -> VerificationReport:
        if not is_well_formed(cert_id):
            raise MalformedIdentifier(cert_id)
        try:
            record = self.store.get_certificate_by_id(cert_id)
        except CorruptRecord:
            logging.warning("Certificate %s is stored but unreadable; reporting invalid", cert_id)
            return VerificationReport(found=True, corrupt=True)
        if record is None:
            return VerificationReport(found=False)
        verifier = CertificateVerifier.from_provider(self.keys)
        wipe_log = None
        if record.uploaded:
            try:
                wipe_log = self.store.get_wipe_log_by_id(cert_id)
            except CorruptRecord:
                logging.warning("Wipe log for %s is unreadable", cert_id)
        result = verifier.verify(record, wipe_log)
        if not result.valid:
            logging.info(
                "Certificate %s failed verification (signature_valid=%s, log_hash_matches=%s)",
                cert_id, result.signature_valid, result.log_hash_matches,
            )
        return VerificationReport(
            found=True,
            signature_valid=result.signature_valid,
            log_hash_matches=result.log_hash_matches,
            certificate=record,
            wipe_log=wipe_log,
        )

    def lookup_identifier(self, cert_id: str) -> dict:
        """Tell a fabricated id apart from one whose upload has not arrived yet."""
        out = validate_identifier_format(cert_id)
        if not out["wellFormed"]:
            out["exists"] = False
            return out
        try:
            record = self.store.get_certificate_by_id(cert_id)
        except CorruptRecord:
            out.update(exists=True, corrupt=True)
            return out
        out["exists"] = record is not None
        if record is not None:
            out["uploaded"] = record.uploaded
            out["createdAtMs"] = record.created_at_ms
        return out

    @staticmethod
    def validate_identifier_format(cert_id: str) -> dict:
        return validate_identifier_format(cert_id)
