"""JSON-file persistence for certificates and wipe logs.

Layout under the data dir::

    certificates/<id>.json
    wipe_logs/<id>.json

Records are immutable: saving an id that already exists raises
FileExistsError. A file that exists but no longer parses raises CorruptRecord
so tampering is never mistaken for a missing upload.
"""
from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Iterator, Protocol, TypeVar

from pydantic import BaseModel

from ..errors import CorruptRecord
from ..signing.ids import is_well_formed, require_well_formed
from .models import CertificateRecord, WipeLogRecord

_M = TypeVar("_M", bound=BaseModel)


class CertificateStore(Protocol):
    def get_certificate_by_id(self, cert_id: str) -> CertificateRecord | None: ...
    def get_wipe_log_by_id(self, cert_id: str) -> WipeLogRecord | None: ...
    def save_certificate(self, record: CertificateRecord) -> None: ...
    def save_wipe_log(self, record: WipeLogRecord) -> None: ...


def _read(path: Path, model: type[_M]) -> _M | None:
    if not path.exists():
        return None
    try:
        return model.model_validate_json(path.read_text(encoding="utf-8"))
    except ValueError as e:  # pydantic ValidationError included
        logging.exception("Failed to parse stored record %s: %s", path, e)
        raise CorruptRecord(path) from e


def _write_new(path: Path, record: BaseModel) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        raise FileExistsError(f"record already stored: {path.name}")
    tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
    tmp.write_text(record.model_dump_json(indent=2), encoding="utf-8")
    tmp.replace(path)
    return path


class FileCertificateStore:
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.certificates_dir = self.data_dir / "certificates"
        self.wipe_logs_dir = self.data_dir / "wipe_logs"

    def _cert_path(self, cert_id: str) -> Path:
        return self.certificates_dir / f"{require_well_formed(cert_id)}.json"

    def _log_path(self, cert_id: str) -> Path:
        return self.wipe_logs_dir / f"{require_well_formed(cert_id)}.json"

    def get_certificate_by_id(self, cert_id: str) -> CertificateRecord | None:
        return _read(self._cert_path(cert_id), CertificateRecord)

    def get_wipe_log_by_id(self, cert_id: str) -> WipeLogRecord | None:
        return _read(self._log_path(cert_id), WipeLogRecord)

    def save_certificate(self, record: CertificateRecord) -> None:
        _write_new(self._cert_path(record.id), record)

    def save_wipe_log(self, record: WipeLogRecord) -> None:
        _write_new(self._log_path(record.id), record)

    def iter_certificate_ids(self) -> Iterator[str]:
        if not self.certificates_dir.exists():
            return
        for p in sorted(self.certificates_dir.glob("*.json")):
            if is_well_formed(p.stem):
                yield p.stem

    def iter_certificates(self) -> Iterator[CertificateRecord]:
        """Every parsable certificate; corrupt files are logged and skipped."""
        for cert_id in self.iter_certificate_ids():
            try:
                rec = _read(self._cert_path(cert_id), CertificateRecord)
            except CorruptRecord:
                continue
            if rec is not None:
                yield rec
