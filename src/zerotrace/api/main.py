from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from ..errors import KeyUnavailable, MalformedIdentifier, SigningUnavailable
from ..service import CertificateService
from ..settings import settings
from ..signing.keys import KeyProvider, KeySources
from ..signing.payload import timestamp_from_ms
from ..signing.sign import SIG_ALG
from ..store.files import FileCertificateStore
from ..store.models import CertificateRecord, WipeLogRecord
from .models import CreateCertificateRequest

app = FastAPI(title="ZeroTrace Certificate Service")

DATA = settings.zt_data_dir
# One keypair for the whole process, loaded on first use
_keys = KeyProvider(KeySources.from_settings(settings))
_service = CertificateService(FileCertificateStore(DATA), _keys)


def get_service() -> CertificateService:
    return _service


def _verification_url(request: Request, cert_id: str) -> str:
    base = settings.public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}/certificates/{cert_id}"


def _certificate_view(rec: CertificateRecord) -> dict:
    return {
        "id": rec.id,
        "subjectId": rec.subject_id,
        "deviceModel": rec.device_model,
        "serialNumber": rec.serial_number,
        "method": rec.method,
        "timestamp": rec.timestamp,
        "logHash": rec.log_hash,
        "signature": rec.signature,
        "sigAlg": SIG_ALG,
        "uploaded": rec.uploaded,
        "createdAt": timestamp_from_ms(rec.created_at_ms),
    }


def _wipe_log_view(log: WipeLogRecord | None) -> dict | None:
    if log is None:
        return None
    limit = settings.raw_log_preview_chars
    preview = log.raw_log[:limit] + ("..." if len(log.raw_log) > limit else "")
    return {
        "id": log.id,
        "devicePath": log.device_path,
        "durationSeconds": log.duration_seconds,
        "exitCode": log.exit_code,
        "rawLog": preview,
    }


@app.get("/health")
@app.get("/healthz")  # alias for k8s style probes
def health():
    return {"ok": True}


@app.get("/health/keys")
def health_keys(svc: CertificateService = Depends(get_service)):  # noqa: B008 FastAPI dependency pattern
    return {"ok": True, "keys": svc.keys.status()}


@app.post("/certificates", status_code=201)
def create_certificate(
    body: CreateCertificateRequest,
    request: Request,
    x_subject_id: str | None = Header(default=None),  # noqa: B008
    svc: CertificateService = Depends(get_service),  # noqa: B008
):
    subject_id = body.subject_id or x_subject_id
    if not subject_id:
        raise HTTPException(400, "subjectId (or X-Subject-Id header) required")
    try:
        created = svc.create_certificate(
            subject_id=subject_id,
            device_model=body.device_model,
            method=body.method,
            serial_number=body.serial_number,
            timestamp=body.timestamp,
            raw_log=body.raw_log,
            device_path=body.device_path,
            duration_seconds=body.duration_seconds,
            exit_code=body.exit_code,
        )
    except SigningUnavailable as e:
        logging.error("Refusing to issue certificate without a signature: %s", e)
        raise HTTPException(503, "signing unavailable") from e
    except ValueError as e:  # unparsable timestamp or payload field
        raise HTTPException(400, str(e)) from e
    return {
        "id": created.id,
        "verificationUrl": _verification_url(request, created.id),
        "signature": created.signature,
        "logHash": created.log_hash,
        "timestamp": created.timestamp,
    }


@app.get("/certificates/validate/{cert_id}")
def validate_certificate_id(cert_id: str, svc: CertificateService = Depends(get_service)):  # noqa: B008
    out = svc.lookup_identifier(cert_id)
    if not out["wellFormed"]:
        out.update(reason="invalid_format", message="Certificate ID format is invalid; it looks fabricated or mistyped.")
    elif not out["exists"]:
        out.update(reason="not_found", message="Certificate ID is well formed but no record has been uploaded yet.")
    elif out.get("corrupt"):
        out.update(reason="corrupt_record", message="Certificate record exists but is unreadable.")
    else:
        out["message"] = "Certificate found."
    return out


@app.get("/certificates/{cert_id}")
def get_certificate(cert_id: str, svc: CertificateService = Depends(get_service)):  # noqa: B008
    try:
        report = svc.verify_certificate(cert_id)
    except MalformedIdentifier:
        return JSONResponse(status_code=400, content={
            "verified": False,
            "reason": "invalid_format",
            "error": "Certificate ID format is invalid",
        })
    except KeyUnavailable as e:
        logging.error("Cannot verify %s: %s", cert_id, e)
        raise HTTPException(503, "verification key unavailable") from e
    if not report.found:
        return JSONResponse(status_code=404, content={
            "verified": False,
            "signatureValid": False,
            "logHashMatches": False,
            "reason": "not_found",
            "error": "Certificate not found",
        })
    if report.corrupt:
        return {
            "verified": False,
            "signatureValid": False,
            "logHashMatches": False,
            "reason": "corrupt_record",
            "error": "Stored certificate is unreadable",
            "certificate": None,
            "wipeLog": None,
        }
    return {
        "verified": report.verified,
        "signatureValid": report.signature_valid,
        "logHashMatches": report.log_hash_matches,
        "certificate": _certificate_view(report.certificate),
        "wipeLog": _wipe_log_view(report.wipe_log),
    }
