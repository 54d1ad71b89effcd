import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from zerotrace.errors import KeyUnavailable, MalformedIdentifier, SigningUnavailable
from zerotrace.service import CertificateService
from zerotrace.signing.digest import EMPTY_LOG_HASH, digest
from zerotrace.signing.ids import is_well_formed
from zerotrace.signing.keys import KeyProvider, KeySources
from zerotrace.store.files import FileCertificateStore

LOG = "ZeroTrace wipe engine\n/dev/sdb: pass 1/1 zero fill\nverify: OK\n"


@pytest.fixture
def svc(tmp_path, provider):
    return CertificateService(FileCertificateStore(tmp_path), provider)


def test_create_without_log(svc):
    created = svc.create_certificate("agent-001", "Samsung SSD 860 EVO", "zero")
    assert is_well_formed(created.id)
    assert created.log_hash == EMPTY_LOG_HASH

    report = svc.verify_certificate(created.id)
    assert report.found and report.verified
    assert report.certificate.uploaded is False
    assert report.certificate.serial_number is None
    assert report.wipe_log is None
    assert svc.store.get_wipe_log_by_id(created.id) is None


def test_create_with_log_then_tamper_log(svc, tmp_path):
    created = svc.create_certificate(
        "agent-001", "SanDisk Cruzer Blade", "zero",
        serial_number="200422047007AC91004C",
        timestamp="2025-12-06T12:10:02.123456Z",
        raw_log=LOG, device_path="/dev/sdb", duration_seconds=42.5, exit_code=0,
    )
    assert created.log_hash == digest(LOG)
    assert created.timestamp == "2025-12-06T12:10:02.123Z"

    report = svc.verify_certificate(created.id)
    assert report.verified
    assert report.wipe_log.device_path == "/dev/sdb"
    assert report.certificate.timestamp == created.timestamp

    log_path = tmp_path / "wipe_logs" / f"{created.id}.json"
    doc = json.loads(log_path.read_text())
    doc["raw_log"] = LOG.replace("OK", "SKIPPED")
    log_path.write_text(json.dumps(doc))

    report = svc.verify_certificate(created.id)
    assert report.signature_valid is True
    assert report.log_hash_matches is False
    assert not report.verified


def test_tampered_certificate_field(svc, tmp_path):
    created = svc.create_certificate("agent-001", "Model X", "zero")
    path = tmp_path / "certificates" / f"{created.id}.json"
    doc = json.loads(path.read_text())
    doc["method"] = "dod-7pass"
    path.write_text(json.dumps(doc))
    report = svc.verify_certificate(created.id)
    assert report.signature_valid is False
    assert report.log_hash_matches is True


def test_malformed_and_unknown_ids(svc):
    with pytest.raises(MalformedIdentifier):
        svc.verify_certificate("FAKE-123")
    report = svc.verify_certificate("ZT-1700000000000-AABBCCDD")
    assert report.found is False
    assert not report.verified


def test_lookup_identifier(svc):
    assert svc.lookup_identifier("nope") == {"wellFormed": False, "exists": False}
    assert svc.lookup_identifier("ZT-1700000000000-AABBCCDD") == {"wellFormed": True, "exists": False}
    created = svc.create_certificate("agent-001", "Model X", "zero", raw_log=LOG)
    out = svc.lookup_identifier(created.id)
    assert out["exists"] is True and out["uploaded"] is True
    assert svc.validate_identifier_format(created.id) == {"wellFormed": True}


def test_create_fails_closed_without_private_key(tmp_path, keypair):
    _, vk_pem = keypair
    svc = CertificateService(FileCertificateStore(tmp_path), KeyProvider(KeySources(public_key_pem=vk_pem)))
    with pytest.raises(SigningUnavailable):
        svc.create_certificate("agent-001", "Model X", "zero", raw_log=LOG)
    assert not (tmp_path / "certificates").exists()
    assert not (tmp_path / "wipe_logs").exists()


def test_verify_fails_closed_without_public_key(tmp_path, keypair):
    sk_pem, _ = keypair
    svc = CertificateService(FileCertificateStore(tmp_path), KeyProvider(KeySources(private_key_pem=sk_pem)))
    created = svc.create_certificate("agent-001", "Model X", "zero")
    with pytest.raises(KeyUnavailable):
        svc.verify_certificate(created.id)


def test_bad_timestamp_rejected_before_write(svc, tmp_path):
    with pytest.raises(ValueError):
        svc.create_certificate("agent-001", "Model X", "zero", timestamp="soon")
    assert not (tmp_path / "certificates").exists()


def test_concurrent_create_and_verify(svc):
    def work(i: int) -> bool:
        created = svc.create_certificate(f"agent-{i:03d}", "Model X", "zero", raw_log=f"{LOG}{i}")
        return svc.verify_certificate(created.id).verified

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(work, range(24)))
    assert all(results)
    assert len(list(svc.store.iter_certificates())) == 24


class _FailingLogStore(FileCertificateStore):
    def save_wipe_log(self, record):
        raise OSError("disk full")


def test_failed_log_write_leaves_no_certificate(tmp_path, provider):
    svc = CertificateService(_FailingLogStore(tmp_path), provider)
    with pytest.raises(OSError):
        svc.create_certificate("agent-001", "Model X", "zero", raw_log=LOG)
    assert list(svc.store.iter_certificate_ids()) == []


def test_unparsable_certificate_reported_found_but_invalid(svc, tmp_path):
    created = svc.create_certificate("agent-001", "Model X", "zero", raw_log=LOG)
    path = tmp_path / "certificates" / f"{created.id}.json"
    doc = json.loads(path.read_text())
    doc["ts_ms"] = "edited"
    path.write_text(json.dumps(doc))

    report = svc.verify_certificate(created.id)
    assert report.found is True
    assert report.corrupt is True
    assert report.signature_valid is False
    assert not report.verified
    assert svc.lookup_identifier(created.id)["exists"] is True


def test_unparsable_wipe_log_fails_log_check(svc, tmp_path):
    created = svc.create_certificate("agent-001", "Model X", "zero", raw_log=LOG)
    (tmp_path / "wipe_logs" / f"{created.id}.json").write_text("[]")
    report = svc.verify_certificate(created.id)
    assert report.signature_valid is True
    assert report.log_hash_matches is False
