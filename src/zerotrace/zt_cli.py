from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .errors import KeyUnavailable
from .service import CertificateService
from .settings import settings
from .signing.ids import is_well_formed
from .signing.keys import MIN_KEY_BITS, KeyProvider, KeySources, generate_keypair, pem_to_env_line
from .store.files import FileCertificateStore


def _service(args: argparse.Namespace) -> CertificateService:
    data = Path(args.data_dir) if args.data_dir else settings.zt_data_dir
    return CertificateService(FileCertificateStore(data), KeyProvider(KeySources.from_settings(settings)))


def cmd_keygen(args: argparse.Namespace) -> int:
    if args.bits < MIN_KEY_BITS:
        print(f"--bits must be at least {MIN_KEY_BITS}", file=sys.stderr)
        return 2
    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    private = out / "private.pem"
    public = out / "public.pem"
    if private.exists() and not args.force:
        print(f"{private} exists; pass --force to overwrite", file=sys.stderr)
        return 1
    sk_pem, vk_pem = generate_keypair(args.bits)
    private.write_text(sk_pem)
    private.chmod(0o600)
    public.write_text(vk_pem)
    print(f"Wrote {private} and {public}")
    return 0


def cmd_env(args: argparse.Namespace) -> int:
    print("CERT_PRIVATE_KEY=" + pem_to_env_line(Path(args.private).read_text()))
    print("CERT_PUBLIC_KEY=" + pem_to_env_line(Path(args.public).read_text()))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    if not is_well_formed(args.id):
        print(f"{args.id}: MALFORMED (not a ZT-<timestamp>-<hex> id)", file=sys.stderr)
        return 2
    try:
        report = _service(args).verify_certificate(args.id)
    except KeyUnavailable as e:
        print(f"Verification key unavailable: {e}", file=sys.stderr)
        return 5
    if not report.found:
        print(f"{args.id}: NOT FOUND (may not be uploaded yet)")
        return 3
    if report.corrupt:
        print(f"{args.id}: INVALID (stored record is unreadable)")
        return 4
    print(f"signature_valid={str(report.signature_valid).lower()}")
    print(f"log_hash_matches={str(report.log_hash_matches).lower()}")
    print(f"{args.id}: {'VALID' if report.verified else 'INVALID'}")
    return 0 if report.verified else 4


def cmd_audit(args: argparse.Namespace) -> int:
    """Re-verify every stored certificate; CSV on stdout."""
    svc = _service(args)
    invalid = 0
    print("id,signature_valid,log_hash_matches,uploaded")
    try:
        for cert_id in svc.store.iter_certificate_ids():
            report = svc.verify_certificate(cert_id)
            uploaded = report.certificate.uploaded if report.certificate else None
            print(",".join([
                cert_id,
                str(report.signature_valid).lower(),
                str(report.log_hash_matches).lower(),
                "unknown" if uploaded is None else str(uploaded).lower(),
            ]))
            if not report.verified:
                invalid += 1
    except KeyUnavailable as e:
        print(f"Verification key unavailable: {e}", file=sys.stderr)
        return 5
    print(f"SUMMARY:invalid={invalid}")
    return 4 if invalid else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="zt_cli",
        description="ZeroTrace wipe certificate utilities",
    )
    p.add_argument("--data-dir", help="Certificate store directory (default: ZT_DATA_DIR or ./data)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_keygen = sub.add_parser("keygen", help="Generate an RSA signing keypair")
    p_keygen.add_argument("--out", required=True, help="Directory for private.pem / public.pem")
    p_keygen.add_argument("--bits", type=int, default=2048)
    p_keygen.add_argument("--force", action="store_true", help="Overwrite existing keys")
    p_keygen.set_defaults(func=cmd_keygen)

    p_env = sub.add_parser("env", help="Print keys as single-line environment values")
    p_env.add_argument("--private", required=True)
    p_env.add_argument("--public", required=True)
    p_env.set_defaults(func=cmd_env)

    p_verify = sub.add_parser("verify", help="Verify one stored certificate")
    p_verify.add_argument("id")
    p_verify.set_defaults(func=cmd_verify)

    p_audit = sub.add_parser("audit", help="Re-verify all stored certificates")
    p_audit.set_defaults(func=cmd_audit)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
