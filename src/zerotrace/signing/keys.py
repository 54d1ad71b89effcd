"""RSA key resolution for certificate signing and verification.

Each key has two sources, tried in order: an inline PEM value (usually an
environment variable) and a path to a PEM file. Inline values frequently come
out of deployment dashboards mangled, either with literal ``\\n`` escapes or
flattened onto one line, so they go through ``normalize_pem`` before parsing.
"""
from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict

from ..errors import KeyUnavailable
from ..settings import Settings, settings

MIN_KEY_BITS = 2048
PEM_LINE_WIDTH = 64

_ONE_LINE_PEM = re.compile(r"(-----BEGIN [^-]+-----)(.*?)(-----END [^-]+-----)", re.DOTALL)


def normalize_pem(text: str) -> str:
    key = text.strip()
    if "\\n" in key:
        key = key.replace("\\r\\n", "\n").replace("\\n", "\n")
    key = key.replace("\r\n", "\n")
    if "\n" not in key:
        m = _ONE_LINE_PEM.fullmatch(key)
        if m:
            header, body, footer = m.groups()
            body = "".join(body.split())
            lines = [body[i:i + PEM_LINE_WIDTH] for i in range(0, len(body), PEM_LINE_WIDTH)]
            key = "\n".join([header, *lines, footer])
    return key + "\n"


def pem_to_env_line(pem: str) -> str:
    """Render PEM as a single line with ``\\n`` escapes (inverse of normalize_pem)."""
    return pem.strip().replace("\n", "\\n")


def generate_keypair(bits: int = MIN_KEY_BITS) -> tuple[str, str]:
    """Return ``(private_pem, public_pem)`` for a fresh RSA key."""
    sk = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    private_pem = sk.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = sk.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return private_pem, public_pem


class KeySources(BaseModel):
    model_config = ConfigDict(frozen=True)

    private_key_pem: str | None = None
    private_key_path: Path | None = None
    public_key_pem: str | None = None
    public_key_path: Path | None = None

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "KeySources":
        return cls(
            private_key_pem=s.cert_private_key or None,
            private_key_path=s.cert_private_key_path,
            public_key_pem=s.cert_public_key or None,
            public_key_path=s.cert_public_key_path,
        )


def _resolve_pem(label: str, inline: str | None, path: Path | None) -> str:
    if inline:
        logging.info("Loading %s key from inline configuration (%d chars)", label, len(inline))
        return normalize_pem(inline)
    if path is not None:
        logging.info("Loading %s key from file %s", label, path)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise KeyUnavailable(f"{label} key file unreadable: {path}") from e
    raise KeyUnavailable(f"no {label} key configured (set CERT_{label.upper()}_KEY or CERT_{label.upper()}_KEY_PATH)")


def _check_size(label: str, bits: int) -> None:
    if bits < MIN_KEY_BITS:
        raise KeyUnavailable(f"{label} key is {bits} bits; at least {MIN_KEY_BITS} required")


class KeyProvider:
    """Resolves and caches the process keypair.

    Keys are loaded on first use and kept for the lifetime of the provider.
    Failed loads are not cached, so a later call re-reads the sources.
    """

    def __init__(self, sources: KeySources):
        self.sources = sources
        self._lock = threading.Lock()
        self._private: rsa.RSAPrivateKey | None = None
        self._public: rsa.RSAPublicKey | None = None

    def load_signing_key(self) -> rsa.RSAPrivateKey:
        with self._lock:
            if self._private is None:
                pem = _resolve_pem("private", self.sources.private_key_pem, self.sources.private_key_path)
                try:
                    key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
                except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                    raise KeyUnavailable("private key PEM could not be parsed") from e
                if not isinstance(key, rsa.RSAPrivateKey):
                    raise KeyUnavailable(f"private key is {type(key).__name__}, expected RSA")
                _check_size("private", key.key_size)
                self._private = key
            return self._private

    def load_verification_key(self) -> rsa.RSAPublicKey:
        with self._lock:
            if self._public is None:
                pem = _resolve_pem("public", self.sources.public_key_pem, self.sources.public_key_path)
                try:
                    key = serialization.load_pem_public_key(pem.encode("utf-8"))
                except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                    raise KeyUnavailable("public key PEM could not be parsed") from e
                if not isinstance(key, rsa.RSAPublicKey):
                    raise KeyUnavailable(f"public key is {type(key).__name__}, expected RSA")
                _check_size("public", key.key_size)
                self._public = key
            return self._public

    def status(self) -> dict:
        src = self.sources
        return {
            "private_key_inline": bool(src.private_key_pem),
            "private_key_path": src.private_key_path is not None,
            "public_key_inline": bool(src.public_key_pem),
            "public_key_path": src.public_key_path is not None,
        }
