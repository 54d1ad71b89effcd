from __future__ import annotations

import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, ValidationError

from ..errors import KeyUnavailable, SigningUnavailable
from ..store.models import CertificateRecord, WipeLogRecord
from .digest import digest
from .keys import KeyProvider
from .payload import CertificatePayload

SIG_ALG = "RSA-SHA256"


class VerificationResult(BaseModel):
    signature_valid: bool
    log_hash_matches: bool

    @property
    def valid(self) -> bool:
        return self.signature_valid and self.log_hash_matches


class CertificateSigner:
    """RSA PKCS#1 v1.5 / SHA-256 signatures over canonical payloads."""

    def __init__(self, private_key: rsa.RSAPrivateKey | None):
        if private_key is None:
            raise SigningUnavailable("no private key available for signing")
        self._key = private_key

    @classmethod
    def from_provider(cls, keys: KeyProvider) -> "CertificateSigner":
        try:
            return cls(keys.load_signing_key())
        except KeyUnavailable as e:
            raise SigningUnavailable(str(e)) from e

    def sign_bytes(self, data: bytes) -> str:
        sig = self._key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(sig).decode("ascii")

    def sign(self, payload: CertificatePayload) -> str:
        return self.sign_bytes(payload.canonical())


class CertificateVerifier:
    def __init__(self, public_key: rsa.RSAPublicKey | None):
        # Refuse to run without a key rather than report anything as valid
        if public_key is None:
            raise KeyUnavailable("no public key available for verification")
        self._key = public_key

    @classmethod
    def from_provider(cls, keys: KeyProvider) -> "CertificateVerifier":
        return cls(keys.load_verification_key())

    def verify_bytes(self, data: bytes, signature_b64: str) -> bool:
        try:
            sig = base64.b64decode(signature_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            logging.debug("Signature is not valid base64: %s", e)
            return False
        try:
            self._key.verify(sig, data, padding.PKCS1v15(), hashes.SHA256())
        except InvalidSignature:
            logging.debug("RSA-SHA256 signature rejected")
            return False
        return True

    def verify_signature(self, payload: CertificatePayload, signature_b64: str) -> bool:
        return self.verify_bytes(payload.canonical(), signature_b64)

    def verify(self, certificate: CertificateRecord, wipe_log: WipeLogRecord | None) -> VerificationResult:
        """Check a stored certificate, and its stored log when one was uploaded.

        The payload is rebuilt from ``certificate`` only. A stored record that no
        longer forms a valid payload (e.g. an edited log hash) counts as a bad
        signature.
        """
        try:
            payload = certificate.to_payload()
        except ValidationError as e:
            logging.debug("Stored certificate %s no longer forms a payload: %s", certificate.id, e)
            signature_valid = False
        else:
            signature_valid = self.verify_signature(payload, certificate.signature)

        if not certificate.uploaded:
            log_hash_matches = True
        elif wipe_log is None:
            log_hash_matches = False
        else:
            log_hash_matches = digest(wipe_log.raw_log) == certificate.log_hash.lower()
        return VerificationResult(signature_valid=signature_valid, log_hash_matches=log_hash_matches)
