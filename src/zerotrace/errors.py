"""Failure conditions raised by the certificate core.

Signature and log-hash mismatches are not here: they are ordinary verdicts
reported as booleans by the verifier.
"""
from __future__ import annotations


class ZeroTraceError(Exception):
    pass


class KeyUnavailable(ZeroTraceError):
    """No configured source produced a usable RSA key."""


class SigningUnavailable(ZeroTraceError):
    """The signer has no private key; nothing may be persisted unsigned."""


class MalformedIdentifier(ZeroTraceError):
    def __init__(self, identifier: object):
        super().__init__(f"malformed certificate id: {identifier!r}")
        self.identifier = identifier


class CorruptRecord(ZeroTraceError):
    """A stored record exists but no longer parses."""

    def __init__(self, path: object):
        super().__init__(f"stored record is corrupt: {path}")
        self.path = path
