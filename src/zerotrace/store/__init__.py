from .files import CertificateStore, FileCertificateStore
from .models import CertificateRecord, WipeLogRecord

__all__ = ["CertificateRecord", "CertificateStore", "FileCertificateStore", "WipeLogRecord"]
