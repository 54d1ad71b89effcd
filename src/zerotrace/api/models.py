from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreateCertificateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject_id: str | None = Field(default=None, alias="subjectId")  # else X-Subject-Id header
    device_model: str = Field(alias="deviceModel", min_length=1)
    serial_number: str | None = Field(default=None, alias="serialNumber")
    method: str = Field(min_length=1)  # e.g. "zero", "random", "dod-3pass"
    timestamp: str | None = None  # ISO-8601; any precision, truncated to ms
    raw_log: str | None = Field(default=None, alias="rawLog")
    device_path: str | None = Field(default=None, alias="devicePath")
    duration_seconds: float | None = Field(default=None, alias="duration")
    exit_code: int | None = Field(default=None, alias="exitCode")
