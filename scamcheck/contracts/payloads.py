from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scamcheck.domain.categories import CallType, Frequency, ScamCategory
from scamcheck.domain.models import Dispute, ScamReport
from scamcheck.domain.phone import MAX_DIGITS, MIN_DIGITS, is_valid_phone_number


class ReportSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    phone_number: str = Field(alias="phoneNumber", min_length=10)
    category: ScamCategory
    description: str = Field(min_length=10)
    call_type: CallType | None = Field(default=None, alias="callType")
    frequency: Frequency | None = None

    @field_validator("phone_number")
    @classmethod
    def _check_digit_count(cls, value: str) -> str:
        if not is_valid_phone_number(value):
            raise ValueError(f"Phone number must contain {MIN_DIGITS} to {MAX_DIGITS} digits")
        return value


class DisputeSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scam_report_id: str = Field(alias="scamReportId", min_length=1)
    description: str = Field(min_length=10)
    verification_info: str | None = Field(default=None, alias="verificationInfo")


class VerificationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_verified: bool = Field(alias="isVerified")


def report_to_dict(report: ScamReport) -> dict[str, Any]:
    return {
        "id": report.id,
        "phoneNumber": report.phone_number,
        "category": report.category,
        "description": report.description,
        "callType": report.call_type,
        "frequency": report.frequency,
        "isVerified": report.is_verified,
        "reportCount": report.report_count,
        "createdAt": report.created_at.isoformat(),
        "updatedAt": report.updated_at.isoformat(),
    }


def dispute_to_dict(dispute: Dispute) -> dict[str, Any]:
    return {
        "id": dispute.id,
        "scamReportId": dispute.scam_report_id,
        "description": dispute.description,
        "verificationInfo": dispute.verification_info,
        "createdAt": dispute.created_at.isoformat(),
    }
