"""Field-level validation for submissions and review input."""

import re
from dataclasses import replace

from medref.exceptions import ValidationError
from medref.lifecycle.models import (
    DEFAULT_REASON_FOR_APPLICATION,
    MEDICAL_REASONS,
    OTHER_MEDICAL_REASON,
    REGIONS,
    ApplicationStatus,
    SubmissionRequest,
)

_PHONE_PATTERN = re.compile(r"^\d{9}$")
_FULL_NAME_MIN = 2
_FULL_NAME_MAX = 100
_DISTRICT_MAX = 100
_OTHER_REASON_MAX = 500
_REASON_MAX = 1000
_NOTES_MAX = 1000


def validate_submission(request: SubmissionRequest) -> SubmissionRequest:
    """Validate a submission and return a copy with trimmed, normalized fields.

    Raises:
        ValidationError: on the first invalid or missing field.
    """
    applicant_id = _require(request.applicant_id, "Applicant ID")
    service_id = _require(request.service_id, "Service ID")
    service_name = _require(request.service_name, "Service name")
    full_name = _build_full_name(request.full_name)
    phone_number = _build_phone_number(request.phone_number)
    region = _build_region(request.region)
    district = _optional(request.district, "District", _DISTRICT_MAX)
    medical_reason = _build_medical_reason(request.medical_reason)
    other_medical_reason = _build_other_reason(medical_reason, request.other_medical_reason)
    reason = _optional(request.reason_for_application, "Reason for application", _REASON_MAX)
    return replace(
        request,
        applicant_id=applicant_id,
        service_id=service_id,
        service_name=service_name,
        service_category=_optional(request.service_category, "Service category", _REASON_MAX),
        full_name=full_name,
        phone_number=phone_number,
        region=region,
        district=district,
        medical_reason=medical_reason,
        other_medical_reason=other_medical_reason,
        reason_for_application=reason or DEFAULT_REASON_FOR_APPLICATION,
    )


def parse_status(raw: str | ApplicationStatus) -> ApplicationStatus:
    try:
        return ApplicationStatus(raw)
    except ValueError:
        raise ValidationError(f"Invalid status: {raw!r}") from None


def validate_review_notes(status: ApplicationStatus, notes: str | None) -> str | None:
    """Return trimmed notes, or None when none were given.

    Raises:
        ValidationError: if a rejection has no notes or notes are too long.
    """
    cleaned = notes.strip() if notes else ""
    if status is ApplicationStatus.REJECTED and not cleaned:
        raise ValidationError("Review notes are required when rejecting an application")
    if len(cleaned) > _NOTES_MAX:
        raise ValidationError(f"Review notes must be less than {_NOTES_MAX} characters")
    return cleaned or None


def validate_archive_notes(notes: str | None) -> str | None:
    return _optional(notes, "Notes", _NOTES_MAX)


def _require(value: str | None, label: str) -> str:
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise ValidationError(f"{label} is required")
    return cleaned


def _optional(value: str | None, label: str, max_length: int) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if len(cleaned) > max_length:
        raise ValidationError(f"{label} must be less than {max_length} characters")
    return cleaned or None


def _build_full_name(raw: str | None) -> str:
    name = _require(raw, "Full name")
    if len(name) < _FULL_NAME_MIN:
        raise ValidationError(f"Full name must be at least {_FULL_NAME_MIN} characters")
    if len(name) > _FULL_NAME_MAX:
        raise ValidationError(f"Full name must be less than {_FULL_NAME_MAX} characters")
    return name


def _build_phone_number(raw: str | None) -> str:
    phone = _require(raw, "Phone number")
    if not _PHONE_PATTERN.match(phone):
        raise ValidationError("Phone number must be exactly 9 digits")
    return phone


def _build_region(raw: str | None) -> str:
    region = _require(raw, "Region")
    if region not in REGIONS:
        raise ValidationError(f"Unknown region: {region}")
    return region


def _build_medical_reason(raw: str | None) -> str:
    reason = _require(raw, "Reason for medical letter")
    if reason not in MEDICAL_REASONS:
        raise ValidationError(f"Unknown reason for medical letter: {reason}")
    return reason


def _build_other_reason(medical_reason: str, raw: str | None) -> str | None:
    if medical_reason != OTHER_MEDICAL_REASON:
        return None
    other = _optional(raw, "Other reason", _OTHER_REASON_MAX)
    if other is None:
        raise ValidationError("Please describe the reason when selecting 'Other'")
    return other
