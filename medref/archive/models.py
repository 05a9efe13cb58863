from dataclasses import dataclass
from datetime import datetime

UNKNOWN_SERVICE = "Unknown Service"


@dataclass(frozen=True)
class Archive:
    """Immutable snapshot of a completed application."""

    id: str
    application_id: str
    archive_number: str
    patient_name: str
    patient_phone: str
    patient_region: str
    service_type: str
    medical_service: str
    referral_reason: str
    official_document_path: str
    archived_by: str
    archived_at: datetime
    patient_district: str | None = None
    notes: str | None = None
