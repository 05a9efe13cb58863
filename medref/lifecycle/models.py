from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from medref.documents.models import DocumentRecord, UploadedFile


class ApplicationStatus(StrEnum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


ACTIVE_STATUSES = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW, ApplicationStatus.APPROVED}
)
ISSUED_STATUSES = frozenset({ApplicationStatus.APPROVED, ApplicationStatus.COMPLETED})

OTHER_MEDICAL_REASON = "Other"
DEFAULT_REASON_FOR_APPLICATION = "Service application request"

MEDICAL_REASONS = (
    "Cancer (Oncology)",
    "Cardiac Diseases",
    "Kidney Diseases",
    "Neurological & Neurosurgical Conditions",
    "Orthopedic & Trauma Surgery",
    "Pediatric Specialized Care",
    "Advanced Diagnostic Services",
    "Infertility & Reproductive Health",
    "Ophthalmology (Advanced Eye Care)",
    "Burns & Plastic / Reconstructive Surgery",
    OTHER_MEDICAL_REASON,
)

REGIONS = (
    "Awdal",
    "Woqooyi Galbeed",
    "Togdheer",
    "Sool",
    "Sanaag",
    "Marodijeh",
    "Bari",
    "Nugaal",
    "Mudug",
    "Galguduud",
    "Hiiraan",
    "Shabeellaha Dhexe",
    "Banaadir",
    "Shabeellaha Hoose",
    "Bay",
    "Bakool",
    "Gedo",
    "Jubbada Hoose",
    "Jubbada Dhexe",
)


@dataclass(frozen=True)
class SubmittedDocument:
    """An applicant upload tagged with the requirement it satisfies."""

    upload: UploadedFile
    requirement_type: str


@dataclass
class SubmissionRequest:
    """Raw fields of a citizen submission, before validation."""

    applicant_id: str
    service_id: str
    service_name: str
    full_name: str
    phone_number: str
    region: str
    medical_reason: str
    district: str | None = None
    other_medical_reason: str | None = None
    reason_for_application: str | None = None
    service_category: str | None = None
    documents: list[SubmittedDocument] = field(default_factory=list)


@dataclass
class Application:
    """A citizen's service request and its embedded documents."""

    id: str
    application_number: str
    applicant_id: str
    service_id: str
    service_name: str
    full_name: str
    phone_number: str
    region: str
    medical_reason: str
    reason_for_application: str
    status: ApplicationStatus
    submitted_at: datetime
    district: str | None = None
    other_medical_reason: str | None = None
    service_category: str | None = None
    documents: list[DocumentRecord] = field(default_factory=list)
    official_documents: list[DocumentRecord] = field(default_factory=list)
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    review_notes: str | None = None
    archived: bool = False
