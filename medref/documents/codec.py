import base64
import binascii
from collections.abc import Callable
from datetime import datetime, timezone

from medref.config.settings import Settings
from medref.documents.file_loader import LegacyFileLoader
from medref.documents.models import (
    OFFICIAL_DOCUMENT_TYPE,
    DocumentRecord,
    ExternalPathRef,
    InlinePayload,
    UploadedFile,
)
from medref.exceptions import DocumentUnavailableError, ValidationError

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/png",
        "image/jpeg",
        "image/jpg",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentCodec:
    """Converts uploads to embeddable records and records back to raw bytes."""

    def __init__(
        self,
        file_loader: LegacyFileLoader,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._file_loader = file_loader
        self._max_upload_bytes = max_upload_bytes
        self._clock = clock

    def encode(self, raw_bytes: bytes) -> str:
        return base64.b64encode(raw_bytes).decode("ascii")

    def decode(self, record: DocumentRecord) -> bytes:
        """Recover the raw bytes of a stored document.

        Inline payloads are base64-decoded; legacy path references are read
        from the configured storage root.

        Raises:
            DocumentUnavailableError: if the encoding is corrupt or the legacy
                file cannot be found.
        """
        match record.payload:
            case InlinePayload(data=encoded):
                try:
                    return base64.b64decode(encoded, validate=True)
                except (binascii.Error, ValueError) as exc:
                    raise DocumentUnavailableError(
                        f"Stored data for '{record.file_name}' is not valid base64"
                    ) from exc
            case ExternalPathRef() as reference:
                return self._file_loader.load(reference)
        raise DocumentUnavailableError(f"Document '{record.file_name}' has no payload")

    def validate_upload(self, upload: UploadedFile) -> None:
        """Reject uploads before any encoding happens.

        Raises:
            ValidationError: on a blank name, empty content, oversized content
                or a MIME type outside the allow-list.
        """
        if not upload.file_name or not upload.file_name.strip():
            raise ValidationError("File name is required")
        if upload.size == 0:
            raise ValidationError(f"File '{upload.file_name}' is empty")
        if upload.size > self._max_upload_bytes:
            limit_mib = self._max_upload_bytes // (1024 * 1024)
            raise ValidationError(
                f"File '{upload.file_name}' exceeds the {limit_mib}MB size limit"
            )
        if upload.file_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                f"File type '{upload.file_type}' is not allowed. "
                "Only PNG, JPG, PDF, DOC, DOCX files are allowed"
            )

    def build_applicant_document(
        self, upload: UploadedFile, requirement_type: str
    ) -> DocumentRecord:
        if not requirement_type or not requirement_type.strip():
            raise ValidationError(
                f"Requirement type is required for '{upload.file_name}'"
            )
        self.validate_upload(upload)
        return DocumentRecord(
            file_name=upload.file_name,
            file_type=upload.file_type,
            file_size=upload.size,
            payload=InlinePayload(data=self.encode(upload.content)),
            uploaded_at=self._clock(),
            requirement_type=requirement_type.strip(),
        )

    def build_official_document(
        self,
        upload: UploadedFile,
        uploaded_by: str,
        document_type: str = OFFICIAL_DOCUMENT_TYPE,
    ) -> DocumentRecord:
        if not uploaded_by:
            raise ValidationError("Issuer is required for an official document")
        self.validate_upload(upload)
        return DocumentRecord(
            file_name=upload.file_name,
            file_type=upload.file_type,
            file_size=upload.size,
            payload=InlinePayload(data=self.encode(upload.content)),
            uploaded_at=self._clock(),
            document_type=document_type,
            uploaded_by=uploaded_by,
        )


def build_codec(settings: Settings) -> DocumentCodec:
    return DocumentCodec(
        file_loader=LegacyFileLoader(files_root=settings.legacy_files_root),
        max_upload_bytes=settings.max_upload_bytes,
    )
