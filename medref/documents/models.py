from dataclasses import dataclass
from datetime import datetime
from typing import Any

from medref.exceptions import DataIntegrityError

OFFICIAL_DOCUMENT_TYPE = "Official Document"


@dataclass(frozen=True)
class InlinePayload:
    """Document bytes embedded in the record as base64 text."""

    data: str


@dataclass(frozen=True)
class ExternalPathRef:
    """Legacy reference to a file on disk. Read-only; never written by new code."""

    path: str


DocumentPayload = InlinePayload | ExternalPathRef


def _parse_uploaded_at(raw: dict[str, Any]) -> datetime:
    value = raw.get("uploadedAt")
    if isinstance(value, datetime):
        return value
    message = f"Document '{raw.get('fileName')}' has no valid upload timestamp"
    if not isinstance(value, str):
        raise DataIntegrityError(message)
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise DataIntegrityError(message) from exc


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload handed over by the transport layer."""

    file_name: str
    file_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DocumentRecord:
    """A document embedded in an application.

    Applicant documents carry ``requirement_type``; official documents carry
    ``document_type`` and ``uploaded_by``.
    """

    file_name: str
    file_type: str
    file_size: int
    payload: DocumentPayload
    uploaded_at: datetime
    requirement_type: str | None = None
    document_type: str | None = None
    uploaded_by: str | None = None

    @property
    def is_legacy(self) -> bool:
        return isinstance(self.payload, ExternalPathRef)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape stored in the application row."""
        data: dict[str, Any] = {
            "fileName": self.file_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "uploadedAt": self.uploaded_at.isoformat(),
        }
        match self.payload:
            case InlinePayload(data=encoded):
                data["fileData"] = encoded
            case ExternalPathRef(path=path):
                data["filePath"] = path
        if self.requirement_type is not None:
            data["requirementType"] = self.requirement_type
        if self.document_type is not None:
            data["documentType"] = self.document_type
        if self.uploaded_by is not None:
            data["uploadedBy"] = self.uploaded_by
        return data

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DocumentRecord":
        """Build a record from its stored JSON shape.

        Raises:
            DataIntegrityError: if the record has neither or both of
                ``fileData`` and ``filePath``, or no readable ``uploadedAt``.
        """
        file_data = raw.get("fileData")
        file_path = raw.get("filePath")
        if file_data and file_path:
            raise DataIntegrityError(
                f"Document '{raw.get('fileName')}' has both inline data and a file path"
            )
        payload: DocumentPayload
        if file_data:
            payload = InlinePayload(data=file_data)
        elif file_path:
            payload = ExternalPathRef(path=file_path)
        else:
            raise DataIntegrityError(
                f"Document '{raw.get('fileName')}' has no stored payload"
            )
        return cls(
            file_name=raw["fileName"],
            file_type=raw["fileType"],
            file_size=int(raw["fileSize"]),
            payload=payload,
            uploaded_at=_parse_uploaded_at(raw),
            requirement_type=raw.get("requirementType"),
            document_type=raw.get("documentType"),
            uploaded_by=raw.get("uploadedBy"),
        )


@dataclass(frozen=True)
class DocumentDownload:
    """Decoded document bytes plus the metadata a download surface needs."""

    file_name: str
    file_type: str
    file_size: int
    content: bytes
