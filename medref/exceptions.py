class DomainError(Exception):
    """Base exception for request-level errors the caller can act on."""

    kind: str = "domain_error"


class ValidationError(DomainError):
    """Raised when input is malformed or a required field is missing."""

    kind = "validation_error"


class DuplicateActiveApplicationError(DomainError):
    """Raised when the applicant already has an active application for the service."""

    kind = "duplicate_active_application"


class NotFoundError(DomainError):
    """Raised when a referenced application, archive or document does not exist."""

    kind = "not_found"


class InvalidStateError(DomainError):
    """Raised when the application is not in a state that permits the operation."""

    kind = "invalid_state"


class InvalidStateForIssuanceError(InvalidStateError):
    """Raised when an official document is issued for a non-approved application."""

    kind = "invalid_state_for_issuance"


class AlreadyArchivedError(DomainError):
    """Raised when an application has already been archived."""

    kind = "already_archived"


class NoOfficialDocumentError(DomainError):
    """Raised when archival is attempted without an official document."""

    kind = "no_official_document"


class DocumentUnavailableError(DomainError):
    """Raised when the bytes of a stored document cannot be recovered."""

    kind = "document_unavailable"


class DataIntegrityError(DomainError):
    """Raised when a stored document record carries neither or both payload forms."""

    kind = "data_integrity_error"


class SystemFailure(Exception):
    """Base exception for failures that are not the caller's fault."""

    kind: str = "system_failure"


class StorageUnavailableError(SystemFailure):
    """Raised when the backing database cannot be reached or times out."""


class IdentifierExhaustedError(SystemFailure):
    """Raised when no unique human-readable number could be allocated."""
