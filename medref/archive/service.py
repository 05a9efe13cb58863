import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from medref.archive.models import UNKNOWN_SERVICE, Archive
from medref.config.settings import Settings
from medref.database.connection import Database
from medref.database.exceptions import IdentifierConflictError
from medref.database.repositories.application_repository import ApplicationRepository
from medref.database.repositories.archive_repository import ArchiveRepository
from medref.documents.models import DocumentRecord, ExternalPathRef
from medref.exceptions import (
    AlreadyArchivedError,
    IdentifierExhaustedError,
    InvalidStateError,
    NoOfficialDocumentError,
    NotFoundError,
    ValidationError,
)
from medref.identifiers.generator import ARCHIVE_PREFIX, IdentifierGenerator
from medref.lifecycle.models import Application, ApplicationStatus
from medref.lifecycle.validator import validate_archive_notes
from medref.logging.logger import Log


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def official_document_path(application_id: str, document: DocumentRecord) -> str:
    """Reference string for the archived official document.

    Legacy documents keep their stored path; inline documents get a logical
    ``base64/{application_id}/{file_name}`` pointer.
    """
    if isinstance(document.payload, ExternalPathRef):
        return document.payload.path
    return f"base64/{application_id}/{document.file_name}"


class ArchiveService:
    """Turns a completed application into its single, immutable archive record."""

    def __init__(
        self,
        database: Database,
        app_repo: ApplicationRepository,
        archive_repo: ArchiveRepository,
        id_generator: IdentifierGenerator,
        identifier_max_attempts: int = 5,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._db = database
        self._app_repo = app_repo
        self._archive_repo = archive_repo
        self._id_generator = id_generator
        self._identifier_max_attempts = identifier_max_attempts
        self._clock = clock
        self._id_factory = id_factory

    def archive(
        self,
        application_id: str,
        archived_by: str,
        notes: str | None = None,
    ) -> Archive:
        """Archive a completed application exactly once.

        Not retried automatically; calling again after success raises
        AlreadyArchivedError.

        Raises:
            ValidationError: if ``archived_by`` is missing or notes are too long.
            NotFoundError: if the application does not exist.
            InvalidStateError: if the application is not completed.
            AlreadyArchivedError: if an archive already exists for it.
            NoOfficialDocumentError: if it carries no official document.
            IdentifierExhaustedError: if no unique archive number could be allocated.
        """
        if not archived_by:
            raise ValidationError("Archived by is required")
        cleaned_notes = validate_archive_notes(notes)

        for attempt in range(1, self._identifier_max_attempts + 1):
            archive_number = self._id_generator.generate(ARCHIVE_PREFIX)
            try:
                with self._db.transaction() as conn:
                    application = self._app_repo.find_by_id(
                        conn, application_id, for_update=True
                    )
                    if application is None:
                        raise NotFoundError(f"Application {application_id} not found")
                    if application.status is not ApplicationStatus.COMPLETED:
                        raise InvalidStateError(
                            "Only completed applications can be archived "
                            f"(application {application.application_number} is "
                            f"'{application.status}')"
                        )
                    if self._archive_repo.exists_for_application(conn, application_id):
                        raise AlreadyArchivedError(
                            f"Application {application.application_number} is already archived"
                        )
                    archive = self._build_archive(
                        application, archive_number, archived_by, cleaned_notes
                    )
                    self._archive_repo.insert(conn, archive)
            except IdentifierConflictError:
                Log.warning(
                    f"Archive number {archive_number} already taken "
                    f"(attempt {attempt}), regenerating"
                )
                continue
            Log.info(
                f"Application {application.application_number} archived as "
                f"{archive.archive_number} by {archived_by}"
            )
            return archive

        raise IdentifierExhaustedError(
            f"Could not allocate a unique archive number after "
            f"{self._identifier_max_attempts} attempts"
        )

    def get_archive(self, archive_id: str) -> Archive:
        with self._db.transaction() as conn:
            archive = self._archive_repo.find_by_id(conn, archive_id)
        if archive is None:
            raise NotFoundError(f"Archive {archive_id} not found")
        return archive

    def get_archive_for_application(self, application_id: str) -> Archive:
        with self._db.transaction() as conn:
            archive = self._archive_repo.find_by_application(conn, application_id)
        if archive is None:
            raise NotFoundError(f"No archive found for application {application_id}")
        return archive

    def _build_archive(
        self,
        application: Application,
        archive_number: str,
        archived_by: str,
        notes: str | None,
    ) -> Archive:
        # First issued document is carried forward, even if several exist.
        if not application.official_documents:
            raise NoOfficialDocumentError(
                f"No official document found for application {application.application_number}"
            )
        document = application.official_documents[0]
        return Archive(
            id=self._id_factory(),
            application_id=application.id,
            archive_number=archive_number,
            patient_name=application.full_name,
            patient_phone=application.phone_number,
            patient_region=application.region,
            patient_district=application.district,
            service_type=application.service_name or UNKNOWN_SERVICE,
            medical_service=application.medical_reason,
            referral_reason=application.reason_for_application,
            notes=notes,
            official_document_path=official_document_path(application.id, document),
            archived_by=archived_by,
            archived_at=self._clock(),
        )


def build_archive_service(settings: Settings, database: Database) -> ArchiveService:
    """Build an ArchiveService with all required collaborators."""
    return ArchiveService(
        database=database,
        app_repo=ApplicationRepository(),
        archive_repo=ArchiveRepository(),
        id_generator=IdentifierGenerator(),
        identifier_max_attempts=settings.identifier_max_attempts,
    )
