import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from medref.config.settings import Settings
from medref.database.connection import Database
from medref.database.exceptions import IdentifierConflictError
from medref.database.repositories.application_repository import ApplicationRepository
from medref.documents.codec import DocumentCodec, build_codec
from medref.documents.models import (
    OFFICIAL_DOCUMENT_TYPE,
    DocumentDownload,
    UploadedFile,
)
from medref.exceptions import (
    DuplicateActiveApplicationError,
    IdentifierExhaustedError,
    InvalidStateError,
    InvalidStateForIssuanceError,
    NotFoundError,
)
from medref.identifiers.generator import APPLICATION_PREFIX, IdentifierGenerator
from medref.lifecycle.models import (
    ISSUED_STATUSES,
    Application,
    ApplicationStatus,
    SubmissionRequest,
)
from medref.lifecycle.transitions import TransitionPolicy, TransitionPolicyFactory
from medref.lifecycle.validator import (
    parse_status,
    validate_review_notes,
    validate_submission,
)
from medref.logging.logger import Log


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ApplicationService:
    """Submission, review and official-document issuance for applications.

    Each public method is one transaction against the store.
    """

    def __init__(
        self,
        database: Database,
        app_repo: ApplicationRepository,
        codec: DocumentCodec,
        id_generator: IdentifierGenerator,
        policy: TransitionPolicy,
        identifier_max_attempts: int = 5,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._db = database
        self._app_repo = app_repo
        self._codec = codec
        self._id_generator = id_generator
        self._policy = policy
        self._identifier_max_attempts = identifier_max_attempts
        self._clock = clock
        self._id_factory = id_factory

    def submit(self, request: SubmissionRequest) -> Application:
        """Create a new pending application.

        Raises:
            ValidationError: on invalid fields or a rejected upload.
            DuplicateActiveApplicationError: if the applicant already has an
                active application for this service.
            IdentifierExhaustedError: if no unique application number could
                be allocated.
        """
        request = validate_submission(request)
        documents = [
            self._codec.build_applicant_document(item.upload, item.requirement_type)
            for item in request.documents
        ]

        for attempt in range(1, self._identifier_max_attempts + 1):
            application = Application(
                id=self._id_factory(),
                application_number=self._id_generator.generate(APPLICATION_PREFIX),
                applicant_id=request.applicant_id,
                service_id=request.service_id,
                service_name=request.service_name,
                service_category=request.service_category,
                full_name=request.full_name,
                phone_number=request.phone_number,
                region=request.region,
                district=request.district,
                medical_reason=request.medical_reason,
                other_medical_reason=request.other_medical_reason,
                reason_for_application=request.reason_for_application,
                status=ApplicationStatus.PENDING,
                submitted_at=self._clock(),
                documents=documents,
            )
            try:
                with self._db.transaction() as conn:
                    if self._app_repo.find_active(
                        conn, request.applicant_id, request.service_id
                    ):
                        raise DuplicateActiveApplicationError(
                            "You already have an active application for this service"
                        )
                    self._app_repo.insert(conn, application)
            except IdentifierConflictError:
                Log.warning(
                    f"Application number {application.application_number} already "
                    f"taken (attempt {attempt}), regenerating"
                )
                continue
            Log.info(
                f"Application {application.application_number} submitted by "
                f"applicant {application.applicant_id} with "
                f"{len(documents)} documents"
            )
            return application

        raise IdentifierExhaustedError(
            f"Could not allocate a unique application number after "
            f"{self._identifier_max_attempts} attempts"
        )

    def review(
        self,
        application_id: str,
        new_status: str | ApplicationStatus,
        notes: str | None = None,
        reviewer_id: str | None = None,
    ) -> Application:
        """Apply a reviewer decision.

        ``reviewed_at`` is set on every call, even when the status does not
        change. ``reviewed_by`` and ``review_notes`` keep their previous values
        when not given.

        Raises:
            ValidationError: on an unknown status, or a rejection without notes.
            NotFoundError: if the application does not exist.
            InvalidStateError: if the transition is not allowed.
            DuplicateActiveApplicationError: if re-activation collides with
                another active application.
        """
        status = parse_status(new_status)
        cleaned_notes = validate_review_notes(status, notes)

        with self._db.transaction() as conn:
            application = self._app_repo.find_by_id(conn, application_id, for_update=True)
            if application is None:
                raise NotFoundError(f"Application {application_id} not found")
            if application.archived:
                raise InvalidStateError(
                    f"Application {application.application_number} is archived"
                )
            self._policy.check(application.status, status)
            if application.official_documents and status not in ISSUED_STATUSES:
                raise InvalidStateError(
                    f"Application {application.application_number} has official "
                    f"documents and cannot move to '{status}'"
                )
            self._app_repo.update_review(
                conn, application_id, status, reviewer_id, cleaned_notes
            )
            updated = self._app_repo.find_by_id(conn, application_id)

        if updated is None:
            raise NotFoundError(f"Application {application_id} not found")
        Log.info(
            f"Application {updated.application_number} reviewed by {reviewer_id}: "
            f"{application.status} -> {status}"
        )
        return updated

    def issue_official_document(
        self,
        application_id: str,
        upload: UploadedFile,
        issued_by: str,
        document_type: str = OFFICIAL_DOCUMENT_TYPE,
    ) -> Application:
        """Attach an official document to an approved application and complete it.

        Raises:
            ValidationError: if the upload is rejected.
            NotFoundError: if the application does not exist.
            InvalidStateForIssuanceError: if the application is not approved.
        """
        document = self._codec.build_official_document(upload, issued_by, document_type)

        with self._db.transaction() as conn:
            application = self._app_repo.find_by_id(conn, application_id, for_update=True)
            if application is None:
                raise NotFoundError(f"Application {application_id} not found")
            if application.status is not ApplicationStatus.APPROVED:
                raise InvalidStateForIssuanceError(
                    "Official documents can only be uploaded for approved applications "
                    f"(application {application.application_number} is "
                    f"'{application.status}')"
                )
            self._app_repo.append_official_document(conn, application_id, document)
            updated = self._app_repo.find_by_id(conn, application_id)

        if updated is None:
            raise NotFoundError(f"Application {application_id} not found")
        Log.info(
            f"Official document '{document.file_name}' issued for application "
            f"{updated.application_number} by {issued_by}; status completed"
        )
        return updated

    def get_application(self, application_id: str) -> Application:
        with self._db.transaction() as conn:
            application = self._app_repo.find_by_id(conn, application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} not found")
        return application

    def find_active_application(
        self, applicant_id: str, service_id: str
    ) -> Application | None:
        """The applicant's active application for a service, if any."""
        with self._db.transaction() as conn:
            return self._app_repo.find_active(conn, applicant_id, service_id)

    def list_applications_for_applicant(self, applicant_id: str) -> list[Application]:
        with self._db.transaction() as conn:
            return self._app_repo.list_for_applicant(conn, applicant_id)

    def open_document(
        self,
        application_id: str,
        index: int,
        official: bool = False,
    ) -> DocumentDownload:
        """Decode one embedded document for download.

        Raises:
            NotFoundError: if the application or the document index does not exist.
            DocumentUnavailableError: if the document bytes cannot be recovered.
        """
        application = self.get_application(application_id)
        documents = application.official_documents if official else application.documents
        if index < 0 or index >= len(documents):
            raise NotFoundError(
                f"Document {index} not found on application {application.application_number}"
            )
        record = documents[index]
        content = self._codec.decode(record)
        return DocumentDownload(
            file_name=record.file_name,
            file_type=record.file_type,
            file_size=record.file_size,
            content=content,
        )


def build_application_service(settings: Settings, database: Database) -> ApplicationService:
    """Build an ApplicationService with all required collaborators."""
    return ApplicationService(
        database=database,
        app_repo=ApplicationRepository(),
        codec=build_codec(settings),
        id_generator=IdentifierGenerator(),
        policy=TransitionPolicyFactory.create(settings),
        identifier_max_attempts=settings.identifier_max_attempts,
    )
