from dataclasses import dataclass, field, replace

from medref.database.connection import Database
from medref.database.repositories.application_repository import ApplicationRepository
from medref.documents.codec import DocumentCodec
from medref.documents.models import DocumentRecord, InlinePayload
from medref.exceptions import DocumentUnavailableError, DomainError
from medref.logging.logger import Log

_MAX_REPORTED_ERRORS = 10


@dataclass(frozen=True)
class MigrationStatus:
    needs_migration: int
    already_migrated: int

    @property
    def total(self) -> int:
        return self.needs_migration + self.already_migrated


@dataclass
class MigrationReport:
    migrated_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.error_count += 1
        if len(self.errors) < _MAX_REPORTED_ERRORS:
            self.errors.append(message)


class DocumentMigrator:
    """Rewrites legacy on-disk documents into inline payloads.

    Archives are never touched; their stored document paths stay valid as
    historical references.
    """

    def __init__(
        self,
        database: Database,
        app_repo: ApplicationRepository,
        codec: DocumentCodec,
    ) -> None:
        self._db = database
        self._app_repo = app_repo
        self._codec = codec

    def migration_status(self) -> MigrationStatus:
        with self._db.transaction() as conn:
            return MigrationStatus(
                needs_migration=self._app_repo.count_with_legacy_documents(conn),
                already_migrated=self._app_repo.count_with_inline_documents(conn),
            )

    def migrate(self) -> MigrationReport:
        """Migrate every application carrying legacy documents, one transaction each."""
        with self._db.transaction() as conn:
            application_ids = self._app_repo.list_ids_with_legacy_documents(conn)
        Log.info(f"Found {len(application_ids)} applications with documents to migrate")

        report = MigrationReport()
        for application_id in application_ids:
            try:
                self._migrate_application(application_id, report)
            except DomainError as exc:
                report.record_error(f"Application {application_id}: {exc}")
                Log.error(f"Skipping application {application_id}: {exc}")

        Log.info(
            f"Migration completed. {report.migrated_count} documents migrated, "
            f"{report.error_count} errors"
        )
        return report

    def _migrate_application(self, application_id: str, report: MigrationReport) -> None:
        with self._db.transaction() as conn:
            application = self._app_repo.find_by_id(conn, application_id, for_update=True)
            if application is None:
                return
            migrated_before = report.migrated_count
            documents = [self._inline(d, report) for d in application.documents]
            official = [self._inline(d, report) for d in application.official_documents]
            if report.migrated_count == migrated_before:
                return
            self._app_repo.replace_documents(conn, application_id, documents, official)
        Log.info(f"Saved migrated documents for application {application.application_number}")

    def _inline(self, record: DocumentRecord, report: MigrationReport) -> DocumentRecord:
        if not record.is_legacy:
            return record
        try:
            content = self._codec.decode(record)
        except DocumentUnavailableError as exc:
            report.record_error(f"{record.file_name}: {exc}")
            Log.error(f"Could not migrate document {record.file_name}: {exc}")
            return record
        report.migrated_count += 1
        Log.debug(f"Migrated document: {record.file_name}")
        return replace(record, payload=InlinePayload(data=self._codec.encode(content)))
