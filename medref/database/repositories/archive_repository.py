from typing import Any

import psycopg
from psycopg.rows import dict_row

from medref.archive.models import Archive
from medref.database.exceptions import IdentifierConflictError, constraint_name
from medref.database.schema import ARCHIVE_APPLICATION_KEY, ARCHIVE_NUMBER_KEY
from medref.exceptions import AlreadyArchivedError

_SELECT_ARCHIVE = """
    SELECT id, application_id, archive_number, patient_name, patient_phone,
           patient_region, patient_district, service_type, medical_service,
           referral_reason, notes, official_document_path, archived_by,
           archived_at
    FROM archives
"""


def _row_to_archive(row: dict[str, Any]) -> Archive:
    return Archive(
        id=row["id"],
        application_id=row["application_id"],
        archive_number=row["archive_number"],
        patient_name=row["patient_name"],
        patient_phone=row["patient_phone"],
        patient_region=row["patient_region"],
        patient_district=row["patient_district"],
        service_type=row["service_type"],
        medical_service=row["medical_service"],
        referral_reason=row["referral_reason"],
        notes=row["notes"],
        official_document_path=row["official_document_path"],
        archived_by=row["archived_by"],
        archived_at=row["archived_at"],
    )


class ArchiveRepository:
    """Database operations for the archives table."""

    def exists_for_application(
        self, conn: psycopg.Connection[Any], application_id: str
    ) -> bool:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT 1 FROM archives WHERE application_id = %s",
                (application_id,),
            )
            return cur.fetchone() is not None

    def insert(self, conn: psycopg.Connection[Any], archive: Archive) -> None:
        """Insert a new archive record.

        Raises:
            AlreadyArchivedError: if the application already has an archive.
            IdentifierConflictError: if the archive number is taken.
        """
        try:
            conn.execute(
                """
                INSERT INTO archives
                (id, application_id, archive_number, patient_name, patient_phone,
                 patient_region, patient_district, service_type, medical_service,
                 referral_reason, notes, official_document_path, archived_by,
                 archived_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    archive.id,
                    archive.application_id,
                    archive.archive_number,
                    archive.patient_name,
                    archive.patient_phone,
                    archive.patient_region,
                    archive.patient_district,
                    archive.service_type,
                    archive.medical_service,
                    archive.referral_reason,
                    archive.notes,
                    archive.official_document_path,
                    archive.archived_by,
                    archive.archived_at,
                ),
            )
        except psycopg.errors.UniqueViolation as exc:
            constraint = constraint_name(exc)
            if constraint == ARCHIVE_APPLICATION_KEY:
                raise AlreadyArchivedError(
                    f"Application {archive.application_id} is already archived"
                ) from exc
            if constraint == ARCHIVE_NUMBER_KEY:
                raise IdentifierConflictError(archive.archive_number) from exc
            raise

    def find_by_id(self, conn: psycopg.Connection[Any], archive_id: str) -> Archive | None:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(_SELECT_ARCHIVE + " WHERE id = %s", (archive_id,))
            row = cur.fetchone()
        if row is None:
            return None
        return _row_to_archive(row)

    def find_by_application(
        self, conn: psycopg.Connection[Any], application_id: str
    ) -> Archive | None:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(_SELECT_ARCHIVE + " WHERE application_id = %s", (application_id,))
            row = cur.fetchone()
        if row is None:
            return None
        return _row_to_archive(row)
