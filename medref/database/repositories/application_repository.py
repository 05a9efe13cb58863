from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from medref.database.exceptions import IdentifierConflictError, constraint_name
from medref.database.schema import ACTIVE_APPLICATION_INDEX, APPLICATION_NUMBER_KEY
from medref.documents.models import DocumentRecord
from medref.exceptions import DuplicateActiveApplicationError, NotFoundError
from medref.lifecycle.models import ACTIVE_STATUSES, Application, ApplicationStatus

_SELECT_APPLICATION = """
    SELECT a.id, a.application_number, a.applicant_id, a.service_id,
           a.service_name, a.service_category, a.full_name, a.phone_number,
           a.region, a.district, a.medical_reason, a.other_medical_reason,
           a.reason_for_application, a.documents, a.official_documents,
           a.status, a.submitted_at, a.reviewed_at, a.reviewed_by,
           a.review_notes,
           EXISTS (
               SELECT 1 FROM archives ar WHERE ar.application_id = a.id
           ) AS archived
    FROM applications a
"""

_LEGACY_FILTER = """
    WHERE EXISTS (
        SELECT 1
        FROM jsonb_array_elements(a.documents || a.official_documents) AS d
        WHERE d ? 'filePath' AND NOT d ? 'fileData'
    )
"""


def _documents_json(documents: list[DocumentRecord]) -> Jsonb:
    return Jsonb([d.to_dict() for d in documents])


def _row_to_application(row: dict[str, Any]) -> Application:
    return Application(
        id=row["id"],
        application_number=row["application_number"],
        applicant_id=row["applicant_id"],
        service_id=row["service_id"],
        service_name=row["service_name"],
        service_category=row["service_category"],
        full_name=row["full_name"],
        phone_number=row["phone_number"],
        region=row["region"],
        district=row["district"],
        medical_reason=row["medical_reason"],
        other_medical_reason=row["other_medical_reason"],
        reason_for_application=row["reason_for_application"],
        documents=[DocumentRecord.from_dict(d) for d in row["documents"] or []],
        official_documents=[
            DocumentRecord.from_dict(d) for d in row["official_documents"] or []
        ],
        status=ApplicationStatus(row["status"]),
        submitted_at=row["submitted_at"],
        reviewed_at=row["reviewed_at"],
        reviewed_by=row["reviewed_by"],
        review_notes=row["review_notes"],
        archived=bool(row["archived"]),
    )


class ApplicationRepository:
    """Database operations for the applications table.

    Every method runs on the caller's connection so that a service can keep
    a check and its write inside one transaction.
    """

    def insert(self, conn: psycopg.Connection[Any], application: Application) -> None:
        """Insert a new application.

        Raises:
            DuplicateActiveApplicationError: if an active application already
                exists for the same applicant and service.
            IdentifierConflictError: if the application number is taken.
        """
        try:
            conn.execute(
                """
                INSERT INTO applications
                (id, application_number, applicant_id, service_id, service_name,
                 service_category, full_name, phone_number, region, district,
                 medical_reason, other_medical_reason, reason_for_application,
                 documents, official_documents, status, submitted_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                        %s, %s, %s, %s)
                """,
                (
                    application.id,
                    application.application_number,
                    application.applicant_id,
                    application.service_id,
                    application.service_name,
                    application.service_category,
                    application.full_name,
                    application.phone_number,
                    application.region,
                    application.district,
                    application.medical_reason,
                    application.other_medical_reason,
                    application.reason_for_application,
                    _documents_json(application.documents),
                    _documents_json(application.official_documents),
                    application.status.value,
                    application.submitted_at,
                ),
            )
        except psycopg.errors.UniqueViolation as exc:
            constraint = constraint_name(exc)
            if constraint == ACTIVE_APPLICATION_INDEX:
                raise DuplicateActiveApplicationError(
                    "You already have an active application for this service"
                ) from exc
            if constraint == APPLICATION_NUMBER_KEY:
                raise IdentifierConflictError(application.application_number) from exc
            raise

    def find_by_id(
        self,
        conn: psycopg.Connection[Any],
        application_id: str,
        for_update: bool = False,
    ) -> Application | None:
        """Load one application; ``for_update`` locks its row until commit."""
        query = _SELECT_APPLICATION + " WHERE a.id = %s"
        if for_update:
            query += " FOR UPDATE OF a"
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, (application_id,))
            row = cur.fetchone()
        if row is None:
            return None
        return _row_to_application(row)

    def find_active(
        self,
        conn: psycopg.Connection[Any],
        applicant_id: str,
        service_id: str,
    ) -> Application | None:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                _SELECT_APPLICATION
                + """
                WHERE a.applicant_id = %s
                  AND a.service_id = %s
                  AND a.status = ANY(%s)
                LIMIT 1
                """,
                (applicant_id, service_id, sorted(s.value for s in ACTIVE_STATUSES)),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return _row_to_application(row)

    def list_for_applicant(
        self, conn: psycopg.Connection[Any], applicant_id: str
    ) -> list[Application]:
        """All applications of one applicant, newest first."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                _SELECT_APPLICATION
                + " WHERE a.applicant_id = %s ORDER BY a.submitted_at DESC",
                (applicant_id,),
            )
            rows = cur.fetchall()
        return [_row_to_application(row) for row in rows]

    def update_review(
        self,
        conn: psycopg.Connection[Any],
        application_id: str,
        status: ApplicationStatus,
        reviewed_by: str | None,
        review_notes: str | None,
    ) -> None:
        """Record a review action. Reviewer and notes are kept as-is when none are given.

        Raises:
            NotFoundError: if no application with this ID exists.
            DuplicateActiveApplicationError: if re-activating would create a
                second active application for the same applicant and service.
        """
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE applications
                    SET status = %s,
                        reviewed_at = NOW(),
                        reviewed_by = COALESCE(%s, reviewed_by),
                        review_notes = COALESCE(%s, review_notes)
                    WHERE id = %s
                    """,
                    (status.value, reviewed_by, review_notes, application_id),
                )
                if cur.rowcount == 0:
                    raise NotFoundError(f"Application {application_id} not found")
        except psycopg.errors.UniqueViolation as exc:
            if constraint_name(exc) == ACTIVE_APPLICATION_INDEX:
                raise DuplicateActiveApplicationError(
                    "Another active application exists for this applicant and service"
                ) from exc
            raise

    def append_official_document(
        self,
        conn: psycopg.Connection[Any],
        application_id: str,
        document: DocumentRecord,
    ) -> None:
        """Append an official document and mark the application completed.

        Raises:
            NotFoundError: if no application with this ID exists.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE applications
                SET official_documents = official_documents || %s,
                    status = 'completed'
                WHERE id = %s
                """,
                (Jsonb([document.to_dict()]), application_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Application {application_id} not found")

    def replace_documents(
        self,
        conn: psycopg.Connection[Any],
        application_id: str,
        documents: list[DocumentRecord],
        official_documents: list[DocumentRecord],
    ) -> None:
        """Overwrite both document lists; used only by the legacy migration."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE applications
                SET documents = %s, official_documents = %s
                WHERE id = %s
                """,
                (
                    _documents_json(documents),
                    _documents_json(official_documents),
                    application_id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Application {application_id} not found")

    def list_ids_with_legacy_documents(self, conn: psycopg.Connection[Any]) -> list[str]:
        with conn.cursor() as cur:
            cur.execute("SELECT a.id FROM applications a" + _LEGACY_FILTER + " ORDER BY a.id")
            rows = cur.fetchall()
        return [row[0] for row in rows]

    def count_with_legacy_documents(self, conn: psycopg.Connection[Any]) -> int:
        with conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM applications a" + _LEGACY_FILTER)
            row = cur.fetchone()
        return int(row[0]) if row else 0

    def count_with_inline_documents(self, conn: psycopg.Connection[Any]) -> int:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT COUNT(*)
                FROM applications a
                WHERE EXISTS (
                    SELECT 1
                    FROM jsonb_array_elements(a.documents || a.official_documents) AS d
                    WHERE d ? 'fileData'
                )
                """
            )
            row = cur.fetchone()
        return int(row[0]) if row else 0
