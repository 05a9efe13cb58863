from typing import Any
from unittest.mock import MagicMock

from medref.database.repositories.application_repository import ApplicationRepository
from medref.documents.migration import DocumentMigrator, MigrationReport, MigrationStatus
from medref.documents.models import InlinePayload
from medref.exceptions import DataIntegrityError, DocumentUnavailableError
from medref.lifecycle.models import ApplicationStatus
from tests.factories import (
    FIXED_NOW,
    make_application,
    make_inline_record,
    make_legacy_record,
    mock_database,
)


def _make_migrator() -> tuple[DocumentMigrator, MagicMock, MagicMock, MagicMock]:
    mock_db, mock_conn = mock_database()
    mock_repo = MagicMock()
    mock_codec = MagicMock()
    mock_codec.encode.return_value = "JVBERi0="
    migrator = DocumentMigrator(database=mock_db, app_repo=mock_repo, codec=mock_codec)
    return migrator, mock_repo, mock_codec, mock_conn


class TestMigrationStatus:
    def test_counts(self) -> None:
        migrator, mock_repo, _codec, _conn = _make_migrator()
        mock_repo.count_with_legacy_documents.return_value = 2
        mock_repo.count_with_inline_documents.return_value = 5

        status = migrator.migration_status()

        assert status == MigrationStatus(needs_migration=2, already_migrated=5)
        assert status.total == 7


class TestMigrationReport:
    def test_keeps_first_ten_messages(self) -> None:
        report = MigrationReport()
        for n in range(12):
            report.record_error(f"error {n}")

        assert report.error_count == 12
        assert len(report.errors) == 10


class TestMigrate:
    def test_rewrites_legacy_documents_inline(self) -> None:
        migrator, mock_repo, mock_codec, mock_conn = _make_migrator()
        inline = make_inline_record("already.pdf")
        mock_repo.list_ids_with_legacy_documents.return_value = ["app-1"]
        mock_repo.find_by_id.return_value = make_application(
            status=ApplicationStatus.COMPLETED,
            documents=[inline],
            official_documents=[make_legacy_record()],
        )
        mock_codec.decode.return_value = b"%PDF-"

        report = migrator.migrate()

        assert report.migrated_count == 1
        assert report.error_count == 0
        conn, app_id, documents, official = mock_repo.replace_documents.call_args.args
        assert conn is mock_conn
        assert app_id == "app-1"
        assert documents == [inline]
        assert official[0].payload == InlinePayload(data="JVBERi0=")
        assert official[0].file_name == "old.pdf"

    def test_missing_file_is_reported_and_record_kept(self) -> None:
        migrator, mock_repo, mock_codec, _conn = _make_migrator()
        mock_repo.list_ids_with_legacy_documents.return_value = ["app-1"]
        mock_repo.find_by_id.return_value = make_application(
            official_documents=[make_legacy_record()]
        )
        mock_codec.decode.side_effect = DocumentUnavailableError("File not found: x")

        report = migrator.migrate()

        assert report.migrated_count == 0
        assert report.error_count == 1
        assert "old.pdf" in report.errors[0]
        mock_repo.replace_documents.assert_not_called()

    def test_broken_application_does_not_stop_the_run(self) -> None:
        migrator, mock_repo, mock_codec, _conn = _make_migrator()
        mock_repo.list_ids_with_legacy_documents.return_value = ["app-1", "app-2"]
        mock_repo.find_by_id.side_effect = [
            DataIntegrityError("both payloads"),
            make_application(application_id="app-2", documents=[make_legacy_record()]),
        ]
        mock_codec.decode.return_value = b"%PDF-"

        report = migrator.migrate()

        assert report.migrated_count == 1
        assert report.error_count == 1
        assert report.errors[0].startswith("Application app-1")
        mock_repo.replace_documents.assert_called_once()

    def test_vanished_application_is_skipped(self) -> None:
        migrator, mock_repo, _codec, _conn = _make_migrator()
        mock_repo.list_ids_with_legacy_documents.return_value = ["app-1"]
        mock_repo.find_by_id.return_value = None

        report = migrator.migrate()

        assert report.migrated_count == 0
        assert report.error_count == 0
        mock_repo.replace_documents.assert_not_called()

    def test_record_without_timestamp_does_not_stop_the_run(self) -> None:
        mock_db, mock_conn = mock_database()
        mock_cursor = MagicMock()
        mock_cursor.rowcount = 1
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        undated = make_legacy_record().to_dict()
        del undated["uploadedAt"]
        mock_cursor.fetchall.return_value = [("app-1",), ("app-2",)]
        mock_cursor.fetchone.side_effect = [
            _stored_row("app-1", undated),
            _stored_row("app-2", make_legacy_record().to_dict()),
        ]
        mock_codec = MagicMock()
        mock_codec.decode.return_value = b"%PDF-"
        mock_codec.encode.return_value = "JVBERi0="
        migrator = DocumentMigrator(
            database=mock_db, app_repo=ApplicationRepository(), codec=mock_codec
        )

        report = migrator.migrate()

        assert report.migrated_count == 1
        assert report.error_count == 1
        assert report.errors[0].startswith("Application app-1")
        assert "upload timestamp" in report.errors[0]


def _stored_row(application_id: str, official_document: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": application_id,
        "application_number": "APP-1700000000000-0042",
        "applicant_id": "user-1",
        "service_id": "service-1",
        "service_name": "Medical Referral Letter",
        "service_category": None,
        "full_name": "Amina Yusuf",
        "phone_number": "634123456",
        "region": "Marodijeh",
        "district": None,
        "medical_reason": "Cardiac Diseases",
        "other_medical_reason": None,
        "reason_for_application": "Surgery abroad",
        "documents": [],
        "official_documents": [official_document],
        "status": "completed",
        "submitted_at": FIXED_NOW,
        "reviewed_at": None,
        "reviewed_by": None,
        "review_notes": None,
        "archived": False,
    }
