from unittest.mock import MagicMock, patch

import pytest

from medref.config.settings import Settings
from medref.documents.migration import MigrationReport, MigrationStatus
from medref.main import main, run_command


class TestRunCommand:
    @patch("medref.main.apply_schema")
    def test_init_db_applies_schema(self, mock_apply: MagicMock) -> None:
        mock_db = MagicMock()

        assert run_command("init-db", Settings(), mock_db) == 0

        mock_apply.assert_called_once_with(mock_db)

    @patch("medref.main.build_migrator")
    def test_migration_status(self, mock_build: MagicMock) -> None:
        mock_build.return_value.migration_status.return_value = MigrationStatus(1, 2)

        assert run_command("migration-status", Settings(), MagicMock()) == 0

        mock_build.return_value.migrate.assert_not_called()

    @patch("medref.main.build_migrator")
    def test_migrate_documents_succeeds(self, mock_build: MagicMock) -> None:
        mock_build.return_value.migrate.return_value = MigrationReport(migrated_count=3)

        assert run_command("migrate-documents", Settings(), MagicMock()) == 0

    @patch("medref.main.build_migrator")
    def test_migrate_documents_reports_errors(self, mock_build: MagicMock) -> None:
        report = MigrationReport()
        report.record_error("old.pdf: File not found")
        mock_build.return_value.migrate.return_value = report

        assert run_command("migrate-documents", Settings(), MagicMock()) == 1


class TestMain:
    @patch("medref.main.run_command", return_value=0)
    @patch("medref.main.Database")
    def test_closes_database(self, mock_database: MagicMock, mock_run: MagicMock) -> None:
        assert main(["init-db"]) == 0

        mock_database.open.return_value.close.assert_called_once()

    @patch("medref.main.run_command", side_effect=RuntimeError("boom"))
    @patch("medref.main.Database")
    def test_closes_database_on_failure(
        self, mock_database: MagicMock, mock_run: MagicMock
    ) -> None:
        with pytest.raises(RuntimeError):
            main(["migrate-documents"])

        mock_database.open.return_value.close.assert_called_once()

    def test_unknown_command_exits(self) -> None:
        with pytest.raises(SystemExit):
            main(["drop-everything"])
