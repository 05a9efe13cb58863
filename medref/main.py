import argparse
import sys

from medref.config.settings import Settings
from medref.database.connection import Database
from medref.database.repositories.application_repository import ApplicationRepository
from medref.database.schema import apply_schema
from medref.documents.codec import build_codec
from medref.documents.migration import DocumentMigrator
from medref.logging.logger import Log

COMMANDS = ("init-db", "migrate-documents", "migration-status")


def build_migrator(settings: Settings, database: Database) -> DocumentMigrator:
    return DocumentMigrator(
        database=database,
        app_repo=ApplicationRepository(),
        codec=build_codec(settings),
    )


def run_command(command: str, settings: Settings, database: Database) -> int:
    if command == "init-db":
        apply_schema(database)
        return 0
    migrator = build_migrator(settings, database)
    if command == "migration-status":
        status = migrator.migration_status()
        Log.info(
            f"Legacy documents: {status.needs_migration} applications need migration, "
            f"{status.already_migrated} already migrated, {status.total} total"
        )
        return 0
    report = migrator.migrate()
    for error in report.errors:
        Log.warning(error)
    return 1 if report.error_count else 0


def main(argv: list[str] | None = None) -> int:
    """Entry point: load settings -> open pool -> run command -> close pool."""
    parser = argparse.ArgumentParser(prog="medref")
    parser.add_argument("command", choices=COMMANDS)
    args = parser.parse_args(argv)

    settings = Settings()
    Log.configure(settings.log_level)
    database = Database.open(settings)
    try:
        return run_command(args.command, settings, database)
    finally:
        database.close()


if __name__ == "__main__":
    sys.exit(main())
