import os
from collections.abc import Generator

import pytest

from medref.config.settings import Settings
from medref.database.connection import Database
from medref.database.schema import apply_schema
from medref.exceptions import StorageUnavailableError


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "medref_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_db(test_settings: Settings) -> Generator[Database, None, None]:
    try:
        database = Database.open(test_settings)
    except StorageUnavailableError as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env")
    try:
        apply_schema(database)
        yield database
    finally:
        database.close()


@pytest.fixture
def database(integration_db: Database) -> Generator[Database, None, None]:
    yield integration_db
    with integration_db.transaction() as conn:
        conn.execute("TRUNCATE archives, applications")
