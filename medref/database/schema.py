from medref.database.connection import Database
from medref.logging.logger import Log

ACTIVE_APPLICATION_INDEX = "applications_one_active_per_service"
APPLICATION_NUMBER_KEY = "applications_application_number_key"
ARCHIVE_APPLICATION_KEY = "archives_application_id_key"
ARCHIVE_NUMBER_KEY = "archives_archive_number_key"

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS applications (
        id                     TEXT PRIMARY KEY,
        application_number     TEXT NOT NULL,
        applicant_id           TEXT NOT NULL,
        service_id             TEXT NOT NULL,
        service_name           TEXT NOT NULL,
        service_category       TEXT,
        full_name              TEXT NOT NULL,
        phone_number           TEXT NOT NULL,
        region                 TEXT NOT NULL,
        district               TEXT,
        medical_reason         TEXT NOT NULL,
        other_medical_reason   TEXT,
        reason_for_application TEXT NOT NULL,
        documents              JSONB NOT NULL DEFAULT '[]'::jsonb,
        official_documents     JSONB NOT NULL DEFAULT '[]'::jsonb,
        status                 TEXT NOT NULL DEFAULT 'pending',
        submitted_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        reviewed_at            TIMESTAMPTZ,
        reviewed_by            TEXT,
        review_notes           TEXT,
        CONSTRAINT applications_application_number_key UNIQUE (application_number),
        CONSTRAINT applications_status_check CHECK (
            status IN ('pending', 'under_review', 'approved', 'rejected', 'completed')
        )
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS applications_one_active_per_service
        ON applications (applicant_id, service_id)
        WHERE status IN ('pending', 'under_review', 'approved')
    """,
    """
    CREATE INDEX IF NOT EXISTS applications_applicant_idx
        ON applications (applicant_id, submitted_at DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS archives (
        id                     TEXT PRIMARY KEY,
        application_id         TEXT NOT NULL REFERENCES applications (id),
        patient_name           TEXT NOT NULL,
        patient_phone          TEXT NOT NULL,
        patient_region         TEXT NOT NULL,
        patient_district       TEXT,
        service_type           TEXT NOT NULL,
        medical_service        TEXT NOT NULL,
        referral_reason        TEXT NOT NULL,
        notes                  TEXT,
        official_document_path TEXT NOT NULL,
        archive_number         TEXT NOT NULL,
        archived_by            TEXT NOT NULL,
        archived_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT archives_application_id_key UNIQUE (application_id),
        CONSTRAINT archives_archive_number_key UNIQUE (archive_number)
    )
    """,
)


def apply_schema(database: Database) -> None:
    """Create tables and constraints if they do not exist yet."""
    with database.transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
    Log.info("Schema applied: applications, archives")
