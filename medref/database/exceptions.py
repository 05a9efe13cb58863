import psycopg


class IdentifierConflictError(Exception):
    """Raised when an insert collides with an already allocated human-readable number."""


def constraint_name(exc: psycopg.Error) -> str | None:
    """Name of the constraint a database error was raised for, if any."""
    return getattr(exc.diag, "constraint_name", None)
