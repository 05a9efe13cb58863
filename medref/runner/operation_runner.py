from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from medref.exceptions import DomainError, SystemFailure
from medref.logging.logger import Log

GENERIC_FAILURE_MESSAGE = "The service is temporarily unavailable. Please try again."


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one operation as seen by the UI/API boundary."""

    success: bool
    value: Any = None
    error_kind: str | None = None
    message: str | None = None


class OperationRunner:
    """Run one operation, catch exceptions, and classify the failure.

    Domain errors are the caller's to fix and carry their message through.
    Anything else is logged and reported as a generic system failure so the
    process keeps serving other requests.
    """

    def run(
        self,
        name: str,
        operation: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> OperationResult:
        try:
            value = operation(*args, **kwargs)
        except DomainError as exc:
            Log.warning(f"{name} rejected ({exc.kind}): {exc}")
            return OperationResult(success=False, error_kind=exc.kind, message=str(exc))
        except SystemFailure as exc:
            Log.error(f"{name} failed: {exc}")
            return OperationResult(
                success=False,
                error_kind=SystemFailure.kind,
                message=GENERIC_FAILURE_MESSAGE,
            )
        except Exception:
            Log.exception(f"{name} failed unexpectedly")
            return OperationResult(
                success=False,
                error_kind=SystemFailure.kind,
                message=GENERIC_FAILURE_MESSAGE,
            )
        return OperationResult(success=True, value=value)
