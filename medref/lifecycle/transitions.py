from abc import ABC, abstractmethod
from typing import ClassVar

from medref.config.settings import Settings
from medref.exceptions import InvalidStateError
from medref.lifecycle.models import ApplicationStatus


class TransitionPolicy(ABC):
    """Contract for deciding which review transitions are legal."""

    name: ClassVar[str]

    @abstractmethod
    def allowed_targets(self, current: ApplicationStatus) -> frozenset[ApplicationStatus]:
        """Statuses a reviewer may move an application to from ``current``."""

    def check(self, current: ApplicationStatus, target: ApplicationStatus) -> None:
        """Raises:
        InvalidStateError: if ``target`` is not reachable from ``current``.
        """
        if target not in self.allowed_targets(current):
            raise InvalidStateError(
                f"Cannot move application from '{current}' to '{target}'"
            )


class PermissiveTransitionPolicy(TransitionPolicy):
    """Any status may follow any status."""

    name = "permissive"

    def allowed_targets(self, current: ApplicationStatus) -> frozenset[ApplicationStatus]:
        return frozenset(ApplicationStatus)


class StrictTransitionPolicy(TransitionPolicy):
    """Forward-only graph; rejected and completed are terminal.

    Completion happens through official-document issuance, not review.
    Re-recording the current status is always allowed.
    """

    name = "strict"

    GRAPH: ClassVar[dict[ApplicationStatus, frozenset[ApplicationStatus]]] = {
        ApplicationStatus.PENDING: frozenset(
            {ApplicationStatus.UNDER_REVIEW, ApplicationStatus.REJECTED}
        ),
        ApplicationStatus.UNDER_REVIEW: frozenset(
            {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
        ),
        ApplicationStatus.APPROVED: frozenset({ApplicationStatus.REJECTED}),
        ApplicationStatus.REJECTED: frozenset(),
        ApplicationStatus.COMPLETED: frozenset(),
    }

    def allowed_targets(self, current: ApplicationStatus) -> frozenset[ApplicationStatus]:
        return self.GRAPH[current] | {current}


class TransitionPolicyFactory:
    """Creates the transition policy selected in settings."""

    @classmethod
    def create(cls, settings: Settings) -> TransitionPolicy:
        if settings.strict_status_transitions:
            return StrictTransitionPolicy()
        return PermissiveTransitionPolicy()
