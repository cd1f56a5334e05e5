"""Requirement service - lifecycle operations on persisted requirements.

Loads a requirement, applies one state-machine transition and writes it back
with an optimistic-concurrency check. Expected outcomes (missing requirement,
rejected transition, lost race) come back as Result values; repository faults
propagate.
"""

import logging
from datetime import date
from typing import Callable, List, Optional
from uuid import UUID

from ..domain.errors import ConcurrencyConflictError, DocSyncError
from ..domain.requirements import Requirement
from ..domain.ports import RequirementRepositoryPort
from ..domain.results import ErrorKind, Result
from ..observability.metrics import concurrency_conflicts_total, requirement_transitions_total

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class RequirementService:
    """Service for requirement lifecycle operations.

    Usage:
        service = RequirementService(repository)
        result = service.mark_validated(requirement_id)
        if not result.ok:
            logger.warning(f"Validation rejected: {result.message}")
    """

    def __init__(
        self,
        repository: RequirementRepositoryPort,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.repository = repository
        self.max_attempts = max(1, max_attempts)

    def get_by_id(self, requirement_id: UUID) -> Result[Requirement]:
        requirement = self.repository.get_by_id(requirement_id)
        if requirement is None:
            return Result.failure(
                ErrorKind.NOT_FOUND, f"Requirement {requirement_id} not found"
            )
        return Result.success(requirement)

    def get_active_for_client(self, client_id: UUID) -> Result[List[Requirement]]:
        """Open (non-terminal) requirements of a client.

        A repository fault is reported as UNAVAILABLE so the caller can decide
        to retry the whole message.
        """
        try:
            requirements = self.repository.get_active_by_client(client_id)
        except Exception as e:
            logger.error(
                f"Failed to load open requirements for client {client_id}: {e}",
                extra={"client_id": client_id},
                exc_info=True,
            )
            return Result.failure(ErrorKind.UNAVAILABLE, str(e))

        return Result.success([r for r in requirements if not r.is_terminal])

    def attach_document(self, requirement_id: UUID, blob_id: str) -> Result[Requirement]:
        return self._apply(
            requirement_id, lambda r: r.attach_document(blob_id), "attach_document"
        )

    def mark_validated(self, requirement_id: UUID) -> Result[Requirement]:
        return self._apply(requirement_id, lambda r: r.mark_validated(), "mark_validated")

    def mark_completed(self, requirement_id: UUID) -> Result[Requirement]:
        return self._apply(requirement_id, lambda r: r.mark_completed(), "mark_completed")

    def cancel(self, requirement_id: UUID) -> Result[Requirement]:
        return self._apply(requirement_id, lambda r: r.cancel(), "cancel")

    def update_due_date(self, requirement_id: UUID, new_due_date: date) -> Result[Requirement]:
        return self._apply(
            requirement_id, lambda r: r.update_due_date(new_due_date), "update_due_date"
        )

    def remove_document(self, requirement_id: UUID) -> Result[Requirement]:
        return self._apply(requirement_id, lambda r: r.remove_document(), "remove_document")

    def _apply(
        self,
        requirement_id: UUID,
        action: Callable[[Requirement], None],
        operation: str,
    ) -> Result[Requirement]:
        """Load, mutate and conditionally write a requirement.

        On a version conflict the requirement is reloaded and the action is
        applied again to the fresh copy, up to max_attempts times.
        """
        last_conflict: Optional[ConcurrencyConflictError] = None

        for attempt in range(1, self.max_attempts + 1):
            requirement = self.repository.get_by_id(requirement_id)
            if requirement is None:
                return Result.failure(
                    ErrorKind.NOT_FOUND, f"Requirement {requirement_id} not found"
                )

            previous_status = requirement.status
            try:
                action(requirement)
                self.repository.update(requirement)
            except ConcurrencyConflictError as e:
                last_conflict = e
                concurrency_conflicts_total.inc()
                logger.info(
                    f"{operation} on requirement {requirement_id} lost a race "
                    f"(attempt {attempt}/{self.max_attempts}), reloading",
                    extra={"requirement_id": requirement_id},
                )
                continue
            except DocSyncError as e:
                logger.warning(
                    f"{operation} rejected for requirement {requirement_id}: {e}",
                    extra={"requirement_id": requirement_id},
                )
                return Result.from_error(e)

            if requirement.status != previous_status:
                requirement_transitions_total.labels(status=requirement.status.value).inc()
                logger.info(
                    f"Requirement {requirement_id}: {previous_status.value} -> "
                    f"{requirement.status.value}",
                    extra={"requirement_id": requirement_id},
                )
            return Result.success(requirement)

        logger.warning(
            f"{operation} on requirement {requirement_id} gave up after "
            f"{self.max_attempts} conflicting attempts",
            extra={"requirement_id": requirement_id},
        )
        return Result.from_error(last_conflict)
