"""Unit tests for RequirementService.

Optimistic-concurrency behaviour is exercised with a repository wrapper
that lets another writer update the stored row between load and write.
"""

from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from docsync.domain.requirements import RequirementStatus
from docsync.domain.results import ErrorKind
from docsync.services import RequirementService


class RacingRepository:
    """Delegates to a real repository; a competing writer updates the row on each load."""

    def __init__(self, repository, races: int):
        self.repository = repository
        self.races = races
        self.loads = 0

    def get_by_id(self, requirement_id):
        self.loads += 1
        loaded = self.repository.get_by_id(requirement_id)
        if self.races > 0:
            self.races -= 1
            competitor = self.repository.get_by_id(requirement_id)
            competitor.mark_validated()
            self.repository.update(competitor)
        return loaded

    def update(self, requirement):
        self.repository.update(requirement)

    def get_active_by_client(self, client_id):
        return self.repository.get_active_by_client(client_id)

    def list_open(self):
        return self.repository.list_open()


class TestRequirementServiceQueries:

    def test_get_by_id_not_found(self, requirement_service):
        result = requirement_service.get_by_id(uuid4())

        assert not result.ok
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_get_active_for_client_excludes_terminal(self, requirement_service, make_requirement, acme):
        open_one = make_requirement(days=3)
        closed = make_requirement(days=5)
        requirement_service.cancel(closed.id)

        result = requirement_service.get_active_for_client(acme.id)

        assert result.ok
        assert [r.id for r in result.value] == [open_one.id]

    def test_repository_fault_reported_unavailable(self):
        repository = MagicMock()
        repository.get_active_by_client.side_effect = RuntimeError("connection reset")
        service = RequirementService(repository)

        result = service.get_active_for_client(uuid4())

        assert not result.ok
        assert result.error_kind == ErrorKind.UNAVAILABLE


class TestRequirementServiceTransitions:

    def test_attach_document_persists(self, requirement_service, requirement_repository, make_requirement):
        requirement = make_requirement()

        result = requirement_service.attach_document(requirement.id, "acme/r/invoice.pdf")

        assert result.ok
        stored = requirement_repository.get_by_id(requirement.id)
        assert stored.status == RequirementStatus.RECEIVED
        assert stored.blob_id == "acme/r/invoice.pdf"
        assert stored.version == 1

    def test_rejected_transition_leaves_store_untouched(
        self, requirement_service, requirement_repository, make_requirement
    ):
        requirement = make_requirement()
        requirement_service.cancel(requirement.id)

        result = requirement_service.mark_completed(requirement.id)

        assert not result.ok
        assert result.error_kind == ErrorKind.INVALID_TRANSITION
        stored = requirement_repository.get_by_id(requirement.id)
        assert stored.status == RequirementStatus.CANCELLED
        assert stored.version == 1

    def test_missing_requirement(self, requirement_service):
        result = requirement_service.mark_validated(uuid4())

        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_past_due_date_is_validation_error(self, requirement_service, make_requirement, clock):
        requirement = make_requirement()

        result = requirement_service.update_due_date(requirement.id, clock.now.date() - timedelta(days=1))

        assert result.error_kind == ErrorKind.VALIDATION

    def test_remove_document_resets_completed(self, requirement_service, make_requirement):
        requirement = make_requirement()
        requirement_service.attach_document(requirement.id, "doc.pdf")
        requirement_service.mark_completed(requirement.id)

        result = requirement_service.remove_document(requirement.id)

        assert result.ok
        assert result.value.status == RequirementStatus.PENDING
        assert result.value.blob_id is None


class TestRequirementServiceConcurrency:

    def test_conflict_is_retried_on_fresh_copy(self, requirement_repository, make_requirement):
        requirement = make_requirement()
        racing = RacingRepository(requirement_repository, races=1)
        service = RequirementService(racing, max_attempts=3)

        result = service.attach_document(requirement.id, "acme/r/invoice.pdf")

        assert result.ok
        assert racing.loads == 2
        stored = requirement_repository.get_by_id(requirement.id)
        assert stored.status == RequirementStatus.RECEIVED
        assert stored.version == 2

    def test_gives_up_after_max_attempts(self, requirement_repository, make_requirement):
        requirement = make_requirement()
        racing = RacingRepository(requirement_repository, races=5)
        service = RequirementService(racing, max_attempts=2)

        result = service.attach_document(requirement.id, "acme/r/invoice.pdf")

        assert not result.ok
        assert result.error_kind == ErrorKind.CONFLICT
        assert racing.loads == 2
        stored = requirement_repository.get_by_id(requirement.id)
        assert stored.blob_id is None

    def test_stale_copy_cannot_overwrite(self, requirement_repository, make_requirement):
        from docsync.domain.errors import ConcurrencyConflictError

        requirement = make_requirement()
        first = requirement_repository.get_by_id(requirement.id)
        second = requirement_repository.get_by_id(requirement.id)

        first.attach_document("first.pdf")
        requirement_repository.update(first)
        second.cancel()

        with pytest.raises(ConcurrencyConflictError):
            requirement_repository.update(second)
        assert requirement_repository.get_by_id(requirement.id).blob_id == "first.pdf"
