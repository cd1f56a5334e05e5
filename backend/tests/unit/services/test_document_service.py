"""Unit tests for DocumentService."""

from io import BytesIO
from uuid import uuid4

from docsync.domain.requirements import RequirementStatus
from docsync.domain.results import ErrorKind


class TestUploadForRequirement:

    def test_upload_then_attach(self, document_service, storage, requirement_repository, make_requirement, acme):
        requirement = make_requirement()

        result = document_service.upload_for_requirement(requirement, BytesIO(b"%PDF"), "invoice.pdf")

        assert result.ok
        assert result.value == f"{acme.id}/{requirement.id}/invoice.pdf"
        assert storage.uploads == [("invoice.pdf", acme.id, requirement.id, b"%PDF")]
        stored = requirement_repository.get_by_id(requirement.id)
        assert stored.status == RequirementStatus.RECEIVED
        assert stored.blob_id == result.value

    def test_storage_failure_leaves_requirement_pending(
        self, document_service, storage, requirement_repository, make_requirement
    ):
        requirement = make_requirement()
        storage.fail_for.add("invoice.pdf")

        result = document_service.upload_for_requirement(requirement, BytesIO(b"%PDF"), "invoice.pdf")

        assert not result.ok
        assert result.error_kind == ErrorKind.STORAGE
        assert requirement_repository.get_by_id(requirement.id).status == RequirementStatus.PENDING

    def test_requirement_cancelled_after_matching(
        self, document_service, requirement_service, make_requirement
    ):
        requirement = make_requirement()
        requirement_service.cancel(requirement.id)

        result = document_service.upload_for_requirement(requirement, BytesIO(b"%PDF"), "invoice.pdf")

        assert not result.ok
        assert result.error_kind == ErrorKind.INVALID_TRANSITION


class TestDocumentQueries:

    def test_status_without_document(self, document_service, make_requirement):
        requirement = make_requirement()

        result = document_service.get_document_status(requirement.id)

        assert result.ok
        assert result.value.has_document is False
        assert result.value.requirement_status == RequirementStatus.PENDING

    def test_status_with_document(self, document_service, make_requirement, clock):
        requirement = make_requirement()
        document_service.upload_for_requirement(requirement, BytesIO(b"%PDF"), "invoice.pdf")

        result = document_service.get_document_status(requirement.id)

        assert result.value.has_document is True
        assert result.value.uploaded_at == clock.now

    def test_status_unknown_requirement(self, document_service):
        assert document_service.get_document_status(uuid4()).error_kind == ErrorKind.NOT_FOUND

    def test_access_url(self, document_service, make_requirement):
        requirement = make_requirement()
        tracking_id = document_service.upload_for_requirement(
            requirement, BytesIO(b"%PDF"), "invoice.pdf"
        ).value

        result = document_service.get_temporary_access_url(requirement.id)

        assert result.ok
        assert tracking_id in result.value

    def test_access_url_without_document(self, document_service, make_requirement):
        requirement = make_requirement()

        result = document_service.get_temporary_access_url(requirement.id)

        assert result.error_kind == ErrorKind.NOT_FOUND
