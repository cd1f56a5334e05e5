"""Domain error taxonomy for DocuSync.

Every error raised by the domain layer or by a gateway adapter derives from
DocSyncError so callers can tell expected domain failures apart from
infrastructure faults.

Categories:
- NotFoundError: unknown sender, missing requirement (skip and log)
- ValidationError: bad blob id, past due date (rejected, no state change)
- InvalidTransitionError / TerminalStateError: rejected transition
- ConcurrencyConflictError: optimistic-concurrency version mismatch
- DocumentUploadError / TransientStorageError: storage gateway faults
- ForwardingError / TransientForwardingError: forwarding gateway faults
- MailSourceError / PublishError: intake gateway faults
"""


class DocSyncError(Exception):
    """Base exception for all DocuSync domain and gateway errors."""
    pass


class NotFoundError(DocSyncError):
    """A referenced entity (client, requirement, document) does not exist."""
    pass


class ValidationError(DocSyncError):
    """An operation was called with invalid input. No state was changed."""
    pass


class InvalidTransitionError(DocSyncError):
    """A requirement status transition is not allowed from the current state."""
    pass


class TerminalStateError(InvalidTransitionError):
    """The requirement is COMPLETED or CANCELLED and can no longer change status."""
    pass


class ConcurrencyConflictError(DocSyncError):
    """A conditional write failed because the stored version moved on."""

    def __init__(self, entity_id, expected_version: int):
        super().__init__(
            f"Version conflict on {entity_id}: expected version {expected_version}"
        )
        self.entity_id = entity_id
        self.expected_version = expected_version


class DocumentUploadError(DocSyncError):
    """The document storage gateway failed to persist or expose a document."""
    pass


class TransientStorageError(DocumentUploadError):
    """Storage failed for a reason that may succeed later (timeout, connection)."""
    pass


class ForwardingError(DocSyncError):
    """The forwarding gateway failed to relay a document."""
    pass


class TransientForwardingError(ForwardingError):
    """Forwarding failed for a reason that may succeed later (timeout, connection)."""
    pass


class MailSourceError(DocSyncError):
    """The mail source could not deliver a referenced mail item."""
    pass


class PublishError(DocSyncError):
    """A canonical message could not be published to the durable queue."""
    pass
