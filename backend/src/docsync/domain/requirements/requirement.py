"""Requirement aggregate: one document a client owes by a due date.

The Requirement is the only entity mutated by the intake pipeline. All
status changes go through the transition methods below; persistence adapters
rehydrate stored rows with Requirement.restore() and never poke attributes.

Invariants:
- due_date is a pure date (time of day discarded on create and update)
- COMPLETED and CANCELLED are terminal for every mark_* transition
- blob_id and uploaded_at are both set or both None
- OVERDUE is only entered via mark_overdue() and only left via
  update_due_date() (or remove_document(), which resets everything)
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional, Union
from uuid import UUID, uuid4

from ..errors import InvalidTransitionError, TerminalStateError, ValidationError
from .status import RequirementStatus, is_terminal

Clock = Callable[[], datetime]
DateLike = Union[date, datetime]

SYSTEM_ACTOR = "system"

_NIL_UUID = UUID(int=0)


def utc_now() -> datetime:
    """Default clock: current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_date(value: DateLike) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"Due date must be a date, got {type(value).__name__}")


def _validate_id(value: Optional[UUID], name: str) -> None:
    if value is None or value == _NIL_UUID:
        raise ValidationError(f"{name} is required")


class Requirement:
    """A client's obligation to supply one document of a given type.

    Args:
        client_id: Owning client (required, non-nil)
        document_type_id: Required document type (required, non-nil)
        due_date: Due date; a datetime is truncated to its date
        clock: Callable returning the current UTC datetime (injectable for tests)
        requirement_id: Explicit id, generated when omitted

    Raises:
        ValidationError: If an id is missing or due_date is before today (UTC)

    Example:
        >>> req = Requirement(client_id, invoice_type_id, date(2030, 1, 31))
        >>> req.attach_document("acme/req-1/invoice.pdf")
        >>> req.status
        <RequirementStatus.RECEIVED: 'RECEIVED'>
    """

    def __init__(
        self,
        client_id: UUID,
        document_type_id: UUID,
        due_date: DateLike,
        clock: Optional[Clock] = None,
        requirement_id: Optional[UUID] = None,
    ):
        self._clock = clock or utc_now

        _validate_id(client_id, "Client ID")
        _validate_id(document_type_id, "Document type ID")
        due = _as_date(due_date)
        self._validate_due_date(due)

        self.id = requirement_id or uuid4()
        self.client_id = client_id
        self.document_type_id = document_type_id
        self._due_date = due
        self._status = RequirementStatus.PENDING
        self._blob_id: Optional[str] = None
        self._uploaded_at: Optional[datetime] = None

        self.version = 0
        self.created_at = self._now()
        self.last_modified_at: Optional[datetime] = None
        self.last_modified_by: Optional[str] = None

    @classmethod
    def restore(
        cls,
        *,
        requirement_id: UUID,
        client_id: UUID,
        document_type_id: UUID,
        due_date: DateLike,
        status: RequirementStatus,
        blob_id: Optional[str] = None,
        uploaded_at: Optional[datetime] = None,
        version: int = 0,
        created_at: Optional[datetime] = None,
        last_modified_at: Optional[datetime] = None,
        last_modified_by: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> "Requirement":
        """Rehydrate a stored requirement without creation-time validation.

        Stored requirements may legitimately have a past due date (that is
        what makes them overdue), so the due-date check is skipped here.
        Tests use this to build requirements in any state.

        Raises:
            ValidationError: If blob_id and uploaded_at disagree
        """
        if (blob_id is None) != (uploaded_at is None):
            raise ValidationError("blob_id and uploaded_at must be set together")

        requirement = cls.__new__(cls)
        requirement._clock = clock or utc_now
        requirement.id = requirement_id
        requirement.client_id = client_id
        requirement.document_type_id = document_type_id
        requirement._due_date = _as_date(due_date)
        requirement._status = RequirementStatus(status)
        requirement._blob_id = blob_id
        requirement._uploaded_at = uploaded_at
        requirement.version = version
        requirement.created_at = created_at or requirement._now()
        requirement.last_modified_at = last_modified_at
        requirement.last_modified_by = last_modified_by
        return requirement

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def due_date(self) -> date:
        return self._due_date

    @property
    def status(self) -> RequirementStatus:
        return self._status

    @property
    def blob_id(self) -> Optional[str]:
        return self._blob_id

    @property
    def uploaded_at(self) -> Optional[datetime]:
        return self._uploaded_at

    @property
    def has_document(self) -> bool:
        return self._blob_id is not None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self._status)

    def with_clock(self, clock: Clock) -> "Requirement":
        """Use another clock for subsequent today/now computations."""
        self._clock = clock
        return self

    def mark_received(self) -> None:
        self._transition_to(RequirementStatus.RECEIVED)

    def mark_validated(self) -> None:
        self._transition_to(RequirementStatus.VALIDATED)

    def mark_completed(self) -> None:
        self._transition_to(RequirementStatus.COMPLETED)

    def mark_overdue(self) -> bool:
        """Move to OVERDUE if today (UTC) is past the due date.

        No-op for terminal requirements.

        Returns:
            bool: True if the status changed
        """
        if self.is_terminal or self._status == RequirementStatus.OVERDUE:
            return False

        if self._today() > self._due_date:
            self._status = RequirementStatus.OVERDUE
            self._touch()
            return True
        return False

    def cancel(self) -> None:
        """Cancel the requirement. Cancelling twice is a no-op transition.

        Raises:
            InvalidTransitionError: If the requirement is COMPLETED
        """
        if self._status == RequirementStatus.COMPLETED:
            raise InvalidTransitionError("Cannot cancel completed requirement")

        self._status = RequirementStatus.CANCELLED
        self._touch()

    def update_due_date(self, new_due_date: DateLike) -> None:
        """Move the due date; an OVERDUE requirement goes back to PENDING.

        Raises:
            ValidationError: If the new date is before today (UTC)
            InvalidTransitionError: If the requirement is COMPLETED or CANCELLED
        """
        new_date = _as_date(new_due_date)
        self._validate_due_date(new_date)

        if self.is_terminal:
            raise InvalidTransitionError(
                f"Cannot update due date of {self._status.value.lower()} requirement"
            )

        self._due_date = new_date
        if self._status == RequirementStatus.OVERDUE and new_date >= self._today():
            self._status = RequirementStatus.PENDING
        self._touch()

    def attach_document(self, blob_id: str) -> None:
        """Record an uploaded document and mark the requirement RECEIVED.

        The terminal check runs before any field is touched, so a rejected
        attach leaves the requirement exactly as it was.

        Raises:
            ValidationError: If blob_id is empty
            TerminalStateError: If the requirement is COMPLETED or CANCELLED
        """
        if not blob_id or not blob_id.strip():
            raise ValidationError("Blob ID is required")
        self._ensure_not_terminal()

        self._blob_id = blob_id
        self._uploaded_at = self._now()
        self.mark_received()

    def remove_document(self) -> None:
        """Clear the attached document and reset to PENDING.

        Runs regardless of the current status, COMPLETED included.
        """
        self._blob_id = None
        self._uploaded_at = None
        self._status = RequirementStatus.PENDING
        self._touch()

    def _transition_to(self, target: RequirementStatus) -> None:
        self._ensure_not_terminal()
        self._status = target
        self._touch()

    def _ensure_not_terminal(self) -> None:
        if self.is_terminal:
            raise TerminalStateError(
                f"Cannot change status of {self._status.value.lower()} requirement"
            )

    def _validate_due_date(self, due: date) -> None:
        if due < self._today():
            raise ValidationError("Due date cannot be in the past")

    def _touch(self) -> None:
        self.last_modified_at = self._now()
        self.last_modified_by = SYSTEM_ACTOR

    def _now(self) -> datetime:
        return self._clock()

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    def __repr__(self):
        return (
            f"<Requirement(id={self.id}, client_id={self.client_id}, "
            f"due_date={self._due_date}, status={self._status.value}, "
            f"version={self.version})>"
        )
