"""RequirementStatus lifecycle states.

State flow:
PENDING → RECEIVED → VALIDATED → COMPLETED (terminal)
Side states: OVERDUE (entered only by the overdue sweep), CANCELLED (terminal)

Transition methods only enforce the terminal check; they do not enforce
ordering between the non-terminal states (RECEIVED can go straight to
COMPLETED). This is accepted behaviour.
"""

from enum import Enum
from typing import FrozenSet


class RequirementStatus(str, Enum):
    """Requirement lifecycle status."""
    PENDING = "PENDING"        # Waiting for document
    RECEIVED = "RECEIVED"      # Document attached
    VALIDATED = "VALIDATED"    # Document checked
    COMPLETED = "COMPLETED"    # Fully processed (terminal)
    OVERDUE = "OVERDUE"        # Past due date
    CANCELLED = "CANCELLED"    # No longer needed (terminal)


TERMINAL_STATUSES: FrozenSet[RequirementStatus] = frozenset({
    RequirementStatus.COMPLETED,
    RequirementStatus.CANCELLED,
})

OPEN_STATUSES: FrozenSet[RequirementStatus] = frozenset(
    status for status in RequirementStatus if status not in TERMINAL_STATUSES
)


def is_terminal(status: RequirementStatus) -> bool:
    """Check whether no further status transition is permitted.

    Example:
        >>> is_terminal(RequirementStatus.CANCELLED)
        True
        >>> is_terminal(RequirementStatus.OVERDUE)
        False
    """
    return status in TERMINAL_STATUSES
