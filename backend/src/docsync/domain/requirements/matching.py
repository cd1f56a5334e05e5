"""Matching policy: which open requirement an incoming attachment satisfies.

The shipped policy is deliberately simple: the earliest-due open requirement
of the sending client wins. It does not look at the attachment itself.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional
from uuid import UUID

from .requirement import Requirement

logger = logging.getLogger(__name__)


class MatchingPolicy(ABC):
    """Selects at most one requirement for an incoming attachment.

    Implementations must:
    - never return a terminal (COMPLETED/CANCELLED) requirement
    - be deterministic for a fixed input set
    - return None when nothing matches (not raise)
    """

    @abstractmethod
    def select(
        self,
        client_id: UUID,
        requirements: Iterable[Requirement],
        file_name: Optional[str] = None,
    ) -> Optional[Requirement]:
        """Pick the requirement that should receive the attachment.

        Args:
            client_id: Resolved client of the sender
            requirements: Candidate requirements (normally the client's open ones)
            file_name: Attachment filename, available to smarter policies

        Returns:
            Optional[Requirement]: Selected requirement or None for "no match"
        """
        pass


class EarliestDueMatchingPolicy(MatchingPolicy):
    """Earliest-due open requirement of the client.

    Order: due_date ascending, then created_at ascending, then id, so two
    requirements sharing a due date and creation time still sort the same
    way on every call.
    """

    def select(
        self,
        client_id: UUID,
        requirements: Iterable[Requirement],
        file_name: Optional[str] = None,
    ) -> Optional[Requirement]:
        candidates = [
            requirement
            for requirement in requirements
            if requirement.client_id == client_id and not requirement.is_terminal
        ]
        if not candidates:
            return None

        candidates.sort(key=lambda r: (r.due_date, r.created_at, str(r.id)))
        selected = candidates[0]

        logger.debug(
            f"Matched attachment {file_name!r} to requirement {selected.id} "
            f"(due {selected.due_date}, {len(candidates)} candidates)"
        )
        return selected
