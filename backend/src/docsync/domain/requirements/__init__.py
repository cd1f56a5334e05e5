"""Requirement lifecycle domain: state machine and matching policy."""

from .matching import EarliestDueMatchingPolicy, MatchingPolicy
from .requirement import SYSTEM_ACTOR, Clock, Requirement, utc_now
from .status import OPEN_STATUSES, TERMINAL_STATUSES, RequirementStatus, is_terminal

__all__ = [
    "Clock",
    "EarliestDueMatchingPolicy",
    "MatchingPolicy",
    "OPEN_STATUSES",
    "Requirement",
    "RequirementStatus",
    "SYSTEM_ACTOR",
    "TERMINAL_STATUSES",
    "is_terminal",
    "utc_now",
]
