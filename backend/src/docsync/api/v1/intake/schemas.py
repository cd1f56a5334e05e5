"""Intake API schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from ....intake.gateway import IntakeResult


class IntakeResponse(BaseModel):
    """Response body of both webhook endpoints.

    Attributes:
        status: accepted, rejected or failed
        queued: Number of messages handed to the processing queue
        skipped: Notifications ignored by the gateway
        task_ids: Queue ids of the published messages
        reason: Why the request was rejected or failed (optional)
    """

    status: str
    queued: int = 0
    skipped: int = 0
    task_ids: List[str] = Field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def from_result(cls, result: IntakeResult) -> "IntakeResponse":
        return cls(
            status=result.status.value,
            queued=len(result.task_ids),
            skipped=result.skipped,
            task_ids=result.task_ids,
            reason=result.reason,
        )
