"""Scheduled maintenance tasks.

Tasks:
- requirements.overdue_sweep: hourly, marks past-due open requirements OVERDUE
- graph.renew_subscriptions: every 2 hours, extends expiring Graph subscriptions
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from celery import shared_task

from ..config import settings
from ..domain.errors import ConcurrencyConflictError, NotFoundError
from ..domain.ports import RequirementRepositoryPort
from ..domain.requirements import Clock
from ..infrastructure.graph import GraphApiError, GraphSubscriptionManager
from ..observability.metrics import requirement_transitions_total

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    checked: int = 0
    marked_overdue: int = 0
    conflicts: int = 0


def run_overdue_sweep(
    repository: RequirementRepositoryPort,
    clock: Optional[Clock] = None,
) -> SweepReport:
    """Mark every open requirement past its due date as OVERDUE.

    Only requirements whose status actually changed are written. A
    requirement changed concurrently (conflict) or deleted meanwhile is
    skipped; the next sweep picks it up again.

    Args:
        repository: Requirement repository
        clock: Clock deciding "today" (defaults to each requirement's own)

    Returns:
        SweepReport: Counters for logging
    """
    report = SweepReport()

    for requirement in repository.list_open():
        report.checked += 1
        if clock is not None:
            requirement.with_clock(clock)

        if not requirement.mark_overdue():
            continue

        try:
            repository.update(requirement)
        except (ConcurrencyConflictError, NotFoundError) as e:
            report.conflicts += 1
            logger.info(
                f"Skipped overdue update of requirement {requirement.id}: {e}",
                extra={"requirement_id": requirement.id},
            )
            continue

        report.marked_overdue += 1
        requirement_transitions_total.labels(status=requirement.status.value).inc()

    logger.info(
        f"Overdue sweep: {report.marked_overdue} marked overdue, "
        f"{report.checked} checked, {report.conflicts} skipped on conflict"
    )
    return report


@shared_task(name="requirements.overdue_sweep", bind=True)
def overdue_sweep_task(self) -> Dict[str, Any]:
    """Hourly overdue sweep over the database."""
    from ..database import get_session_factory
    from ..infrastructure.persistence import SqlAlchemyRequirementRepository

    repository = SqlAlchemyRequirementRepository(get_session_factory())
    report = run_overdue_sweep(repository)
    return {
        "status": "completed",
        "checked": report.checked,
        "marked_overdue": report.marked_overdue,
        "conflicts": report.conflicts,
    }


async def renew_subscriptions(manager: GraphSubscriptionManager, window: timedelta) -> Dict[str, Any]:
    try:
        report = await manager.renew_expiring(window)
    finally:
        await manager.client.aclose()

    return {
        "status": "completed" if not report.failed else "partial",
        "checked": report.checked,
        "renewed": report.renewed,
        "failed": report.failed,
    }


@shared_task(name="graph.renew_subscriptions", bind=True)
def renew_subscriptions_task(self) -> Dict[str, Any]:
    """Extend Graph subscriptions expiring within GRAPH_RENEWAL_WINDOW_HOURS."""
    from ..dependencies import build_subscription_manager

    try:
        manager = build_subscription_manager(settings)
    except ValueError as e:
        logger.info(f"Graph subscription renewal skipped: {e}")
        return {"status": "skipped", "reason": str(e)}

    try:
        return asyncio.run(
            renew_subscriptions(manager, timedelta(hours=settings.GRAPH_RENEWAL_WINDOW_HOURS))
        )
    except GraphApiError as e:
        logger.error(f"Graph subscription renewal failed: {e}", exc_info=True)
        return {"status": "failed", "error": str(e)}
