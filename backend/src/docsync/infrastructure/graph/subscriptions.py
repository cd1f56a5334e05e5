"""Graph subscription management.

Graph delivers change notifications only while a subscription is alive.
Mail subscriptions live at most ~3 days, so a periodic task renews every
subscription that expires within the renewal window.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .client import GraphApiError, GraphClient

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_graph_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.0000000Z")


_FRACTION = re.compile(r"\.(\d+)")


def _parse_graph_datetime(value: str) -> datetime:
    # Graph sends 0 to 7 fractional digits; fromisoformat before 3.11 wants exactly 3 or 6
    trimmed = value[:-1] + "+00:00" if value.endswith("Z") else value
    trimmed = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), trimmed, count=1)
    parsed = datetime.fromisoformat(trimmed)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class RenewalReport:
    renewed: List[str]
    failed: List[str]
    checked: int


class GraphSubscriptionManager:
    """Creates and renews the "created messages" subscription of a mailbox.

    Args:
        client: Authenticated Graph client
        mailbox: Watched mailbox (UPN or user id)
        notification_url: Public URL of POST /api/v1/webhooks/graph
        client_state: Secret Graph echoes in every notification
        ttl_minutes: Requested subscription lifetime
        clock: Returns the current aware UTC datetime
    """

    def __init__(
        self,
        client: GraphClient,
        mailbox: str,
        notification_url: str,
        client_state: Optional[str],
        ttl_minutes: int = 4200,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.client = client
        self.mailbox = mailbox
        self.notification_url = notification_url
        self.client_state = client_state
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock

    @property
    def resource(self) -> str:
        return f"users/{self.mailbox}/messages"

    async def create(self) -> Dict[str, Any]:
        """Create a subscription for new messages in the mailbox.

        Graph validates notification_url synchronously by POSTing a
        validationToken to it, so the API must be reachable first.
        """
        body = {
            "changeType": "created",
            "notificationUrl": self.notification_url,
            "resource": self.resource,
            "expirationDateTime": _format_graph_datetime(self.clock() + self.ttl),
        }
        if self.client_state:
            body["clientState"] = self.client_state

        subscription = await self.client.post_json("/subscriptions", body)
        logger.info(
            f"Created Graph subscription {subscription.get('id')} for {self.resource}, "
            f"expires {subscription.get('expirationDateTime')}"
        )
        return subscription

    async def renew_expiring(self, window: timedelta) -> RenewalReport:
        """Extend every subscription of this deployment expiring within window.

        Subscriptions pointing at another notification URL are left alone.
        A failed renewal is logged and reported; the others still run.
        """
        now = self.clock()
        listing = await self.client.get_json("/subscriptions")
        subscriptions = [
            s for s in listing.get("value", [])
            if s.get("notificationUrl") == self.notification_url
        ]

        report = RenewalReport(renewed=[], failed=[], checked=len(subscriptions))
        for subscription in subscriptions:
            subscription_id = subscription.get("id")
            raw_expiry = subscription.get("expirationDateTime")
            try:
                expires_at = _parse_graph_datetime(raw_expiry or "")
            except ValueError:
                logger.warning(
                    f"Graph subscription {subscription_id} has unreadable expirationDateTime {raw_expiry!r}"
                )
                report.failed.append(subscription_id)
                continue
            if expires_at > now + window:
                continue

            try:
                await self.client.patch_json(
                    f"/subscriptions/{subscription_id}",
                    {"expirationDateTime": _format_graph_datetime(now + self.ttl)},
                )
            except GraphApiError as e:
                logger.error(f"Failed to renew Graph subscription {subscription_id}: {e}")
                report.failed.append(subscription_id)
                continue

            logger.info(f"Renewed Graph subscription {subscription_id} (was expiring {expires_at})")
            report.renewed.append(subscription_id)

        return report
