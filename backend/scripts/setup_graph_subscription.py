#!/usr/bin/env python3
"""Create or renew the Microsoft Graph subscription for the intake mailbox.

Usage:
    # Create a subscription for newly created messages
    python scripts/setup_graph_subscription.py create

    # Renew subscriptions expiring within GRAPH_RENEWAL_WINDOW_HOURS
    python scripts/setup_graph_subscription.py renew

Environment Variables:
    GRAPH_TENANT_ID, GRAPH_CLIENT_ID, GRAPH_CLIENT_SECRET: App credentials
    GRAPH_MAILBOX: Mailbox to watch
    GRAPH_NOTIFICATION_URL: Public URL of POST /api/v1/webhooks/graph
    GRAPH_CLIENT_STATE: Secret echoed in notifications (recommended)
"""

import argparse
import asyncio
import sys
from datetime import timedelta

from docsync.config import get_settings
from docsync.dependencies import build_subscription_manager
from docsync.infrastructure.graph import GraphApiError
from docsync.observability.logging_config import configure_logging
from docsync.workers.maintenance import renew_subscriptions


async def create(manager):
    try:
        subscription = await manager.create()
    finally:
        await manager.client.aclose()
    print(f"Subscription {subscription.get('id')} expires {subscription.get('expirationDateTime')}")


async def renew(manager, window: timedelta):
    result = await renew_subscriptions(manager, window)
    print(
        f"Checked {result['checked']}, renewed {len(result['renewed'])}, "
        f"failed {len(result['failed'])}"
    )
    if result["failed"]:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description='Manage the DocuSync Graph subscription')
    parser.add_argument('action', choices=['create', 'renew'])
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=False)

    try:
        manager = build_subscription_manager(settings)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        if args.action == 'create':
            asyncio.run(create(manager))
        else:
            asyncio.run(renew(manager, timedelta(hours=settings.GRAPH_RENEWAL_WINDOW_HOURS)))
    except GraphApiError as e:
        print(f"ERROR: Graph request failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
