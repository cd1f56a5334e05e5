from .client import GraphApiError, GraphClient, GraphConfig
from .mail_source import GraphMailSource
from .subscriptions import GraphSubscriptionManager, RenewalReport

__all__ = [
    "GraphApiError",
    "GraphClient",
    "GraphConfig",
    "GraphMailSource",
    "GraphSubscriptionManager",
    "RenewalReport",
]
