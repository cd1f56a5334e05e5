from .gateway import IntakeGateway, IntakeResult, IntakeStatus
from .graph_notifications import ChangeNotification, ChangeNotificationCollection

__all__ = [
    "ChangeNotification",
    "ChangeNotificationCollection",
    "IntakeGateway",
    "IntakeResult",
    "IntakeStatus",
]
