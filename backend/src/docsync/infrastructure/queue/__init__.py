from .celery_publisher import PROCESS_EMAIL_TASK, CeleryMessagePublisher

__all__ = ["CeleryMessagePublisher", "PROCESS_EMAIL_TASK"]
