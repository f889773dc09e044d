import logging
from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(ConnectionError,), retry_kwargs={'max_retries': 3, 'countdown': 30})
def dispatch_notification(self, event, payload):
    """
    Hand a domain event to the notification service.

    Delivery (SMS, email, push) belongs to the external notification
    collaborator; this task is the single place events leave the core, so it
    only records the event with its payload.
    """
    logger.info(
        "[notification] %s at %s | task=%s | %s",
        event,
        timezone.now().isoformat(),
        self.request.id,
        payload,
    )
    return {
        'event': event,
        'payload': payload,
    }


def notify_on_commit(event, payload):
    """
    Fire-and-forget: enqueue `dispatch_notification` once the surrounding
    transaction commits, so a rolled back operation never notifies anyone.
    """
    if not getattr(settings, 'NOTIFICATIONS_ENABLED', True):
        return
    transaction.on_commit(lambda: dispatch_notification.delay(event, payload))
