# blood_requests/signals.py
"""
Signals to notify matching donors when a blood request is created
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from blood_requests.models import BloodRequest
from blood_requests.tasks import notify_matching_donors_task

logger = logging.getLogger(__name__)


@receiver(post_save, sender=BloodRequest)
def auto_notify_matching_donors(sender, instance, created, **kwargs):
    """
    Queue the donor fan-out once the new request is committed.
    The request itself is saved whatever happens to the fan-out.
    """
    if not (created and instance.is_open):
        return

    blood_group, district, request_id = instance.blood_group, instance.district, instance.pk

    def enqueue():
        try:
            notify_matching_donors_task.delay(blood_group, district, request_id)
        except Exception:
            logger.exception(f"Could not queue donor fan-out for BloodRequest #{request_id}")
        else:
            logger.info(f"Donor fan-out queued for BloodRequest #{request_id}")

    transaction.on_commit(enqueue)
