# blood_requests/tasks.py
"""
Celery tasks for donor notifications
"""
from celery import shared_task

from notifications.services import notify_matching_donors


@shared_task
def notify_matching_donors_task(blood_group, district, request_id):
    """
    Notify every available donor with the same blood group in the same
    district. Called right after a BloodRequest is committed.
    """
    delivered = notify_matching_donors(blood_group, district, request_id)
    return f"Notified {delivered} donor(s) for request {request_id}"
