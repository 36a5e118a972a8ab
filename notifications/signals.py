# notifications/signals.py
"""
Forward committed Notification changes to the live feed
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from notifications.feed import FeedEvent, feed
from notifications.models import Notification


@receiver(post_save, sender=Notification)
def publish_saved_notification(sender, instance, created, **kwargs):
    kind = FeedEvent.CREATED if created else FeedEvent.UPDATED
    feed.publish_on_commit(FeedEvent(kind, instance.pk, instance.user_id))


@receiver(post_delete, sender=Notification)
def publish_deleted_notification(sender, instance, **kwargs):
    feed.publish_on_commit(FeedEvent(FeedEvent.DELETED, instance.pk, instance.user_id))
