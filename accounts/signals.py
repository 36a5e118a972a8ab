# accounts/signals.py
"""
Every account gets its profile the moment the account is created
"""
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from accounts.models import CustomUser, UserProfile

logger = logging.getLogger(__name__)


@receiver(post_save, sender=CustomUser)
def create_profile_for_new_user(sender, instance, created, **kwargs):
    if not created:
        return
    _, made = UserProfile.objects.get_or_create(
        user=instance,
        defaults={'name': instance.get_full_name() or instance.username},
    )
    if made:
        logger.info(f"Profile created for {instance.username}")
