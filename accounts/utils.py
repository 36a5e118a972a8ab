import logging

from notifications.models import Notification
from notifications.services import create_notification

logger = logging.getLogger(__name__)


def set_verification(profile, verified):
    """
    Set the verified badge on a profile.
    Turning it on tells the user with an admin notification.
    Returns True if the flag actually changed.
    """
    if profile.is_verified == verified:
        return False

    profile.is_verified = verified
    profile.save(update_fields=['is_verified', 'updated_at'])

    if verified:
        create_notification(
            profile.user_id,
            'Account Verified',
            'Your account has been verified by an administrator.',
            Notification.TYPE_ADMIN,
            '/profile',
        )
    logger.info(f"Profile {profile.pk} verified={verified}")
    return True
