# notifications/services.py
"""
Minting notifications and fanning a blood request out to matching donors.

Every notification in the system is created through create_notification.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, IntegerField, OuterRef, Subquery, Value
from django.db.models.functions import Coalesce

from accounts.models import UserProfile
from algorithms.blood_groups import is_valid_blood_group
from algorithms.geography import is_known_district
from notifications.feed import FeedEvent, feed
from notifications.models import Notification

logger = logging.getLogger(__name__)

User = get_user_model()

REQUEST_TITLE = 'Emergency Blood Request'
REQUESTS_LINK = '/requests'


def create_notification(user_id, title, body, type, link=None):
    """
    Append one unread notification for a user.

    No content validation and no merging: the same arguments twice give two
    records. A failed write is logged and None is returned; it never raises.
    """
    try:
        with transaction.atomic():
            return Notification.objects.create(
                user_id=user_id,
                title=title,
                body=body,
                type=type,
                link=link or None,
                is_read=False,
            )
    except Exception:
        logger.exception(f"Error creating notification for user {user_id}")
        return None


def find_matching_donors(blood_group, district):
    """
    Donors for a request: role donor, available, and exactly the same blood
    group and district. No cross-group compatibility and no nearby districts.
    """
    return UserProfile.objects.filter(
        user__role=User.ROLE_DONOR,
        is_available=True,
        blood_group=blood_group,
        district=district,
    )


def matching_donor_count():
    """
    Matching donor count of each BloodRequest row, as a subquery for
    annotating a whole list page in one query.
    """
    counts = (
        find_matching_donors(OuterRef('blood_group'), OuterRef('district'))
        .order_by()
        .values('blood_group')
        .annotate(total=Count('id'))
        .values('total')
    )
    return Coalesce(Subquery(counts, output_field=IntegerField()), Value(0))


def request_link(request_id):
    return f'{REQUESTS_LINK}?request={request_id}'


def notify_matching_donors(blood_group, district, request_id):
    """
    Send one 'request' notification to every matching donor.

    The donor lookup finishes before any write. Each write stands alone, so
    one failure is logged and the rest still go out; nothing already written
    is rolled back. Never raises. Returns how many notifications were written.
    """
    if not is_valid_blood_group(blood_group) or not district or not is_known_district(district):
        logger.warning(f"Not notifying donors for request {request_id}: bad blood group/district {blood_group!r}/{district!r}")
        return 0

    try:
        donor_user_ids = list(
            find_matching_donors(blood_group, district).values_list('user_id', flat=True)
        )
    except Exception:
        logger.exception(f"Error looking up donors for request {request_id}")
        return 0

    body = f'A new {blood_group} blood request has been posted in {district}.'
    link = request_link(request_id)

    delivered = 0
    for user_id in donor_user_ids:
        if create_notification(user_id, REQUEST_TITLE, body, Notification.TYPE_REQUEST, link) is not None:
            delivered += 1

    failed = len(donor_user_ids) - delivered
    if failed:
        logger.warning(f"Request {request_id}: {failed} of {len(donor_user_ids)} donor notifications failed")
    logger.info(f"{delivered} donors notified for request {request_id} ({blood_group}, {district})")
    return delivered


def mark_read(notification):
    """Idempotent; re-marking a read notification is a no-op"""
    return notification.mark_read()


def mark_all_read(user_id):
    """Mark every unread notification of a user read; returns how many changed"""
    with transaction.atomic():
        updated = Notification.objects.for_user(user_id).unread().update(is_read=True)
        # queryset.update skips post_save; one event covers the whole batch
        if updated:
            feed.publish_on_commit(FeedEvent(FeedEvent.UPDATED, None, user_id))
    return updated


def unread_count(user_id):
    return Notification.objects.for_user(user_id).unread().count()
