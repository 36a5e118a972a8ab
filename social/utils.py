import logging

from django.db import transaction
from django.db.models import F

from notifications.models import Notification
from notifications.services import create_notification
from social.models import Comment

logger = logging.getLogger(__name__)


def _display_name(user):
    profile = getattr(user, 'profile', None)
    return (profile.name if profile and profile.name else None) or user.username


def toggle_like(post, user):
    """
    Like or unlike a post. Returns True if the post is now liked.
    Every like of someone else's post notifies the author, even a
    repeat like after an unlike.
    """
    if post.likes.filter(pk=user.pk).exists():
        post.likes.remove(user)
        return False

    post.likes.add(user)
    if post.author_id != user.pk:
        create_notification(
            post.author_id,
            'New Like',
            f'{_display_name(user)} liked your post.',
            Notification.TYPE_SOCIAL,
            f'/feed?post={post.pk}',
        )
    return True


@transaction.atomic
def add_comment(post, user, content):
    comment = Comment.objects.create(post=post, author=user, content=content)
    type(post).objects.filter(pk=post.pk).update(comment_count=F('comment_count') + 1)
    post.refresh_from_db(fields=['comment_count'])

    if post.author_id != user.pk:
        create_notification(
            post.author_id,
            'New Comment',
            f'{_display_name(user)} commented on your post.',
            Notification.TYPE_SOCIAL,
            f'/feed?post={post.pk}',
        )
    logger.info(f"Comment #{comment.pk} added to post #{post.pk}")
    return comment
