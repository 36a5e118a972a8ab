# notifications/models.py
from django.conf import settings
from django.db import models


class NotificationQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def unread(self):
        return self.filter(is_read=False)


class Notification(models.Model):
    """
    One in-app message for one user.

    Records are append-only: nothing merges or replaces them, and the only
    field that ever changes after creation is is_read (False -> True).
    """
    TYPE_REQUEST = 'request'
    TYPE_MATCH = 'match'
    TYPE_SOCIAL = 'social'
    TYPE_ADMIN = 'admin'

    TYPE_CHOICES = [
        (TYPE_REQUEST, 'Blood Request'),
        (TYPE_MATCH, 'Donor Match'),
        (TYPE_SOCIAL, 'Social'),
        (TYPE_ADMIN, 'Admin'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    title = models.CharField(max_length=255)
    body = models.TextField()
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    is_read = models.BooleanField(default=False)
    link = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    def __str__(self):
        return f"Notification → {self.user} | {self.title}"

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notif_user_read_idx'),
            models.Index(fields=['user', '-created_at'], name='notif_user_created_idx'),
        ]

    def mark_read(self):
        """
        Flip to read. Already-read notifications are left alone.
        Returns True if the row changed.
        """
        if self.is_read:
            return False
        self.is_read = True
        self.save(update_fields=['is_read'])
        return True
