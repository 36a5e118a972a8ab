from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'notifications'

    def ready(self):
        from django.conf import settings

        from notifications import signals  # noqa: F401
        from notifications.feed import RedisFeedRelay, feed

        url = getattr(settings, 'NOTIFICATION_FEED_REDIS_URL', '')
        if url and feed.relay is None:
            feed.use_relay(RedisFeedRelay(url, feed))
