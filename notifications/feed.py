# notifications/feed.py
"""
Live notification feed.

A hub that turns Notification writes into per-user events, and the derived
"badge + list" view a client keeps up to date from them.

    with LiveNotifications(user.id, on_change=redraw) as live:
        ...  # live.unread_count / live.notifications stay current

Inside one process the hub delivers events directly. With
NOTIFICATION_FEED_REDIS_URL set, events are published to Redis instead and
every web process relays them to its own subscribers, so a write made in a
Celery worker reaches a stream served by a gunicorn worker.
"""
import json
import logging
import threading
from collections import defaultdict, namedtuple

import redis
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)

CHANNEL = 'lifeshare:notifications'


class FeedEvent(namedtuple('FeedEvent', ['kind', 'notification_id', 'user_id'])):
    """notification_id is None when the event covers several of the user's notifications"""
    __slots__ = ()

    CREATED = 'created'
    UPDATED = 'updated'
    DELETED = 'deleted'

    def to_json(self):
        return json.dumps(self._asdict())

    @classmethod
    def from_json(cls, raw):
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        data = json.loads(raw)
        return cls(data['kind'], data.get('notification_id'), data['user_id'])


class Subscription:
    """Handle returned by NotificationFeed.subscribe"""

    def __init__(self, feed, user_id, callback):
        self._feed = feed
        self.user_id = user_id
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        """
        Stop delivery right away. Only the first call releases anything;
        later calls return False.
        """
        return self._feed._release(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.unsubscribe()


class RedisFeedRelay:
    """
    Carries feed events between processes over one Redis pub/sub channel.

    send() is used by writers. The listener thread is only started once a
    process actually has a subscriber, so Celery workers never open one.
    """

    def __init__(self, url, feed, channel=CHANNEL, client=None):
        self.url = url
        self.feed = feed
        self.channel = channel
        self.client = client or redis.Redis.from_url(url)
        self._pubsub = None
        self._thread = None
        self._lock = threading.Lock()

    def send(self, event):
        self.client.publish(self.channel, event.to_json())

    def ensure_listening(self):
        with self._lock:
            if self._thread is not None:
                return
            self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
            self._pubsub.subscribe(**{self.channel: self.handle_message})
            self._thread = self._pubsub.run_in_thread(sleep_time=1.0, daemon=True)
        logger.info(f"Listening for feed events on {self.channel}")

    def handle_message(self, message):
        try:
            event = FeedEvent.from_json(message['data'])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Dropping malformed feed message: {message!r}")
            return
        self.feed.publish(event)

    def close(self):
        with self._lock:
            thread, self._thread = self._thread, None
            pubsub, self._pubsub = self._pubsub, None
        if thread is not None:
            thread.stop()
        if pubsub is not None:
            pubsub.close()


class NotificationFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = defaultdict(list)
        self.relay = None

    def use_relay(self, relay):
        self.relay = relay
        if self.subscriber_count():
            relay.ensure_listening()

    def subscribe(self, user_id, callback):
        subscription = Subscription(self, user_id, callback)
        with self._lock:
            self._subscribers[user_id].append(subscription)
        if self.relay is not None:
            self.relay.ensure_listening()
        logger.debug(f"Feed subscription opened for user {user_id}")
        return subscription

    def _release(self, subscription):
        with self._lock:
            if not subscription.active:
                return False
            subscription.active = False
            subscribers = self._subscribers.get(subscription.user_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.user_id, None)
        logger.debug(f"Feed subscription closed for user {subscription.user_id}")
        return True

    def subscriber_count(self, user_id=None):
        with self._lock:
            if user_id is not None:
                return len(self._subscribers.get(user_id, []))
            return sum(len(subs) for subs in self._subscribers.values())

    def publish(self, event):
        """Deliver an event to this process's subscribers of the target user"""
        with self._lock:
            targets = list(self._subscribers.get(event.user_id, []))

        for subscription in targets:
            # may have been cancelled by an earlier callback
            if not subscription.active:
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(f"Feed subscriber for user {event.user_id} failed on {event.kind}")

    def broadcast(self, event):
        """
        Send an event to every process. Without a relay that is just this one.
        If Redis is unreachable the event is still delivered locally; streams in
        other processes catch up on their next heartbeat.
        """
        if self.relay is None:
            self.publish(event)
            return
        try:
            self.relay.send(event)
        except redis.RedisError:
            logger.exception(f"Could not relay {event.kind} event for user {event.user_id}")
            self.publish(event)

    def publish_on_commit(self, event):
        """Broadcast once the current transaction commits (immediately outside one)"""
        transaction.on_commit(lambda: self.broadcast(event))


feed = NotificationFeed()


class LiveNotifications:
    """
    A user's derived notification state: unread badge count and the newest
    notifications. Recomputed from a fresh snapshot, so applying the same
    change twice lands on the same state.

    With defer=True an event only marks the view stale and calls on_change;
    the owner calls refresh() from its own thread when it is ready.
    """

    def __init__(self, user_id, feed=feed, limit=None, on_change=None, defer=False):
        self.user_id = user_id
        self.limit = limit or settings.NOTIFICATION_FEED_LIMIT
        self.on_change = on_change
        self.defer = defer
        self.stale = False
        self.unread_count = 0
        self.notifications = []
        self._feed = feed
        self._subscription = None

    @property
    def active(self):
        return self._subscription is not None and self._subscription.active

    def start(self):
        if self.active:
            return self
        self._subscription = self._feed.subscribe(self.user_id, self._on_event)
        self.refresh()
        return self

    def stop(self):
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return False
        return subscription.unsubscribe()

    def refresh(self):
        from notifications.models import Notification

        self.stale = False
        mine = Notification.objects.for_user(self.user_id)
        self.notifications = list(mine[:self.limit])
        self.unread_count = mine.unread().count()
        return self.state()

    def state(self):
        from notifications.serializers import NotificationSerializer

        return {
            'unread_count': self.unread_count,
            'notifications': NotificationSerializer(self.notifications, many=True).data,
        }

    def _on_event(self, event):
        if self.defer:
            self.stale = True
        else:
            self.refresh()
        if self.on_change is not None:
            self.on_change(self)

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc_info):
        self.stop()
