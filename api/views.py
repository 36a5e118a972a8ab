# api/views.py
import json
import logging
import queue

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.serializers.json import DjangoJSONEncoder
from django.http import StreamingHttpResponse
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes, renderer_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.response import Response

from accounts.decorators import IsAdminRole, IsOwnerOrAdmin
from accounts.models import UserProfile
from accounts.serializers import AdminUserProfileSerializer, DonorSearchSerializer
from accounts.utils import set_verification
from algorithms.priority import sort_by_severity
from blood_requests.models import BloodRequest
from blood_requests.serializers import BloodRequestSerializer
from notifications import services as notification_services
from notifications.feed import LiveNotifications
from notifications.models import Notification
from notifications.serializers import NotificationSerializer
from social.models import Post
from social.serializers import CommentSerializer, PostSerializer
from social.utils import add_comment, toggle_like

logger = logging.getLogger(__name__)

User = get_user_model()


def _truthy(value):
    return str(value).lower() in ('1', 'true', 'yes', 'on')


# ============================================
# DONOR SEARCH
# ============================================
class DonorSearchViewSet(viewsets.ReadOnlyModelViewSet):
    """Available donors, filtered by exact blood group / division / district"""
    serializer_class = DonorSearchSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = UserProfile.objects.filter(
            user__role=User.ROLE_DONOR,
            is_available=True,
        ).select_related('user').order_by('-is_verified', '-donation_count', 'id')

        for field in ('blood_group', 'division', 'district'):
            value = self.request.query_params.get(field)
            if value and value != 'all':
                queryset = queryset.filter(**{field: value})
        return queryset


# ============================================
# ADMIN: USERS
# ============================================
class UserAdminViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       viewsets.GenericViewSet):
    """Admin console user list with verification control"""
    queryset = UserProfile.objects.select_related('user').order_by('-created_at')
    serializer_class = AdminUserProfileSerializer
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get_queryset(self):
        queryset = super().get_queryset()
        role = self.request.query_params.get('role')
        if role and role != 'all':
            queryset = queryset.filter(user__role=role)
        return queryset

    @action(detail=True, methods=['post'])
    def verify(self, request, pk=None):
        """Toggle verification, or set it with {"is_verified": bool}"""
        profile = self.get_object()
        if 'is_verified' in request.data:
            verified = _truthy(request.data['is_verified'])
        else:
            verified = not profile.is_verified
        set_verification(profile, verified)
        return Response(self.get_serializer(profile).data)

    @action(detail=True, methods=['post'])
    def record_donation(self, request, pk=None):
        profile = self.get_object()
        profile.record_donation()
        return Response(self.get_serializer(profile).data)


# ============================================
# BLOOD REQUESTS
# ============================================
class BloodRequestViewSet(viewsets.ModelViewSet):
    """
    Anyone signed in can post a request. Only the requester or an admin can
    fulfil or delete it. Requests are not edited after posting.
    """
    queryset = BloodRequest.objects.select_related('requester').order_by('-created_at')
    serializer_class = BloodRequestSerializer
    permission_classes = [IsAuthenticated, IsOwnerOrAdmin]
    owner_field = 'requester'
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = super().get_queryset().annotate(matching_donors=notification_services.matching_donor_count())
        params = self.request.query_params
        for field in ('status', 'blood_group', 'district', 'emergency_level'):
            value = params.get(field)
            if value and value != 'all':
                queryset = queryset.filter(**{field: value})
        if _truthy(params.get('mine', '')):
            queryset = queryset.filter(requester=self.request.user)
        return queryset

    def list(self, request, *args, **kwargs):
        if request.query_params.get('ordering') != 'severity':
            return super().list(request, *args, **kwargs)
        ranked = sort_by_severity(self.get_queryset())
        page = self.paginate_queryset(ranked)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(ranked, many=True).data)

    def perform_create(self, serializer):
        user = self.request.user
        profile = getattr(user, 'profile', None)
        blood_request = serializer.save(
            requester=user,
            requester_name=(profile.name if profile and profile.name else user.username),
        )
        logger.info(f"BloodRequest #{blood_request.id} ({blood_request.blood_group}, {blood_request.district}) posted by {user.username}")

    def perform_destroy(self, instance):
        logger.info(f"BloodRequest #{instance.id} deleted by {self.request.user.username}")
        instance.delete()

    @action(detail=True, methods=['post'])
    def fulfill(self, request, pk=None):
        blood_request = self.get_object()
        changed = blood_request.fulfill()
        if changed:
            logger.info(f"BloodRequest #{blood_request.id} fulfilled by {request.user.username}")
        return Response(self.get_serializer(blood_request).data)

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsAdminRole])
    def renotify(self, request, pk=None):
        """Run the donor fan-out again now. Donors already notified get a duplicate."""
        blood_request = self.get_object()
        if not blood_request.is_open:
            return Response({'error': 'Request is already fulfilled'}, status=status.HTTP_400_BAD_REQUEST)

        delivered = notification_services.notify_matching_donors(blood_request.blood_group, blood_request.district, blood_request.id)
        return Response({
            'message': f'Notified {delivered} donor(s)',
            'notified_count': delivered,
        })


# ============================================
# NOTIFICATIONS
# ============================================
class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """The signed-in user's own notifications, newest first"""
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.for_user(self.request.user.id)
        if _truthy(self.request.query_params.get('unread', '')):
            queryset = queryset.unread()
        return queryset

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        notification_services.mark_read(notification)
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        updated = notification_services.mark_all_read(request.user.id)
        return Response({
            'updated': updated,
            'unread_count': notification_services.unread_count(request.user.id),
        })

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        return Response({'unread_count': notification_services.unread_count(request.user.id)})


class EventStreamRenderer(BaseRenderer):
    media_type = 'text/event-stream'
    format = 'event-stream'
    charset = 'utf-8'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        return data


def _sse(state):
    return f"event: notifications\ndata: {json.dumps(state, cls=DjangoJSONEncoder)}\n\n"


def notification_event_stream(user_id, heartbeat=None, limit=None):
    """
    Server-sent events for one user's live notification state.
    The subscription lives exactly as long as the generator: closing it
    (the response being closed) releases it.

    Feed events only wake the stream; the state is recomputed here, once per
    wake-up however many events arrived. Every heartbeat also re-reads the
    database, so writes whose events never reached this process still show up.
    """
    heartbeat = heartbeat or settings.NOTIFICATION_STREAM_HEARTBEAT
    wake = queue.Queue(maxsize=1)

    def on_change(view):
        try:
            wake.put_nowait(True)
        except queue.Full:
            pass  # a wake-up is already pending

    live = LiveNotifications(user_id, limit=limit, on_change=on_change, defer=True)
    live.start()
    try:
        last_sent = _sse(live.state())
        yield last_sent
        while True:
            try:
                wake.get(timeout=heartbeat)
            except queue.Empty:
                pass
            message = _sse(live.refresh())
            if message == last_sent:
                yield ': keep-alive\n\n'
                continue
            last_sent = message
            yield message
    finally:
        live.stop()
        logger.debug(f"Notification stream closed for user {user_id}")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@renderer_classes([JSONRenderer, EventStreamRenderer])
def notification_stream(request):
    response = StreamingHttpResponse(
        notification_event_stream(request.user.id),
        content_type='text/event-stream',
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


# ============================================
# SOCIAL FEED
# ============================================
class PostViewSet(viewsets.ModelViewSet):
    queryset = Post.objects.select_related('author').order_by('-created_at')
    serializer_class = PostSerializer
    permission_classes = [IsAuthenticated, IsOwnerOrAdmin]
    owner_field = 'author'
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def perform_create(self, serializer):
        serializer.save(author=self.request.user)

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated])
    def like(self, request, pk=None):
        post = self.get_object()
        liked = toggle_like(post, request.user)
        return Response({'liked': liked, 'like_count': post.likes.count()})

    @action(detail=True, methods=['get', 'post'], permission_classes=[IsAuthenticated])
    def comments(self, request, pk=None):
        post = self.get_object()
        if request.method == 'POST':
            serializer = CommentSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            comment = add_comment(post, request.user, serializer.validated_data['content'])
            return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)

        return Response(CommentSerializer(post.comments.select_related('author'), many=True).data)


# ============================================
# ADMIN DASHBOARD
# ============================================
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_stats(request):
    """Get dashboard statistics"""
    return Response({
        'total_users': User.objects.count(),
        'active_donors': UserProfile.objects.filter(
            user__role=User.ROLE_DONOR,
            is_available=True,
        ).count(),
        'open_requests': BloodRequest.objects.filter(status=BloodRequest.STATUS_OPEN).count(),
        'fulfilled_requests': BloodRequest.objects.filter(status=BloodRequest.STATUS_FULFILLED).count(),
        'total_posts': Post.objects.count(),
    })
