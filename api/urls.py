# api/urls.py
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

# Create router and register viewsets
router = DefaultRouter()
router.register(r'donors', views.DonorSearchViewSet, basename='donor')
router.register(r'users', views.UserAdminViewSet, basename='user')
router.register(r'blood-requests', views.BloodRequestViewSet, basename='blood-request')
router.register(r'notifications', views.NotificationViewSet, basename='notification')
router.register(r'posts', views.PostViewSet, basename='post')

app_name = 'api'

urlpatterns = [
    # Must come before the router so it is not read as a notification id
    path('notifications/stream/', views.notification_stream, name='notification-stream'),

    path('', include(router.urls)),

    path('stats/', views.dashboard_stats, name='dashboard-stats'),
]

# Available endpoints:
# GET    /api/donors/?blood_group=&division=&district=   - Search available donors
#
# GET    /api/users/                                      - Admin: list users
# PATCH  /api/users/{id}/                                 - Admin: edit a profile
# POST   /api/users/{id}/verify/                          - Admin: toggle verification
# POST   /api/users/{id}/record_donation/                 - Admin: log a donation
#
# GET    /api/blood-requests/                             - List requests (?status=, ?ordering=severity)
# POST   /api/blood-requests/                             - Post a request (notifies matching donors)
# POST   /api/blood-requests/{id}/fulfill/                - Requester/admin: mark fulfilled
# POST   /api/blood-requests/{id}/renotify/               - Admin: run the donor fan-out again
# DELETE /api/blood-requests/{id}/                        - Requester/admin: delete
#
# GET    /api/notifications/                              - Own notifications (?unread=true)
# GET    /api/notifications/unread_count/                 - Badge count
# POST   /api/notifications/{id}/mark_read/               - Mark one read
# POST   /api/notifications/mark_all_read/                - Mark all read
# GET    /api/notifications/stream/                       - Live state (server-sent events)
#
# GET    /api/posts/  POST /api/posts/                    - Social feed
# POST   /api/posts/{id}/like/                            - Like / unlike
# GET    /api/posts/{id}/comments/  POST ...              - Comments
#
# GET    /api/stats/                                      - Admin dashboard statistics
