from unittest import mock

import pytest
from django.db import DatabaseError, connection
from django.test.utils import CaptureQueriesContext
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import CustomUser
from blood_requests.models import BloodRequest
from notifications.models import Notification
from notifications.services import create_notification
from social.models import Post

pytestmark = pytest.mark.django_db


REQUEST_PAYLOAD = {
    'blood_group': 'B+',
    'emergency_level': 'critical',
    'hospital_name': 'Dhaka Medical College Hospital',
    'division': 'Dhaka',
    'district': 'Dhaka',
    'contact_phone': '01700000000',
}


def results(response):
    data = response.data
    return data['results'] if isinstance(data, dict) and 'results' in data else data


def make_request(user, **overrides):
    fields = {**REQUEST_PAYLOAD, **overrides}
    return BloodRequest.objects.create(requester=user, requester_name=user.username, **fields)


# ============================================
# ACCOUNTS
# ============================================
class TestAccounts:
    def test_register_creates_filled_profile(self, api_client):
        response = api_client.post('/accounts/register/', {
            'username': 'rahim',
            'email': 'rahim@example.com',
            'password': 'long-enough-pw',
            'role': 'donor',
            'name': 'Rahim Uddin',
            'phone': '01711111111',
            'blood_group': 'O+',
            'division': 'Khulna',
            'district': 'Khulna',
        }, format='json')

        assert response.status_code == 201
        assert response.data['user']['blood_group'] == 'O+'
        assert response.data['user']['role'] == 'donor'
        assert response.data['user']['is_available'] is True
        assert 'access' in response.data['tokens']

    def test_register_rejects_district_outside_division(self, api_client):
        response = api_client.post('/accounts/register/', {
            'username': 'karim',
            'email': 'karim@example.com',
            'password': 'long-enough-pw',
            'name': 'Karim',
            'phone': '01722222222',
            'blood_group': 'A+',
            'division': 'Sylhet',
            'district': 'Dhaka',
        }, format='json')

        assert response.status_code == 400
        assert 'district' in response.data

    def test_register_cannot_self_assign_admin(self, api_client):
        response = api_client.post('/accounts/register/', {
            'username': 'sneaky',
            'email': 'sneaky@example.com',
            'password': 'long-enough-pw',
            'role': 'admin',
            'name': 'Sneaky',
            'phone': '01733333333',
            'blood_group': 'A+',
            'division': 'Dhaka',
            'district': 'Dhaka',
        }, format='json')

        assert response.status_code == 400

    def test_login_token_carries_role(self, api_client, donor):
        response = api_client.post('/accounts/token/', {
            'username': donor.username,
            'password': 's3cret-pass',
        }, format='json')

        assert response.status_code == 200
        assert AccessToken(response.data['access'])['role'] == 'donor'

    def test_toggle_availability_is_donor_only(self, auth_client, donor, receiver):
        response = auth_client(donor).post('/accounts/profile/availability/', {'is_available': False}, format='json')
        assert response.status_code == 200
        donor.profile.refresh_from_db()
        assert donor.profile.is_available is False

        assert auth_client(receiver).post('/accounts/profile/availability/').status_code == 403

    def test_record_my_donation(self, auth_client, donor):
        response = auth_client(donor).post('/accounts/profile/donations/', {'date': '2026-01-10'}, format='json')

        assert response.status_code == 200
        assert response.data['donation_count'] == 1
        assert response.data['last_donation_date'] == '2026-01-10'

    def test_profile_patch_cannot_self_verify(self, auth_client, donor):
        response = auth_client(donor).patch('/accounts/profile/', {'is_verified': True, 'upazila': 'Mirpur'}, format='json')

        assert response.status_code == 200
        assert response.data['is_verified'] is False
        assert response.data['upazila'] == 'Mirpur'


# ============================================
# DONOR SEARCH
# ============================================
class TestDonorSearch:
    def test_filters_are_exact_and_skip_unavailable(self, auth_client, make_user, receiver):
        match = make_user(blood_group='AB+', district='Cumilla', division='Chattogram')
        make_user(blood_group='AB+', district='Cumilla', division='Chattogram', is_available=False)
        make_user(blood_group='AB-', district='Cumilla', division='Chattogram')

        response = auth_client(receiver).get('/api/donors/', {'blood_group': 'AB+', 'district': 'Cumilla'})

        assert response.status_code == 200
        assert [row['user'] for row in results(response)] == [match.id]

    def test_requires_login(self, api_client):
        assert api_client.get('/api/donors/').status_code == 401


# ============================================
# BLOOD REQUESTS
# ============================================
class TestBloodRequests:
    def test_posting_a_request_notifies_matching_donors(self, auth_client, receiver, make_user,
                                                        django_capture_on_commit_callbacks):
        d1 = make_user(blood_group='B+', district='Dhaka')
        make_user(blood_group='B+', district='Chattogram', division='Chattogram')
        make_user(blood_group='B+', district='Dhaka', is_available=False)

        with django_capture_on_commit_callbacks(execute=True):
            response = auth_client(receiver).post('/api/blood-requests/', REQUEST_PAYLOAD, format='json')

        assert response.status_code == 201
        assert response.data['status'] == 'open'
        assert response.data['requester'] == receiver.id
        assert response.data['matching_donors_count'] == 1

        notifications = list(Notification.objects.all())
        assert [n.user_id for n in notifications] == [d1.id]
        assert notifications[0].link == f"/requests?request={response.data['id']}"

    def test_request_is_saved_even_if_donor_lookup_fails(self, auth_client, receiver, donor,
                                                         django_capture_on_commit_callbacks):
        with mock.patch('notifications.services.find_matching_donors', side_effect=DatabaseError('down')):
            with django_capture_on_commit_callbacks(execute=True):
                response = auth_client(receiver).post('/api/blood-requests/', REQUEST_PAYLOAD, format='json')

        assert response.status_code == 201
        assert BloodRequest.objects.filter(pk=response.data['id']).exists()
        assert Notification.objects.count() == 0

    def test_request_is_saved_even_if_queueing_fails(self, auth_client, receiver, donor,
                                                     django_capture_on_commit_callbacks):
        with mock.patch('blood_requests.signals.notify_matching_donors_task') as task:
            task.delay.side_effect = OSError('broker down')
            with django_capture_on_commit_callbacks(execute=True):
                response = auth_client(receiver).post('/api/blood-requests/', REQUEST_PAYLOAD, format='json')

        assert response.status_code == 201
        assert BloodRequest.objects.count() == 1

    def test_invalid_district_rejected(self, auth_client, receiver):
        payload = {**REQUEST_PAYLOAD, 'district': 'Sylhet'}
        response = auth_client(receiver).post('/api/blood-requests/', payload, format='json')

        assert response.status_code == 400

    def test_status_cannot_be_set_on_create(self, auth_client, receiver):
        payload = {**REQUEST_PAYLOAD, 'status': 'fulfilled'}
        response = auth_client(receiver).post('/api/blood-requests/', payload, format='json')

        assert response.status_code == 201
        assert response.data['status'] == 'open'

    def test_only_requester_or_admin_can_fulfill(self, auth_client, receiver, donor, admin_user):
        blood_request = make_request(receiver)
        url = f'/api/blood-requests/{blood_request.id}/fulfill/'

        assert auth_client(donor).post(url).status_code == 403
        response = auth_client(receiver).post(url)
        assert response.status_code == 200
        assert response.data['status'] == 'fulfilled'

        # fulfilled is terminal; fulfilling again changes nothing
        assert auth_client(admin_user).post(url).data['status'] == 'fulfilled'

    def test_only_requester_or_admin_can_delete(self, auth_client, receiver, donor, admin_user):
        first = make_request(receiver)
        second = make_request(receiver)

        assert auth_client(donor).delete(f'/api/blood-requests/{first.id}/').status_code == 403
        assert auth_client(receiver).delete(f'/api/blood-requests/{first.id}/').status_code == 204
        assert auth_client(admin_user).delete(f'/api/blood-requests/{second.id}/').status_code == 204
        assert BloodRequest.objects.count() == 0

    def test_requests_are_not_editable(self, auth_client, receiver):
        blood_request = make_request(receiver)
        response = auth_client(receiver).patch(f'/api/blood-requests/{blood_request.id}/', {'note': 'x'}, format='json')

        assert response.status_code == 405

    def test_list_filters_and_severity_ordering(self, auth_client, receiver, donor):
        normal = make_request(receiver, emergency_level='normal')
        critical = make_request(receiver, emergency_level='critical')
        make_request(donor, emergency_level='urgent', blood_group='A+').fulfill()

        client = auth_client(receiver)
        open_ids = [row['id'] for row in results(client.get('/api/blood-requests/', {'status': 'open', 'ordering': 'severity'}))]
        mine = results(client.get('/api/blood-requests/', {'mine': 'true'}))

        assert open_ids == [critical.id, normal.id]
        assert {row['id'] for row in mine} == {normal.id, critical.id}

    def test_list_counts_matching_donors_without_a_query_per_row(self, auth_client, receiver, make_user):
        make_user(blood_group='B+', district='Dhaka')
        make_user(blood_group='B+', district='Dhaka')
        make_request(receiver)
        client = auth_client(receiver)

        with CaptureQueriesContext(connection) as one_row:
            response = client.get('/api/blood-requests/')
        assert [row['matching_donors_count'] for row in results(response)] == [2]

        make_request(receiver, blood_group='A+')
        for _ in range(3):
            make_request(receiver)
        with CaptureQueriesContext(connection) as five_rows:
            response = client.get('/api/blood-requests/')

        assert sorted(row['matching_donors_count'] for row in results(response)) == [0, 2, 2, 2, 2]
        assert len(five_rows.captured_queries) == len(one_row.captured_queries)

    def test_admin_renotify_sends_duplicates(self, auth_client, receiver, admin_user, donor):
        blood_request = make_request(receiver)
        url = f'/api/blood-requests/{blood_request.id}/renotify/'

        assert auth_client(receiver).post(url).status_code == 403

        client = auth_client(admin_user)
        assert client.post(url).data['notified_count'] == 1
        assert client.post(url).data['notified_count'] == 1
        assert Notification.objects.filter(user=donor).count() == 2

        blood_request.fulfill()
        assert client.post(url).status_code == 400


# ============================================
# NOTIFICATIONS
# ============================================
class TestNotificationsApi:
    def test_list_shows_only_own_notifications(self, auth_client, donor, receiver):
        mine = create_notification(donor.id, 'mine', 'b', Notification.TYPE_ADMIN)
        theirs = create_notification(receiver.id, 'theirs', 'b', Notification.TYPE_ADMIN)

        client = auth_client(donor)
        response = client.get('/api/notifications/')

        assert [row['id'] for row in results(response)] == [mine.id]
        assert client.get(f'/api/notifications/{theirs.id}/').status_code == 404
        assert client.post(f'/api/notifications/{theirs.id}/mark_read/').status_code == 404

    def test_unread_count_and_mark_read(self, auth_client, donor):
        first = create_notification(donor.id, 'a', 'b', Notification.TYPE_REQUEST)
        create_notification(donor.id, 'c', 'd', Notification.TYPE_REQUEST)
        client = auth_client(donor)

        assert client.get('/api/notifications/unread_count/').data == {'unread_count': 2}

        assert client.post(f'/api/notifications/{first.id}/mark_read/').data['is_read'] is True
        assert client.post(f'/api/notifications/{first.id}/mark_read/').status_code == 200
        assert client.get('/api/notifications/unread_count/').data == {'unread_count': 1}
        assert len(results(client.get('/api/notifications/', {'unread': 'true'}))) == 1

    def test_mark_all_read(self, auth_client, donor):
        for _ in range(3):
            create_notification(donor.id, 'a', 'b', Notification.TYPE_REQUEST)

        response = auth_client(donor).post('/api/notifications/mark_all_read/')

        assert response.data == {'updated': 3, 'unread_count': 0}

    def test_notifications_cannot_be_created_through_the_api(self, auth_client, donor):
        response = auth_client(donor).post('/api/notifications/', {'title': 'x'}, format='json')

        assert response.status_code == 405

    def test_stream_endpoint(self, auth_client, donor, api_client):
        response = auth_client(donor).get('/api/notifications/stream/')

        assert response.status_code == 200
        assert response['Content-Type'] == 'text/event-stream'
        assert response['Cache-Control'] == 'no-cache'
        response.close()

        assert api_client.get('/api/notifications/stream/').status_code == 401


# ============================================
# ADMIN
# ============================================
class TestAdminApi:
    def test_verify_sends_admin_notification(self, auth_client, admin_user, donor):
        url = f'/api/users/{donor.profile.id}/verify/'

        response = auth_client(admin_user).post(url, {'is_verified': True}, format='json')

        assert response.status_code == 200
        assert response.data['is_verified'] is True
        notification = Notification.objects.get(user=donor)
        assert notification.type == Notification.TYPE_ADMIN
        assert notification.title == 'Account Verified'
        assert notification.link == '/profile'

        # un-verifying says nothing
        auth_client(admin_user).post(url, {'is_verified': False}, format='json')
        assert Notification.objects.filter(user=donor).count() == 1

    def test_user_admin_is_admin_only(self, auth_client, donor):
        assert auth_client(donor).get('/api/users/').status_code == 403

    def test_admin_records_donation(self, auth_client, admin_user, donor):
        response = auth_client(admin_user).post(f'/api/users/{donor.profile.id}/record_donation/')

        assert response.data['donation_count'] == 1
        assert response.data['last_donation_date'] == timezone.localdate().isoformat()
        assert response.data['can_donate'] is False

    def test_stats(self, auth_client, admin_user, donor, receiver):
        make_request(receiver)
        make_request(receiver).fulfill()

        response = auth_client(admin_user).get('/api/stats/')

        assert response.status_code == 200
        assert response.data['total_users'] == 3
        assert response.data['active_donors'] == 1
        assert response.data['open_requests'] == 1
        assert response.data['fulfilled_requests'] == 1
        assert auth_client(donor).get('/api/stats/').status_code == 403

    def test_superuser_counts_as_admin(self, auth_client, donor):
        boss = CustomUser.objects.create_superuser(username='boss', email='boss@example.com', password='pw-pw-pw-pw')

        assert auth_client(boss).get('/api/stats/').status_code == 200


# ============================================
# SOCIAL
# ============================================
class TestSocial:
    def test_each_like_notifies_the_author(self, auth_client, donor, receiver):
        post = Post.objects.create(author=donor, content='Donated today!')
        client = auth_client(receiver)
        url = f'/api/posts/{post.id}/like/'

        assert client.post(url).data == {'liked': True, 'like_count': 1}
        assert client.post(url).data == {'liked': False, 'like_count': 0}
        assert client.post(url).data['liked'] is True

        likes = Notification.objects.filter(user=donor, type=Notification.TYPE_SOCIAL)
        assert likes.count() == 2
        assert {n.link for n in likes} == {f'/feed?post={post.id}'}

    def test_liking_own_post_is_silent(self, auth_client, donor):
        post = Post.objects.create(author=donor, content='hello')

        auth_client(donor).post(f'/api/posts/{post.id}/like/')

        assert Notification.objects.count() == 0

    def test_comment_notifies_author_and_bumps_count(self, auth_client, donor, receiver):
        post = Post.objects.create(author=donor, content='Need B+ in Dhaka')

        response = auth_client(receiver).post(f'/api/posts/{post.id}/comments/', {'content': 'Sharing!'}, format='json')

        assert response.status_code == 201
        post.refresh_from_db()
        assert post.comment_count == 1
        notification = Notification.objects.get(user=donor)
        assert notification.title == 'New Comment'
        assert len(auth_client(donor).get(f'/api/posts/{post.id}/comments/').data) == 1

    def test_only_author_can_delete_post(self, auth_client, donor, receiver):
        post = Post.objects.create(author=donor, content='mine')

        assert auth_client(receiver).delete(f'/api/posts/{post.id}/').status_code == 403
        assert auth_client(donor).delete(f'/api/posts/{post.id}/').status_code == 204


def test_home_serves_reference_data(api_client):
    response = api_client.get('/')

    assert response.status_code == 200
    data = response.json()
    assert len(data['blood_groups']) == 8
    assert 'Gazipur' in data['districts_by_division']['Dhaka']
