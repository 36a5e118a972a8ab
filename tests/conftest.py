import itertools

import pytest
from rest_framework.test import APIClient

from accounts.models import CustomUser
from notifications.feed import feed

_counter = itertools.count(1)


@pytest.fixture
def make_user(db):
    """
    Create an account and fill in its profile.
    make_user(role='donor', blood_group='B+', district='Dhaka', is_available=True)
    """
    def _make_user(role=CustomUser.ROLE_DONOR, blood_group='B+', division='Dhaka', district='Dhaka',
                   is_available=True, name=None, **profile_fields):
        n = next(_counter)
        user = CustomUser.objects.create_user(
            username=f'user{n}',
            email=f'user{n}@example.com',
            password='s3cret-pass',
            role=role,
        )
        profile = user.profile
        profile.name = name or f'User {n}'
        profile.blood_group = blood_group
        profile.division = division
        profile.district = district
        profile.is_available = is_available
        for field, value in profile_fields.items():
            setattr(profile, field, value)
        profile.save()
        return user
    return _make_user


@pytest.fixture
def donor(make_user):
    return make_user()


@pytest.fixture
def receiver(make_user):
    return make_user(role=CustomUser.ROLE_RECEIVER, blood_group='A+')


@pytest.fixture
def admin_user(make_user):
    return make_user(role=CustomUser.ROLE_ADMIN, blood_group='O+')


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client():
    """auth_client(user) -> APIClient logged in as user"""
    def _auth_client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _auth_client


@pytest.fixture(autouse=True)
def no_leaked_subscriptions():
    yield
    assert feed.subscriber_count() == 0, "a test left a live feed subscription open"
