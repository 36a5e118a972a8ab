from unittest import mock

import pytest
from django.db import DatabaseError

from accounts.models import CustomUser
from notifications.models import Notification
from notifications.services import REQUEST_TITLE, find_matching_donors, notify_matching_donors

pytestmark = pytest.mark.django_db


def recipients():
    return sorted(Notification.objects.values_list('user_id', flat=True))


def test_only_available_donors_in_same_district_are_notified(make_user):
    d1 = make_user(blood_group='B+', district='Dhaka', is_available=True)
    make_user(blood_group='B+', division='Chattogram', district='Chattogram', is_available=True)
    make_user(blood_group='B+', district='Dhaka', is_available=False)

    delivered = notify_matching_donors('B+', 'Dhaka', 42)

    assert delivered == 1
    assert recipients() == [d1.id]


def test_notification_content(make_user):
    donor = make_user(blood_group='B+', district='Dhaka')

    notify_matching_donors('B+', 'Dhaka', 42)

    notification = Notification.objects.get(user=donor)
    assert notification.title == REQUEST_TITLE == 'Emergency Blood Request'
    assert notification.body == 'A new B+ blood request has been posted in Dhaka.'
    assert notification.type == Notification.TYPE_REQUEST
    assert notification.is_read is False
    assert notification.link.startswith('/requests')
    assert '42' in notification.link


def test_compatible_but_different_groups_are_not_matched(make_user):
    make_user(blood_group='O-', district='Dhaka')
    make_user(blood_group='A-', district='Dhaka')
    a_pos = make_user(blood_group='A+', district='Dhaka')

    notify_matching_donors('A+', 'Dhaka', 1)

    assert recipients() == [a_pos.id]


def test_receivers_and_admins_are_never_matched(make_user):
    donor = make_user(blood_group='AB-', district='Sylhet', division='Sylhet')
    make_user(role=CustomUser.ROLE_RECEIVER, blood_group='AB-', district='Sylhet', division='Sylhet')
    make_user(role=CustomUser.ROLE_ADMIN, blood_group='AB-', district='Sylhet', division='Sylhet')

    assert notify_matching_donors('AB-', 'Sylhet', 7) == 1
    assert recipients() == [donor.id]


def test_every_match_gets_exactly_one_notification(make_user):
    donors = [make_user(blood_group='O+', district='Gazipur') for _ in range(5)]
    make_user(blood_group='O+', district='Tangail')

    assert notify_matching_donors('O+', 'Gazipur', 3) == 5
    assert recipients() == sorted(d.id for d in donors)


def test_no_matches_is_not_an_error(make_user):
    make_user(blood_group='B+', district='Dhaka')

    assert notify_matching_donors('B-', 'Dhaka', 1) == 0
    assert Notification.objects.count() == 0


def test_donor_becoming_available_later_is_not_notified_retroactively(make_user):
    late = make_user(blood_group='B+', district='Dhaka', is_available=False)

    notify_matching_donors('B+', 'Dhaka', 1)
    late.profile.is_available = True
    late.profile.save()

    assert Notification.objects.filter(user=late).count() == 0


@pytest.mark.parametrize('blood_group, district', [
    ('C+', 'Dhaka'),
    ('B+', ''),
    ('B+', None),
    ('B+', 'Atlantis'),
])
def test_invalid_input_produces_nothing_and_does_not_raise(make_user, blood_group, district):
    make_user(blood_group='B+', district='Dhaka')

    assert notify_matching_donors(blood_group, district, 1) == 0
    assert Notification.objects.count() == 0


def test_lookup_failure_is_swallowed(make_user):
    make_user(blood_group='B+', district='Dhaka')

    with mock.patch('notifications.services.find_matching_donors', side_effect=DatabaseError('down')):
        assert notify_matching_donors('B+', 'Dhaka', 1) == 0

    assert Notification.objects.count() == 0


def test_one_failed_write_does_not_stop_or_undo_the_others(make_user):
    d1, d2, d3 = (make_user(blood_group='B+', district='Dhaka') for _ in range(3))
    original_create = Notification.objects.create

    def flaky_create(**kwargs):
        if kwargs['user_id'] == d2.id:
            raise DatabaseError('write rejected')
        return original_create(**kwargs)

    with mock.patch.object(Notification.objects, 'create', side_effect=flaky_create):
        delivered = notify_matching_donors('B+', 'Dhaka', 1)

    assert delivered == 2
    assert recipients() == sorted([d1.id, d3.id])


def test_running_twice_duplicates_notifications(make_user):
    donor = make_user(blood_group='B+', district='Dhaka')

    notify_matching_donors('B+', 'Dhaka', 1)
    notify_matching_donors('B+', 'Dhaka', 1)

    assert Notification.objects.filter(user=donor).count() == 2


def test_find_matching_donors_is_exact_on_all_four_predicates(make_user):
    match = make_user(blood_group='A-', district='Khulna', division='Khulna')
    make_user(blood_group='A-', district='Khulna', division='Khulna', is_available=False)
    make_user(blood_group='A+', district='Khulna', division='Khulna')
    make_user(blood_group='A-', district='Jessore', division='Khulna')
    make_user(role=CustomUser.ROLE_RECEIVER, blood_group='A-', district='Khulna', division='Khulna')

    assert [p.user_id for p in find_matching_donors('A-', 'Khulna')] == [match.id]
