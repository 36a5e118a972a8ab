from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from accounts.models import CustomUser

pytestmark = pytest.mark.django_db


@pytest.fixture
def secret(settings, monkeypatch):
    settings.SUPERUSER_SECRET_KEY = 'let-me-in'
    monkeypatch.setenv('DJANGO_SUPERUSER_PASSWORD', 'admin-pass-123')
    return 'let-me-in'


def test_creates_admin_role_superuser(secret):
    call_command('createsuperuser_secure', username='root', email='root@example.com', secret=secret, stdout=StringIO())

    user = CustomUser.objects.get(username='root')
    assert user.is_superuser
    assert user.role == CustomUser.ROLE_ADMIN
    assert user.is_admin_role
    assert user.check_password('admin-pass-123')


def test_wrong_secret_creates_nothing(secret):
    with pytest.raises(CommandError):
        call_command('createsuperuser_secure', username='root', email='root@example.com', secret='guess', stdout=StringIO())

    assert not CustomUser.objects.exists()


def test_unconfigured_secret_refuses(settings):
    settings.SUPERUSER_SECRET_KEY = None

    with pytest.raises(CommandError):
        call_command('createsuperuser_secure', username='root', email='root@example.com', secret='x', stdout=StringIO())
