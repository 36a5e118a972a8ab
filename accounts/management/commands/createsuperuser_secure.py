"""
Create the first LifeShare administrator.
Usage: python manage.py createsuperuser_secure [--username admin --email admin@example.com]

The secret is asked for interactively unless --secret is given; the password
comes from the prompt or from DJANGO_SUPERUSER_PASSWORD.
"""
import getpass
import os

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

User = get_user_model()


class Command(BaseCommand):
    help = 'Create an admin-role superuser, guarded by SUPERUSER_SECRET_KEY'

    def add_arguments(self, parser):
        parser.add_argument('--username', help='Admin username')
        parser.add_argument('--email', help='Admin email')
        parser.add_argument('--secret', help='SUPERUSER_SECRET_KEY (prompted for if omitted)')

    def handle(self, *args, **options):
        expected_secret = getattr(settings, 'SUPERUSER_SECRET_KEY', None)
        if not expected_secret:
            raise CommandError('SUPERUSER_SECRET_KEY is not configured.')

        secret = options['secret'] or getpass.getpass('Secret key: ')
        if secret != expected_secret:
            raise CommandError('Invalid secret key. Cannot create superuser.')

        username = options['username'] or input('Username: ')
        email = options['email'] or input('Email: ')
        password = os.environ.get('DJANGO_SUPERUSER_PASSWORD') or getpass.getpass('Password: ')

        if User.objects.filter(username=username).exists():
            raise CommandError(f'User {username!r} already exists.')
        if User.objects.filter(email=email).exists():
            raise CommandError(f'Email {email!r} is already registered.')

        user = User.objects.create_superuser(
            username=username,
            email=email,
            password=password,
            role=User.ROLE_ADMIN,
        )
        user.profile.name = username
        user.profile.save(update_fields=['name', 'updated_at'])

        self.stdout.write(self.style.SUCCESS(f'Admin {username} created.'))
