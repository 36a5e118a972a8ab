# accounts/management/commands/import_donors.py
"""
Django management command to import donor data from Excel or CSV
Usage: python manage.py import_donors path/to/donors.xlsx
"""

from datetime import datetime

import pandas as pd
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import UserProfile
from algorithms.blood_groups import is_valid_blood_group
from algorithms.geography import division_for_district, is_known_district

User = get_user_model()

DEFAULT_PASSWORD = 'ChangeMe123!'


def _clean(value, default=''):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    return str(value).strip()


class Command(BaseCommand):
    help = 'Import donors from an Excel (.xlsx) or CSV file'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Path to the Excel or CSV file')

    def read_frame(self, path):
        if path.lower().endswith('.csv'):
            return pd.read_csv(path, dtype=str)
        return pd.read_excel(path, dtype=str)

    def handle(self, *args, **options):
        path = options['path']

        self.stdout.write(self.style.WARNING(f'Starting import from {path}...'))

        try:
            df = self.read_frame(path)
        except FileNotFoundError:
            raise CommandError(f'File not found: {path}')

        self.stdout.write(f'Found {len(df)} rows')

        # Rows without a name or email cannot become accounts
        df = df.dropna(subset=['name', 'email'])

        imported_count = 0
        updated_count = 0
        skipped_count = 0

        for index, row in df.iterrows():
            line = index + 2  # header is line 1
            name = _clean(row.get('name'))
            email = _clean(row.get('email')).lower()
            blood_group = _clean(row.get('blood_group')).upper()
            district = _clean(row.get('district'))

            if not is_valid_blood_group(blood_group):
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: Invalid blood group {blood_group!r}'))
                skipped_count += 1
                continue

            if not is_known_district(district):
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: Unknown district {district!r}'))
                skipped_count += 1
                continue

            last_donation = None
            raw_date = _clean(row.get('last_donation_date'))
            if raw_date:
                try:
                    last_donation = datetime.strptime(raw_date[:10], '%Y-%m-%d').date()
                except ValueError:
                    self.stdout.write(self.style.WARNING(f'Invalid date format at row {line}: {raw_date}'))

            try:
                donation_count = int(float(_clean(row.get('donation_count'), '0') or 0))
            except ValueError:
                donation_count = 0

            try:
                with transaction.atomic():
                    user, user_created = User.objects.get_or_create(
                        email=email,
                        defaults={
                            'username': email.split('@')[0].replace(' ', '_')[:30],
                            'role': User.ROLE_DONOR,
                        }
                    )
                    if user_created:
                        user.set_password(DEFAULT_PASSWORD)
                        user.save(update_fields=['password'])

                    profile, _ = UserProfile.objects.get_or_create(user=user)
                    profile.name = name
                    profile.phone = _clean(row.get('phone'))
                    profile.blood_group = blood_group
                    profile.division = division_for_district(district)
                    profile.district = district
                    profile.upazila = _clean(row.get('upazila'))
                    profile.last_donation_date = last_donation
                    profile.donation_count = donation_count
                    profile.is_available = True
                    profile.save()
            except Exception as e:
                skipped_count += 1
                self.stdout.write(self.style.ERROR(f'Error at row {line}: {e}'))
                continue

            if user_created:
                imported_count += 1
                self.stdout.write(f'Created: {profile.name} ({profile.blood_group}) - {user.email}')
            else:
                updated_count += 1
                self.stdout.write(f'Updated: {profile.name} ({profile.blood_group})')

        self.stdout.write(
            self.style.SUCCESS(
                f'\nImport complete!\n'
                f'Created: {imported_count}\n'
                f'Updated: {updated_count}\n'
                f'Skipped: {skipped_count}\n'
                f'Total: {imported_count + updated_count}'
            )
        )

        if imported_count > 0:
            self.stdout.write(
                self.style.WARNING(
                    f'\nNOTE: Default password is "{DEFAULT_PASSWORD}" for new donor accounts.\n'
                    f'Donors should change their password on first login.'
                )
            )
