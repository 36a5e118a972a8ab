from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from algorithms.blood_groups import BLOOD_GROUP_CHOICES
from algorithms.eligibility import can_donate, days_until_eligible
from algorithms.geography import DIVISION_CHOICES, DISTRICT_CHOICES, district_in_division


class CustomUser(AbstractUser):
    ROLE_DONOR = 'donor'
    ROLE_RECEIVER = 'receiver'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = (
        (ROLE_DONOR, 'Donor'),
        (ROLE_RECEIVER, 'Receiver'),
        (ROLE_ADMIN, 'Admin'),
    )

    role = models.CharField(
        max_length=15,
        choices=ROLE_CHOICES,
        default=ROLE_DONOR,
        db_index=True,
    )
    email = models.EmailField(unique=True)

    def __str__(self):
        return f"{self.username} ({self.role})"

    @property
    def is_admin_role(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser


class UserProfile(models.Model):
    user = models.OneToOneField(
        CustomUser,
        on_delete=models.CASCADE,
        related_name='profile'
    )

    name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True, db_index=True)
    blood_group = models.CharField(max_length=3, choices=BLOOD_GROUP_CHOICES, blank=True)

    # Location triple
    division = models.CharField(max_length=30, choices=DIVISION_CHOICES, blank=True)
    district = models.CharField(max_length=30, choices=DISTRICT_CHOICES, blank=True)
    upazila = models.CharField(max_length=60, blank=True)

    is_available = models.BooleanField(default=True)
    is_verified = models.BooleanField(default=False)

    # Donation tracking
    donation_count = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    last_donation_date = models.DateField(null=True, blank=True)

    weight = models.FloatField(null=True, blank=True)
    photo_url = models.URLField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "User Profile"
        verbose_name_plural = "User Profiles"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_group', 'district', 'is_available'], name='profile_match_idx'),
        ]

    def __str__(self):
        return f"{self.name or self.user.username} ({self.blood_group or '?'})"

    @property
    def role(self):
        return self.user.role

    @property
    def can_donate(self) -> bool:
        """Advisory 90-day rule, independent of is_available"""
        return can_donate(self.last_donation_date)

    @property
    def days_until_eligible(self) -> int:
        return days_until_eligible(self.last_donation_date)

    def clean(self):
        if self.division and self.district and not district_in_division(self.district, self.division):
            raise ValidationError({'district': f"{self.district} is not in {self.division} division."})

    def record_donation(self, on=None):
        """Count one more donation and move the last donation date forward"""
        self.donation_count += 1
        self.last_donation_date = on or timezone.localdate()
        self.save(update_fields=['donation_count', 'last_donation_date', 'updated_at'])
