# blood_requests/models.py
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from algorithms.blood_groups import BLOOD_GROUP_CHOICES
from algorithms.geography import DIVISION_CHOICES, DISTRICT_CHOICES, district_in_division
from algorithms.priority import EMERGENCY_LEVEL_CHOICES, EMERGENCY_NORMAL, severity_rank


class BloodRequest(models.Model):
    STATUS_OPEN = 'open'
    STATUS_FULFILLED = 'fulfilled'

    # open -> fulfilled only; fulfilled is terminal
    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_FULFILLED, 'Fulfilled'),
    ]

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='blood_requests'
    )
    requester_name = models.CharField(max_length=200, blank=True)

    blood_group = models.CharField(max_length=3, choices=BLOOD_GROUP_CHOICES)
    emergency_level = models.CharField(max_length=10, choices=EMERGENCY_LEVEL_CHOICES, default=EMERGENCY_NORMAL)

    hospital_name = models.CharField(max_length=200)
    location = models.CharField(max_length=255, blank=True)
    division = models.CharField(max_length=30, choices=DIVISION_CHOICES)
    district = models.CharField(max_length=30, choices=DISTRICT_CHOICES, db_index=True)

    required_date = models.DateField(null=True, blank=True)
    contact_phone = models.CharField(max_length=20)
    note = models.TextField(blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.hospital_name} - {self.blood_group} ({self.emergency_level})"

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blood Request'
        verbose_name_plural = 'Blood Requests'

    @property
    def is_open(self):
        return self.status == self.STATUS_OPEN

    @property
    def severity(self):
        return severity_rank(self.emergency_level)

    def clean(self):
        if self.division and self.district and not district_in_division(self.district, self.division):
            raise ValidationError({'district': f"{self.district} is not in {self.division} division."})

    def fulfill(self):
        """
        Mark the request fulfilled.
        Returns False if it already was (no-op); there is no way back to open.
        """
        if self.status == self.STATUS_FULFILLED:
            return False
        self.status = self.STATUS_FULFILLED
        self.save(update_fields=['status', 'updated_at'])
        return True
