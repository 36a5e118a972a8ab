# accounts/serializers.py
from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import serializers

from accounts.models import UserProfile
from algorithms.geography import district_in_division

User = get_user_model()


def validate_location(attrs, instance=None):
    """Reject a district that does not belong to the chosen division"""
    division = attrs.get('division', getattr(instance, 'division', ''))
    district = attrs.get('district', getattr(instance, 'district', ''))
    if division and district and not district_in_division(district, division):
        raise serializers.ValidationError({'district': f"{district} is not in {division} division."})
    return attrs


class UserProfileSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    role = serializers.CharField(source='user.role', read_only=True)
    can_donate = serializers.BooleanField(read_only=True)
    days_until_eligible = serializers.IntegerField(read_only=True)

    class Meta:
        model = UserProfile
        fields = [
            'id',
            'user',
            'username',
            'email',
            'role',
            'name',
            'phone',
            'blood_group',
            'division',
            'district',
            'upazila',
            'is_available',
            'is_verified',
            'donation_count',
            'last_donation_date',
            'can_donate',
            'days_until_eligible',
            'weight',
            'photo_url',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['user', 'is_verified', 'donation_count', 'created_at', 'updated_at']

    def validate(self, attrs):
        return validate_location(attrs, self.instance)


class AdminUserProfileSerializer(UserProfileSerializer):
    """Admins may also correct verification and donation stats"""

    class Meta(UserProfileSerializer.Meta):
        read_only_fields = ['user', 'created_at', 'updated_at']


class DonorSearchSerializer(serializers.ModelSerializer):
    """Public card shown in donor search results"""
    can_donate = serializers.BooleanField(read_only=True)

    class Meta:
        model = UserProfile
        fields = [
            'id',
            'user',
            'name',
            'phone',
            'blood_group',
            'division',
            'district',
            'upazila',
            'is_verified',
            'donation_count',
            'last_donation_date',
            'can_donate',
            'photo_url',
        ]


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=[User.ROLE_DONOR, User.ROLE_RECEIVER], default=User.ROLE_DONOR)

    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=20)
    blood_group = serializers.ChoiceField(choices=UserProfile._meta.get_field('blood_group').choices)
    division = serializers.ChoiceField(choices=UserProfile._meta.get_field('division').choices)
    district = serializers.ChoiceField(choices=UserProfile._meta.get_field('district').choices)
    upazila = serializers.CharField(max_length=60, required=False, allow_blank=True)

    def validate_username(self, value):
        if User.objects.filter(username=value).exists():
            raise serializers.ValidationError("Username already exists")
        return value

    def validate_email(self, value):
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already registered")
        return value

    def validate(self, attrs):
        return validate_location(attrs)

    @transaction.atomic
    def create(self, validated_data):
        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            role=validated_data['role'],
        )
        # The profile row already exists (post_save); fill it in
        profile = user.profile
        for field in ('name', 'phone', 'blood_group', 'division', 'district', 'upazila'):
            if field in validated_data:
                setattr(profile, field, validated_data[field])
        profile.save()
        return user
