# blood_requests/serializers.py
from rest_framework import serializers

from algorithms.geography import district_in_division
from notifications.services import find_matching_donors
from .models import BloodRequest


class BloodRequestSerializer(serializers.ModelSerializer):
    requester_username = serializers.CharField(source='requester.username', read_only=True)
    matching_donors_count = serializers.SerializerMethodField()

    class Meta:
        model = BloodRequest
        fields = [
            'id',
            'requester',
            'requester_name',
            'requester_username',
            'blood_group',
            'emergency_level',
            'hospital_name',
            'location',
            'division',
            'district',
            'required_date',
            'contact_phone',
            'note',
            'status',
            'matching_donors_count',
            'created_at',
            'updated_at',
        ]
        # status only moves through the fulfill endpoint
        read_only_fields = ['requester', 'requester_name', 'status', 'created_at', 'updated_at']

    def get_matching_donors_count(self, obj):
        # list views annotate this; a freshly created request is counted here
        annotated = getattr(obj, 'matching_donors', None)
        if annotated is not None:
            return annotated
        return find_matching_donors(obj.blood_group, obj.district).count()

    def validate(self, attrs):
        division = attrs.get('division', getattr(self.instance, 'division', ''))
        district = attrs.get('district', getattr(self.instance, 'district', ''))
        if division and district and not district_in_division(district, division):
            raise serializers.ValidationError({'district': f"{district} is not in {division} division."})
        return attrs
