# blood_requests/admin.py
from django.contrib import admin, messages
from django.shortcuts import get_object_or_404, redirect
from django.urls import path
from django.utils.html import format_html

from notifications.services import find_matching_donors, notify_matching_donors
from .models import BloodRequest


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'hospital_name',
        'requester',
        'blood_group',
        'district',
        'emergency_level',
        'status',
        'matching_donors',
        'action_buttons',
    ]
    list_filter = ['status', 'emergency_level', 'blood_group', 'division', 'created_at']
    search_fields = ['hospital_name', 'requester__username', 'requester_name', 'district']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Request Information', {
            'fields': ('requester', 'requester_name', 'blood_group', 'emergency_level',
                       'required_date', 'contact_phone', 'note', 'status')
        }),
        ('Location', {
            'fields': ('hospital_name', 'location', 'division', 'district')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['fulfill_selected']

    @admin.display(description='Matching Donors')
    def matching_donors(self, obj):
        return find_matching_donors(obj.blood_group, obj.district).count()

    @admin.display(description='Actions')
    def action_buttons(self, obj):
        if not obj.is_open:
            return format_html('<span style="color: gray;">Request {}</span>', obj.status)

        return format_html(
            '<a class="button" href="{}">Re-notify Donors</a>',
            f'/admin/blood_requests/bloodrequest/{obj.id}/renotify/',
        )

    @admin.action(description='Mark selected requests as fulfilled')
    def fulfill_selected(self, request, queryset):
        updated = sum(1 for blood_request in queryset if blood_request.fulfill())
        self.message_user(request, f'{updated} request(s) marked as fulfilled.')

    def get_urls(self):
        """Add custom URL for re-running the donor fan-out"""
        urls = super().get_urls()
        custom_urls = [
            path(
                '<int:request_id>/renotify/',
                self.admin_site.admin_view(self.renotify_view),
                name='bloodrequest_renotify',
            ),
        ]
        return custom_urls + urls

    def renotify_view(self, request, request_id):
        blood_request = get_object_or_404(BloodRequest, id=request_id)

        if not blood_request.is_open:
            messages.warning(request, "This request is already fulfilled.")
            return redirect('admin:blood_requests_bloodrequest_changelist')

        # Donors notified before get a second copy
        delivered = notify_matching_donors(blood_request.blood_group, blood_request.district, blood_request.id)
        messages.success(request, f"Notified {delivered} donor(s) for request #{blood_request.id}.")
        return redirect('admin:blood_requests_bloodrequest_changelist')
