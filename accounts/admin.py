from django.contrib import admin

from .models import CustomUser, UserProfile
from .utils import set_verification


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'is_staff', 'is_superuser')
    search_fields = ('username', 'email')
    list_filter = ('role', 'is_staff')


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display   = ['name', 'user', 'blood_group', 'district', 'donation_count', 'is_available', 'is_verified', 'can_donate_display']
    list_filter    = ['blood_group', 'division', 'is_available', 'is_verified', 'user__role']
    search_fields  = ['name', 'user__username', 'phone', 'district']
    ordering       = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Personal Info', {
            'fields': ('user', 'name', 'phone', 'blood_group', 'weight', 'photo_url')
        }),
        ('Location', {
            'fields': ('division', 'district', 'upazila')
        }),
        ('Donation Stats', {
            'fields': ('donation_count', 'last_donation_date', 'is_available', 'is_verified')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(boolean=True, description='Can Donate Now')
    def can_donate_display(self, obj):
        return obj.can_donate

    actions = ['verify_profiles', 'record_donation_today']

    @admin.action(description='Verify selected users (notifies them)')
    def verify_profiles(self, request, queryset):
        updated = sum(1 for profile in queryset if set_verification(profile, True))
        self.message_user(request, f'Verified {updated} user(s).')

    # Offline donations reported to the admins
    @admin.action(description='Record a donation today for selected users')
    def record_donation_today(self, request, queryset):
        updated = 0
        for profile in queryset:
            profile.record_donation()
            updated += 1
        self.message_user(request, f'Recorded a donation for {updated} user(s).')
