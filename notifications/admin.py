from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display  = ['user', 'title', 'type', 'is_read', 'created_at']
    list_filter   = ['type', 'is_read', 'created_at']
    search_fields = ['user__username', 'title', 'body']
    ordering      = ['-created_at']
    readonly_fields = ['user', 'title', 'body', 'type', 'link', 'created_at']

    actions = ['mark_selected_read']

    @admin.action(description='Mark selected notifications as read')
    def mark_selected_read(self, request, queryset):
        # save() per row so live views hear about it
        updated = sum(1 for notification in queryset.filter(is_read=False) if notification.mark_read())
        self.message_user(request, f'{updated} notification(s) marked as read.')
