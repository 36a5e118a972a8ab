from django.contrib import admin

from .models import Comment, Post


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display  = ['id', 'author', 'type', 'like_count', 'comment_count', 'created_at']
    list_filter   = ['type', 'created_at']
    search_fields = ['author__username', 'content']
    ordering      = ['-created_at']

    @admin.display(description='Likes')
    def like_count(self, obj):
        return obj.likes.count()


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display  = ['post', 'author', 'created_at']
    search_fields = ['author__username', 'content']
    ordering      = ['-created_at']
