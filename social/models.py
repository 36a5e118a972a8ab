# social/models.py
from django.conf import settings
from django.db import models


class Post(models.Model):
    TYPE_GENERAL = 'general'
    TYPE_EMERGENCY = 'emergency'

    TYPE_CHOICES = [
        (TYPE_GENERAL, 'General'),
        (TYPE_EMERGENCY, 'Emergency'),
    ]

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='posts'
    )
    content = models.TextField()
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_GENERAL)
    likes = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='liked_posts', blank=True)
    comment_count = models.PositiveIntegerField(default=0)
    media_url = models.URLField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.author} - {self.content[:40]}"

    class Meta:
        ordering = ['-created_at']


class Comment(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.author} on post #{self.post_id}"

    class Meta:
        ordering = ['created_at']
