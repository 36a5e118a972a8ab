"""
Celery configuration for background notification fan-out
"""
import os
from celery import Celery

# Set default Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lifeshare.settings')

app = Celery('lifeshare')

# Load config from Django settings (prefix: CELERY_)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Picks up tasks.py in every installed app
app.autodiscover_tasks()
