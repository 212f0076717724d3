# Syndicate Django Project
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'syndicate.settings')

app = Celery('syndicate')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
