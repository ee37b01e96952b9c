"""
Celery application for background inventory work.

Configuration is read from Django settings under the ``CELERY_`` namespace.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')

app = Celery('clinic')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
