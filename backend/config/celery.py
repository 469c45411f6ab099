"""
Celery application for the clinic backend.

Runs periodic inventory checks (see clinic.tasks.check_stock_alerts).
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('clinic')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
