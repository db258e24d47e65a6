# hse_site/celery.py
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hse_site.settings")

app = Celery("hse_site")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
