# Celery instance is defined in agency_project/celery.py
# It points the task queue at the Django settings
# celery_app is the single task queue app for the whole project
from .celery import celery_app

# 'from agency_project import *', only exports celery_app
__all__ = ("celery_app",)

""" When you run Celery workers, "celery -A agency_project worker -l info"
    The -A agency_project means:
    Import agency_project/__init__.py →
    which exposes celery_app →  now Celery knows what to run. """
