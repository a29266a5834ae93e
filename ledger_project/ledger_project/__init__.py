# Celery instance is defined in ledger_project/celery.py
# Importing it here makes sure the app is loaded when Django starts,
# so @shared_task decorators in ledger_core bind to it
from .celery import celery_app

__all__ = ("celery_app",)

""" Run workers with: "celery -A ledger_project worker -l info" """
