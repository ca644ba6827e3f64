"""Celery worker and beat schedule for KinetoFlow background jobs."""
