"""Domain services for the KinetoFlow API."""

from kinetoflow.services.email_client import send_email

__all__ = ["send_email"]
