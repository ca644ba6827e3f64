import smtplib

import pytest

from kinetoflow.services import notifications
from kinetoflow.services.email_templates import render_invitation
from kinetoflow_jobs import tasks
from kinetoflow_jobs.celery_app import celery_app, cron_schedule


def test_cron_schedule_parses_five_fields():
    schedule = cron_schedule("15 */2 * * 1-5")

    assert schedule.minute == {15}
    assert schedule.hour == set(range(0, 24, 2))
    assert schedule.day_of_week == {1, 2, 3, 4, 5}


def test_cron_schedule_tolerates_extra_whitespace():
    schedule = cron_schedule("  30   6 * * *  ")

    assert schedule.minute == {30}
    assert schedule.hour == {6}


def test_cron_schedule_rejects_malformed_expression():
    with pytest.raises(ValueError):
        cron_schedule("0 * *")


def test_reconciliation_is_scheduled():
    entry = celery_app.conf.beat_schedule["reconcile-plan-sessions"]
    assert entry["task"] == "jobs.reconcile_sessions"


def test_deliver_email_in_mock_mode():
    result = tasks.deliver_email("someone@example.com", "Hi", "Body")

    assert result["delivered"] is True
    assert result["message_id"].startswith("mocked-")


def test_deliver_email_reports_transport_failures(monkeypatch):
    def refuse(to, subject, body):
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(tasks, "send_email", refuse)

    result = tasks.deliver_email("someone@example.com", "Hi", "Body")

    assert result == {"to": "someone@example.com", "delivered": False, "error": "gone"}


def test_reconcile_task_returns_report():
    assert tasks.reconcile_sessions() == {
        "processed": 0,
        "consumed": 0,
        "exhausted": 0,
        "failed": 0,
    }


def test_enqueue_failures_do_not_propagate(db, clinic, monkeypatch):
    def broken_delay(*args):
        raise ConnectionError("broker down")

    monkeypatch.setattr(tasks.deliver_email, "delay", broken_delay)

    clinic.patient.name = "Someone"
    notifications.send_welcome_email(db, to=clinic.patient.email, name="Someone")
    db.commit()

    assert "pending_emails" not in db.info


def test_invitation_email_falls_back_to_platform_names():
    email = render_invitation(
        to="someone@example.com",
        inviter_name=None,
        company_name=None,
        role_label="TENANT ADMIN",
        invitation_url="http://localhost:3000/accept-invitation/abc",
        ttl_minutes=1440,
    )

    assert "the KinetoFlow team has invited you to join KinetoFlow Platform" in email.body
    assert "24 hours" in email.body
