from datetime import datetime

from kinetoflow.db.session import SessionLocal
from kinetoflow.models import Appointment, AppointmentStatus, PlanItem
from kinetoflow.schemas.scheduling import AppointmentCreate
from kinetoflow.services import reconciliation, scheduling
from kinetoflow.services.reconciliation import (
    ReconciliationReport,
    find_pending_appointment_ids,
    reconcile_sessions,
)

BOOKED_AT = datetime(2030, 1, 7, 8, 0)
AFTER = datetime(2030, 1, 7, 18, 0)


def book(db, clinic, item_id, hour):
    appointment = scheduling.create_appointment(
        db,
        actor=clinic.medic,
        payload=AppointmentCreate(
            patient_id=clinic.patient.id,
            service_id=clinic.service.id,
            scheduled_start=datetime(2030, 1, 7, hour),
            scheduled_end=datetime(2030, 1, 7, hour + 1),
            plan_item_id=item_id,
        ),
        now=BOOKED_AT,
    )
    db.commit()
    return appointment.id


def test_ended_appointment_consumes_one_session(db, clinic, make_plan):
    item_id = make_plan(clinic.patient, [(clinic.service, 10)]).items[0].id
    appointment_id = book(db, clinic, item_id, 10)

    report = reconcile_sessions(SessionLocal, now=AFTER)

    assert report == ReconciliationReport(processed=1, consumed=1)
    db.expire_all()
    appointment = db.get(Appointment, appointment_id)
    assert appointment.session_consumed is True
    assert appointment.status == AppointmentStatus.COMPLETED
    assert db.get(PlanItem, item_id).remaining_quantity == 9


def test_second_run_is_a_no_op(db, clinic, make_plan):
    item_id = make_plan(clinic.patient, [(clinic.service, 10)]).items[0].id
    book(db, clinic, item_id, 10)

    reconcile_sessions(SessionLocal, now=AFTER)
    report = reconcile_sessions(SessionLocal, now=AFTER)

    assert report.processed == 0
    db.expire_all()
    assert db.get(PlanItem, item_id).remaining_quantity == 9


def test_appointments_not_yet_ended_are_left_alone(db, clinic, make_plan):
    item_id = make_plan(clinic.patient, [(clinic.service, 10)]).items[0].id
    book(db, clinic, item_id, 10)

    report = reconcile_sessions(SessionLocal, now=datetime(2030, 1, 7, 10, 30))

    assert report.processed == 0
    assert find_pending_appointment_ids(db, AFTER) != []


def test_cancelled_and_unlinked_appointments_are_skipped(db, clinic, make_plan):
    item_id = make_plan(clinic.patient, [(clinic.service, 10)]).items[0].id
    cancelled_id = book(db, clinic, item_id, 10)
    book(db, clinic, None, 12)
    scheduling.cancel_appointment(
        db,
        actor=clinic.medic,
        appointment_id=cancelled_id,
        status=AppointmentStatus.CANCELLED_BY_PATIENT,
    )
    db.commit()

    assert find_pending_appointment_ids(db, AFTER) == []
    assert reconcile_sessions(SessionLocal, now=AFTER).processed == 0


def test_each_appointment_draws_from_its_item(db, clinic, make_plan):
    item_id = make_plan(clinic.patient, [(clinic.service, 2)]).items[0].id
    for hour in (9, 11, 13):
        book(db, clinic, item_id, hour)

    report = reconcile_sessions(SessionLocal, now=AFTER)

    # The third booking was accepted while sessions remained but finds none left.
    assert report == ReconciliationReport(processed=3, consumed=2, exhausted=1)
    db.expire_all()
    assert db.get(PlanItem, item_id).remaining_quantity == 0
    consumed = db.query(Appointment).filter(Appointment.session_consumed.is_(True)).count()
    assert consumed == 3


def test_paused_item_is_not_decremented(db, clinic, make_plan):
    plan = make_plan(clinic.patient, [(clinic.service, 5)])
    item_id = plan.items[0].id
    appointment_id = book(db, clinic, item_id, 10)
    item = db.get(PlanItem, item_id)
    item.is_item_active = False
    db.commit()

    report = reconcile_sessions(SessionLocal, now=AFTER)

    assert report.exhausted == 1
    db.expire_all()
    assert db.get(PlanItem, item_id).remaining_quantity == 5
    appointment = db.get(Appointment, appointment_id)
    assert appointment.session_consumed is True
    assert appointment.status == AppointmentStatus.SCHEDULED


def test_failed_appointment_is_rolled_back_without_stopping_the_run(
    db, clinic, make_plan, monkeypatch
):
    item_id = make_plan(clinic.patient, [(clinic.service, 5)]).items[0].id
    first_id, broken_id, last_id = (book(db, clinic, item_id, hour) for hour in (9, 11, 13))
    real_consume = reconciliation.consume_session

    def consume_or_fail(session, appointment_id, now):
        outcome = real_consume(session, appointment_id, now)
        if appointment_id == broken_id:
            session.flush()
            raise RuntimeError("lock wait timeout")
        return outcome

    monkeypatch.setattr(reconciliation, "consume_session", consume_or_fail)

    report = reconcile_sessions(SessionLocal, now=AFTER)

    assert report == ReconciliationReport(processed=2, consumed=2, failed=1)
    db.expire_all()
    assert db.get(PlanItem, item_id).remaining_quantity == 3
    assert db.get(Appointment, first_id).session_consumed is True
    assert db.get(Appointment, last_id).session_consumed is True
    broken = db.get(Appointment, broken_id)
    assert broken.session_consumed is False
    assert broken.status == AppointmentStatus.SCHEDULED
    assert find_pending_appointment_ids(db, AFTER) == [broken_id]
