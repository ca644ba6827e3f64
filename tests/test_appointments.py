from datetime import datetime, time

import pytest

from kinetoflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from kinetoflow.models import AppointmentStatus, DayOfWeek, UserRole
from kinetoflow.schemas.scheduling import AppointmentCreate, WorkingHoursIn
from kinetoflow.services import calendar, scheduling

NOW = datetime(2030, 1, 7, 8, 0)


def at(hour, minute=0, day=7):
    return datetime(2030, 1, day, hour, minute)


def book(db, clinic, start, end, *, actor=None, patient=None, plan_item_id=None):
    payload = AppointmentCreate(
        patient_id=(patient or clinic.patient).id,
        service_id=clinic.service.id,
        scheduled_start=start,
        scheduled_end=end,
        plan_item_id=plan_item_id,
    )
    return scheduling.create_appointment(db, actor=actor or clinic.medic, payload=payload, now=NOW)


def test_overlaps_is_half_open():
    assert scheduling.overlaps(at(10), at(11), at(10, 30), at(11, 30))
    assert not scheduling.overlaps(at(10), at(11), at(11), at(12))
    assert not scheduling.overlaps(at(11), at(12), at(10), at(11))


def test_create_appointment_links_plan_item_without_consuming(db, clinic, make_plan):
    plan = make_plan(clinic.patient, [(clinic.service, 5)])
    item = plan.items[0]

    appointment = book(db, clinic, at(10), at(11), plan_item_id=item.id)

    assert appointment.status == AppointmentStatus.SCHEDULED
    assert appointment.session_consumed is False
    assert appointment.plan_item_id == item.id
    assert item.remaining_quantity == 5


def test_appointment_time_range_is_validated(db, clinic):
    with pytest.raises(BadRequestError):
        book(db, clinic, at(10), at(10))
    with pytest.raises(BadRequestError):
        book(db, clinic, at(7), at(9))


def test_back_to_back_appointments_are_allowed(db, clinic):
    book(db, clinic, at(10), at(11))
    second = book(db, clinic, at(11), at(12))

    assert second.scheduled_start == at(11)


def test_patient_overlap_is_rejected(db, clinic):
    book(db, clinic, at(10), at(11))

    with pytest.raises(BadRequestError) as excinfo:
        book(db, clinic, at(10, 30), at(11, 30))

    assert excinfo.value.message == "Patient has an overlapping appointment"


def test_medic_overlap_is_rejected(db, clinic, make_user):
    other_patient = make_user(UserRole.PATIENT, clinic.company, assigned_medic=clinic.medic)
    book(db, clinic, at(10), at(11))

    with pytest.raises(BadRequestError) as excinfo:
        book(db, clinic, at(10, 30), at(11, 30), patient=other_patient)

    assert excinfo.value.message == "You already have an appointment at this time"


def test_cancelled_appointments_free_the_slot(db, clinic):
    first = book(db, clinic, at(10), at(11))
    scheduling.cancel_appointment(
        db,
        actor=clinic.medic,
        appointment_id=first.id,
        status=AppointmentStatus.CANCELLED_BY_PATIENT,
    )

    assert book(db, clinic, at(10), at(11)).status == AppointmentStatus.SCHEDULED


def test_time_block_rejects_overlapping_booking(db, clinic):
    calendar.create_time_block(db, actor=clinic.medic, start=at(12), end=at(13), reason="Lunch")

    with pytest.raises(BadRequestError) as excinfo:
        book(db, clinic, at(12, 30), at(13, 30))
    assert "blocked" in excinfo.value.message

    assert book(db, clinic, at(13), at(14)).scheduled_start == at(13)


def test_unassigned_medic_cannot_book(db, clinic, make_user):
    other_medic = make_user(UserRole.MEDIC, clinic.company)

    with pytest.raises(ForbiddenError):
        book(db, clinic, at(10), at(11), actor=other_medic)


def test_plan_item_must_have_sessions_and_match_service(db, clinic, make_service, make_plan):
    massage = make_service(clinic.company, "Massage")
    exhausted = make_plan(clinic.patient, [(clinic.service, 5)], remaining=0).items[0]
    other_service = make_plan(clinic.patient, [(massage, 5)]).items[0]

    with pytest.raises(BadRequestError) as excinfo:
        book(db, clinic, at(10), at(11), plan_item_id=exhausted.id)
    assert excinfo.value.message == "No sessions remaining on this plan item"

    with pytest.raises(BadRequestError):
        book(db, clinic, at(10), at(11), plan_item_id=other_service.id)


def test_plan_item_of_other_patient_is_rejected(db, clinic, make_user, make_plan):
    other_patient = make_user(UserRole.PATIENT, clinic.company, assigned_medic=clinic.medic)
    item = make_plan(other_patient, [(clinic.service, 5)]).items[0]

    with pytest.raises(BadRequestError):
        book(db, clinic, at(10), at(11), plan_item_id=item.id)


def test_cancel_appends_reason_and_is_single_shot(db, clinic):
    appointment = book(db, clinic, at(10), at(11))

    scheduling.cancel_appointment(
        db,
        actor=clinic.medic,
        appointment_id=appointment.id,
        status=AppointmentStatus.CANCELLED_BY_MEDIC,
        reason="Sick leave",
    )

    assert appointment.status == AppointmentStatus.CANCELLED_BY_MEDIC
    assert appointment.notes == "Cancellation Reason (CANCELLED_BY_MEDIC): Sick leave"
    with pytest.raises(BadRequestError):
        scheduling.cancel_appointment(
            db,
            actor=clinic.medic,
            appointment_id=appointment.id,
            status=AppointmentStatus.CANCELLED_BY_PATIENT,
        )


def test_cancel_rejects_non_cancellation_status(db, clinic):
    appointment = book(db, clinic, at(10), at(11))

    with pytest.raises(BadRequestError):
        scheduling.cancel_appointment(
            db,
            actor=clinic.medic,
            appointment_id=appointment.id,
            status=AppointmentStatus.COMPLETED,
        )


def test_delete_appointment_only_in_the_future(db, clinic):
    appointment = book(db, clinic, at(10), at(11))

    with pytest.raises(BadRequestError):
        scheduling.delete_appointment(
            db, actor=clinic.medic, appointment_id=appointment.id, now=at(10, 15)
        )

    scheduling.delete_appointment(db, actor=clinic.medic, appointment_id=appointment.id, now=NOW)
    with pytest.raises(NotFoundError):
        scheduling.delete_appointment(
            db, actor=clinic.medic, appointment_id=appointment.id, now=NOW
        )


def test_calendar_merges_appointments_and_blocks(db, clinic):
    appointment = book(db, clinic, at(10), at(11))
    block = calendar.create_time_block(db, actor=clinic.medic, start=at(12), end=at(13))

    events = calendar.get_calendar_events(db, actor=clinic.medic, start=at(0), end=at(23))

    assert [event.id for event in events] == [f"appt-{appointment.id}", f"block-{block.id}"]
    assert events[0].title == "Manual Therapy - Pat Patient"
    assert events[0].color == calendar.STATUS_COLORS[AppointmentStatus.SCHEDULED]
    assert events[1].title == calendar.BLOCK_TITLE
    assert events[1].color == calendar.BLOCK_COLOR

    assert calendar.get_calendar_events(
        db, actor=clinic.medic, start=at(0, day=8), end=at(23, day=8)
    ) == []
    with pytest.raises(BadRequestError):
        calendar.get_calendar_events(db, actor=clinic.medic, start=at(23), end=at(0))


def test_time_blocks_belong_to_their_medic(db, clinic, make_user):
    other_medic = make_user(UserRole.MEDIC, clinic.company)
    block = calendar.create_time_block(db, actor=clinic.medic, start=at(12), end=at(13))

    with pytest.raises(ForbiddenError):
        calendar.delete_time_block(db, actor=other_medic, block_id=block.id)
    with pytest.raises(BadRequestError):
        calendar.create_time_block(db, actor=clinic.medic, start=at(13), end=at(12))

    calendar.delete_time_block(db, actor=clinic.medic, block_id=block.id)


def test_working_hours_upsert_and_bulk_replace(db, clinic):
    calendar.set_working_day(
        db,
        actor=clinic.medic,
        entry=WorkingHoursIn(day_of_week=DayOfWeek.FRIDAY, start_time=time(9), end_time=time(13)),
    )
    calendar.set_working_day(
        db,
        actor=clinic.medic,
        entry=WorkingHoursIn(day_of_week=DayOfWeek.FRIDAY, start_time=time(8), end_time=time(12)),
    )
    rows = calendar.list_working_hours(db, actor=clinic.medic)
    assert [(r.day_of_week, r.start_time) for r in rows] == [(DayOfWeek.FRIDAY, time(8))]

    week = calendar.set_working_hours_bulk(
        db,
        actor=clinic.medic,
        entries=[
            WorkingHoursIn(day_of_week=day, start_time=time(9), end_time=time(17))
            for day in (DayOfWeek.WEDNESDAY, DayOfWeek.MONDAY)
        ],
    )
    assert [r.day_of_week for r in week] == [DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY]

    calendar.delete_working_day(db, actor=clinic.medic, day_of_week=DayOfWeek.MONDAY)
    assert [r.day_of_week for r in calendar.list_working_hours(db, actor=clinic.medic)] == [
        DayOfWeek.WEDNESDAY
    ]
    calendar.clear_working_hours(db, actor=clinic.medic)
    assert calendar.list_working_hours(db, actor=clinic.medic) == []


def test_working_hours_validation(db, clinic):
    with pytest.raises(BadRequestError):
        calendar.set_working_day(
            db,
            actor=clinic.medic,
            entry=WorkingHoursIn(
                day_of_week=DayOfWeek.MONDAY, start_time=time(17), end_time=time(9)
            ),
        )
    entry = WorkingHoursIn(day_of_week=DayOfWeek.MONDAY, start_time=time(9), end_time=time(17))
    with pytest.raises(BadRequestError):
        calendar.set_working_hours_bulk(db, actor=clinic.medic, entries=[entry, entry])
