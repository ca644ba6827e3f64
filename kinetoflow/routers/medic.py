from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.deps import require_roles
from kinetoflow.models import DayOfWeek, User, UserRole
from kinetoflow.schemas.catalog import PackageOut, ServiceOut
from kinetoflow.schemas.common import MessageResponse, StatusUpdate
from kinetoflow.schemas.invitations import InvitationResendRequest
from kinetoflow.schemas.plans import (
    PlanAssignRequest,
    PlanItemOut,
    PlanItemQuantitiesUpdate,
    PlanOut,
)
from kinetoflow.schemas.scheduling import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentOut,
    CalendarEvent,
    TimeBlockCreate,
    TimeBlockOut,
    WorkingHoursIn,
    WorkingHoursOut,
)
from kinetoflow.schemas.users import UserOut
from kinetoflow.services import calendar as calendar_service
from kinetoflow.services import catalog as catalog_service
from kinetoflow.services import invitations as invitation_service
from kinetoflow.services import plans as plan_service
from kinetoflow.services import scheduling as scheduling_service
from kinetoflow.services import users as user_service

router = APIRouter(prefix="/medic", tags=["medic"])

_medic = require_roles(UserRole.MEDIC)


# Patients and invitations


@router.get("/my-patients", response_model=list[UserOut])
def my_patients(actor: User = Depends(_medic), db: Session = Depends(get_db)) -> list[UserOut]:
    return [UserOut.from_entity(p) for p in user_service.list_medic_patients(db, actor=actor)]


@router.get("/my-pending-invites", response_model=list[UserOut])
def my_pending_invites(
    actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> list[UserOut]:
    invites = user_service.list_medic_pending_invites(db, actor=actor)
    return [UserOut.from_entity(invitee) for invitee in invites]


@router.post(
    "/invites/resend", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse
)
def resend_invite(
    payload: InvitationResendRequest,
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> MessageResponse:
    invitation_service.send_invitation(
        db, actor=actor, email=payload.email, role=UserRole.PATIENT
    )
    return MessageResponse(message=f"Invitation re-sent to {payload.email}")


@router.delete("/invites/{user_id}/cancel", response_model=MessageResponse)
def cancel_invite(
    user_id: UUID, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> MessageResponse:
    invitation_service.cancel_invitation(db, actor=actor, user_id=user_id)
    return MessageResponse(message="Invitation cancelled")


# Catalog


@router.get("/company-services", response_model=list[ServiceOut])
def company_services(
    actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> list[ServiceOut]:
    services = catalog_service.list_services(db, actor=actor, active_only=True)
    return [ServiceOut.model_validate(service) for service in services]


@router.get("/company-packages", response_model=list[PackageOut])
def company_packages(
    actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> list[PackageOut]:
    packages = catalog_service.list_packages(db, actor=actor, active_only=True)
    return [PackageOut.from_entity(package) for package in packages]


# Plans


@router.get("/patients/{patient_id}/plans", response_model=list[PlanOut])
def patient_plans(
    patient_id: UUID, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> list[PlanOut]:
    plans = plan_service.get_plans_for_patient(db, actor=actor, patient_id=patient_id)
    return [PlanOut.from_entity(plan) for plan in plans]


@router.post(
    "/patients/{patient_id}/plans",
    status_code=status.HTTP_201_CREATED,
    response_model=PlanOut,
)
def assign_plan(
    patient_id: UUID,
    payload: PlanAssignRequest,
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> PlanOut:
    plan = plan_service.assign_plan(db, actor=actor, patient_id=patient_id, payload=payload)
    return PlanOut.from_entity(plan)


@router.patch("/plans/{plan_id}/status", response_model=PlanOut)
def set_plan_status(
    plan_id: UUID,
    payload: StatusUpdate,
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> PlanOut:
    plan = plan_service.set_plan_active(db, actor=actor, plan_id=plan_id, active=payload.active)
    return PlanOut.from_entity(plan)


@router.patch("/plans/{plan_id}/archive", response_model=PlanOut)
def archive_plan(
    plan_id: UUID, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> PlanOut:
    return PlanOut.from_entity(plan_service.archive_plan(db, actor=actor, plan_id=plan_id))


@router.patch("/plan-items/{item_id}/status", response_model=PlanItemOut)
def set_plan_item_status(
    item_id: UUID,
    payload: StatusUpdate,
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> PlanItemOut:
    item = plan_service.set_item_active(db, actor=actor, item_id=item_id, active=payload.active)
    return PlanItemOut.from_entity(item)


@router.patch("/plan-items/{item_id}/archive", response_model=PlanItemOut)
def archive_plan_item(
    item_id: UUID, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> PlanItemOut:
    return PlanItemOut.from_entity(plan_service.archive_item(db, actor=actor, item_id=item_id))


@router.put("/plan-items/{item_id}/quantities", response_model=PlanItemOut)
def update_plan_item_quantities(
    item_id: UUID,
    payload: PlanItemQuantitiesUpdate,
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> PlanItemOut:
    item = plan_service.update_item_quantities(
        db,
        actor=actor,
        item_id=item_id,
        total_quantity=payload.total_quantity,
        remaining_quantity=payload.remaining_quantity,
    )
    return PlanItemOut.from_entity(item)


# Calendar


@router.get("/calendar/events", response_model=list[CalendarEvent])
def calendar_events(
    start: datetime = Query(...),
    end: datetime = Query(...),
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> list[CalendarEvent]:
    return calendar_service.get_calendar_events(db, actor=actor, start=start, end=end)


@router.post("/time-blocks", status_code=status.HTTP_201_CREATED, response_model=TimeBlockOut)
def create_time_block(
    payload: TimeBlockCreate, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> TimeBlockOut:
    block = calendar_service.create_time_block(
        db, actor=actor, start=payload.start_time, end=payload.end_time, reason=payload.reason
    )
    return TimeBlockOut.model_validate(block)


@router.delete("/time-blocks/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time_block(
    block_id: UUID, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> Response:
    calendar_service.delete_time_block(db, actor=actor, block_id=block_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Working hours


@router.get("/working-hours", response_model=list[WorkingHoursOut])
def list_working_hours(
    actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> list[WorkingHoursOut]:
    rows = calendar_service.list_working_hours(db, actor=actor)
    return [WorkingHoursOut.model_validate(row) for row in rows]


@router.post("/working-hours", response_model=list[WorkingHoursOut])
def replace_working_hours(
    payload: list[WorkingHoursIn],
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> list[WorkingHoursOut]:
    rows = calendar_service.set_working_hours_bulk(db, actor=actor, entries=payload)
    return [WorkingHoursOut.model_validate(row) for row in rows]


@router.put("/working-hours/day", response_model=WorkingHoursOut)
def set_working_day(
    payload: WorkingHoursIn, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> WorkingHoursOut:
    row = calendar_service.set_working_day(db, actor=actor, entry=payload)
    return WorkingHoursOut.model_validate(row)


@router.delete("/working-hours/{day_of_week}", status_code=status.HTTP_204_NO_CONTENT)
def delete_working_day(
    day_of_week: DayOfWeek, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> Response:
    calendar_service.delete_working_day(db, actor=actor, day_of_week=day_of_week)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/working-hours", status_code=status.HTTP_204_NO_CONTENT)
def clear_working_hours(actor: User = Depends(_medic), db: Session = Depends(get_db)) -> Response:
    calendar_service.clear_working_hours(db, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Appointments


@router.post("/appointments", status_code=status.HTTP_201_CREATED, response_model=AppointmentOut)
def create_appointment(
    payload: AppointmentCreate, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> AppointmentOut:
    appointment = scheduling_service.create_appointment(db, actor=actor, payload=payload)
    return AppointmentOut.from_entity(appointment)


@router.patch("/appointments/{appointment_id}/cancel", response_model=AppointmentOut)
def cancel_appointment(
    appointment_id: UUID,
    payload: AppointmentCancel,
    actor: User = Depends(_medic),
    db: Session = Depends(get_db),
) -> AppointmentOut:
    appointment = scheduling_service.cancel_appointment(
        db,
        actor=actor,
        appointment_id=appointment_id,
        status=payload.status,
        reason=payload.reason,
    )
    return AppointmentOut.from_entity(appointment)


@router.delete("/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: UUID, actor: User = Depends(_medic), db: Session = Depends(get_db)
) -> Response:
    scheduling_service.delete_appointment(db, actor=actor, appointment_id=appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
