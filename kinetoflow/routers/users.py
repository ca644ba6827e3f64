from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.deps import get_current_actor, require_roles
from kinetoflow.models import User, UserRole
from kinetoflow.schemas.plans import PlanOut
from kinetoflow.schemas.users import ProfileUpdate, UserOut
from kinetoflow.services import plans as plan_service
from kinetoflow.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])

_patient = require_roles(UserRole.PATIENT)


@router.get("/me", response_model=UserOut)
def get_me(actor: User = Depends(get_current_actor)) -> UserOut:
    return UserOut.from_entity(actor)


@router.put("/me/profile", response_model=UserOut)
def update_my_profile(
    payload: ProfileUpdate,
    actor: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> UserOut:
    return UserOut.from_entity(user_service.update_profile(db, actor=actor, name=payload.name))


@router.get("/me/plans", response_model=list[PlanOut])
def list_my_plans(
    actor: User = Depends(_patient), db: Session = Depends(get_db)
) -> list[PlanOut]:
    return [PlanOut.from_entity(plan) for plan in plan_service.list_own_plans(db, actor=actor)]


@router.get("/me/plans/{plan_id}", response_model=PlanOut)
def get_my_plan(
    plan_id: UUID, actor: User = Depends(_patient), db: Session = Depends(get_db)
) -> PlanOut:
    return PlanOut.from_entity(plan_service.get_own_plan(db, actor=actor, plan_id=plan_id))
