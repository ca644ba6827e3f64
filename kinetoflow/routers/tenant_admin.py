from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.deps import require_roles
from kinetoflow.models import User, UserRole
from kinetoflow.schemas.catalog import PackageIn, PackageOut, ServiceIn, ServiceOut
from kinetoflow.schemas.common import StatusUpdate
from kinetoflow.schemas.plans import PlanAssignRequest, PlanOut
from kinetoflow.schemas.users import AssignMedicRequest, UserOut
from kinetoflow.services import catalog as catalog_service
from kinetoflow.services import plans as plan_service
from kinetoflow.services import users as user_service

router = APIRouter(prefix="/tenant-admin", tags=["tenant-admin"])

_tenant_admin = require_roles(UserRole.TENANT_ADMIN)


# Services


@router.get("/services", response_model=list[ServiceOut])
def list_services(
    actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> list[ServiceOut]:
    services = catalog_service.list_services(db, actor=actor)
    return [ServiceOut.model_validate(service) for service in services]


@router.post("/services", status_code=status.HTTP_201_CREATED, response_model=ServiceOut)
def create_service(
    payload: ServiceIn, actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> ServiceOut:
    return ServiceOut.model_validate(catalog_service.create_service(db, actor=actor, payload=payload))


@router.get("/services/{service_id}", response_model=ServiceOut)
def get_service(
    service_id: UUID, actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> ServiceOut:
    return ServiceOut.model_validate(
        catalog_service.get_service(db, actor=actor, service_id=service_id)
    )


@router.put("/services/{service_id}", response_model=ServiceOut)
def update_service(
    service_id: UUID,
    payload: ServiceIn,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> ServiceOut:
    service = catalog_service.update_service(
        db, actor=actor, service_id=service_id, payload=payload
    )
    return ServiceOut.model_validate(service)


@router.patch("/services/{service_id}/status", response_model=ServiceOut)
def set_service_status(
    service_id: UUID,
    payload: StatusUpdate,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> ServiceOut:
    service = catalog_service.set_service_active(
        db, actor=actor, service_id=service_id, active=payload.active
    )
    return ServiceOut.model_validate(service)


# Packages


@router.get("/packages", response_model=list[PackageOut])
def list_packages(
    actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> list[PackageOut]:
    return [PackageOut.from_entity(p) for p in catalog_service.list_packages(db, actor=actor)]


@router.post("/packages", status_code=status.HTTP_201_CREATED, response_model=PackageOut)
def create_package(
    payload: PackageIn, actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> PackageOut:
    return PackageOut.from_entity(catalog_service.create_package(db, actor=actor, payload=payload))


@router.get("/packages/{package_id}", response_model=PackageOut)
def get_package(
    package_id: UUID, actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> PackageOut:
    return PackageOut.from_entity(
        catalog_service.get_package(db, actor=actor, package_id=package_id)
    )


@router.put("/packages/{package_id}", response_model=PackageOut)
def update_package(
    package_id: UUID,
    payload: PackageIn,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> PackageOut:
    package = catalog_service.update_package(
        db, actor=actor, package_id=package_id, payload=payload
    )
    return PackageOut.from_entity(package)


@router.patch("/packages/{package_id}/status", response_model=PackageOut)
def set_package_status(
    package_id: UUID,
    payload: StatusUpdate,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> PackageOut:
    package = catalog_service.set_package_active(
        db, actor=actor, package_id=package_id, active=payload.active
    )
    return PackageOut.from_entity(package)


# Users


@router.get("/medics", response_model=list[UserOut])
def list_medics(
    actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> list[UserOut]:
    medics = user_service.list_tenant_users(db, actor=actor, role=UserRole.MEDIC)
    return [UserOut.from_entity(medic) for medic in medics]


@router.get("/patients", response_model=list[UserOut])
def list_patients(
    actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> list[UserOut]:
    patients = user_service.list_tenant_users(db, actor=actor, role=UserRole.PATIENT)
    return [UserOut.from_entity(patient) for patient in patients]


@router.patch("/users/{user_id}/status", response_model=UserOut)
def set_user_status(
    user_id: UUID,
    payload: StatusUpdate,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> UserOut:
    user = user_service.set_user_active(db, actor=actor, user_id=user_id, active=payload.active)
    return UserOut.from_entity(user)


@router.patch("/patients/{patient_id}/assign-medic", response_model=UserOut)
def assign_medic(
    patient_id: UUID,
    payload: AssignMedicRequest,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> UserOut:
    patient = user_service.assign_medic(
        db, actor=actor, patient_id=patient_id, medic_id=payload.medic_id
    )
    return UserOut.from_entity(patient)


# Plans


@router.get("/patients/{patient_id}/plans", response_model=list[PlanOut])
def list_patient_plans(
    patient_id: UUID, actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
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
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> PlanOut:
    plan = plan_service.assign_plan(db, actor=actor, patient_id=patient_id, payload=payload)
    return PlanOut.from_entity(plan)
