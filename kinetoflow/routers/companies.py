from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.deps import require_roles
from kinetoflow.models import User, UserRole
from kinetoflow.schemas.companies import CompanyCreate, CompanyOut, CompanyUpdate
from kinetoflow.services import companies as company_service

router = APIRouter(prefix="/companies", tags=["companies"])

_platform_admin = require_roles(UserRole.PLATFORM_ADMIN)
_tenant_admin = require_roles(UserRole.TENANT_ADMIN)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CompanyOut)
def create_company(
    payload: CompanyCreate,
    actor: User = Depends(_platform_admin),
    db: Session = Depends(get_db),
) -> CompanyOut:
    company = company_service.create_company(
        db, actor=actor, name=payload.name, address=payload.address
    )
    return CompanyOut.model_validate(company)


@router.get("", response_model=list[CompanyOut])
def list_companies(
    actor: User = Depends(_platform_admin), db: Session = Depends(get_db)
) -> list[CompanyOut]:
    return [CompanyOut.model_validate(c) for c in company_service.list_companies(db, actor=actor)]


@router.get("/my-company", response_model=CompanyOut)
def get_my_company(
    actor: User = Depends(_tenant_admin), db: Session = Depends(get_db)
) -> CompanyOut:
    return CompanyOut.model_validate(company_service.get_my_company(db, actor=actor))


@router.put("/my-company", response_model=CompanyOut)
def update_my_company(
    payload: CompanyUpdate,
    actor: User = Depends(_tenant_admin),
    db: Session = Depends(get_db),
) -> CompanyOut:
    company = company_service.update_my_company(db, actor=actor, address=payload.address)
    return CompanyOut.model_validate(company)
