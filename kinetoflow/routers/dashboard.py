from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.deps import require_roles
from kinetoflow.models import User, UserRole
from kinetoflow.schemas.dashboard import CompanyStats
from kinetoflow.services.dashboard import company_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/company-stats", response_model=CompanyStats)
def get_company_stats(
    actor: User = Depends(require_roles(UserRole.TENANT_ADMIN)),
    db: Session = Depends(get_db),
) -> CompanyStats:
    return company_stats(db, actor=actor)
