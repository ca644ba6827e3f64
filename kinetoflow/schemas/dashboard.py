from __future__ import annotations

from pydantic import BaseModel


class CompanyStats(BaseModel):
    active_medics: int = 0
    pending_medics: int = 0
    active_patients: int = 0
    pending_patients: int = 0
    unassigned_patients: int = 0
