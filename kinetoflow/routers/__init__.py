"""HTTP routers mounted under ``/api``."""

from kinetoflow.routers import (
    auth,
    companies,
    dashboard,
    invitations,
    medic,
    tenant_admin,
    users,
)

ROUTERS = [
    auth.router,
    invitations.router,
    companies.router,
    tenant_admin.router,
    medic.router,
    users.router,
    dashboard.router,
]

__all__ = ["ROUTERS"]
