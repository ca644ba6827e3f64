"""FastAPI dependencies resolving the authenticated actor."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from kinetoflow.core.errors import UnauthenticatedError
from kinetoflow.db.session import get_db
from kinetoflow.logging_utils import set_actor_context
from kinetoflow.models import User, UserRole
from kinetoflow.services.access import require_role
from kinetoflow.services.users import resolve_actor

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the active user named by the bearer token.

    The lookup runs in the threadpool. The logging context is bound back on
    the event loop so the handler inherits it.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthenticatedError("Authentication is required")
    actor = await run_in_threadpool(resolve_actor, db, credentials.credentials)
    set_actor_context(actor.id, actor.tenant_id)
    return actor


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Build a dependency that only lets actors with ``roles`` through."""

    def dependency(actor: User = Depends(get_current_actor)) -> User:
        require_role(actor, *roles)
        return actor

    return dependency
