from fastapi import APIRouter, Depends
from fastapi.responses import Response

from brokerdesk.authz.api import roles_router, users_router
from brokerdesk.authz.schemas import MeRead
from brokerdesk.authz.service import user_admin_service
from brokerdesk.business.affiliates.api import router as affiliates_router
from brokerdesk.business.agents.api import router as agents_router
from brokerdesk.business.claims.api import router as claims_router
from brokerdesk.business.clients.api import router as clients_router
from brokerdesk.business.employees.api import router as employees_router
from brokerdesk.business.insurers.api import router as insurers_router
from brokerdesk.business.invitations.api import router as invitations_router
from brokerdesk.business.invoices.api import router as invoices_router
from brokerdesk.business.policies.api import router as policies_router
from brokerdesk.business.tickets.api import router as tickets_router
from brokerdesk.core.config import get_settings
from brokerdesk.core.errors import NotFoundError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.metrics import generate_metrics_payload, metrics_content_type
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup

router = APIRouter()

api_router = APIRouter(prefix="/api")
api_router.include_router(clients_router)
api_router.include_router(insurers_router)
api_router.include_router(affiliates_router)
api_router.include_router(agents_router)
api_router.include_router(employees_router)
api_router.include_router(policies_router)
api_router.include_router(invoices_router)
api_router.include_router(claims_router)
api_router.include_router(tickets_router)
api_router.include_router(users_router)
api_router.include_router(roles_router)
api_router.include_router(invitations_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@api_router.get("/me", response_model=MeRead, tags=["auth"])
def me(caller: Caller = Depends(get_caller)) -> MeRead:
    return user_admin_service.me(caller)


@router.get("/metrics", tags=["system"])
def metrics(caller: Caller = Depends(get_caller)) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise NotFoundError("Not found")
    ensure_role(caller, RoleGroup.SUPER_ADMIN_ONLY, resource="metrics")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())


router.include_router(api_router)
