from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..core.security import get_current_user, require_api_key
from ..models.enums import AuditAction, ResourceType, UserRole
from ..models.user import User
from ..schemas.audit import AuditLogRead
from ..services.container import Services
from .deps import get_services

router = APIRouter(prefix="/audit-logs", tags=["audit"], dependencies=[Depends(require_api_key)])


@router.get("/", response_model=list[AuditLogRead])
async def list_audit_logs(
    user_id: str | None = None,
    action: AuditAction | None = None,
    resource_type: ResourceType | None = None,
    resource_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return await services.audit.list_logs(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
