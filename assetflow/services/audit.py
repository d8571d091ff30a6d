"""Audit trail trigger.

Every permitted mutation adds exactly one ``AuditLog`` row to the same
session as the mutation itself, so the row commits or rolls back together
with the change it describes.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditLog
from ..models.base import utcnow
from ..models.enums import AuditAction, ResourceType
from ..models.user import User

logger = logging.getLogger(__name__)

_SENSITIVE_ACTIONS = {AuditAction.APPROVE, AuditAction.REJECT, AuditAction.VISIBILITY_CHANGE}


class AuditTrail:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        actor: User | str,
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: str,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        payload = to_jsonable_python(dict(metadata or {}))
        if action in _SENSITIVE_ACTIONS and not _has_value_pair(payload):
            logger.warning("Audit %s on %s %s recorded without previous/new values", action.value, resource_type.value, resource_id)
        payload.setdefault("timestamp", utcnow().isoformat())

        entry = AuditLog(
            user_id=actor.id if isinstance(actor, User) else actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            metadata_json=payload,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(entry)
        await self.session.flush()
        logger.debug("Audit %s %s/%s by %s", action.value, resource_type.value, resource_id, entry.user_id)
        return entry

    async def list_logs(
        self,
        user_id: str | None = None,
        action: AuditAction | None = None,
        resource_type: ResourceType | None = None,
        resource_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditLog]:
        query = select(AuditLog)
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if action:
            query = query.where(AuditLog.action == action)
        if resource_type:
            query = query.where(AuditLog.resource_type == resource_type)
        if resource_id:
            query = query.where(AuditLog.resource_id == resource_id)
        if start:
            query = query.where(AuditLog.created_at >= start)
        if end:
            query = query.where(AuditLog.created_at <= end)
        query = query.order_by(AuditLog.created_at.desc()).limit(limit).offset(offset)
        result = await self.session.scalars(query)
        return list(result)


def _has_value_pair(payload: dict[str, Any]) -> bool:
    pairs = (("previousValue", "newValue"), ("previousStatus", "newStatus"))
    return any(old in payload and new in payload for old, new in pairs)
