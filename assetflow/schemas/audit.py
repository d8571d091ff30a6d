from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..models.enums import AuditAction, ResourceType


class AuditLogRead(BaseModel):
    id: str
    user_id: str
    action: AuditAction
    resource_type: ResourceType
    resource_id: str
    metadata: dict[str, Any] = Field(validation_alias="metadata_json")
    ip_address: str | None
    user_agent: str | None
    created_at: datetime

    class Config:
        from_attributes = True
