from sqlalchemy import Column, DateTime, JSON, String, event
from sqlalchemy.orm import object_session

from ..core.errors import ImmutableRecordError
from .asset import Approval
from .base import Base, enum_type, new_id, utcnow
from .enums import AuditAction, ResourceType


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    action = Column(enum_type(AuditAction), nullable=False, index=True)
    resource_type = Column(enum_type(ResourceType), nullable=False, index=True)
    resource_id = Column(String(36), nullable=False)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


def _refuse_update(mapper, connection, target) -> None:
    session = object_session(target)
    if session is None or session.is_modified(target, include_collections=False):
        raise ImmutableRecordError(f"{type(target).__name__} rows are immutable", id=target.id)


def _refuse_delete(mapper, connection, target) -> None:
    raise ImmutableRecordError(f"{type(target).__name__} rows cannot be deleted", id=target.id)


for _model in (AuditLog, Approval):
    event.listen(_model, "before_update", _refuse_update)
    event.listen(_model, "before_delete", _refuse_delete)
