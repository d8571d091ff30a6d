from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text

from .base import Base, enum_type, new_id, utcnow
from .enums import NotificationType, ResourceType


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(enum_type(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_resource_type = Column(enum_type(ResourceType), nullable=True)
    related_resource_id = Column(String(36), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
