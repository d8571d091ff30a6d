from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint

from .base import Base, enum_type, new_id, utcnow
from .enums import (
    ApprovalAction,
    AssetStatus,
    AssetType,
    Platform,
    ShareTargetType,
    UploadType,
    VisibilityLevel,
)


class Asset(Base):
    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    asset_type = Column(enum_type(AssetType), nullable=False)
    upload_type = Column(enum_type(UploadType), nullable=False)
    status = Column(enum_type(AssetStatus), nullable=False, default=AssetStatus.DRAFT, index=True)
    visibility = Column(enum_type(VisibilityLevel), nullable=False, default=VisibilityLevel.UPLOADER_ONLY)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    uploader_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    storage_url = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(128), nullable=True)
    target_platforms = Column(JSON, nullable=False, default=list)
    campaign_name = Column(String(255), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    # Optimistic lock: concurrent status writes raise StaleDataError on flush.
    __mapper_args__ = {"version_id_col": version}

    @property
    def is_seo(self) -> bool:
        return self.upload_type == UploadType.SEO

    def snapshot(self) -> dict:
        return {
            "title": self.title,
            "assetType": _value(self.asset_type),
            "uploadType": _value(self.upload_type),
            "status": _value(self.status),
            "visibility": _value(self.visibility),
            "companyId": self.company_id,
            "uploaderId": self.uploader_id,
        }

    def __repr__(self) -> str:
        return f"<Asset {self.id} {self.upload_type} {self.status} {self.visibility}>"


class AssetShare(Base):
    __tablename__ = "asset_shares"
    __table_args__ = (UniqueConstraint("asset_id", "shared_with_id", name="uq_asset_shares_asset_recipient"),)

    id = Column(String(36), primary_key=True, default=new_id)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    shared_with_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    target_type = Column(enum_type(ShareTargetType), nullable=True)
    target_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Approval(Base):
    __tablename__ = "approvals"

    id = Column(String(36), primary_key=True, default=new_id)
    # No foreign key: review history outlives the asset row.
    asset_id = Column(String(36), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    action = Column(enum_type(ApprovalAction), nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class PlatformUsage(Base):
    __tablename__ = "platform_usages"
    __table_args__ = (Index("ix_platform_usages_asset_used_at", "asset_id", "used_at"),)

    id = Column(String(36), primary_key=True, default=new_id)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False)
    platform = Column(enum_type(Platform), nullable=False)
    campaign_name = Column(String(255), nullable=False)
    post_url = Column(String(1024), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    logged_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)


class AssetDownload(Base):
    __tablename__ = "asset_downloads"
    __table_args__ = (Index("ix_asset_downloads_asset_downloaded_at", "asset_id", "downloaded_at"),)

    id = Column(String(36), primary_key=True, default=new_id)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False)
    downloaded_by_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    platform_intent = Column(JSON, nullable=False, default=list)
    downloaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


def _value(member):
    return member.value if member is not None else None
