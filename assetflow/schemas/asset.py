from datetime import datetime

from pydantic import BaseModel, Field

from ..models.enums import (
    ApprovalAction,
    AssetStatus,
    AssetType,
    Platform,
    ShareTargetType,
    UploadType,
    UserRole,
    VisibilityLevel,
)


class AssetCreate(BaseModel):
    title: str
    asset_type: AssetType
    upload_type: UploadType
    storage_url: str | None = None
    url: str | None = None
    company_id: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    file_size: int | None = None
    mime_type: str | None = None
    target_platforms: list[str] = Field(default_factory=list)
    campaign_name: str | None = None
    visibility: VisibilityLevel | None = None
    submit_for_review: bool = False


class AssetUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    target_platforms: list[str] | None = None
    campaign_name: str | None = None


class AssetRead(BaseModel):
    id: str
    title: str
    description: str | None
    tags: list[str]
    asset_type: AssetType
    upload_type: UploadType
    status: AssetStatus
    visibility: VisibilityLevel
    company_id: str | None
    uploader_id: str
    storage_url: str
    file_size: int | None
    mime_type: str | None
    target_platforms: list[str]
    campaign_name: str | None
    uploaded_at: datetime
    updated_at: datetime
    approved_at: datetime | None
    approved_by_id: str | None
    rejected_at: datetime | None
    rejected_by_id: str | None
    rejection_reason: str | None

    class Config:
        from_attributes = True


class ApproveRequest(BaseModel):
    visibility: VisibilityLevel | None = None
    allowed_role: UserRole | None = None


class RejectRequest(BaseModel):
    reason: str = ""


class VisibilityUpdate(BaseModel):
    visibility: VisibilityLevel
    allowed_role: UserRole | None = None


class ShareRequest(BaseModel):
    user_ids: list[str]


class ShareRead(BaseModel):
    id: str
    asset_id: str
    shared_by_id: str
    shared_with_id: str | None
    target_type: ShareTargetType | None
    target_id: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class ApprovalRead(BaseModel):
    id: str
    asset_id: str
    reviewer_id: str
    action: ApprovalAction
    reason: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class DownloadRequest(BaseModel):
    platforms: list[str] = Field(default_factory=list)


class DownloadRead(BaseModel):
    id: str
    asset_id: str
    downloaded_by_id: str
    platform_intent: list[str]
    downloaded_at: datetime

    class Config:
        from_attributes = True


class DownloadHistoryRead(BaseModel):
    downloads: list[DownloadRead]
    total: int


class UsageCreate(BaseModel):
    platform: Platform
    campaign_name: str
    post_url: str | None = None


class UsageRead(BaseModel):
    id: str
    asset_id: str
    platform: Platform
    campaign_name: str
    post_url: str | None
    used_at: datetime
    logged_by_id: str

    class Config:
        from_attributes = True


class PermissionsRead(BaseModel):
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_approve: bool
    can_share: bool
    can_modify_visibility: bool
    can_download: bool
    can_log_platform_usage: bool
    reason: str | None = None
