"""Asset creation, editing and the uploader-driven lifecycle steps."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.errors import AssetValidationError, LookupFailureError, PermissionDeniedError
from ..models.asset import Asset, AssetDownload, AssetShare, PlatformUsage
from ..models.enums import (
    AssetStatus,
    AssetType,
    AuditAction,
    ResourceType,
    ShareTargetType,
    UploadType,
    UserRole,
    VisibilityLevel,
)
from ..models.user import Company, User
from .audit import AuditTrail
from .base import AssetOperationService
from .lifecycle import Transition, apply_transition, ensure_deletable
from .notifications import NotificationService
from .visibility_checker import VisibilityChecker

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "description", "tags", "target_platforms", "campaign_name")
_MAX_HISTORY_PAGE = 100
_AUDIT_KEYS = {
    "title": "title",
    "description": "description",
    "tags": "tags",
    "target_platforms": "targetPlatforms",
    "campaign_name": "campaignName",
}


@dataclass
class NewAsset:
    title: str
    asset_type: AssetType
    upload_type: UploadType
    storage_url: str | None = None
    url: str | None = None
    company_id: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    file_size: int | None = None
    mime_type: str | None = None
    target_platforms: list[str] = field(default_factory=list)
    campaign_name: str | None = None
    visibility: VisibilityLevel | None = None
    submit_for_review: bool = False


class AssetService(AssetOperationService):
    def __init__(
        self,
        session: AsyncSession,
        checker: VisibilityChecker,
        audit: AuditTrail,
        notifications: NotificationService,
        settings: Settings | None = None,
    ):
        super().__init__(session, checker, audit, notifications)
        self.settings = settings or get_settings()

    async def create_asset(
        self,
        actor: User,
        data: NewAsset,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        title = (data.title or "").strip()
        if not title:
            raise AssetValidationError("Title is required", field="title")
        self._validate_description(data.description)
        self._validate_tags(data.tags)

        upload_type = UploadType(data.upload_type)
        asset_type = AssetType(data.asset_type)
        if upload_type == UploadType.SEO and not data.company_id:
            raise AssetValidationError("Company required for SEO uploads", field="company_id")
        if upload_type == UploadType.DOC and data.company_id:
            raise AssetValidationError("Doc uploads cannot be assigned to a company", field="company_id")
        if upload_type == UploadType.DOC and data.submit_for_review:
            raise AssetValidationError("Doc uploads are not reviewed", field="submit_for_review")
        if asset_type == AssetType.LINK and not data.url:
            raise AssetValidationError("URL is required for link assets", field="url")
        storage_url = data.url if asset_type == AssetType.LINK else data.storage_url
        if not storage_url:
            raise AssetValidationError("A stored file is required", field="storage_url")

        visibility = self._initial_visibility(actor, upload_type, data.visibility)

        async with self._mutation():
            if data.company_id:
                company = await self.session.get(Company, data.company_id)
                if company is None:
                    raise AssetValidationError("Company not found", field="company_id")

            asset = Asset(
                title=title,
                description=(data.description or "").strip() or None,
                tags=list(data.tags or []),
                asset_type=asset_type,
                upload_type=upload_type,
                status=AssetStatus.DRAFT,
                visibility=visibility,
                company_id=data.company_id if upload_type == UploadType.SEO else None,
                uploader_id=actor.id,
                storage_url=storage_url,
                file_size=data.file_size,
                mime_type=data.mime_type,
                target_platforms=list(data.target_platforms or []),
                campaign_name=(data.campaign_name or "").strip() or None,
            )
            self.session.add(asset)
            await self.session.flush()
            await self.audit.record(
                actor,
                AuditAction.CREATE,
                ResourceType.ASSET,
                asset.id,
                {**asset.snapshot(), "submitForReview": data.submit_for_review},
                ip_address,
                user_agent,
            )
            if data.submit_for_review:
                await self._submit(actor, asset, ip_address, user_agent)

        logger.info("User %s created %s asset %s (%s)", actor.id, upload_type.value, asset.id, asset.status.value)
        return asset

    async def get_asset(self, actor: User, asset_id: str) -> Asset:
        asset = await self._load_asset(asset_id)
        if not await self.checker.can_view(actor, asset):
            raise self._deny(actor, asset, "view")
        return asset

    async def list_assets(
        self,
        actor: User,
        status: AssetStatus | None = None,
        upload_type: UploadType | None = None,
        company_id: str | None = None,
        uploader_id: str | None = None,
    ) -> list[Asset]:
        query = select(Asset)
        if status:
            query = query.where(Asset.status == status)
        if upload_type:
            query = query.where(Asset.upload_type == upload_type)
        if company_id:
            query = query.where(Asset.company_id == company_id)
        if uploader_id:
            query = query.where(Asset.uploader_id == uploader_id)
        query = query.order_by(Asset.uploaded_at.desc())
        try:
            assets = list(await self.session.scalars(query))
        except SQLAlchemyError as exc:
            raise LookupFailureError("Could not list assets") from exc
        return await self.checker.filter_assets_by_role(actor, assets)

    async def update_asset(
        self,
        actor: User,
        asset_id: str,
        changes: dict[str, Any],
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        unknown = set(changes) - set(_EDITABLE_FIELDS)
        if unknown:
            raise AssetValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}", fields=sorted(unknown))

        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if not self.checker.can_edit(actor, asset):
                raise self._deny(actor, asset, "edit")

            updates, previous = self._diff(asset, changes)
            if not updates:
                return asset

            for key, value in updates.items():
                setattr(asset, key, value)
            await self.audit.record(
                actor,
                AuditAction.UPDATE,
                ResourceType.ASSET,
                asset.id,
                {
                    "changes": {_AUDIT_KEYS[key]: value for key, value in updates.items()},
                    "previousValues": {_AUDIT_KEYS[key]: value for key, value in previous.items()},
                },
                ip_address,
                user_agent,
            )
        return asset

    async def delete_asset(
        self,
        actor: User,
        asset_id: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if not self.checker.can_delete(actor, asset):
                raise self._deny(actor, asset, "delete")
            ensure_deletable(asset)

            snapshot = asset.snapshot()
            await self.session.execute(delete(AssetShare).where(AssetShare.asset_id == asset.id))
            await self.session.execute(delete(PlatformUsage).where(PlatformUsage.asset_id == asset.id))
            await self.session.execute(delete(AssetDownload).where(AssetDownload.asset_id == asset.id))
            await self.session.delete(asset)
            await self.audit.record(
                actor,
                AuditAction.DELETE,
                ResourceType.ASSET,
                asset_id,
                snapshot,
                ip_address,
                user_agent,
            )
        logger.info("User %s deleted asset %s", actor.id, asset_id)

    async def submit_for_review(
        self,
        actor: User,
        asset_id: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if actor.id != asset.uploader_id:
                raise self._deny(actor, asset, "submit")
            await self._submit(actor, asset, ip_address, user_agent)
        return asset

    async def change_visibility(
        self,
        actor: User,
        asset_id: str,
        visibility: VisibilityLevel,
        allowed_role: UserRole | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        context: str | None = None,
    ) -> Asset:
        visibility = VisibilityLevel(visibility)
        if visibility == VisibilityLevel.ROLE and allowed_role is None:
            raise AssetValidationError("A role is required when visibility is ROLE", field="allowed_role")

        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if not self.checker.can_modify_visibility(actor, asset):
                raise self._deny(actor, asset, "change the visibility of")
            await self.apply_visibility(actor, asset, visibility, allowed_role, ip_address, user_agent, context)
        return asset

    async def apply_visibility(
        self,
        actor: User,
        asset: Asset,
        visibility: VisibilityLevel,
        allowed_role: UserRole | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        context: str | None = None,
    ) -> bool:
        """Set the level and its ROLE grant inside the caller's unit of work.

        Returns False when nothing changed, in which case nothing is audited.
        """
        previous = VisibilityLevel(asset.visibility)
        previous_role = await self._current_role_grant(asset.id)
        new_role = UserRole(allowed_role).value if visibility == VisibilityLevel.ROLE else None
        if previous == visibility and previous_role == new_role:
            return False

        await self.session.execute(
            delete(AssetShare).where(AssetShare.asset_id == asset.id, AssetShare.target_type == ShareTargetType.ROLE)
        )
        if new_role:
            self.session.add(
                AssetShare(
                    asset_id=asset.id,
                    shared_by_id=asset.uploader_id,
                    target_type=ShareTargetType.ROLE,
                    target_id=new_role,
                )
            )
        asset.visibility = visibility

        metadata: dict[str, Any] = {"previousValue": previous.value, "newValue": visibility.value}
        if previous_role != new_role:
            metadata["previousAllowedRole"] = previous_role
            metadata["newAllowedRole"] = new_role
        if context:
            metadata["context"] = context
        await self.audit.record(
            actor, AuditAction.VISIBILITY_CHANGE, ResourceType.ASSET, asset.id, metadata, ip_address, user_agent
        )
        return True

    async def record_download(
        self,
        actor: User,
        asset_id: str,
        platform_intent: list[str] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        platforms = [platform for platform in (platform_intent or []) if platform]
        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if not await self.checker.can_download(actor, asset):
                raise self._deny(actor, asset, "download")
            download = AssetDownload(asset_id=asset.id, downloaded_by_id=actor.id, platform_intent=platforms)
            self.session.add(download)
            await self.session.flush()
            await self.audit.record(
                actor,
                AuditAction.DOWNLOAD,
                ResourceType.ASSET,
                asset.id,
                {"title": asset.title, "platforms": platforms, "downloadId": download.id},
                ip_address,
                user_agent,
            )
        return asset

    async def download_history(
        self, actor: User, asset_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[AssetDownload], int]:
        """Newest-first page of download records plus the total count.

        Anyone who can view the asset can read its history. ``limit`` is
        clamped to 1..100.
        """
        asset = await self._load_asset(asset_id)
        if not await self.checker.can_view(actor, asset):
            raise self._deny(actor, asset, "view")
        limit = min(max(1, limit), _MAX_HISTORY_PAGE)
        try:
            rows = await self.session.scalars(
                select(AssetDownload)
                .where(AssetDownload.asset_id == asset_id)
                .order_by(AssetDownload.downloaded_at.desc())
                .limit(limit)
                .offset(max(0, offset))
            )
            total = await self.session.scalar(
                select(func.count()).select_from(AssetDownload).where(AssetDownload.asset_id == asset_id)
            )
        except SQLAlchemyError as exc:
            raise LookupFailureError("Could not load download history") from exc
        return list(rows), total or 0

    async def downloads_by_user(
        self, actor: User, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[AssetDownload]:
        if actor.id != user_id and actor.role != UserRole.ADMIN:
            raise PermissionDeniedError("Only admins can read another user's downloads")
        limit = min(max(1, limit), _MAX_HISTORY_PAGE)
        try:
            rows = await self.session.scalars(
                select(AssetDownload)
                .where(AssetDownload.downloaded_by_id == user_id)
                .order_by(AssetDownload.downloaded_at.desc())
                .limit(limit)
                .offset(max(0, offset))
            )
        except SQLAlchemyError as exc:
            raise LookupFailureError("Could not load downloads") from exc
        return list(rows)

    async def _submit(self, actor: User, asset: Asset, ip_address: str | None, user_agent: str | None) -> None:
        previous = apply_transition(asset, Transition.SUBMIT)
        await self.audit.record(
            actor,
            AuditAction.UPDATE,
            ResourceType.ASSET,
            asset.id,
            {
                "transition": Transition.SUBMIT.value,
                "previousStatus": previous.value,
                "newStatus": AssetStatus.PENDING_REVIEW.value,
                "resubmission": previous == AssetStatus.REJECTED,
            },
            ip_address,
            user_agent,
        )
        await self.notifications.notify_admins_of_submission(asset, actor)

    async def _current_role_grant(self, asset_id: str) -> str | None:
        return await self.session.scalar(
            select(AssetShare.target_id)
            .where(AssetShare.asset_id == asset_id, AssetShare.target_type == ShareTargetType.ROLE)
            .limit(1)
        )

    def _initial_visibility(self, actor: User, upload_type: UploadType, requested: VisibilityLevel | None) -> VisibilityLevel:
        if upload_type == UploadType.DOC:
            return VisibilityLevel.UPLOADER_ONLY
        if actor.role == UserRole.ADMIN and requested is not None:
            requested = VisibilityLevel(requested)
            if requested == VisibilityLevel.ROLE:
                raise AssetValidationError("ROLE visibility is set through a visibility change", field="visibility")
            return requested
        return VisibilityLevel.ADMIN_ONLY

    def _validate_description(self, description: str | None) -> None:
        if description and len(description) > self.settings.max_description_length:
            raise AssetValidationError(
                f"Description cannot exceed {self.settings.max_description_length} characters",
                field="description",
            )

    def _validate_tags(self, tags: list[str] | None) -> None:
        if tags and len(tags) > self.settings.max_tags:
            raise AssetValidationError(f"Cannot have more than {self.settings.max_tags} tags", field="tags")

    def _diff(self, asset: Asset, changes: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        updates: dict[str, Any] = {}
        previous: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "title":
                value = (value or "").strip()
                if not value:
                    raise AssetValidationError("Title cannot be empty", field="title")
            elif key == "description":
                self._validate_description(value)
                value = (value or "").strip() or None
            elif key == "tags":
                value = list(value or [])
                self._validate_tags(value)
            elif key == "target_platforms":
                value = list(value or [])
            elif key == "campaign_name":
                value = (value or "").strip() or None
            current = getattr(asset, key)
            if value != current:
                updates[key] = value
                previous[key] = current
        return updates, previous
