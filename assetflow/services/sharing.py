"""Explicit per-user share grants, managed by the uploader."""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, or_, select

from ..core.errors import AssetValidationError, NotFoundError
from ..models.asset import Asset, AssetShare
from ..models.enums import AuditAction, ResourceType, ShareTargetType, UploadType, VisibilityLevel
from ..models.user import User
from .base import AssetOperationService

logger = logging.getLogger(__name__)

_USER_GRANT = or_(AssetShare.target_type.is_(None), AssetShare.target_type == ShareTargetType.USER)


class ShareManager(AssetOperationService):
    async def share(
        self,
        actor: User,
        asset_id: str,
        user_ids: list[str],
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> list[AssetShare]:
        recipient_ids = list(dict.fromkeys(uid for uid in user_ids or [] if uid))
        if not recipient_ids:
            raise AssetValidationError("At least one recipient is required", field="user_ids")
        if actor.id in recipient_ids:
            raise AssetValidationError("Cannot share an asset with yourself", field="user_ids")

        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if not self.checker.can_share(actor, asset):
                raise self._deny(actor, asset, "share")
            if asset.upload_type == UploadType.DOC:
                raise AssetValidationError(
                    "Doc uploads stay uploader-only and cannot be shared",
                    field="asset_id",
                    asset_id=asset.id,
                )

            found = set(await self.session.scalars(select(User.id).where(User.id.in_(recipient_ids))))
            missing = [uid for uid in recipient_ids if uid not in found]
            if missing:
                raise AssetValidationError("One or more recipients not found", field="user_ids", missing=missing)

            if asset.visibility == VisibilityLevel.UPLOADER_ONLY:
                asset.visibility = VisibilityLevel.SELECTED_USERS
                await self.audit.record(
                    actor,
                    AuditAction.VISIBILITY_CHANGE,
                    ResourceType.ASSET,
                    asset.id,
                    {
                        "previousValue": VisibilityLevel.UPLOADER_ONLY.value,
                        "newValue": VisibilityLevel.SELECTED_USERS.value,
                        "reason": "Asset shared with users",
                    },
                    ip_address,
                    user_agent,
                )

            existing = {
                share.shared_with_id: share
                for share in await self.session.scalars(
                    select(AssetShare).where(AssetShare.asset_id == asset.id, AssetShare.shared_with_id.in_(recipient_ids))
                )
            }
            shares: list[AssetShare] = []
            created: list[str] = []
            for recipient_id in recipient_ids:
                if recipient_id in existing:
                    shares.append(existing[recipient_id])
                    continue
                share = AssetShare(
                    asset_id=asset.id,
                    shared_by_id=actor.id,
                    shared_with_id=recipient_id,
                    target_type=ShareTargetType.USER,
                    target_id=recipient_id,
                )
                self.session.add(share)
                shares.append(share)
                created.append(recipient_id)

            await self.audit.record(
                actor,
                AuditAction.SHARE,
                ResourceType.ASSET,
                asset.id,
                {
                    "action": "share",
                    "sharedWithIds": recipient_ids,
                    "newlySharedIds": created,
                    "sharedWithCount": len(shares),
                },
                ip_address,
                user_agent,
            )
            for recipient_id in created:
                await self.notifications.notify_user_of_share(asset, actor, recipient_id)

        logger.info("User %s shared asset %s with %d user(s)", actor.id, asset_id, len(created))
        return shares

    async def revoke(
        self,
        actor: User,
        asset_id: str,
        user_id: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if actor.id != asset.uploader_id:
                raise self._deny(actor, asset, "revoke sharing on")

            removed = await self.session.execute(
                delete(AssetShare).where(
                    AssetShare.asset_id == asset.id, AssetShare.shared_with_id == user_id, _USER_GRANT
                )
            )
            if not removed.rowcount:
                raise NotFoundError("Share not found", asset_id=asset.id, user_id=user_id)

            remaining = await self.session.scalar(
                select(func.count()).select_from(AssetShare).where(AssetShare.asset_id == asset.id, _USER_GRANT)
            )
            if not remaining and asset.visibility == VisibilityLevel.SELECTED_USERS:
                asset.visibility = VisibilityLevel.UPLOADER_ONLY
                await self.audit.record(
                    actor,
                    AuditAction.VISIBILITY_CHANGE,
                    ResourceType.ASSET,
                    asset.id,
                    {
                        "previousValue": VisibilityLevel.SELECTED_USERS.value,
                        "newValue": VisibilityLevel.UPLOADER_ONLY.value,
                        "reason": "All shares revoked",
                    },
                    ip_address,
                    user_agent,
                )

            await self.audit.record(
                actor,
                AuditAction.SHARE,
                ResourceType.ASSET,
                asset.id,
                {"action": "revoke", "revokedFromUserId": user_id},
                ip_address,
                user_agent,
            )
        return asset

    async def list_shares(self, actor: User, asset_id: str) -> list[AssetShare]:
        asset = await self._load_asset(asset_id)
        if actor.id != asset.uploader_id and not self.checker.can_modify_visibility(actor, asset):
            raise self._deny(actor, asset, "list shares of")
        result = await self.session.scalars(
            select(AssetShare).where(AssetShare.asset_id == asset_id).order_by(AssetShare.created_at.desc())
        )
        return list(result)
