"""Admin review: approve or reject assets waiting in PENDING_REVIEW."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import AssetValidationError, PermissionDeniedError
from ..models.asset import Approval, Asset
from ..models.enums import ApprovalAction, AssetStatus, AuditAction, ResourceType, UploadType, UserRole, VisibilityLevel
from ..models.user import User
from .assets import AssetService
from .audit import AuditTrail
from .base import AssetOperationService
from .lifecycle import Transition, apply_transition, target_status
from .notifications import NotificationService
from .visibility_checker import VisibilityChecker

logger = logging.getLogger(__name__)


class ApprovalService(AssetOperationService):
    def __init__(
        self,
        session: AsyncSession,
        checker: VisibilityChecker,
        audit: AuditTrail,
        notifications: NotificationService,
        assets: AssetService,
    ):
        super().__init__(session, checker, audit, notifications)
        self.assets = assets

    async def approve(
        self,
        actor: User,
        asset_id: str,
        new_visibility: VisibilityLevel | None = None,
        allowed_role: UserRole | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        if new_visibility is not None:
            new_visibility = VisibilityLevel(new_visibility)
            if new_visibility == VisibilityLevel.ROLE and allowed_role is None:
                raise AssetValidationError("A role is required when visibility is ROLE", field="allowed_role")

        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            self._guard_review(actor, asset, Transition.APPROVE)

            previous = apply_transition(asset, Transition.APPROVE, reviewer_id=actor.id)
            self.session.add(Approval(asset_id=asset.id, reviewer_id=actor.id, action=ApprovalAction.APPROVE))

            metadata = {
                "previousStatus": previous.value,
                "newStatus": AssetStatus.APPROVED.value,
                "approvedAt": asset.approved_at,
                "approvedById": actor.id,
            }
            visibility_before = VisibilityLevel(asset.visibility)
            await self.audit.record(
                actor, AuditAction.APPROVE, ResourceType.ASSET, asset.id, metadata, ip_address, user_agent
            )
            if new_visibility is not None:
                await self.assets.apply_visibility(
                    actor,
                    asset,
                    new_visibility,
                    allowed_role,
                    ip_address,
                    user_agent,
                    context="Changed during approval",
                )
            await self.notifications.notify_uploader_of_approval(asset, actor)

        logger.info(
            "Asset %s approved by %s (visibility %s -> %s)",
            asset.id,
            actor.id,
            visibility_before.value,
            VisibilityLevel(asset.visibility).value,
        )
        return asset

    async def reject(
        self,
        actor: User,
        asset_id: str,
        reason: str | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Asset:
        reason = (reason or "").strip()
        if not reason:
            raise AssetValidationError("Rejection reason is required", field="reason")

        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            self._guard_review(actor, asset, Transition.REJECT)

            previous_reason = asset.rejection_reason
            previous = apply_transition(asset, Transition.REJECT, reviewer_id=actor.id, reason=reason)
            self.session.add(
                Approval(asset_id=asset.id, reviewer_id=actor.id, action=ApprovalAction.REJECT, reason=reason)
            )
            await self.audit.record(
                actor,
                AuditAction.REJECT,
                ResourceType.ASSET,
                asset.id,
                {
                    "previousStatus": previous.value,
                    "newStatus": AssetStatus.REJECTED.value,
                    "rejectedAt": asset.rejected_at,
                    "rejectedById": actor.id,
                    "previousReason": previous_reason,
                    "reason": reason,
                },
                ip_address,
                user_agent,
            )
            await self.notifications.notify_uploader_of_rejection(asset, actor, reason)

        logger.info("Asset %s rejected by %s", asset.id, actor.id)
        return asset

    async def list_pending(self, actor: User) -> list[Asset]:
        if actor.role != UserRole.ADMIN:
            raise self._deny_queue(actor)
        result = await self.session.scalars(
            select(Asset).where(Asset.status == AssetStatus.PENDING_REVIEW).order_by(Asset.uploaded_at.desc())
        )
        return list(result)

    async def history(self, actor: User, asset_id: str) -> list[Approval]:
        asset = await self._load_asset(asset_id)
        if not await self.checker.can_view(actor, asset):
            raise self._deny(actor, asset, "view")
        result = await self.session.scalars(
            select(Approval).where(Approval.asset_id == asset_id).order_by(Approval.created_at, Approval.id)
        )
        return list(result)

    def _guard_review(self, actor: User, asset: Asset, transition: Transition) -> None:
        # Doc uploads are never reviewable, whatever their status.
        if actor.role != UserRole.ADMIN or asset.upload_type != UploadType.SEO:
            raise self._deny(actor, asset, transition.value)
        target_status(asset, transition)
        if not self.checker.can_approve(actor, asset):
            raise self._deny(actor, asset, transition.value)

    def _deny_queue(self, actor: User) -> PermissionDeniedError:
        logger.info("Denied review queue for user %s (%s)", actor.id, actor.role)
        return PermissionDeniedError("Only admins can view the review queue")
