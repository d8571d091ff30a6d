"""Per-operation permission checks for assets.

Every ``can_*`` method is side-effect free and never raises; a failed
lookup inside the visibility rules comes back as a denial.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from ..models.asset import Asset
from ..models.enums import AssetStatus, UploadType, UserRole, VisibilityLevel
from ..models.user import User
from .visibility import VisibilityService

EDITABLE_STATUSES = frozenset({AssetStatus.DRAFT, AssetStatus.REJECTED})
SHAREABLE_VISIBILITIES = frozenset({VisibilityLevel.UPLOADER_ONLY, VisibilityLevel.SELECTED_USERS})

NO_VIEW_REASON = "User does not have permission to view this asset"
VIEW_ONLY_REASON = "User has view-only access to this asset"


@dataclass(frozen=True)
class PermissionCheck:
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_approve: bool
    reason: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


class RolePolicy:
    """List-visibility policy for one role."""

    async def includes(self, checker: "VisibilityChecker", user: User, asset: Asset) -> bool:
        raise NotImplementedError


class AdminPolicy(RolePolicy):
    async def includes(self, checker, user, asset):
        return True


class _OwnerFirstPolicy(RolePolicy):
    async def includes(self, checker, user, asset):
        # Own uploads are listed whatever their status or visibility.
        if asset.uploader_id == user.id:
            return True
        return await self.includes_foreign(checker, user, asset)

    async def includes_foreign(self, checker, user, asset) -> bool:
        raise NotImplementedError


class ContentCreatorPolicy(_OwnerFirstPolicy):
    async def includes_foreign(self, checker, user, asset):
        return await checker.can_view(user, asset)


class SeoSpecialistPolicy(_OwnerFirstPolicy):
    async def includes_foreign(self, checker, user, asset):
        if asset.status != AssetStatus.APPROVED:
            return False
        return await checker.can_view(user, asset)


ROLE_POLICIES: dict[UserRole, RolePolicy] = {
    UserRole.ADMIN: AdminPolicy(),
    UserRole.CONTENT_CREATOR: ContentCreatorPolicy(),
    UserRole.SEO_SPECIALIST: SeoSpecialistPolicy(),
}


class VisibilityChecker:
    def __init__(self, visibility: VisibilityService, policies: dict[UserRole, RolePolicy] | None = None):
        self.visibility = visibility
        self.policies = policies or ROLE_POLICIES

    async def can_view(self, user: User, asset: Asset) -> bool:
        return await self.visibility.can_user_view_asset(user, asset)

    def can_edit(self, user: User, asset: Asset) -> bool:
        if user.role == UserRole.ADMIN:
            return True
        return user.id == asset.uploader_id and asset.status in EDITABLE_STATUSES

    def can_delete(self, user: User, asset: Asset) -> bool:
        return self.can_edit(user, asset)

    def can_approve(self, user: User, asset: Asset) -> bool:
        return (
            user.role == UserRole.ADMIN
            and asset.upload_type == UploadType.SEO
            and asset.status == AssetStatus.PENDING_REVIEW
        )

    def can_share(self, user: User, asset: Asset) -> bool:
        return user.id == asset.uploader_id and asset.visibility in SHAREABLE_VISIBILITIES

    def can_modify_visibility(self, user: User, asset: Asset) -> bool:
        # Doc assets are pinned to UPLOADER_ONLY.
        return user.role == UserRole.ADMIN and asset.upload_type == UploadType.SEO

    async def can_download(self, user: User, asset: Asset) -> bool:
        return await self.can_view(user, asset)

    async def can_log_platform_usage(self, user: User, asset: Asset) -> bool:
        if not await self.can_view(user, asset):
            return False
        if asset.upload_type == UploadType.SEO and asset.status != AssetStatus.APPROVED:
            return False
        return True

    async def check_all_permissions(self, user: User, asset: Asset) -> PermissionCheck:
        can_view = await self.can_view(user, asset)
        can_edit = self.can_edit(user, asset)
        can_delete = self.can_delete(user, asset)
        can_approve = self.can_approve(user, asset)

        reason = None
        if not can_view:
            reason = NO_VIEW_REASON
        elif not (can_edit or can_delete or can_approve):
            reason = VIEW_ONLY_REASON

        return PermissionCheck(
            can_view=can_view,
            can_edit=can_edit,
            can_delete=can_delete,
            can_approve=can_approve,
            reason=reason,
        )

    async def filter_visible_assets(self, user: User, assets: Iterable[Asset]) -> list[Asset]:
        return [asset for asset in assets if await self.can_view(user, asset)]

    async def filter_assets_by_role(self, user: User, assets: Iterable[Asset]) -> list[Asset]:
        policy = self.policies.get(UserRole(user.role))
        if policy is None:
            return []
        return [asset for asset in assets if await policy.includes(self, user, asset)]
