"""Visibility rule evaluation.

An asset's ``visibility`` level is checked by walking an ordered list of
rules. The first rule that admits the user wins; if none does, access is
denied. Uploader and admin overrides sit at the head of the list so the
level rules never have to repeat them.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.asset import Asset, AssetShare
from ..models.enums import ShareTargetType, UserRole, VisibilityLevel
from ..models.user import User

logger = logging.getLogger(__name__)


class ShareLookup(Protocol):
    async def has_user_grant(self, asset_id: str, user_id: str) -> bool: ...

    async def has_role_grant(self, asset_id: str, role: UserRole) -> bool: ...


class SqlShareLookup:
    """Share grant lookups against the ``asset_shares`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def has_user_grant(self, asset_id: str, user_id: str) -> bool:
        query = (
            select(AssetShare.id)
            .where(AssetShare.asset_id == asset_id, AssetShare.shared_with_id == user_id)
            .where(or_(AssetShare.target_type.is_(None), AssetShare.target_type == ShareTargetType.USER))
            .limit(1)
        )
        return (await self.session.scalar(query)) is not None

    async def has_role_grant(self, asset_id: str, role: UserRole) -> bool:
        query = (
            select(AssetShare.id)
            .where(
                AssetShare.asset_id == asset_id,
                AssetShare.target_type == ShareTargetType.ROLE,
                AssetShare.target_id == UserRole(role).value,
            )
            .limit(1)
        )
        return (await self.session.scalar(query)) is not None


class VisibilityRule:
    """Base rule. Level rules only speak for assets carrying their level."""

    level: VisibilityLevel | None = None

    def applies_to(self, asset: Asset) -> bool:
        return self.level is None or asset.visibility == self.level

    async def evaluate(self, user: User, asset: Asset) -> bool:
        if not self.applies_to(asset):
            return False
        return await self.admits(user, asset)

    async def admits(self, user: User, asset: Asset) -> bool:
        return False

    def __repr__(self) -> str:
        return type(self).__name__


class UploaderOverride(VisibilityRule):
    async def admits(self, user: User, asset: Asset) -> bool:
        return user.id == asset.uploader_id


class AdminOverride(VisibilityRule):
    async def admits(self, user: User, asset: Asset) -> bool:
        return user.role == UserRole.ADMIN


class UploaderOnlyRule(VisibilityRule):
    level = VisibilityLevel.UPLOADER_ONLY


class AdminOnlyRule(VisibilityRule):
    level = VisibilityLevel.ADMIN_ONLY


class CompanyRule(VisibilityRule):
    level = VisibilityLevel.COMPANY

    async def admits(self, user: User, asset: Asset) -> bool:
        return bool(user.company_id) and user.company_id == asset.company_id


class TeamRule(VisibilityRule):
    # Teams are not modelled yet; only the overrides grant TEAM assets.
    level = VisibilityLevel.TEAM


class RoleGrantRule(VisibilityRule):
    level = VisibilityLevel.ROLE

    def __init__(self, shares: ShareLookup):
        self.shares = shares

    async def admits(self, user: User, asset: Asset) -> bool:
        return await self.shares.has_role_grant(asset.id, user.role)


class SelectedUsersRule(VisibilityRule):
    level = VisibilityLevel.SELECTED_USERS

    def __init__(self, shares: ShareLookup):
        self.shares = shares

    async def admits(self, user: User, asset: Asset) -> bool:
        return await self.shares.has_user_grant(asset.id, user.id)


class PublicRule(VisibilityRule):
    level = VisibilityLevel.PUBLIC

    async def admits(self, user: User, asset: Asset) -> bool:
        return True


def default_rules(shares: ShareLookup) -> list[VisibilityRule]:
    return [
        UploaderOverride(),
        AdminOverride(),
        UploaderOnlyRule(),
        AdminOnlyRule(),
        CompanyRule(),
        TeamRule(),
        RoleGrantRule(shares),
        SelectedUsersRule(shares),
        PublicRule(),
    ]


class VisibilityService:
    def __init__(self, shares: ShareLookup, rules: list[VisibilityRule] | None = None):
        self.shares = shares
        self.rules = rules if rules is not None else default_rules(shares)

    async def can_user_view_asset(self, user: User, asset: Asset) -> bool:
        """Return True when any rule admits ``user``; lookup errors deny."""
        for rule in self.rules:
            try:
                if await rule.evaluate(user, asset):
                    return True
            except Exception:
                logger.warning(
                    "Visibility lookup failed for user %s on asset %s (%r); denying",
                    user.id,
                    asset.id,
                    rule,
                    exc_info=True,
                )
                return False
        return False

    @staticmethod
    def is_valid_visibility_level(value: str) -> bool:
        return value in {level.value for level in VisibilityLevel}

    @staticmethod
    def all_visibility_levels() -> list[VisibilityLevel]:
        return list(VisibilityLevel)
