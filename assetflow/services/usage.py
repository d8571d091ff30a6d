import logging

from sqlalchemy import select

from ..core.errors import AssetValidationError
from ..models.asset import PlatformUsage
from ..models.enums import AuditAction, Platform, ResourceType
from ..models.user import User
from .base import AssetOperationService

logger = logging.getLogger(__name__)


class UsageService(AssetOperationService):
    """Records where an asset was published."""

    async def log_usage(
        self,
        actor: User,
        asset_id: str,
        platform: Platform | str,
        campaign_name: str,
        post_url: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PlatformUsage:
        try:
            platform = Platform(platform)
        except ValueError as exc:
            raise AssetValidationError(f"Invalid platform: {platform}", field="platform") from exc
        campaign_name = (campaign_name or "").strip()
        if not campaign_name:
            raise AssetValidationError("Campaign name is required", field="campaign_name")

        async with self._mutation(asset_id):
            asset = await self._load_asset(asset_id)
            if not await self.checker.can_log_platform_usage(actor, asset):
                raise self._deny(actor, asset, "log platform usage for")

            usage = PlatformUsage(
                asset_id=asset.id,
                platform=platform,
                campaign_name=campaign_name,
                post_url=(post_url or "").strip() or None,
                logged_by_id=actor.id,
            )
            self.session.add(usage)
            await self.session.flush()
            await self.audit.record(
                actor,
                AuditAction.CREATE,
                ResourceType.ASSET,
                asset.id,
                {
                    "event": "platform_usage",
                    "usageId": usage.id,
                    "platform": platform.value,
                    "campaignName": campaign_name,
                    "postUrl": usage.post_url,
                },
                ip_address,
                user_agent,
            )
        logger.info("User %s logged %s usage for asset %s", actor.id, platform.value, asset_id)
        return usage

    async def usage_history(self, actor: User, asset_id: str) -> list[PlatformUsage]:
        asset = await self._load_asset(asset_id)
        if not await self.checker.can_view(actor, asset):
            raise self._deny(actor, asset, "view")
        result = await self.session.scalars(
            select(PlatformUsage).where(PlatformUsage.asset_id == asset_id).order_by(PlatformUsage.used_at.desc())
        )
        return list(result)
