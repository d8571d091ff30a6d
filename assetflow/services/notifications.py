import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.asset import Asset
from ..models.enums import NotificationType, ResourceType, UserRole
from ..models.notification import Notification
from ..models.user import User

logger = logging.getLogger(__name__)


class NotificationService:
    """Writes notification rows; delivering them is someone else's job."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        resource_type: ResourceType | None = ResourceType.ASSET,
        resource_id: str | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_resource_type=resource_type,
            related_resource_id=resource_id,
        )
        self.session.add(notification)
        await self.session.flush()
        logger.debug("Queued %s notification for user %s", type.value, user_id)
        return notification

    async def notify_admins_of_submission(self, asset: Asset, uploader: User) -> list[Notification]:
        admin_ids = await self.session.scalars(
            select(User.id).where(User.role == UserRole.ADMIN, User.is_active.is_(True), User.id != uploader.id)
        )
        return [
            await self.notify(
                admin_id,
                NotificationType.ASSET_UPLOADED,
                "Asset Awaiting Review",
                f'{uploader.name} submitted "{asset.title}" for review',
                resource_id=asset.id,
            )
            for admin_id in admin_ids
        ]

    async def notify_uploader_of_approval(self, asset: Asset, reviewer: User) -> Notification:
        return await self.notify(
            asset.uploader_id,
            NotificationType.ASSET_APPROVED,
            "Asset Approved",
            f'Your asset "{asset.title}" was approved by {reviewer.name}',
            resource_id=asset.id,
        )

    async def notify_uploader_of_rejection(self, asset: Asset, reviewer: User, reason: str) -> Notification:
        return await self.notify(
            asset.uploader_id,
            NotificationType.ASSET_REJECTED,
            "Asset Rejected",
            f'Your asset "{asset.title}" was rejected by {reviewer.name}: {reason}',
            resource_id=asset.id,
        )

    async def notify_user_of_share(self, asset: Asset, sharer: User, recipient_id: str) -> Notification:
        return await self.notify(
            recipient_id,
            NotificationType.ASSET_SHARED,
            "Asset Shared With You",
            f'{sharer.name} shared "{asset.title}" with you',
            resource_id=asset.id,
        )
