from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.database import unit_of_work
from ..core.errors import ConcurrentModificationError, LookupFailureError, NotFoundError, PermissionDeniedError
from ..models.asset import Asset
from ..models.user import User
from .audit import AuditTrail
from .notifications import NotificationService
from .visibility_checker import VisibilityChecker

logger = logging.getLogger(__name__)


class AssetOperationService:
    """Shared plumbing for services that mutate assets."""

    def __init__(
        self,
        session: AsyncSession,
        checker: VisibilityChecker,
        audit: AuditTrail,
        notifications: NotificationService,
    ):
        self.session = session
        self.checker = checker
        self.audit = audit
        self.notifications = notifications

    async def _load_asset(self, asset_id: str) -> Asset:
        try:
            asset = await self.session.get(Asset, asset_id)
        except SQLAlchemyError as exc:
            raise LookupFailureError("Could not load asset", asset_id=asset_id) from exc
        if asset is None:
            raise NotFoundError("Asset not found", asset_id=asset_id)
        return asset

    async def _load_user(self, user_id: str, label: str = "User") -> User:
        try:
            user = await self.session.get(User, user_id)
        except SQLAlchemyError as exc:
            raise LookupFailureError(f"Could not load {label.lower()}", user_id=user_id) from exc
        if user is None:
            raise NotFoundError(f"{label} not found", user_id=user_id)
        return user

    def _deny(self, actor: User, asset: Asset, operation: str) -> PermissionDeniedError:
        logger.info("Denied %s on asset %s for user %s (%s)", operation, asset.id, actor.id, actor.role)
        return PermissionDeniedError(
            f"Insufficient permissions to {operation} this asset",
            asset_id=asset.id,
            operation=operation,
        )

    @asynccontextmanager
    async def _mutation(self, asset_id: str | None = None) -> AsyncIterator[AsyncSession]:
        """One unit of work: commits on success, rolls back on any error."""
        try:
            async with unit_of_work(self.session) as session:
                yield session
        except StaleDataError as exc:
            raise ConcurrentModificationError(
                "Asset was modified by another request; reload and retry",
                asset_id=asset_id,
            ) from exc
        except SQLAlchemyError as exc:
            raise LookupFailureError("Database error; no changes were saved", asset_id=asset_id) from exc
