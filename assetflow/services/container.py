from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from .approvals import ApprovalService
from .assets import AssetService
from .audit import AuditTrail
from .notifications import NotificationService
from .sharing import ShareManager
from .usage import UsageService
from .visibility import SqlShareLookup, VisibilityService
from .visibility_checker import VisibilityChecker


@dataclass
class Services:
    visibility: VisibilityService
    checker: VisibilityChecker
    audit: AuditTrail
    notifications: NotificationService
    assets: AssetService
    approvals: ApprovalService
    sharing: ShareManager
    usage: UsageService


def build_services(session: AsyncSession, settings: Settings | None = None) -> Services:
    """Wire one request's worth of services around ``session``."""
    visibility = VisibilityService(SqlShareLookup(session))
    checker = VisibilityChecker(visibility)
    audit = AuditTrail(session)
    notifications = NotificationService(session)
    assets = AssetService(session, checker, audit, notifications, settings)
    return Services(
        visibility=visibility,
        checker=checker,
        audit=audit,
        notifications=notifications,
        assets=assets,
        approvals=ApprovalService(session, checker, audit, notifications, assets),
        sharing=ShareManager(session, checker, audit, notifications),
        usage=UsageService(session, checker, audit, notifications),
    )
