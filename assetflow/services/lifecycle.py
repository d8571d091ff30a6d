"""Asset lifecycle state machine.

    DRAFT --submit--> PENDING_REVIEW --approve--> APPROVED
                        |    ^
                 reject |    | resubmit
                        v    |
                       REJECTED

APPROVED is terminal. Doc uploads never leave DRAFT. Deletion is only legal
from DRAFT or REJECTED, whoever asks.
"""

from __future__ import annotations

from enum import Enum

from ..core.errors import InvalidTransitionError
from ..models.asset import Asset
from ..models.base import utcnow
from ..models.enums import AssetStatus, UploadType


class Transition(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


TRANSITIONS: dict[tuple[AssetStatus, Transition], AssetStatus] = {
    (AssetStatus.DRAFT, Transition.SUBMIT): AssetStatus.PENDING_REVIEW,
    (AssetStatus.REJECTED, Transition.SUBMIT): AssetStatus.PENDING_REVIEW,
    (AssetStatus.PENDING_REVIEW, Transition.APPROVE): AssetStatus.APPROVED,
    (AssetStatus.PENDING_REVIEW, Transition.REJECT): AssetStatus.REJECTED,
}

DELETABLE_STATUSES = frozenset({AssetStatus.DRAFT, AssetStatus.REJECTED})


def allowed_transitions(asset: Asset) -> list[Transition]:
    if asset.upload_type != UploadType.SEO:
        return []
    return [transition for (source, transition) in TRANSITIONS if source == asset.status]


def target_status(asset: Asset, transition: Transition) -> AssetStatus:
    """Return the status ``transition`` leads to, or raise if it is illegal."""
    if asset.upload_type != UploadType.SEO:
        raise InvalidTransitionError(
            "Doc uploads have no review workflow",
            asset_id=asset.id,
            transition=transition.value,
        )
    target = TRANSITIONS.get((AssetStatus(asset.status), transition))
    if target is None:
        raise InvalidTransitionError(
            f"Cannot {transition.value} an asset in {AssetStatus(asset.status).value} status",
            asset_id=asset.id,
            status=AssetStatus(asset.status).value,
            transition=transition.value,
        )
    return target


def ensure_deletable(asset: Asset) -> None:
    if asset.status not in DELETABLE_STATUSES:
        raise InvalidTransitionError(
            f"Assets in {AssetStatus(asset.status).value} status cannot be deleted; only DRAFT or REJECTED assets can",
            asset_id=asset.id,
            status=AssetStatus(asset.status).value,
        )


def apply_transition(asset: Asset, transition: Transition, reviewer_id: str | None = None, reason: str | None = None) -> AssetStatus:
    """Move ``asset`` along ``transition`` and stamp the review fields.

    Returns the previous status. Permission checks are the caller's job.
    """
    previous = AssetStatus(asset.status)
    target = target_status(asset, transition)
    now = utcnow()

    if transition is Transition.SUBMIT:
        # A resubmission starts a fresh review cycle.
        asset.rejected_at = None
        asset.rejected_by_id = None
        asset.rejection_reason = None
    elif transition is Transition.APPROVE:
        asset.approved_at = now
        asset.approved_by_id = reviewer_id
        asset.rejected_at = None
        asset.rejected_by_id = None
        asset.rejection_reason = None
    elif transition is Transition.REJECT:
        asset.rejected_at = now
        asset.rejected_by_id = reviewer_id
        asset.rejection_reason = reason
        asset.approved_at = None
        asset.approved_by_id = None

    asset.status = target
    return previous
