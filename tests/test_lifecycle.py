import pytest

from assetflow.core.errors import InvalidTransitionError
from assetflow.models.asset import Asset
from assetflow.models.enums import AssetStatus, UploadType
from assetflow.services.lifecycle import (
    Transition,
    allowed_transitions,
    apply_transition,
    ensure_deletable,
    target_status,
)


def _asset(status=AssetStatus.DRAFT, upload_type=UploadType.SEO):
    return Asset(id="a1", title="Banner", upload_type=upload_type, status=status, uploader_id="u1")


@pytest.mark.parametrize(
    "status,transition,expected",
    [
        (AssetStatus.DRAFT, Transition.SUBMIT, AssetStatus.PENDING_REVIEW),
        (AssetStatus.REJECTED, Transition.SUBMIT, AssetStatus.PENDING_REVIEW),
        (AssetStatus.PENDING_REVIEW, Transition.APPROVE, AssetStatus.APPROVED),
        (AssetStatus.PENDING_REVIEW, Transition.REJECT, AssetStatus.REJECTED),
    ],
)
def test_legal_transitions(status, transition, expected):
    assert target_status(_asset(status), transition) == expected


@pytest.mark.parametrize(
    "status,transition",
    [
        (AssetStatus.APPROVED, Transition.SUBMIT),
        (AssetStatus.APPROVED, Transition.REJECT),
        (AssetStatus.APPROVED, Transition.APPROVE),
        (AssetStatus.DRAFT, Transition.APPROVE),
        (AssetStatus.REJECTED, Transition.APPROVE),
        (AssetStatus.PENDING_REVIEW, Transition.SUBMIT),
    ],
)
def test_illegal_transitions(status, transition):
    with pytest.raises(InvalidTransitionError) as exc:
        target_status(_asset(status), transition)
    assert exc.value.kind == "invalid_transition"


def test_doc_assets_have_no_workflow():
    doc = _asset(upload_type=UploadType.DOC)

    assert allowed_transitions(doc) == []
    with pytest.raises(InvalidTransitionError):
        target_status(doc, Transition.SUBMIT)


def test_allowed_transitions_from_pending():
    assert set(allowed_transitions(_asset(AssetStatus.PENDING_REVIEW))) == {Transition.APPROVE, Transition.REJECT}
    assert allowed_transitions(_asset(AssetStatus.APPROVED)) == []


def test_approve_stamps_reviewer_and_clears_rejection():
    asset = _asset(AssetStatus.PENDING_REVIEW)
    asset.rejection_reason = "old"
    asset.rejected_by_id = "someone"

    previous = apply_transition(asset, Transition.APPROVE, reviewer_id="admin")

    assert previous == AssetStatus.PENDING_REVIEW
    assert asset.status == AssetStatus.APPROVED
    assert asset.approved_by_id == "admin" and asset.approved_at is not None
    assert asset.rejection_reason is None and asset.rejected_by_id is None


def test_reject_then_resubmit_clears_reason():
    asset = _asset(AssetStatus.PENDING_REVIEW)

    apply_transition(asset, Transition.REJECT, reviewer_id="admin", reason="Blurry")
    assert asset.status == AssetStatus.REJECTED
    assert asset.rejection_reason == "Blurry"

    previous = apply_transition(asset, Transition.SUBMIT)
    assert previous == AssetStatus.REJECTED
    assert asset.status == AssetStatus.PENDING_REVIEW
    assert asset.rejection_reason is None


def test_failed_transition_leaves_asset_untouched():
    asset = _asset(AssetStatus.APPROVED)

    with pytest.raises(InvalidTransitionError):
        apply_transition(asset, Transition.REJECT, reviewer_id="admin", reason="late")

    assert asset.status == AssetStatus.APPROVED
    assert asset.rejection_reason is None


@pytest.mark.parametrize("status", list(AssetStatus))
def test_only_draft_and_rejected_are_deletable(status):
    asset = _asset(status)
    if status in (AssetStatus.DRAFT, AssetStatus.REJECTED):
        ensure_deletable(asset)
    else:
        with pytest.raises(InvalidTransitionError):
            ensure_deletable(asset)
