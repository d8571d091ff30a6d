import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from assetflow.core.errors import (
    AssetValidationError,
    InvalidTransitionError,
    LookupFailureError,
    NotFoundError,
    PermissionDeniedError,
)
from assetflow.models.asset import Asset, AssetDownload, AssetShare
from assetflow.models.audit_log import AuditLog
from assetflow.models.enums import (
    AssetStatus,
    AssetType,
    AuditAction,
    ShareTargetType,
    UploadType,
    UserRole,
    VisibilityLevel,
)
from assetflow.models.notification import Notification
from assetflow.services.assets import NewAsset


async def _audit(session, asset_id, action=None):
    query = select(AuditLog).where(AuditLog.resource_id == asset_id)
    if action:
        query = query.where(AuditLog.action == action)
    return list(await session.scalars(query.order_by(AuditLog.created_at)))


def _seo(company, **overrides):
    fields = dict(
        title="Spring banner",
        asset_type=AssetType.IMAGE,
        upload_type=UploadType.SEO,
        storage_url="s3://bucket/banner.png",
        company_id=company.id,
    )
    fields.update(overrides)
    return NewAsset(**fields)


async def test_create_seo_asset_defaults_to_admin_only_draft(services, session, creator, company):
    asset = await services.assets.create_asset(creator, _seo(company), "10.0.0.1", "pytest")

    assert asset.status == AssetStatus.DRAFT
    assert asset.visibility == VisibilityLevel.ADMIN_ONLY
    assert asset.uploader_id == creator.id

    [entry] = await _audit(session, asset.id)
    assert entry.action == AuditAction.CREATE
    assert entry.ip_address == "10.0.0.1"
    assert entry.metadata_json["uploadType"] == "SEO"


async def test_create_doc_asset_is_uploader_only(services, creator):
    asset = await services.assets.create_asset(
        creator,
        NewAsset(
            title="Brief",
            asset_type=AssetType.DOCUMENT,
            upload_type=UploadType.DOC,
            storage_url="s3://bucket/brief.pdf",
            visibility=VisibilityLevel.PUBLIC,
        ),
    )

    assert asset.visibility == VisibilityLevel.UPLOADER_ONLY
    assert asset.company_id is None


async def test_admin_may_choose_initial_visibility(services, admin, company):
    asset = await services.assets.create_asset(admin, _seo(company, visibility=VisibilityLevel.COMPANY))

    assert asset.visibility == VisibilityLevel.COMPANY


async def test_create_with_submit_goes_to_review_and_notifies_admins(services, session, creator, admin, company):
    asset = await services.assets.create_asset(creator, _seo(company, submit_for_review=True))

    assert asset.status == AssetStatus.PENDING_REVIEW
    actions = sorted(entry.action for entry in await _audit(session, asset.id))
    assert actions == [AuditAction.CREATE, AuditAction.UPDATE]
    notified = await session.scalars(select(Notification.user_id).where(Notification.related_resource_id == asset.id))
    assert list(notified) == [admin.id]


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"title": "   "}, "title"),
        ({"company_id": None}, "company_id"),
        ({"tags": ["t"] * 6}, "tags"),
        ({"description": "x" * 201}, "description"),
        ({"asset_type": AssetType.LINK, "url": None}, "url"),
        ({"storage_url": None}, "storage_url"),
        ({"company_id": "no-such-company"}, "company_id"),
    ],
)
async def test_create_validation(services, session, creator, company, overrides, field):
    with pytest.raises(AssetValidationError) as exc:
        await services.assets.create_asset(creator, _seo(company, **overrides))

    assert exc.value.context["field"] == field
    assert list(await session.scalars(select(Asset))) == []
    assert list(await session.scalars(select(AuditLog))) == []


async def test_doc_uploads_reject_company_and_review(services, creator, company):
    doc = dict(title="Notes", asset_type=AssetType.DOCUMENT, upload_type=UploadType.DOC, storage_url="s3://b/n")

    with pytest.raises(AssetValidationError):
        await services.assets.create_asset(creator, NewAsset(**doc, company_id=company.id))
    with pytest.raises(AssetValidationError):
        await services.assets.create_asset(creator, NewAsset(**doc, submit_for_review=True))


async def test_link_assets_store_their_url(services, creator, company):
    asset = await services.assets.create_asset(
        creator, _seo(company, asset_type=AssetType.LINK, url="https://example.com/post", storage_url=None)
    )

    assert asset.storage_url == "https://example.com/post"


async def test_update_records_changes_and_previous_values(services, session, creator, make_asset):
    asset = await make_asset(creator, title="Old", tags=["a"])

    await services.assets.update_asset(creator, asset.id, {"title": "New", "tags": ["a", "b"], "description": None})

    [entry] = await _audit(session, asset.id, AuditAction.UPDATE)
    assert entry.metadata_json["changes"] == {"title": "New", "tags": ["a", "b"]}
    assert entry.metadata_json["previousValues"] == {"title": "Old", "tags": ["a"]}


async def test_update_without_changes_writes_no_audit(services, session, creator, make_asset):
    asset = await make_asset(creator, title="Same")

    await services.assets.update_asset(creator, asset.id, {"title": "Same"})

    assert await _audit(session, asset.id) == []


async def test_update_rejects_unknown_fields(services, creator, make_asset):
    asset = await make_asset(creator)

    with pytest.raises(AssetValidationError):
        await services.assets.update_asset(creator, asset.id, {"status": AssetStatus.APPROVED})


@pytest.mark.parametrize("status", [AssetStatus.PENDING_REVIEW, AssetStatus.APPROVED])
async def test_uploader_cannot_edit_under_review_or_approved(services, session, creator, make_asset, status):
    asset_id = (await make_asset(creator, status=status)).id

    with pytest.raises(PermissionDeniedError):
        await services.assets.update_asset(creator, asset_id, {"title": "Sneaky"})
    assert await _audit(session, asset_id) == []


async def test_delete_draft_by_uploader(services, session, creator, make_asset):
    asset = await make_asset(creator, title="Scrap")
    asset_id = asset.id

    await services.assets.delete_asset(creator, asset_id)

    assert await session.get(Asset, asset_id) is None
    [entry] = await _audit(session, asset_id, AuditAction.DELETE)
    assert entry.metadata_json["title"] == "Scrap"


async def test_admin_cannot_delete_pending_asset(services, session, admin, creator, make_asset):
    asset_id = (await make_asset(creator, status=AssetStatus.PENDING_REVIEW)).id

    with pytest.raises(InvalidTransitionError):
        await services.assets.delete_asset(admin, asset_id)

    assert await session.get(Asset, asset_id) is not None
    assert await _audit(session, asset_id) == []


async def test_peer_cannot_delete(services, creator, make_user, make_asset, company):
    peer = await make_user(UserRole.CONTENT_CREATOR, company=company)
    asset = await make_asset(creator, company_id=company.id, visibility=VisibilityLevel.COMPANY)

    with pytest.raises(PermissionDeniedError) as exc:
        await services.assets.delete_asset(peer, asset.id)
    assert exc.value.kind == "permission_denied"


async def test_missing_asset_is_not_found(services, creator):
    with pytest.raises(NotFoundError):
        await services.assets.get_asset(creator, "missing")


async def test_submit_moves_draft_to_review(services, creator, make_asset):
    asset = await make_asset(creator)

    submitted = await services.assets.submit_for_review(creator, asset.id)

    assert submitted.status == AssetStatus.PENDING_REVIEW


async def test_only_the_uploader_may_submit(services, admin, creator, make_asset):
    asset = await make_asset(creator)

    with pytest.raises(PermissionDeniedError):
        await services.assets.submit_for_review(admin, asset.id)


async def test_submitting_a_doc_is_an_invalid_transition(services, creator, make_asset):
    doc = await make_asset(creator, upload_type=UploadType.DOC, visibility=VisibilityLevel.UPLOADER_ONLY)

    with pytest.raises(InvalidTransitionError):
        await services.assets.submit_for_review(creator, doc.id)


async def test_change_visibility_to_role_creates_grant(services, session, admin, creator, seo, make_user, make_asset):
    outsider = await make_user(UserRole.CONTENT_CREATOR)
    asset = await make_asset(creator, status=AssetStatus.APPROVED)

    await services.assets.change_visibility(admin, asset.id, VisibilityLevel.ROLE, allowed_role=UserRole.SEO_SPECIALIST)

    grants = list(
        await session.scalars(select(AssetShare).where(AssetShare.target_type == ShareTargetType.ROLE))
    )
    assert [grant.target_id for grant in grants] == ["SEO_SPECIALIST"]
    assert await services.checker.can_view(seo, asset)
    assert not await services.checker.can_view(outsider, asset)

    [entry] = await _audit(session, asset.id, AuditAction.VISIBILITY_CHANGE)
    assert entry.metadata_json["previousValue"] == "ADMIN_ONLY"
    assert entry.metadata_json["newValue"] == "ROLE"

    await services.assets.change_visibility(admin, asset.id, VisibilityLevel.PUBLIC)
    assert list(await session.scalars(select(AssetShare))) == []


async def test_change_visibility_requires_role_for_role_level(services, admin, creator, make_asset):
    asset = await make_asset(creator)

    with pytest.raises(AssetValidationError):
        await services.assets.change_visibility(admin, asset.id, VisibilityLevel.ROLE)


async def test_non_admin_cannot_change_visibility(services, creator, make_asset):
    asset = await make_asset(creator)

    with pytest.raises(PermissionDeniedError):
        await services.assets.change_visibility(creator, asset.id, VisibilityLevel.PUBLIC)


async def test_doc_visibility_is_pinned(services, admin, creator, make_asset):
    doc = await make_asset(creator, upload_type=UploadType.DOC, visibility=VisibilityLevel.UPLOADER_ONLY)

    with pytest.raises(PermissionDeniedError):
        await services.assets.change_visibility(admin, doc.id, VisibilityLevel.PUBLIC)


async def test_download_is_audited(services, session, seo, creator, make_asset, company):
    asset = await make_asset(
        creator, company_id=company.id, status=AssetStatus.APPROVED, visibility=VisibilityLevel.COMPANY
    )

    await services.assets.record_download(seo, asset.id, ["LINKEDIN"], "10.0.0.2", "pytest")

    [entry] = await _audit(session, asset.id, AuditAction.DOWNLOAD)
    assert entry.user_id == seo.id
    assert entry.metadata_json["platforms"] == ["LINKEDIN"]


async def test_download_denied_without_visibility(services, session, seo, creator, make_asset):
    asset_id = (await make_asset(creator, visibility=VisibilityLevel.ADMIN_ONLY)).id

    with pytest.raises(PermissionDeniedError):
        await services.assets.record_download(seo, asset_id)
    assert await _audit(session, asset_id) == []


async def test_list_assets_applies_role_filter(services, admin, creator, seo, make_asset, company):
    mine = await make_asset(creator)
    approved = await make_asset(
        admin, company_id=company.id, status=AssetStatus.APPROVED, visibility=VisibilityLevel.COMPANY
    )
    await make_asset(admin, visibility=VisibilityLevel.ADMIN_ONLY)

    creator_ids = {asset.id for asset in await services.assets.list_assets(creator)}
    seo_ids = {asset.id for asset in await services.assets.list_assets(seo)}
    admin_ids = {asset.id for asset in await services.assets.list_assets(admin)}

    assert creator_ids == {mine.id, approved.id}
    assert seo_ids == {approved.id}
    assert len(admin_ids) == 3

    drafts = await services.assets.list_assets(admin, status=AssetStatus.DRAFT)
    assert {asset.status for asset in drafts} == {AssetStatus.DRAFT}


async def test_download_keeps_a_history_row(services, session, seo, creator, make_asset, company):
    asset = await make_asset(
        creator, company_id=company.id, status=AssetStatus.APPROVED, visibility=VisibilityLevel.COMPANY
    )
    asset_id, seo_id, creator_id = asset.id, seo.id, creator.id

    await services.assets.record_download(seo, asset_id, ["LINKEDIN", ""])
    await services.assets.record_download(creator, asset_id)

    rows = list(await session.scalars(select(AssetDownload).where(AssetDownload.asset_id == asset_id)))
    by_user = {row.downloaded_by_id: row for row in rows}
    assert by_user.keys() == {seo_id, creator_id}
    assert by_user[seo_id].platform_intent == ["LINKEDIN"]
    assert by_user[creator_id].platform_intent == []

    audited = {entry.metadata_json["downloadId"] for entry in await _audit(session, asset_id, AuditAction.DOWNLOAD)}
    assert audited == {row.id for row in rows}

    history, total = await services.assets.download_history(seo, asset_id)
    assert total == 2
    assert {row.id for row in history} == audited

    page, total = await services.assets.download_history(creator, asset_id, limit=1, offset=1)
    assert len(page) == 1
    assert total == 2


async def test_download_history_requires_view_access(services, admin, seo, creator, make_asset):
    asset = await make_asset(creator, visibility=VisibilityLevel.ADMIN_ONLY)
    await services.assets.record_download(admin, asset.id)

    with pytest.raises(PermissionDeniedError):
        await services.assets.download_history(seo, asset.id)

    with pytest.raises(NotFoundError):
        await services.assets.download_history(admin, "missing")


async def test_denied_download_writes_no_history(services, session, seo, creator, make_asset):
    asset_id = (await make_asset(creator, visibility=VisibilityLevel.ADMIN_ONLY)).id

    with pytest.raises(PermissionDeniedError):
        await services.assets.record_download(seo, asset_id, ["X"])

    assert list(await session.scalars(select(AssetDownload))) == []


async def test_downloads_by_user(services, admin, seo, creator, make_asset, company):
    approved = dict(company_id=company.id, status=AssetStatus.APPROVED, visibility=VisibilityLevel.COMPANY)
    first = await make_asset(creator, **approved)
    second = await make_asset(creator, **approved)
    await services.assets.record_download(seo, first.id)
    await services.assets.record_download(seo, second.id)
    await services.assets.record_download(creator, first.id)

    own = await services.assets.downloads_by_user(seo, seo.id)
    assert {row.asset_id for row in own} == {first.id, second.id}
    assert len(await services.assets.downloads_by_user(admin, seo.id)) == 2

    with pytest.raises(PermissionDeniedError):
        await services.assets.downloads_by_user(creator, seo.id)


async def test_delete_removes_download_history(services, session, creator, make_asset):
    asset_id = (await make_asset(creator)).id
    await services.assets.record_download(creator, asset_id, ["X"])

    await services.assets.delete_asset(creator, asset_id)

    assert list(await session.scalars(select(AssetDownload))) == []
    assert len(await _audit(session, asset_id, AuditAction.DOWNLOAD)) == 1


async def test_failed_audit_write_keeps_the_asset(services, session_factory, creator, seo, make_asset, monkeypatch):
    asset = await make_asset(creator, visibility=VisibilityLevel.UPLOADER_ONLY)
    asset_id = asset.id
    await services.sharing.share(creator, asset_id, [seo.id])
    record = services.audit.record

    async def record_then_fail(*args, **kwargs):
        await record(*args, **kwargs)
        raise SQLAlchemyError("audit insert failed")

    monkeypatch.setattr(services.audit, "record", record_then_fail)

    with pytest.raises(LookupFailureError):
        await services.assets.delete_asset(creator, asset_id)

    async with session_factory() as fresh:
        kept = await fresh.get(Asset, asset_id)
        assert kept is not None
        assert kept.visibility == VisibilityLevel.SELECTED_USERS
        assert len(list(await fresh.scalars(select(AssetShare)))) == 1
        actions = list(await fresh.scalars(select(AuditLog.action).where(AuditLog.resource_id == asset_id)))
        assert AuditAction.DELETE not in actions


async def test_failed_audit_write_discards_the_download(
    services, session_factory, seo, creator, make_asset, company, monkeypatch
):
    asset = await make_asset(
        creator, company_id=company.id, status=AssetStatus.APPROVED, visibility=VisibilityLevel.COMPANY
    )
    asset_id = asset.id

    async def refuse(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(services.audit, "record", refuse)

    with pytest.raises(RuntimeError):
        await services.assets.record_download(seo, asset_id, ["X"])

    async with session_factory() as fresh:
        assert list(await fresh.scalars(select(AssetDownload))) == []
        assert list(await fresh.scalars(select(AuditLog))) == []


async def test_company_lookup_failure_aborts_create(services, session, session_factory, creator, company, monkeypatch):
    data = _seo(company)

    async def broken_get(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(session, "get", broken_get)

    with pytest.raises(LookupFailureError):
        await services.assets.create_asset(creator, data)

    async with session_factory() as fresh:
        assert list(await fresh.scalars(select(Asset))) == []
        assert list(await fresh.scalars(select(AuditLog))) == []


async def test_asset_lookup_failure_aborts_update(services, session, session_factory, creator, make_asset, monkeypatch):
    asset_id = (await make_asset(creator, title="Original")).id

    async def broken_get(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(session, "get", broken_get)

    with pytest.raises(LookupFailureError) as exc:
        await services.assets.update_asset(creator, asset_id, {"title": "Changed"})
    assert exc.value.context["asset_id"] == asset_id

    async with session_factory() as fresh:
        assert (await fresh.get(Asset, asset_id)).title == "Original"
        assert list(await fresh.scalars(select(AuditLog))) == []
