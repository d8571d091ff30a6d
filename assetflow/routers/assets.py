from fastapi import APIRouter, Depends, Query, status

from ..core.security import ClientInfo, get_client_info, get_current_user, require_api_key
from ..models.enums import AssetStatus, UploadType
from ..models.user import User
from ..schemas.asset import (
    ApprovalRead,
    ApproveRequest,
    AssetCreate,
    AssetRead,
    AssetUpdate,
    DownloadHistoryRead,
    DownloadRead,
    DownloadRequest,
    PermissionsRead,
    RejectRequest,
    ShareRead,
    ShareRequest,
    UsageCreate,
    UsageRead,
    VisibilityUpdate,
)
from ..services.assets import NewAsset
from ..services.container import Services
from .deps import get_services

router = APIRouter(prefix="/assets", tags=["assets"], dependencies=[Depends(require_api_key)])


@router.get("/", response_model=list[AssetRead])
async def list_assets(
    status: AssetStatus | None = None,
    upload_type: UploadType | None = None,
    company_id: str | None = None,
    uploader_id: str | None = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.assets.list_assets(
        user, status=status, upload_type=upload_type, company_id=company_id, uploader_id=uploader_id
    )


@router.post("/", response_model=AssetRead, status_code=status.HTTP_201_CREATED)
async def create_asset(
    payload: AssetCreate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.assets.create_asset(
        user, NewAsset(**payload.model_dump()), client.ip_address, client.user_agent
    )


@router.get("/pending", response_model=list[AssetRead])
async def list_pending(user: User = Depends(get_current_user), services: Services = Depends(get_services)):
    return await services.approvals.list_pending(user)


@router.get("/{asset_id}", response_model=AssetRead)
async def get_asset(asset_id: str, user: User = Depends(get_current_user), services: Services = Depends(get_services)):
    return await services.assets.get_asset(user, asset_id)


@router.patch("/{asset_id}", response_model=AssetRead)
async def update_asset(
    asset_id: str,
    payload: AssetUpdate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.assets.update_asset(
        user, asset_id, payload.model_dump(exclude_unset=True), client.ip_address, client.user_agent
    )


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    asset_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    await services.assets.delete_asset(user, asset_id, client.ip_address, client.user_agent)


@router.post("/{asset_id}/submit", response_model=AssetRead)
async def submit_for_review(
    asset_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.assets.submit_for_review(user, asset_id, client.ip_address, client.user_agent)


@router.post("/{asset_id}/approve", response_model=AssetRead)
async def approve_asset(
    asset_id: str,
    payload: ApproveRequest | None = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    payload = payload or ApproveRequest()
    return await services.approvals.approve(
        user,
        asset_id,
        new_visibility=payload.visibility,
        allowed_role=payload.allowed_role,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )


@router.post("/{asset_id}/reject", response_model=AssetRead)
async def reject_asset(
    asset_id: str,
    payload: RejectRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.approvals.reject(user, asset_id, payload.reason, client.ip_address, client.user_agent)


@router.get("/{asset_id}/approvals", response_model=list[ApprovalRead])
async def approval_history(
    asset_id: str, user: User = Depends(get_current_user), services: Services = Depends(get_services)
):
    return await services.approvals.history(user, asset_id)


@router.put("/{asset_id}/visibility", response_model=AssetRead)
async def change_visibility(
    asset_id: str,
    payload: VisibilityUpdate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.assets.change_visibility(
        user,
        asset_id,
        payload.visibility,
        allowed_role=payload.allowed_role,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )


@router.get("/{asset_id}/share", response_model=list[ShareRead])
async def list_shares(asset_id: str, user: User = Depends(get_current_user), services: Services = Depends(get_services)):
    return await services.sharing.list_shares(user, asset_id)


@router.post("/{asset_id}/share", response_model=list[ShareRead], status_code=status.HTTP_201_CREATED)
async def share_asset(
    asset_id: str,
    payload: ShareRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.sharing.share(user, asset_id, payload.user_ids, client.ip_address, client.user_agent)


@router.delete("/{asset_id}/share/{recipient_id}", response_model=AssetRead)
async def revoke_share(
    asset_id: str,
    recipient_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.sharing.revoke(user, asset_id, recipient_id, client.ip_address, client.user_agent)


@router.post("/{asset_id}/download", response_model=AssetRead)
async def download_asset(
    asset_id: str,
    payload: DownloadRequest | None = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    platforms = payload.platforms if payload else []
    return await services.assets.record_download(user, asset_id, platforms, client.ip_address, client.user_agent)


@router.get("/{asset_id}/downloads", response_model=DownloadHistoryRead)
async def download_history(
    asset_id: str,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    downloads, total = await services.assets.download_history(user, asset_id, limit=limit, offset=offset)
    return DownloadHistoryRead(downloads=[DownloadRead.model_validate(row) for row in downloads], total=total)


@router.get("/{asset_id}/usage", response_model=list[UsageRead])
async def usage_history(asset_id: str, user: User = Depends(get_current_user), services: Services = Depends(get_services)):
    return await services.usage.usage_history(user, asset_id)


@router.post("/{asset_id}/usage", response_model=UsageRead, status_code=status.HTTP_201_CREATED)
async def log_usage(
    asset_id: str,
    payload: UsageCreate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    client: ClientInfo = Depends(get_client_info),
):
    return await services.usage.log_usage(
        user,
        asset_id,
        payload.platform,
        payload.campaign_name,
        payload.post_url,
        client.ip_address,
        client.user_agent,
    )


@router.get("/{asset_id}/permissions", response_model=PermissionsRead)
async def asset_permissions(
    asset_id: str, user: User = Depends(get_current_user), services: Services = Depends(get_services)
):
    checker = services.checker
    asset = await services.assets.get_asset(user, asset_id)
    summary = await checker.check_all_permissions(user, asset)
    return PermissionsRead(
        **summary.as_dict(),
        can_share=checker.can_share(user, asset),
        can_modify_visibility=checker.can_modify_visibility(user, asset),
        can_download=await checker.can_download(user, asset),
        can_log_platform_usage=await checker.can_log_platform_usage(user, asset),
    )
