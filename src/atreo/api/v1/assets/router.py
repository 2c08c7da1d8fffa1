"""Asset tree endpoints (folders and files) returning JSON:API responses."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, get_request_context, rate_limit
from atreo.errors import InvalidRequestError
from atreo.models.asset import Asset
from atreo.models.user import User
from atreo.schemas.asset import CreateFolderRequest, UpdateAssetRequest
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.services.asset_service import AssetService
from atreo.services.audit_service import RequestContext
from atreo.services.storage import PDF_AND_IMAGES, Storage, get_storage, read_upload

router = APIRouter()


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _asset_to_attrs(asset: Asset) -> dict:
    return {
        "name": asset.name,
        "type": asset.type,
        "parent_folder_id": asset.parent_folder_id,
        "file_url": asset.file_url,
        "file_name": asset.file_name,
        "file_size": asset.file_size,
        "mime_type": asset.mime_type,
        "description": asset.description,
        "tags": asset.tags or [],
        "created_by": asset.created_by,
        "organization_id": asset.organization_id,
        "created_at": asset.created_at.isoformat(),
        "updated_at": asset.updated_at.isoformat(),
    }


def _asset_resource(asset: Asset) -> JSONAPIResource:
    return JSONAPIResource(type="assets", id=str(asset.id), attributes=_asset_to_attrs(asset))


def _is_admin(user: User) -> bool:
    return user.role == "admin"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_assets(
    folder_id: str | None = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List a folder's active contents, folders first; no ``folder_id`` means the root."""
    assets = await AssetService(db).list_assets(user, _is_admin(user), folder_id)
    return JSONAPIListResponse(
        data=[_asset_resource(a) for a in assets],
        meta={"total": len(assets), "folder_id": folder_id or "root"},
    )


@router.post("/folder", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_folder(
    body: JSONAPIRequest[CreateFolderRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    attrs = body.data.attributes
    folder = await AssetService(db).create_folder(
        user,
        name=attrs.name,
        parent_folder_id=attrs.parent_folder_id,
        description=attrs.description,
    )
    return JSONAPISingleResponse(data=_asset_resource(folder))


@router.post("/file", status_code=201, dependencies=[Depends(rate_limit("upload"))])
async def upload_file(
    file: UploadFile | None = File(default=None),
    name: str | None = Form(default=None),
    parent_folder_id: str | None = Form(default=None),
    description: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Upload a PDF or image into a folder."""
    if file is None or not file.filename:
        raise InvalidRequestError("No file uploaded")
    data = await read_upload(file, PDF_AND_IMAGES)
    asset = await AssetService(db).upload_file(
        user,
        data,
        file.filename,
        file.content_type,
        storage,
        parent_folder_id=parent_folder_id,
        name=name,
        description=description,
        tags=tags,
        context=context,
    )
    return JSONAPISingleResponse(data=_asset_resource(asset))


@router.get("/{asset_id}")
async def get_asset(
    asset_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    asset = await AssetService(db).get_asset(user, _is_admin(user), asset_id)
    return JSONAPISingleResponse(data=_asset_resource(asset))


@router.patch("/{asset_id}", dependencies=[Depends(rate_limit("write"))])
async def update_asset(
    asset_id: str,
    body: JSONAPIRequest[UpdateAssetRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Rename, move, re-describe or retag an asset."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    asset = await AssetService(db).update_asset(user, _is_admin(user), asset_id, **update_data)
    return JSONAPISingleResponse(data=_asset_resource(asset))


@router.delete("/{asset_id}", status_code=204)
async def delete_asset(
    asset_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Soft-delete an asset; folders must be empty."""
    await AssetService(db).delete_asset(user, _is_admin(user), asset_id)


@router.get("/{asset_id}/path")
async def get_asset_path(
    asset_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Breadcrumb from the root down to the asset."""
    path = await AssetService(db).get_path(user, _is_admin(user), asset_id)
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(type="assets", id=step["id"], attributes={"name": step["name"]})
            for step in path
        ],
        meta={"depth": len(path)},
    )
