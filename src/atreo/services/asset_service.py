"""Asset tree (folders and files) with soft deletion."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError, PermissionDeniedError
from atreo.models.asset import Asset
from atreo.models.user import User
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.storage import Storage, build_destination
from atreo.services.user_service import split_list

logger = logging.getLogger(__name__)

ROOT = "root"


def folder_param(folder_id: str | None) -> str | None:
    """Map the ``root`` sentinel (or nothing) to None."""
    if not folder_id or folder_id == ROOT:
        return None
    return folder_id


class AssetService:
    """Service for asset operations.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    async def _active(self, asset_id: str) -> Asset | None:
        result = await self.db.execute(
            select(Asset).where(Asset.id == asset_id, Asset.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def get_asset(self, user: User, is_admin: bool, asset_id: str) -> Asset:
        """Fetch an active asset owned by ``user`` (or any, for admins).

        Raises:
            NotFoundError: If no active asset has that id.
            PermissionDeniedError: If the caller neither owns it nor is an admin.
        """
        asset = await self._active(asset_id)
        if asset is None:
            raise NotFoundError("Asset not found")
        if not is_admin and asset.created_by != user.id:
            raise PermissionDeniedError("Access denied")
        return asset

    async def list_assets(self, user: User, is_admin: bool, folder_id: str | None) -> list[Asset]:
        """List active assets in a folder: folders first, then by name."""
        parent = folder_param(folder_id)
        query = select(Asset).where(Asset.is_active.is_(True))
        if parent is None:
            query = query.where(Asset.parent_folder_id.is_(None))
        else:
            query = query.where(Asset.parent_folder_id == parent)
        if not is_admin:
            query = query.where(Asset.created_by == user.id)
        folders_first = case((Asset.type == "folder", 0), else_=1)
        result = await self.db.execute(query.order_by(folders_first, Asset.name.asc()))
        return list(result.scalars().all())

    async def _name_taken(
        self,
        name: str,
        asset_type: str,
        parent: str | None,
        exclude_id: str | None = None,
    ) -> bool:
        query = select(Asset.id).where(
            Asset.name == name,
            Asset.type == asset_type,
            Asset.is_active.is_(True),
        )
        if parent is None:
            query = query.where(Asset.parent_folder_id.is_(None))
        else:
            query = query.where(Asset.parent_folder_id == parent)
        if exclude_id is not None:
            query = query.where(Asset.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def _require_folder(self, folder_id: str) -> Asset:
        folder = await self._active(folder_id)
        if folder is None or folder.type != "folder":
            raise NotFoundError("Parent folder not found")
        return folder

    async def create_folder(
        self,
        user: User,
        name: str,
        parent_folder_id: str | None = None,
        description: str | None = None,
    ) -> Asset:
        """Create a folder.

        Raises:
            InvalidRequestError: If the name is blank or already used by an
                active folder in the same location.
            NotFoundError: If the parent folder does not exist.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidRequestError("Folder name is required")
        parent = folder_param(parent_folder_id)
        if parent is not None:
            await self._require_folder(parent)
        if await self._name_taken(name, "folder", parent):
            raise InvalidRequestError("A folder with this name already exists in this location")

        folder = Asset(
            name=name,
            type="folder",
            parent_folder_id=parent,
            description=description,
            created_by=user.id,
            organization_id=user.organization_id,
        )
        self.db.add(folder)
        await self.db.commit()
        await self.db.refresh(folder)
        return folder

    async def upload_file(
        self,
        user: User,
        data: bytes,
        filename: str | None,
        mime_type: str | None,
        storage: Storage,
        parent_folder_id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        tags: Any = None,
        context: RequestContext | None = None,
    ) -> Asset:
        """Store an uploaded file as an asset."""
        parent = folder_param(parent_folder_id)
        if parent is not None:
            await self._require_folder(parent)

        url = await storage.upload_file(data, build_destination("assets", filename))
        asset = Asset(
            name=(name or "").strip() or filename or "file",
            type="file",
            parent_folder_id=parent,
            file_url=url,
            file_name=filename,
            file_size=len(data),
            mime_type=mime_type,
            description=description,
            tags=split_list(tags),
            created_by=user.id,
            organization_id=user.organization_id,
        )
        self.db.add(asset)
        await self.db.commit()
        await self.db.refresh(asset)

        await self.audit.record(
            "file_uploaded",
            user=user,
            resource="asset",
            resource_id=asset.id,
            details={"file_name": filename, "file_size": len(data)},
            context=context,
        )
        return asset

    async def _is_descendant(self, candidate_id: str, ancestor_id: str) -> bool:
        """Return True if ``candidate_id`` is ``ancestor_id`` or lies beneath it."""
        current: str | None = candidate_id
        seen: set[str] = set()
        while current is not None and current not in seen:
            if current == ancestor_id:
                return True
            seen.add(current)
            node = await self.db.get(Asset, current)
            current = node.parent_folder_id if node else None
        return False

    async def update_asset(
        self,
        user: User,
        is_admin: bool,
        asset_id: str,
        **fields: Any,
    ) -> Asset:
        """Rename, move or re-describe an asset.

        Raises:
            InvalidRequestError: On a blank or clashing name, or a folder
                moved beneath itself.
        """
        asset = await self.get_asset(user, is_admin, asset_id)

        parent = asset.parent_folder_id
        if "parent_folder_id" in fields:
            parent = folder_param(fields.pop("parent_folder_id"))
            if parent is not None:
                await self._require_folder(parent)
                if asset.type == "folder" and await self._is_descendant(parent, asset.id):
                    raise InvalidRequestError("Cannot move folder into its own subfolder")

        name = asset.name
        if fields.get("name") is not None:
            name = fields.pop("name").strip()
            if not name:
                raise InvalidRequestError("Name is required")

        if (name != asset.name or parent != asset.parent_folder_id) and await self._name_taken(
            name, asset.type, parent, exclude_id=asset.id
        ):
            raise InvalidRequestError("An asset with this name already exists in this location")

        asset.name = name
        asset.parent_folder_id = parent
        if "description" in fields:
            asset.description = fields["description"]
        if fields.get("tags") is not None:
            asset.tags = split_list(fields["tags"])

        await self.db.commit()
        await self.db.refresh(asset)
        return asset

    async def delete_asset(self, user: User, is_admin: bool, asset_id: str) -> None:
        """Soft-delete an asset; folders must be empty first.

        Raises:
            InvalidRequestError: If the folder still has active children.
        """
        asset = await self.get_asset(user, is_admin, asset_id)
        if asset.type == "folder":
            child = await self.db.execute(
                select(Asset.id)
                .where(Asset.parent_folder_id == asset.id, Asset.is_active.is_(True))
                .limit(1)
            )
            if child.first() is not None:
                raise InvalidRequestError(
                    "Cannot delete folder with contents. Please delete or move all items first."
                )
        asset.is_active = False
        await self.db.commit()

    async def get_path(self, user: User, is_admin: bool, asset_id: str) -> list[dict[str, str]]:
        """Breadcrumb from the root down to (and including) the asset."""
        asset = await self.get_asset(user, is_admin, asset_id)
        path: list[dict[str, str]] = []
        current: Asset | None = asset
        seen: set[str] = set()
        while current is not None and current.id not in seen:
            seen.add(current.id)
            path.append({"id": current.id, "name": current.name})
            current = (
                await self.db.get(Asset, current.parent_folder_id)
                if current.parent_folder_id
                else None
            )
        path.reverse()
        return path
