"""Tool (SaaS subscription) CRUD and credential sharing.

Tool secrets (``password``, ``api_key``) are encrypted before they reach
the database. Sharing grants another user view or edit access; revoking
stamps ``revoked_at`` and keeps the row for re-sharing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError, PermissionDeniedError
from atreo.models.base import utcnow
from atreo.models.tool import SHARE_PERMISSIONS, Tool, ToolShare
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.security import encrypt_secret
from atreo.services.pagination import paginate
from atreo.services.user_service import split_list
from atreo.tasks.email import build_credentials_shared_email, send_email

logger = logging.getLogger(__name__)

SECRET_FIELDS = ("password", "api_key")


@dataclass
class ToolView:
    """A tool as seen by one user, with share details when it is not theirs."""

    tool: Tool
    is_shared: bool = False
    shared_by: str | None = None
    permission: str | None = None


def apply_billing_rules(tool: Tool) -> None:
    """Zero out billing fields on free tools and the 2FA method when 2FA is off."""
    if not tool.is_paid:
        tool.price = 0
        tool.billing_period = "monthly"
    if not tool.has_2fa:
        tool.two_factor_method = None


class ToolService:
    """Service for tool CRUD and sharing.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_tool(self, tool_id: str) -> Tool | None:
        result = await self.db.execute(select(Tool).where(Tool.id == tool_id))
        return result.scalar_one_or_none()

    async def _require(self, tool_id: str) -> Tool:
        tool = await self.get_tool(tool_id)
        if tool is None:
            raise NotFoundError("Tool not found")
        return tool

    async def active_share(self, tool_id: str, user_id: str) -> ToolShare | None:
        result = await self.db.execute(
            select(ToolShare).where(
                ToolShare.tool_id == tool_id,
                ToolShare.shared_with == user_id,
                ToolShare.revoked_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def list_tools(
        self,
        user: User,
        is_admin: bool,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[ToolView], PaginationMeta]:
        """List one page of tools visible to ``user``, newest first.

        Admins see every tool. Other users see tools they created plus tools
        actively shared with them, each listed once.
        """
        share_by_tool: dict[str, ToolShare] = {}
        query = select(Tool)
        if not is_admin:
            shares = await self.db.execute(
                select(ToolShare).where(
                    ToolShare.shared_with == user.id, ToolShare.revoked_at.is_(None)
                )
            )
            share_by_tool = {s.tool_id: s for s in shares.scalars().all()}
            if share_by_tool:
                query = query.where(
                    or_(Tool.created_by == user.id, Tool.id.in_(list(share_by_tool)))
                )
            else:
                query = query.where(Tool.created_by == user.id)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        tools, meta = await paginate(
            self.db, query, Tool.created_at, Tool.id, page_size, after, descending=True
        )
        meta.total = total

        views = []
        for tool in tools:
            share = share_by_tool.get(tool.id)
            if share is not None and tool.created_by != user.id:
                views.append(
                    ToolView(
                        tool=tool,
                        is_shared=True,
                        shared_by=share.shared_by,
                        permission=share.permission,
                    )
                )
            else:
                views.append(ToolView(tool=tool))
        return views, meta

    async def get_visible_tool(self, user: User, tool_id: str, is_admin: bool) -> ToolView:
        """Return a tool if ``user`` owns it, is an admin, or holds an active share.

        Raises:
            NotFoundError: If the tool does not exist.
            PermissionDeniedError: If the user may not see it.
        """
        tool = await self._require(tool_id)
        if is_admin or tool.created_by == user.id:
            return ToolView(tool=tool)
        share = await self.active_share(tool.id, user.id)
        if share is None:
            raise PermissionDeniedError("Access denied")
        return ToolView(
            tool=tool, is_shared=True, shared_by=share.shared_by, permission=share.permission
        )

    async def create_tool(self, user: User, **fields: Any) -> Tool:
        """Create a tool owned by ``user``; secrets are encrypted.

        Raises:
            InvalidRequestError: If the name is blank.
        """
        name = (fields.get("name") or "").strip()
        if not name:
            raise InvalidRequestError("Tool name is required")
        fields["name"] = name
        fields["tags"] = split_list(fields.get("tags"))
        for secret in SECRET_FIELDS:
            fields[secret] = encrypt_secret(fields.get(secret))

        tool = Tool(created_by=user.id, organization_id=user.organization_id, **fields)
        apply_billing_rules(tool)
        self.db.add(tool)
        await self.db.commit()
        await self.db.refresh(tool)
        logger.info("Tool %s created by %s", tool.id, user.email)
        return tool

    async def update_tool(self, user: User, tool_id: str, is_admin: bool, **fields: Any) -> Tool:
        """Partial update by the owner, an admin, or an edit-share holder.

        Raises:
            NotFoundError: If the tool does not exist.
            PermissionDeniedError: If the caller may not edit it.
        """
        tool = await self._require(tool_id)
        if not is_admin and tool.created_by != user.id:
            share = await self.active_share(tool.id, user.id)
            if share is None or share.permission != "edit":
                raise PermissionDeniedError("Not authorized to update this tool")

        if "name" in fields and fields["name"] is not None:
            fields["name"] = fields["name"].strip()
            if not fields["name"]:
                raise InvalidRequestError("Tool name is required")
        if fields.get("tags") is not None:
            fields["tags"] = split_list(fields["tags"])
        for secret in SECRET_FIELDS:
            if secret in fields and fields[secret] is not None:
                fields[secret] = encrypt_secret(fields[secret])

        for field, value in fields.items():
            if value is not None or field in ("payment_method", "card_last4", "two_factor_method"):
                setattr(tool, field, value)
        apply_billing_rules(tool)

        await self.db.commit()
        await self.db.refresh(tool)
        return tool

    async def delete_tool(self, user: User, tool_id: str, is_admin: bool) -> None:
        tool = await self._require(tool_id)
        if not is_admin and tool.created_by != user.id:
            raise PermissionDeniedError("Not authorized to delete this tool")
        await self.db.execute(delete(ToolShare).where(ToolShare.tool_id == tool.id))
        await self.db.delete(tool)
        await self.db.commit()

    async def delete_all(self) -> int:
        """Remove every share and every tool.

        Returns:
            Number of tools deleted.
        """
        await self.db.execute(delete(ToolShare))
        result = await self.db.execute(delete(Tool))
        await self.db.commit()
        logger.info("Deleted all %d tools", result.rowcount)
        return result.rowcount

    async def share_tool(
        self,
        actor: User,
        tool_id: str,
        target_user_id: str,
        permission: str,
        is_admin: bool,
    ) -> ToolShare:
        """Grant (or re-grant) a tool's credentials to another user.

        Raises:
            InvalidRequestError: On a bad permission or sharing with oneself.
            NotFoundError: If the tool or target user does not exist.
            PermissionDeniedError: If the caller is neither owner nor admin.
        """
        if permission not in SHARE_PERMISSIONS:
            raise InvalidRequestError("Permission must be 'view' or 'edit'")
        tool = await self._require(tool_id)
        if not is_admin and tool.created_by != actor.id:
            raise PermissionDeniedError("Only the owner or admin can share credentials")
        target = await self.db.get(User, target_user_id)
        if target is None:
            raise NotFoundError("User not found")
        if target.id == actor.id:
            raise InvalidRequestError("Cannot share credential with yourself")

        result = await self.db.execute(
            select(ToolShare).where(
                ToolShare.tool_id == tool.id, ToolShare.shared_with == target.id
            )
        )
        share = result.scalar_one_or_none()
        if share is None:
            share = ToolShare(
                tool_id=tool.id,
                shared_with=target.id,
                shared_by=actor.id,
                permission=permission,
            )
            self.db.add(share)
        else:
            share.shared_by = actor.id
            share.permission = permission
            share.revoked_at = None
        await self.db.commit()
        await self.db.refresh(share)

        self._notify_share(target, actor, tool, permission)
        return share

    def _notify_share(self, target: User, actor: User, tool: Tool, permission: str) -> None:
        subject, text, html = build_credentials_shared_email(
            target.name, actor.name, tool.name, permission
        )
        try:
            send_email.delay(target.email, subject, text, html)
        except Exception:
            logger.warning("Failed to enqueue share notification to %s", target.email, exc_info=True)

    async def revoke_share(
        self, actor: User, tool_id: str, target_user_id: str, is_admin: bool
    ) -> ToolShare:
        """Revoke an active share.

        Raises:
            NotFoundError: If the tool or an active share does not exist.
            PermissionDeniedError: If the caller is neither owner nor admin.
        """
        tool = await self._require(tool_id)
        if not is_admin and tool.created_by != actor.id:
            raise PermissionDeniedError("Only the owner or admin can revoke access")
        share = await self.active_share(tool.id, target_user_id)
        if share is None:
            raise NotFoundError("Share not found")
        share.revoked_at = utcnow()
        await self.db.commit()
        return share

    async def list_shares(self, tool_id: str) -> list[ToolShare]:
        result = await self.db.execute(
            select(ToolShare).where(
                ToolShare.tool_id == tool_id, ToolShare.revoked_at.is_(None)
            )
        )
        return list(result.scalars().all())

    async def share_candidates(self) -> list[User]:
        """Users with role ``user`` that tools can be shared with, by name."""
        result = await self.db.execute(
            select(User).where(User.role == "user").order_by(User.name.asc())
        )
        return list(result.scalars().all())
