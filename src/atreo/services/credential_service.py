"""Credential vault: tools viewed as stored logins.

Listing masks secrets; reading a single credential decrypts it and leaves
a ``credential_viewed`` audit entry.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError
from atreo.models.tool import Tool, ToolShare
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.security import encrypt_secret
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.pagination import paginate
from atreo.services.user_service import split_list

logger = logging.getLogger(__name__)

MASK = "••••••••••••"


class CredentialService:
    """Service for credential CRUD with audited access.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    async def list_credentials(
        self,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[Tool], PaginationMeta]:
        """List credentials alphabetically by name."""
        return await paginate(self.db, select(Tool), Tool.name, Tool.id, page_size, after)

    async def _require(self, credential_id: str) -> Tool:
        result = await self.db.execute(select(Tool).where(Tool.id == credential_id))
        tool = result.scalar_one_or_none()
        if tool is None:
            raise NotFoundError("Credential not found")
        return tool

    async def view_credential(
        self,
        user: User,
        credential_id: str,
        context: RequestContext | None = None,
    ) -> Tool:
        """Fetch a credential for display and record the access."""
        tool = await self._require(credential_id)
        await self.audit.log_credential_access(
            user, tool.id, details={"name": tool.name}, context=context
        )
        return tool

    async def create_credential(
        self,
        user: User,
        name: str,
        service: str,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        notes: str | None = None,
        tags: Any = None,
        context: RequestContext | None = None,
    ) -> Tool:
        """Store a new credential with encrypted secrets.

        Raises:
            InvalidRequestError: If name or service is blank.
        """
        if not (name or "").strip() or not (service or "").strip():
            raise InvalidRequestError("Name and service are required")
        tool = Tool(
            name=name.strip(),
            category=service.strip(),
            username=username,
            password=encrypt_secret(password),
            api_key=encrypt_secret(api_key),
            notes=notes,
            tags=split_list(tags),
            created_by=user.id,
            organization_id=user.organization_id,
        )
        self.db.add(tool)
        await self.db.commit()
        await self.db.refresh(tool)
        await self.audit.log_credential_access(
            user, tool.id, "credential_created", details={"name": tool.name}, context=context
        )
        return tool

    async def update_credential(
        self,
        user: User,
        credential_id: str,
        context: RequestContext | None = None,
        **fields: Any,
    ) -> Tool:
        """Partial update; a password equal to the mask keeps the stored one."""
        tool = await self._require(credential_id)
        if fields.get("password") == MASK:
            fields.pop("password")
        if fields.get("api_key") == MASK:
            fields.pop("api_key")

        if "service" in fields:
            service = fields.pop("service")
            if service is not None:
                if not service.strip():
                    raise InvalidRequestError("Name and service are required")
                tool.category = service.strip()
        if fields.get("name") is not None:
            if not fields["name"].strip():
                raise InvalidRequestError("Name and service are required")
            tool.name = fields["name"].strip()
        for secret in ("password", "api_key"):
            if secret in fields:
                setattr(tool, secret, encrypt_secret(fields[secret]))
        for field in ("username", "notes"):
            if field in fields:
                setattr(tool, field, fields[field])
        if fields.get("tags") is not None:
            tool.tags = split_list(fields["tags"])

        await self.db.commit()
        await self.db.refresh(tool)
        changed = sorted(k for k in fields if k not in ("password", "api_key"))
        await self.audit.log_credential_access(
            user,
            tool.id,
            "credential_updated",
            details={"fields": changed, "secrets_changed": "password" in fields or "api_key" in fields},
            context=context,
        )
        return tool

    async def delete_credential(
        self,
        user: User,
        credential_id: str,
        context: RequestContext | None = None,
    ) -> None:
        tool = await self._require(credential_id)
        name = tool.name
        await self.db.execute(delete(ToolShare).where(ToolShare.tool_id == tool.id))
        await self.db.delete(tool)
        await self.db.commit()
        await self.audit.log_credential_access(
            user, credential_id, "credential_deleted", details={"name": name}, context=context
        )
