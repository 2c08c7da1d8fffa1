"""Organization (tenant) management."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import ConflictError, InvalidRequestError, NotFoundError
from atreo.models.invoice import Invoice
from atreo.models.organization import Organization
from atreo.models.submission import Submission
from atreo.models.tool import Tool
from atreo.models.user import User

logger = logging.getLogger(__name__)


def normalize_domain(domain: str) -> str:
    return domain.strip().lower()


class OrganizationService:
    """Service for organization CRUD and membership.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _count_by_org(self, column: Any) -> dict[str, int]:
        result = await self.db.execute(
            select(column, func.count()).where(column.is_not(None)).group_by(column)
        )
        return {org_id: count for org_id, count in result.all()}

    async def list_organizations(self) -> list[tuple[Organization, dict[str, int]]]:
        """List organizations newest first, each with user/tool/invoice counts."""
        result = await self.db.execute(
            select(Organization).order_by(Organization.created_at.desc())
        )
        organizations = list(result.scalars().all())
        users = await self._count_by_org(User.organization_id)
        tools = await self._count_by_org(Tool.organization_id)
        invoices = await self._count_by_org(Invoice.organization_id)
        return [
            (
                org,
                {
                    "user_count": users.get(org.id, 0),
                    "tool_count": tools.get(org.id, 0),
                    "invoice_count": invoices.get(org.id, 0),
                },
            )
            for org in organizations
        ]

    async def get_organization(self, organization_id: str) -> Organization | None:
        result = await self.db.execute(
            select(Organization).where(Organization.id == organization_id)
        )
        return result.scalar_one_or_none()

    async def _require(self, organization_id: str) -> Organization:
        org = await self.get_organization(organization_id)
        if org is None:
            raise NotFoundError("Organization not found")
        return org

    async def create_organization(self, name: str, domain: str) -> Organization:
        """Create an organization.

        Raises:
            InvalidRequestError: If name or domain is blank.
            ConflictError: If the domain is already registered.
        """
        name, domain = name.strip(), normalize_domain(domain)
        if not name or not domain:
            raise InvalidRequestError("Name and domain are required")
        existing = await self.db.execute(
            select(Organization.id).where(Organization.domain == domain)
        )
        if existing.first() is not None:
            raise ConflictError("Organization with this domain already exists")

        org = Organization(name=name, domain=domain)
        self.db.add(org)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Organization with this domain already exists") from exc
        await self.db.refresh(org)
        return org

    async def update_organization(self, organization_id: str, name: str, domain: str) -> Organization:
        """Rename an organization or change its domain.

        Raises:
            InvalidRequestError: If name or domain is blank.
            NotFoundError: If the organization does not exist.
            ConflictError: If another organization owns the domain.
        """
        name, domain = name.strip(), normalize_domain(domain)
        if not name or not domain:
            raise InvalidRequestError("Name and domain are required")
        org = await self._require(organization_id)
        clash = await self.db.execute(
            select(Organization.id).where(
                Organization.domain == domain, Organization.id != org.id
            )
        )
        if clash.first() is not None:
            raise ConflictError("Domain is already taken by another organization")

        org.name = name
        org.domain = domain
        await self.db.commit()
        await self.db.refresh(org)
        return org

    async def _fallback_for(self, organization_id: str) -> Organization | None:
        result = await self.db.execute(
            select(Organization)
            .where(Organization.id != organization_id)
            .order_by(Organization.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete_organization(self, organization_id: str) -> str:
        """Delete an organization, moving its members to another one.

        Returns:
            UUID of the organization that received the members.

        Raises:
            NotFoundError: If the organization does not exist.
            InvalidRequestError: If it is the last organization.
        """
        org = await self._require(organization_id)
        fallback = await self._fallback_for(org.id)
        if fallback is None:
            raise InvalidRequestError("Cannot delete the last organization")

        for model in (User, Tool, Submission):
            await self.db.execute(
                update(model)
                .where(model.organization_id == org.id)
                .values(organization_id=fallback.id)
                .execution_options(synchronize_session=False)
            )
        await self.db.delete(org)
        await self.db.commit()
        logger.info("Organization %s deleted; members moved to %s", org.domain, fallback.domain)
        return fallback.id

    async def add_user(self, organization_id: str, user_id: str) -> User:
        await self._require(organization_id)
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.organization_id = organization_id
        await self.db.commit()
        return user

    async def remove_user(self, organization_id: str, user_id: str) -> User:
        """Move a user out of an organization into another one.

        Raises:
            NotFoundError: If the organization or user does not exist.
            InvalidRequestError: If the user is not a member, or no other
                organization exists.
        """
        org = await self._require(organization_id)
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.organization_id != org.id:
            raise InvalidRequestError("User does not belong to this organization")
        fallback = await self._fallback_for(org.id)
        if fallback is None:
            raise InvalidRequestError("Cannot remove user from the last organization")
        user.organization_id = fallback.id
        await self.db.commit()
        return user

    async def get_details(
        self, organization_id: str
    ) -> tuple[Organization, list[User], list[Tool], list[Invoice]]:
        org = await self._require(organization_id)
        users = await self.db.execute(
            select(User).where(User.organization_id == org.id).order_by(User.name)
        )
        tools = await self.db.execute(
            select(Tool).where(Tool.organization_id == org.id).order_by(Tool.name)
        )
        invoices = await self.db.execute(
            select(Invoice)
            .where(Invoice.organization_id == org.id)
            .order_by(Invoice.billing_date.desc())
        )
        return (
            org,
            list(users.scalars().all()),
            list(tools.scalars().all()),
            list(invoices.scalars().all()),
        )
