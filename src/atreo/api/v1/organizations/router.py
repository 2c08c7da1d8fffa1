"""Organization endpoints returning JSON:API responses (admin only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, rate_limit, require_admin
from atreo.models.organization import Organization
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.organization import OrganizationRequest
from atreo.services.organization_service import OrganizationService

router = APIRouter(dependencies=[Depends(require_admin)])


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _organization_resource(org: Organization, extra: dict | None = None) -> JSONAPIResource:
    attrs = {
        "name": org.name,
        "domain": org.domain,
        "created_at": org.created_at.isoformat(),
        "updated_at": org.updated_at.isoformat(),
    }
    if extra:
        attrs.update(extra)
    return JSONAPIResource(type="organizations", id=str(org.id), attributes=attrs)


def _member_resource(user: User) -> JSONAPIResource:
    return JSONAPIResource(
        type="users",
        id=str(user.id),
        attributes={
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "organization_id": user.organization_id,
        },
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_organizations(db: AsyncSession = Depends(get_db)) -> JSONAPIListResponse:
    """List organizations newest first with member, tool and invoice counts."""
    rows = await OrganizationService(db).list_organizations()
    return JSONAPIListResponse(
        data=[_organization_resource(org, counts) for org, counts in rows],
        meta={"total": len(rows)},
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_organization(
    body: JSONAPIRequest[OrganizationRequest],
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    attrs = body.data.attributes
    org = await OrganizationService(db).create_organization(attrs.name, attrs.domain)
    return JSONAPISingleResponse(data=_organization_resource(org))


@router.get("/{organization_id}")
async def get_organization(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    org = await OrganizationService(db).get_organization(organization_id)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return JSONAPISingleResponse(data=_organization_resource(org))


@router.put("/{organization_id}", dependencies=[Depends(rate_limit("write"))])
async def update_organization(
    organization_id: str,
    body: JSONAPIRequest[OrganizationRequest],
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    attrs = body.data.attributes
    org = await OrganizationService(db).update_organization(
        organization_id, attrs.name, attrs.domain
    )
    return JSONAPISingleResponse(data=_organization_resource(org))


@router.delete("/{organization_id}", status_code=204)
async def delete_organization(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an organization after moving its members elsewhere."""
    await OrganizationService(db).delete_organization(organization_id)


@router.post("/{organization_id}/users/{user_id}")
async def add_user(
    organization_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    user = await OrganizationService(db).add_user(organization_id, user_id)
    return JSONAPISingleResponse(data=_member_resource(user))


@router.delete("/{organization_id}/users/{user_id}")
async def remove_user(
    organization_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Move a member into another organization."""
    user = await OrganizationService(db).remove_user(organization_id, user_id)
    return JSONAPISingleResponse(data=_member_resource(user))


@router.get("/{organization_id}/details")
async def get_organization_details(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """An organization with its members, tools and invoices."""
    org, users, tools, invoices = await OrganizationService(db).get_details(organization_id)
    extra = {
        "users": [
            {"id": u.id, "name": u.name, "email": u.email, "role": u.role} for u in users
        ],
        "tools": [
            {"id": t.id, "name": t.name, "category": t.category, "status": t.status}
            for t in tools
        ],
        "invoices": [
            {
                "id": i.id,
                "invoice_number": i.invoice_number,
                "amount": i.amount,
                "currency": i.currency,
                "status": i.status,
                "billing_date": i.billing_date.isoformat(),
            }
            for i in invoices
        ],
    }
    return JSONAPISingleResponse(data=_organization_resource(org, extra))
