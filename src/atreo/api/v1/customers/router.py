"""Customer endpoints returning JSON:API responses.

Every route requires the ``customers`` module.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, get_request_context, rate_limit, require_module_access
from atreo.models.customer import Customer
from atreo.models.user import User
from atreo.schemas.customer import (
    CreateCustomerRequest,
    CustomerStatus,
    CustomerType,
    UpdateCustomerRequest,
)
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
    iso,
)
from atreo.schemas.pagination import build_links
from atreo.services.audit_service import RequestContext
from atreo.services.customer_service import CustomerService

router = APIRouter()

require_customers = require_module_access("customers")


def _person(users: dict[str, User], user_id: str | None) -> dict | None:
    if user_id is None:
        return None
    user = users.get(user_id)
    return {
        "id": user_id,
        "name": user.name if user else None,
        "email": user.email if user else None,
    }


def _customer_resource(customer: Customer, users: dict[str, User]) -> JSONAPIResource:
    return JSONAPIResource(
        type="customers",
        id=str(customer.id),
        attributes={
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
            "company": customer.company,
            "address": customer.address or {},
            "status": customer.status,
            "customer_type": customer.customer_type,
            "tags": customer.tags or [],
            "notes": customer.notes,
            "total_revenue": customer.total_revenue,
            "last_contact_date": iso(customer.last_contact_date),
            "acquisition_date": iso(customer.acquisition_date),
            "assigned_to": _person(users, customer.assigned_to),
            "created_by": _person(users, customer.created_by),
            "created_at": customer.created_at.isoformat(),
            "updated_at": customer.updated_at.isoformat(),
        },
    )


@router.get("")
async def list_customers(
    request: Request,
    status: CustomerStatus | None = None,
    customer_type: CustomerType | None = None,
    search: str | None = None,
    assigned_to: str | None = None,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    _: User = Depends(require_customers),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List customers newest first with filters and cursor pagination."""
    service = CustomerService(db)
    customers, pagination_meta = await service.list_customers(
        status=status,
        customer_type=customer_type,
        search=search,
        assigned_to=assigned_to,
        page_size=page_size,
        after=page_after,
    )
    users = await service.people(customers)
    links = build_links(request.url, customers, pagination_meta, page_size)
    return JSONAPIListResponse(
        data=[_customer_resource(c, users) for c in customers],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.get("/stats/summary")
async def customer_stats(
    _: User = Depends(require_customers),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    stats = await CustomerService(db).stats_summary()
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="customer-stats", id="summary", attributes=stats)
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_customer(
    body: JSONAPIRequest[CreateCustomerRequest],
    user: User = Depends(require_customers),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    fields = body.data.attributes.model_dump()
    service = CustomerService(db)
    customer = await service.create_customer(
        user, fields.pop("name"), fields.pop("email"), context, **fields
    )
    users = await service.people([customer])
    return JSONAPISingleResponse(data=_customer_resource(customer, users))


@router.get("/{customer_id}")
async def get_customer(
    customer_id: str,
    _: User = Depends(require_customers),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    service = CustomerService(db)
    customer = await service.get_customer(customer_id)
    users = await service.people([customer])
    return JSONAPISingleResponse(data=_customer_resource(customer, users))


@router.put("/{customer_id}", dependencies=[Depends(rate_limit("write"))])
async def update_customer(
    customer_id: str,
    body: JSONAPIRequest[UpdateCustomerRequest],
    user: User = Depends(require_customers),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Apply the fields sent; the audit entry lists which ones they were."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    service = CustomerService(db)
    customer = await service.update_customer(user, customer_id, context, **update_data)
    users = await service.people([customer])
    return JSONAPISingleResponse(data=_customer_resource(customer, users))


@router.delete("/{customer_id}", status_code=204)
async def delete_customer(
    customer_id: str,
    user: User = Depends(require_customers),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> None:
    await CustomerService(db).delete_customer(user, customer_id, context)
