"""Internal message endpoints returning JSON:API responses.

Every route requires the ``messages`` module. Users only ever see messages
they sent or received.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, get_request_context, rate_limit, require_module_access
from atreo.models.message import Message
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
    iso,
)
from atreo.schemas.message import MessageCategory, MessagePriority, SendMessageRequest
from atreo.schemas.pagination import build_links
from atreo.services.audit_service import RequestContext
from atreo.services.message_service import MessageService

router = APIRouter()

require_messages = require_module_access("messages")


def _person(users: dict[str, User], user_id: str) -> dict:
    user = users.get(user_id)
    return {
        "id": user_id,
        "name": user.name if user else None,
        "email": user.email if user else None,
    }


def _message_resource(message: Message, users: dict[str, User]) -> JSONAPIResource:
    return JSONAPIResource(
        type="messages",
        id=str(message.id),
        attributes={
            "from": _person(users, message.from_user),
            "to": _person(users, message.to_user),
            "subject": message.subject,
            "content": message.content,
            "is_read": message.is_read,
            "read_at": iso(message.read_at),
            "priority": message.priority,
            "category": message.category,
            "attachments": message.attachments or [],
            "created_at": message.created_at.isoformat(),
        },
    )


@router.get("")
async def list_inbox(
    request: Request,
    unread: bool = False,
    category: MessageCategory | None = None,
    priority: MessagePriority | None = None,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Messages received by the caller, newest first, with the unread count."""
    service = MessageService(db)
    messages, pagination_meta = await service.inbox(
        user,
        unread=unread,
        category=category,
        priority=priority,
        page_size=page_size,
        after=page_after,
    )
    users = await service.participants(messages)
    links = build_links(request.url, messages, pagination_meta, page_size)
    return JSONAPIListResponse(
        data=[_message_resource(m, users) for m in messages],
        meta={**pagination_meta.model_dump(), "unread_count": await service.unread_count(user)},
        links=links.model_dump(exclude_none=True),
    )


@router.get("/sent")
async def list_sent(
    request: Request,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    service = MessageService(db)
    messages, pagination_meta = await service.sent(user, page_size=page_size, after=page_after)
    users = await service.participants(messages)
    links = build_links(request.url, messages, pagination_meta, page_size)
    return JSONAPIListResponse(
        data=[_message_resource(m, users) for m in messages],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.get("/stats/summary")
async def message_stats(
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    stats = await MessageService(db).stats(user)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="message-stats", id=str(user.id), attributes=stats)
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def send_message(
    body: JSONAPIRequest[SendMessageRequest],
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    attrs = body.data.attributes
    service = MessageService(db)
    message = await service.send(
        user,
        to=attrs.to,
        subject=attrs.subject,
        content=attrs.content,
        priority=attrs.priority,
        category=attrs.category,
        attachments=attrs.attachments,
        context=context,
    )
    users = await service.participants([message])
    return JSONAPISingleResponse(data=_message_resource(message, users))


@router.get("/{message_id}")
async def get_message(
    message_id: str,
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Open a message; the recipient's first read marks it read."""
    service = MessageService(db)
    message = await service.read_message(user, message_id)
    users = await service.participants([message])
    return JSONAPISingleResponse(data=_message_resource(message, users))


@router.put("/{message_id}/read")
async def mark_read(
    message_id: str,
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    message = await MessageService(db).mark_read(user, message_id)
    return JSONAPIMetaResponse(meta={"is_read": message.is_read, "read_at": iso(message.read_at)})


@router.delete("/{message_id}", status_code=204)
async def delete_message(
    message_id: str,
    user: User = Depends(require_messages),
    db: AsyncSession = Depends(get_db),
) -> None:
    await MessageService(db).delete_message(user, message_id)
