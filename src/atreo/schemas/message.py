"""Pydantic v2 schemas for internal messages."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

MessagePriority = Literal["low", "normal", "high", "urgent"]
MessageCategory = Literal["general", "payroll", "hr", "it", "announcement"]


class SendMessageRequest(BaseModel):
    """Request body for sending a message; ``to`` is the recipient's user id."""

    to: str | None = None
    subject: str | None = Field(default=None, max_length=200)
    content: str | None = Field(default=None, max_length=5000)
    priority: MessagePriority = "normal"
    category: MessageCategory = "general"
    attachments: list[str] = Field(default_factory=list)
