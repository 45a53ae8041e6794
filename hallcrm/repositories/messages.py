"""Conversation log persistence."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.message import Message, MessageDirection


async def append_message(
    session: AsyncSession,
    *,
    lead_id: str,
    direction: MessageDirection,
    provider: str,
    text: str,
    phone: str | None = None,
    external_message_id: str | None = None,
    message_type: str = "text",
    media_url: str | None = None,
    sender_name: str | None = None,
    kind: str = "chat",
) -> Message:
    """Append one message to the lead's log; outbound messages are born read."""

    message = Message(
        id=str(uuid4()),
        lead_id=lead_id,
        direction=direction,
        provider=provider,
        text=text or "",
        phone=phone,
        external_message_id=external_message_id,
        message_type=message_type or "text",
        media_url=media_url,
        sender_name=sender_name,
        kind=kind,
        read=direction is MessageDirection.OUTBOUND,
    )
    session.add(message)
    await session.flush()
    return message


async def list_for_lead(session: AsyncSession, lead_id: str, *, limit: int = 200) -> list[Message]:
    stmt = (
        select(Message)
        .where(Message.lead_id == lead_id)
        .order_by(Message.created_at.asc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
