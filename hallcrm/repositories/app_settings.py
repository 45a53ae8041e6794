"""Configuration document storage."""
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.app_setting import AppSetting


async def get_document(session: AsyncSession, key: str) -> dict[str, Any] | None:
    setting = await session.get(AppSetting, key)
    if setting is None:
        return None
    return dict(setting.value or {})


async def put_document(session: AsyncSession, key: str, value: dict[str, Any]) -> AppSetting:
    """Insert or replace the document stored under ``key``."""

    setting = await session.get(AppSetting, key)
    if setting is None:
        setting = AppSetting(key=key, value=value)
    else:
        setting.value = value
    session.add(setting)
    await session.flush()
    return setting
