"""Scheduler-triggered sweeps (one run per call)."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..db.session import get_session
from ..schemas.sweeps import SweepReport
from ..services import invoicing, scanner

logger = logging.getLogger(__name__)

Sweep = Callable[[AsyncSession], Awaitable[SweepReport]]


def require_cron_key(x_cron_key: str | None = Header(default=None, alias="X-Cron-Key")) -> None:
    expected = (settings.cron_key or "").strip()
    if expected and (x_cron_key or "").strip() != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid cron key")


router = APIRouter(dependencies=[Depends(require_cron_key)])


async def _run(name: str, sweep: Sweep, session: AsyncSession) -> SweepReport:
    try:
        return await sweep(session)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Sweep %s crashed", name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"{name} sweep failed") from exc


@router.post("/stale-leads", response_model=SweepReport)
async def stale_leads(session: AsyncSession = Depends(get_session)) -> SweepReport:
    """Hourly stale-lead reminders and escalations."""

    return await _run("stale_leads", scanner.run_stale_sweep, session)


@router.post("/site-visits", response_model=SweepReport)
async def site_visits(session: AsyncSession = Depends(get_session)) -> SweepReport:
    """Daily 08:00 reminders for tomorrow's site visits."""

    return await _run("site_visits", scanner.run_site_visit_sweep, session)


@router.post("/quotes", response_model=SweepReport)
async def quotes(session: AsyncSession = Depends(get_session)) -> SweepReport:
    """Daily 09:00 quote follow-ups."""

    return await _run("quotes", scanner.run_quote_sweep, session)


@router.post("/payments", response_model=SweepReport)
async def payments(session: AsyncSession = Depends(get_session)) -> SweepReport:
    """Six-hourly payment status sync."""

    return await _run("payments", invoicing.run_payment_sweep, session)
