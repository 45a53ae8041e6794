"""Scheduled sweep reports."""
from __future__ import annotations

from pydantic import BaseModel


class SweepReport(BaseModel):
    sweep: str
    scanned: int = 0
    reminded: int = 0
    escalated: int = 0
    notified: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
