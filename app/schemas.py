"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ActivityEntry(BaseModel):
    """One line of the recent activity log."""

    date: str
    activity: str
    status: str
    value: str = ""


class ReportStats(BaseModel):
    """Pre-formatted month statistics."""

    waste: str
    energy: str
    efficiency: str
    tax: str


class ReportTotals(BaseModel):
    """Raw month aggregates backing :class:`ReportStats`."""

    energy: float = 0.0
    waste: float = 0.0
    tax: float = 0.0
    avg_efficiency: Optional[float] = None


class Report(BaseModel):
    """Normalized input shared by every exporter."""

    title: str
    generated_at: str = Field(..., description="Report date as dd/mm/yyyy.")
    period_label: str
    stats: ReportStats
    totals: ReportTotals = Field(default_factory=ReportTotals)
    activities: List[ActivityEntry] = Field(default_factory=list)


class StatCards(BaseModel):
    """Headline cards built from the most recent indicator row."""

    waste_processed: str = "0 kg"
    energy_generated: str = "0 kWh"
    tax_savings: str = "R$ 0,00"
    efficiency: str = "—"
    measured_at: Optional[datetime] = None


class DashboardSnapshot(BaseModel):
    week_label: str
    month_label: str
    energy_week: str
    waste_week: str
    energy_week_delta: str
    waste_week_delta: str
    efficiency_current: str
    efficiency_bar_width: str
    month_energy: str
    month_waste: str
    month_tax: str
    week_energy: str
    week_efficiency: str


class OverviewPoint(BaseModel):
    name: str = Field(..., description="Short month label, e.g. 'Jan'.")
    waste_processed: float = 0.0
    energy_generated: float = 0.0
    tax_deduction: float = 0.0


class LiveDashboard(BaseModel):
    stats: StatCards = Field(default_factory=StatCards)
    overview: List[OverviewPoint] = Field(default_factory=list)
    refreshed_at: Optional[datetime] = None


class NotificationVariant(str, Enum):
    default = "default"
    destructive = "destructive"


class ExportNotification(BaseModel):
    """User-facing message describing the outcome of an export."""

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.default


class ExportRequest(BaseModel):
    filename: str = "biodigester-report"
    activities: Optional[List[ActivityEntry]] = None
