"""HTTP route definitions for the service."""

from __future__ import annotations

import unicodedata
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import Response

from app.schemas import (
    DashboardSnapshot,
    ExportRequest,
    LiveDashboard,
    OverviewPoint,
    Report,
    StatCards,
)
from datastore.query import QueryError
from services.dashboard import DashboardService, build_default_dashboard_service
from services.exporters import DEFAULT_FILENAME, ExportService, build_default_export_service
from services.refresher import DashboardRefresher, build_default_refresher
from services.reporting import ReportBuilder, build_default_report_builder

router = APIRouter()


def get_owner_id(x_owner_id: Optional[str] = Header(default=None)) -> Optional[str]:
    if x_owner_id is None:
        return None
    return x_owner_id.strip() or None


def get_dashboard_service() -> DashboardService:
    return build_default_dashboard_service()


def get_report_builder() -> ReportBuilder:
    return build_default_report_builder()


def get_export_service() -> ExportService:
    return build_default_export_service()


def get_refresher() -> DashboardRefresher:
    return build_default_refresher()


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the RFC 5987 UTF-8 name."""
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = "".join(
        "_" if char in '"\\' or not char.isprintable() else char for char in ascii_name
    )
    encoded = quote(filename, safe="")
    return f"attachment; filename=\"{fallback or 'report'}\"; filename*=UTF-8''{encoded}"


def _store_unavailable(exc: QueryError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Indicator store query failed: {exc}",
    )


@router.get(
    "/dashboard",
    response_model=DashboardSnapshot,
    summary="Weekly and monthly indicator figures for the dashboard.",
)
def get_dashboard(
    owner_id: Optional[str] = Depends(get_owner_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardSnapshot:
    try:
        return service.snapshot(owner_id=owner_id)
    except QueryError as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/dashboard/stats",
    response_model=StatCards,
    summary="Headline cards for the most recent reading.",
)
def get_stat_cards(
    owner_id: Optional[str] = Depends(get_owner_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> StatCards:
    return service.stat_cards(owner_id=owner_id)


@router.get(
    "/dashboard/overview",
    response_model=List[OverviewPoint],
    summary="Monthly totals for the last twelve months.",
)
def get_overview(
    owner_id: Optional[str] = Depends(get_owner_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> List[OverviewPoint]:
    try:
        return service.overview(owner_id=owner_id)
    except QueryError as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/dashboard/live",
    response_model=LiveDashboard,
    summary="Figures kept current by the background refresher.",
)
async def get_live_dashboard(
    refresher: DashboardRefresher = Depends(get_refresher),
) -> LiveDashboard:
    return refresher.latest


@router.get(
    "/reports",
    response_model=Report,
    summary="Build the monthly report consumed by the exporters.",
)
def get_report(
    owner_id: Optional[str] = Depends(get_owner_id),
    builder: ReportBuilder = Depends(get_report_builder),
) -> Report:
    try:
        return builder.build(owner_id=owner_id)
    except QueryError as exc:
        raise _store_unavailable(exc) from exc


def _export_response(
    service: ExportService,
    export_format: str,
    request: ExportRequest,
    owner_id: Optional[str],
) -> Response:
    try:
        outcome = service.export(
            export_format,
            filename=request.filename,
            owner_id=owner_id,
            activities=request.activities,
        )
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]) if exc.args else "Unsupported export format.",
        ) from exc

    if outcome.file is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=outcome.notification.model_dump(mode="json"),
        )

    return Response(
        content=outcome.file.content,
        media_type=outcome.file.media_type,
        headers={"Content-Disposition": content_disposition(outcome.file.filename)},
    )


@router.get(
    "/reports/export/{export_format}",
    summary="Download the report as pdf, csv or xlsx.",
    response_class=Response,
)
def export_report(
    export_format: str,
    filename: str = Query(DEFAULT_FILENAME, description="File name without extension."),
    owner_id: Optional[str] = Depends(get_owner_id),
    service: ExportService = Depends(get_export_service),
) -> Response:
    return _export_response(service, export_format, ExportRequest(filename=filename), owner_id)


@router.post(
    "/reports/export/{export_format}",
    summary="Download the report, optionally replacing the activity list.",
    response_class=Response,
)
def export_report_with_activities(
    export_format: str,
    request: Optional[ExportRequest] = None,
    owner_id: Optional[str] = Depends(get_owner_id),
    service: ExportService = Depends(get_export_service),
) -> Response:
    return _export_response(service, export_format, request or ExportRequest(), owner_id)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
