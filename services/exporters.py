"""Serializers turning a :class:`Report` into downloadable files."""

from __future__ import annotations

import csv
import html
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.schemas import ActivityEntry, ExportNotification, NotificationVariant, Report
from services.formatting import parse_currency, parse_date
from services.reporting import ReportBuilder, build_default_report_builder

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "biodigester-report"
STATS_HEADING = "Estatísticas (Mês Corrente)"
ACTIVITIES_HEADING = "Atividades Recentes"
METRIC_HEADER = ["Métrica", "Valor"]
ACTIVITY_HEADER = ["Data", "Atividade", "Status", "Valor"]
CURRENCY_FORMAT = '"R$" #,##0.00'
DATE_FORMAT = "dd/mm/yyyy"


def _stat_rows(report: Report) -> List[List[str]]:
    return [
        ["Resíduos Processados", report.stats.waste],
        ["Energia Gerada", report.stats.energy],
        ["Eficiência Média", report.stats.efficiency],
        ["Economia Fiscal", report.stats.tax],
    ]


def _activity_rows(activities: Iterable[ActivityEntry]) -> List[List[str]]:
    return [[entry.date, entry.activity, entry.status, entry.value] for entry in activities]


def sanitize_filename(filename: str) -> str:
    name = Path(filename or DEFAULT_FILENAME).name.strip()
    return name or DEFAULT_FILENAME


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    content: bytes


class ReportExporter(ABC):
    """Stateless serializer for one output format."""

    format: str
    extension: str
    media_type: str
    label: str
    success_message: str

    @abstractmethod
    def render(self, report: Report) -> bytes:
        raise NotImplementedError

    def export(self, report: Report, filename: str = DEFAULT_FILENAME) -> ExportFile:
        content = self.render(report)
        return ExportFile(
            filename=f"{sanitize_filename(filename)}.{self.extension}",
            media_type=self.media_type,
            content=content,
        )


class CsvReportExporter(ReportExporter):
    format = "csv"
    extension = "csv"
    media_type = "text/csv; charset=utf-8"
    label = "CSV"
    success_message = "Dados exportados com sucesso."

    def render(self, report: Report) -> bytes:
        rows: List[List[str]] = [
            [report.title],
            ["Data do Relatório", report.generated_at],
            ["Período (mês)", report.period_label],
            [""],
            ["ESTATÍSTICAS"],
            METRIC_HEADER,
            *_stat_rows(report),
            [""],
            ["ATIVIDADES RECENTES"],
            ACTIVITY_HEADER,
            *_activity_rows(report.activities),
        ]
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerows(rows)
        # No trailing newline after the last row.
        return buffer.getvalue().rstrip("\n").encode("utf-8")


class PdfReportExporter(ReportExporter):
    format = "pdf"
    extension = "pdf"
    media_type = "application/pdf"
    label = "PDF"
    success_message = "Relatório gerado com sucesso."

    _GRID_STYLE = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#dcfce7")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#14532d")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#86efac")),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]

    def render(self, report: Report) -> bytes:
        styles = getSampleStyleSheet()
        cell_style = styles["BodyText"]

        def cell(value: Any) -> Paragraph:
            return Paragraph(html.escape(str(value)), cell_style)

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=0.55 * inch,
            rightMargin=0.55 * inch,
            topMargin=0.55 * inch,
            bottomMargin=0.55 * inch,
            title=report.title,
        )

        story: List[Any] = [
            Paragraph(html.escape(report.title), styles["Title"]),
            Paragraph(f"Data do Relatório: {html.escape(report.generated_at)}", styles["BodyText"]),
            Paragraph(f"Período (mês): {html.escape(report.period_label)}", styles["BodyText"]),
            Spacer(1, 12),
            Paragraph(STATS_HEADING, styles["Heading2"]),
        ]

        stats_table = Table(
            [METRIC_HEADER] + [[cell(name), cell(value)] for name, value in _stat_rows(report)],
            colWidths=[3.2 * inch, 3.2 * inch],
            hAlign="LEFT",
        )
        stats_table.setStyle(TableStyle(self._GRID_STYLE))
        story.extend([stats_table, Spacer(1, 16), Paragraph(ACTIVITIES_HEADING, styles["Heading2"])])

        activity_rows = [[cell(value) for value in row] for row in _activity_rows(report.activities)]
        if activity_rows:
            activity_table = Table(
                [ACTIVITY_HEADER] + activity_rows,
                colWidths=[1.0 * inch, 3.4 * inch, 1.1 * inch, 1.3 * inch],
                repeatRows=1,
                hAlign="LEFT",
            )
            activity_table.setStyle(TableStyle(self._GRID_STYLE))
            story.append(activity_table)
        else:
            story.append(Paragraph("Nenhuma atividade registrada no período.", styles["BodyText"]))

        doc.build(story)
        return buffer.getvalue()


class XlsxReportExporter(ReportExporter):
    format = "xlsx"
    extension = "xlsx"
    media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    label = "Excel"
    success_message = "Arquivo .xlsx gerado com sucesso."

    summary_title = "Resumo"
    activities_title = "Atividades"
    _ACTIVITY_MIN_WIDTHS = (10, 30, 14, 12)
    _MAX_WIDTH = 60

    def render(self, report: Report) -> bytes:
        workbook = Workbook()
        self._write_summary(workbook.active, report)
        self._write_activities(workbook.create_sheet(self.activities_title), report.activities)

        output = io.BytesIO()
        workbook.save(output)
        return output.getvalue()

    def _write_summary(self, sheet, report: Report) -> None:
        sheet.title = self.summary_title
        totals = report.totals
        efficiency: Any = (
            totals.avg_efficiency / 100 if totals.avg_efficiency is not None else report.stats.efficiency
        )

        rows: List[List[Any]] = [
            [report.title, None, None, None],
            ["Data do Relatório", report.generated_at],
            ["Período (mês)", report.period_label],
            [],
            ["ESTATÍSTICAS"],
            ["Métrica", "Valor", "Unidade", "Observações"],
            ["Resíduos Processados", round(totals.waste), "kg", ""],
            ["Energia Gerada", round(totals.energy), "kWh", ""],
            ["Eficiência Média", efficiency, "%", ""],
            ["Economia Fiscal", round(totals.tax, 2), "BRL", ""],
        ]
        for row in rows:
            sheet.append(row)

        sheet.merge_cells("A1:D1")
        sheet["A1"].font = Font(bold=True, size=14)
        sheet["A1"].alignment = Alignment(horizontal="center")
        for cell in sheet[6]:
            cell.font = Font(bold=True)

        sheet["B7"].number_format = "0"
        sheet["B8"].number_format = "0"
        if isinstance(sheet["B9"].value, float):
            sheet["B9"].number_format = "0.00%"
        sheet["B10"].number_format = CURRENCY_FORMAT

        for letter, width in zip("ABCD", (28, 18, 10, 30)):
            sheet.column_dimensions[letter].width = width
        sheet.auto_filter.ref = f"A6:D{len(rows)}"

    def _write_activities(self, sheet, activities: Sequence[ActivityEntry]) -> None:
        sheet.append(ACTIVITY_HEADER)
        for cell in sheet[1]:
            cell.font = Font(bold=True)

        widths = [len(header) for header in ACTIVITY_HEADER]
        for entry in activities:
            day = parse_date(entry.date)
            amount = parse_currency(entry.value)
            sheet.append(
                [
                    day if day is not None else entry.date,
                    entry.activity,
                    entry.status,
                    amount if amount is not None else entry.value,
                ]
            )
            row_index = sheet.max_row
            if day is not None:
                sheet.cell(row=row_index, column=1).number_format = DATE_FORMAT
            if amount is not None:
                sheet.cell(row=row_index, column=4).number_format = CURRENCY_FORMAT
            for index, text in enumerate((entry.date, entry.activity, entry.status, entry.value)):
                widths[index] = max(widths[index], len(text or ""))

        sheet.auto_filter.ref = f"A1:D{len(activities) + 1}"
        for index, width in enumerate(widths):
            fitted = min(max(width + 2, self._ACTIVITY_MIN_WIDTHS[index]), self._MAX_WIDTH)
            sheet.column_dimensions[get_column_letter(index + 1)].width = fitted


@dataclass
class ExportOutcome:
    format: str
    notification: ExportNotification
    file: Optional[ExportFile] = None

    @property
    def ok(self) -> bool:
        return self.file is not None


class ExportService:
    """Builds a fresh report per request and hands it to one exporter."""

    def __init__(self, builder: ReportBuilder, exporters: Iterable[ReportExporter]) -> None:
        self.builder = builder
        self._exporters: Dict[str, ReportExporter] = {exporter.format: exporter for exporter in exporters}

    @property
    def formats(self) -> List[str]:
        return sorted(self._exporters)

    def get_exporter(self, export_format: str) -> ReportExporter:
        try:
            return self._exporters[export_format.lower()]
        except KeyError:
            raise KeyError(f"Unsupported export format {export_format!r}.") from None

    def export(
        self,
        export_format: str,
        filename: str = DEFAULT_FILENAME,
        owner_id: Optional[str] = None,
        activities: Optional[Sequence[ActivityEntry]] = None,
        now: Optional[datetime] = None,
    ) -> ExportOutcome:
        exporter = self.get_exporter(export_format)
        log_context = {
            "export_format": exporter.format,
            "export_filename": filename,
            "owner_id": owner_id,
        }

        try:
            report = self.builder.build(owner_id=owner_id, activities=activities, now=now)
            export_file = exporter.export(report, filename)
        except Exception as exc:  # noqa: BLE001 - reported back to the caller
            logger.exception("Report export failed", extra={**log_context, "reason": str(exc)})
            return ExportOutcome(
                format=exporter.format,
                notification=ExportNotification(
                    title="Erro na exportação",
                    description=str(exc) or f"Não foi possível exportar o {exporter.label}.",
                    variant=NotificationVariant.destructive,
                ),
            )

        logger.info(
            "Report exported",
            extra={**log_context, "byte_count": len(export_file.content)},
        )
        return ExportOutcome(
            format=exporter.format,
            file=export_file,
            notification=ExportNotification(
                title=f"{exporter.label} exportado",
                description=exporter.success_message,
            ),
        )


def default_exporters() -> List[ReportExporter]:
    return [PdfReportExporter(), CsvReportExporter(), XlsxReportExporter()]


@lru_cache
def build_default_export_service() -> ExportService:
    return ExportService(builder=build_default_report_builder(), exporters=default_exporters())
