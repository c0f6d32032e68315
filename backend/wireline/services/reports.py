"""Tool inventory reports (PDF, Excel, CSV).

Reports are rendered in memory and returned as bytes so the API can stream
them back as a download.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from wireline.models.tool import Tool, ToolTag

logger = logging.getLogger(__name__)


class ReportType(str, Enum):
    TAG_STATUS = "tag-status"
    MAINTENANCE = "maintenance"
    INVENTORY = "inventory"
    ACTIVITY = "activity"


class ReportFormat(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"


REPORT_TITLES = {
    ReportType.TAG_STATUS: "Tag Status Report",
    ReportType.MAINTENANCE: "Maintenance Report",
    ReportType.INVENTORY: "Inventory Report",
    ReportType.ACTIVITY: "Activity Report",
}

# (file extension, media type)
FORMAT_OUTPUT = {
    ReportFormat.PDF: ("pdf", "application/pdf"),
    ReportFormat.EXCEL: (
        "xlsx",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ),
    ReportFormat.CSV: ("csv", "text/csv"),
}

HEADERS = ["Tool ID", "Name", "Category", "Status", "Location", "Last Updated"]

# Excel styling constants
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
ALT_ROW_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

TAG_COLORS = {
    ToolTag.RED: "#DC2626",
    ToolTag.YELLOW: "#D97706",
    ToolTag.GREEN: "#059669",
    ToolTag.WHITE: "#6B7280",
}


@dataclass
class ReportMetadata:
    report_type: ReportType
    generated_by: str
    tags: list[ToolTag] = field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def title(self) -> str:
        return f"Wireline Inventory {REPORT_TITLES[self.report_type]}"

    @property
    def tag_label(self) -> str:
        return ", ".join(t.value for t in self.tags) if self.tags else "all"

    @property
    def period_label(self) -> str:
        start = self.start_date.strftime("%Y-%m-%d") if self.start_date else "beginning"
        end = self.end_date.strftime("%Y-%m-%d") if self.end_date else "today"
        return f"{start} to {end}"


def report_filename(report_type: ReportType, format: ReportFormat, on: datetime | None = None) -> str:
    """``wireline-report-<type>-<YYYY-MM-DD>.<ext>``"""
    day = (on or datetime.now(UTC)).strftime("%Y-%m-%d")
    extension, _ = FORMAT_OUTPUT[format]
    return f"wireline-report-{report_type.value}-{day}.{extension}"


def status_summary(tools: list[Tool]) -> dict[str, int]:
    summary = {tag.value: 0 for tag in ToolTag}
    for tool in tools:
        summary[ToolTag(tool.status).value] += 1
    return summary


class ToolReportService:
    """Render tool reports in the supported formats."""

    def render(
        self, tools: list[Tool], metadata: ReportMetadata, format: ReportFormat
    ) -> bytes:
        rows = [self._row(tool) for tool in tools]
        if format == ReportFormat.EXCEL:
            content = self._render_xlsx(rows, metadata, status_summary(tools))
        elif format == ReportFormat.CSV:
            content = self._render_csv(rows, metadata)
        elif format == ReportFormat.PDF:
            content = self._render_pdf(rows, metadata, status_summary(tools))
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(
            f"Rendered {metadata.report_type.value} report ({format.value}, {len(rows)} tools)"
        )
        return content

    def _row(self, tool: Tool) -> list[Any]:
        return [
            tool.tool_id,
            tool.name,
            tool.category.value,
            ToolTag(tool.status).value.upper(),
            tool.location or "",
            tool.last_updated.strftime("%Y-%m-%d %H:%M") if tool.last_updated else "",
        ]

    def _render_csv(self, rows: list[list[Any]], metadata: ReportMetadata) -> bytes:
        buffer = io.StringIO()
        # Comment lines are written raw; csv.writer would quote them
        for line in (
            metadata.title,
            f"Generated by: {metadata.generated_by}",
            f"Generated at: {metadata.generated_at.strftime('%Y-%m-%d %H:%M')}",
            f"Tags: {metadata.tag_label}",
            f"Period: {metadata.period_label}",
        ):
            buffer.write(f"# {line}\r\n")
        buffer.write("\r\n")

        writer = csv.writer(buffer)
        writer.writerow(HEADERS)
        writer.writerows(rows)
        return buffer.getvalue().encode("utf-8")

    def _render_xlsx(
        self,
        rows: list[list[Any]],
        metadata: ReportMetadata,
        summary: dict[str, int],
    ) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Tools"

        ws.merge_cells("A1:F1")
        ws["A1"] = metadata.title.upper()
        ws["A1"].font = Font(bold=True, size=14)

        ws["A2"] = f"Generated by: {metadata.generated_by}"
        ws["D2"] = f"Date: {metadata.generated_at.strftime('%Y-%m-%d')}"
        ws["A3"] = f"Tags: {metadata.tag_label}"
        ws["D3"] = f"Period: {metadata.period_label}"

        header_row = 5
        for col, header in enumerate(HEADERS, 1):
            cell = ws.cell(row=header_row, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal="center", vertical="center")

        for row_idx, row_data in enumerate(rows, header_row + 1):
            for col_idx, value in enumerate(row_data, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = THIN_BORDER
                cell.alignment = Alignment(vertical="center")
                if (row_idx - header_row) % 2 == 0:
                    cell.fill = ALT_ROW_FILL

        for col in range(1, len(HEADERS) + 1):
            max_length = len(HEADERS[col - 1])
            for row in rows:
                max_length = max(max_length, len(str(row[col - 1])))
            ws.column_dimensions[get_column_letter(col)].width = min(max_length + 2, 50)

        ws.auto_filter.ref = f"A{header_row}:{get_column_letter(len(HEADERS))}{header_row + len(rows)}"
        ws.freeze_panes = f"A{header_row + 1}"

        # Status summary sheet
        summary_ws = wb.create_sheet("Summary")
        summary_ws.append(["Status", "Count"])
        for cell in summary_ws[1]:
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER
        for tag, count in summary.items():
            summary_ws.append([tag.upper(), count])
        summary_ws.append(["TOTAL", len(rows)])

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    def _render_pdf(
        self,
        rows: list[list[Any]],
        metadata: ReportMetadata,
        summary: dict[str, int],
    ) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=20 * mm,
            leftMargin=20 * mm,
            topMargin=20 * mm,
            bottomMargin=20 * mm,
            title=metadata.title,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=16,
            alignment=1,  # Center
        )

        elements: list[Any] = [
            Paragraph(metadata.title, title_style),
            Spacer(1, 6 * mm),
            Paragraph(
                f"Generated by: {metadata.generated_by} | "
                f"Date: {metadata.generated_at.strftime('%Y-%m-%d %H:%M')} UTC | "
                f"Tags: {metadata.tag_label} | "
                f"Period: {metadata.period_label}",
                styles["Normal"],
            ),
            Spacer(1, 6 * mm),
        ]

        # Status summary, one coloured cell per tag
        summary_table = Table(
            [[tag.upper() for tag in summary], [str(count) for count in summary.values()]],
            colWidths=[40 * mm] * len(summary),
        )
        summary_style = [
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 1), (-1, 1), 14),
            ("BOX", (0, 0), (-1, -1), 0.5, colors.black),
            ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.black),
        ]
        for idx, tag in enumerate(summary):
            summary_style.append(
                ("TEXTCOLOR", (idx, 0), (idx, 0), colors.HexColor(TAG_COLORS[ToolTag(tag)]))
            )
        summary_table.setStyle(TableStyle(summary_style))
        elements.append(summary_table)
        elements.append(Spacer(1, 8 * mm))

        table_data = [HEADERS] + [[str(v) for v in row] for row in rows]
        available_width = landscape(A4)[0] - 40 * mm
        col_width = available_width / len(HEADERS)

        table = Table(table_data, colWidths=[col_width] * len(HEADERS), repeatRows=1)
        table.setStyle(TableStyle([
            # Header style
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4472C4")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, 0), 9),
            ("ALIGN", (0, 0), (-1, 0), "CENTER"),

            # Data rows
            ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 1), (-1, -1), 8),
            ("ALIGN", (0, 1), (-1, -1), "LEFT"),

            ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#D9E2F3")]),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        elements.append(table)

        elements.append(Spacer(1, 8 * mm))
        elements.append(Paragraph(f"Total Tools: {len(rows)}", styles["Normal"]))

        doc.build(elements)
        return buffer.getvalue()
