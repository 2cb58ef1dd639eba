"""PDF rendering of finished reports and payment receipts.

The renderer only consumes JSON-ready payloads (the same dicts the API
returns); it never queries the ledgers itself.
"""

from __future__ import annotations

import io
import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from bursar.logger import get_logger

logger = get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_HEADER_BACKGROUND = colors.HexColor("#1F3A5F")
_ROW_BACKGROUND = colors.HexColor("#F3F6FA")


class ReportRenderer(Protocol):
    """Turns finished payloads into downloadable documents."""

    media_type: str

    def render_report(self, title: str, report: Mapping[str, Any]) -> bytes: ...

    def render_receipt(self, payment: Mapping[str, Any]) -> bytes: ...


def humanize(key: str) -> str:
    """``netIncomeUSD`` -> ``Net Income USD``."""
    words = _CAMEL_BOUNDARY.sub(" ", key).replace("_", " ").split()
    return " ".join(word if word.isupper() else word.capitalize() for word in words)


def format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def flatten(mapping: Mapping[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """Nested scalars as ``(label, text)`` rows; lists are left to their own tables."""
    rows: list[tuple[str, str]] = []
    for key, value in mapping.items():
        label = f"{prefix} / {humanize(key)}" if prefix else humanize(key)
        if isinstance(value, Mapping):
            rows.extend(flatten(value, label))
        elif isinstance(value, list):
            continue
        else:
            rows.append((label, format_value(value)))
    return rows


class PdfReportRenderer:
    """reportlab-based renderer producing A4 PDFs in memory."""

    media_type = "application/pdf"

    def __init__(self, institution: str = "University Finance Office") -> None:
        self.institution = institution
        self.styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "ReportTitle",
            parent=self.styles["Heading1"],
            fontName="Helvetica-Bold",
            fontSize=16,
            spaceAfter=6,
        )
        self.section_style = ParagraphStyle(
            "ReportSection",
            parent=self.styles["Heading2"],
            fontName="Helvetica-Bold",
            fontSize=12,
            spaceBefore=10,
            spaceAfter=4,
        )
        self.body_style = self.styles["Normal"]

    def _document(self, buffer: io.BytesIO) -> SimpleDocTemplate:
        return SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=48,
            rightMargin=48,
            topMargin=48,
            bottomMargin=48,
        )

    def _table(self, rows: Sequence[Sequence[str]], header: bool = True) -> Table:
        table = Table([list(row) for row in rows], repeatRows=1 if header else 0, hAlign="LEFT")
        commands: list[tuple[Any, ...]] = [
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]
        if header:
            commands += [
                ("BACKGROUND", (0, 0), (-1, 0), _HEADER_BACKGROUND),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, _ROW_BACKGROUND]),
            ]
        table.setStyle(TableStyle(commands))
        return table

    def _header(self, title: str) -> list[Any]:
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")
        return [
            Paragraph(self.institution, self.body_style),
            Paragraph(title, self.title_style),
            Paragraph(f"Generated {generated}", self.body_style),
            Spacer(1, 12),
        ]

    def _list_table(self, items: list[Any]) -> Table | None:
        records = [item for item in items if isinstance(item, Mapping)]
        if not records:
            return None
        columns = [key for key, value in records[0].items() if not isinstance(value, (Mapping, list))]
        nested = [key for key, value in records[0].items() if isinstance(value, Mapping)]
        header = [humanize(key) for key in columns]
        for key in nested:
            header += [f"{humanize(key)} / {humanize(sub)}" for sub in records[0][key]]
        rows = [header]
        for record in records:
            row = [format_value(record.get(key)) for key in columns]
            for key in nested:
                row += [format_value(value) for value in (record.get(key) or {}).values()]
            rows.append(row)
        return self._table(rows)

    def _section(self, name: str, value: Any) -> list[Any]:
        flowables: list[Any] = [Paragraph(humanize(name), self.section_style)]
        if isinstance(value, Mapping):
            scalars = flatten(value)
            if scalars:
                flowables.append(self._table([("Item", "Value"), *scalars]))
            for key, inner in value.items():
                if isinstance(inner, list) and inner:
                    table = self._list_table(inner)
                    if table is not None:
                        flowables += [Spacer(1, 6), Paragraph(humanize(key), self.body_style), table]
        elif isinstance(value, list):
            table = self._list_table(value)
            if table is None:
                return []
            flowables.append(table)
        return flowables

    def render_report(self, title: str, report: Mapping[str, Any]) -> bytes:
        buffer = io.BytesIO()
        story = self._header(title)

        headline = [(humanize(key), format_value(value)) for key, value in report.items()
                    if not isinstance(value, (Mapping, list))]
        if headline:
            story.append(self._table(headline, header=False))

        for key, value in report.items():
            if isinstance(value, (Mapping, list)):
                story += self._section(key, value)

        self._document(buffer).build(story)
        logger.info("Report PDF rendered", title=title, size_bytes=buffer.tell())
        return buffer.getvalue()

    def render_receipt(self, payment: Mapping[str, Any]) -> bytes:
        buffer = io.BytesIO()
        receipt_number = payment.get("receiptNumber", "")
        story = self._header(f"Payment Receipt {receipt_number}")

        fields = (
            "receiptNumber",
            "studentId",
            "studentName",
            "feeType",
            "paymentMethod",
            "paymentDate",
            "amount",
            "currency",
            "amountUSD",
            "usdAppliedRate",
            "notes",
        )
        rows = [("Field", "Value")] + [(humanize(key), format_value(payment.get(key))) for key in fields]
        story.append(self._table(rows))
        story += [
            Spacer(1, 18),
            Paragraph(
                f"Verify this receipt at /api/v1/payments/verify/{receipt_number}",
                self.body_style,
            ),
        ]

        self._document(buffer).build(story)
        logger.info("Receipt PDF rendered", receipt_number=receipt_number, size_bytes=buffer.tell())
        return buffer.getvalue()
