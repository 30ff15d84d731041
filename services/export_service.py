"""
Export service: platform CSV templates and Excel error reports.

Templates give the operator a file with the headers a platform needs. The
error report lists every failing cell of an upload so it can be fixed offline.
"""

from datetime import datetime
from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Border, Side, PatternFill
import structlog

from models.catalog_row import RowDocument, RowErrors
from models.csv_import import FileAnalysis
from models.platform import CANONICAL_FIELDS, Platform
from parsers.csv_tokenizer import serialize
from services.batch_report_service import collect_errors

logger = structlog.get_logger(__name__)

TEMPLATE_SAMPLE_VALUE = "샘플값"

FIELD_TITLES = {
    "name": "Name",
    "code": "Code",
    "price": "Price",
    "brand": "Brand",
}


def template_headers(platform: Platform) -> list[str]:
    """Required fields first, then the platform's optional columns (no duplicates)."""
    headers: list[str] = []
    for header in (*platform.required_fields, *platform.template_extra_headers):
        if header not in headers:
            headers.append(header)
    return headers


class ExportService:
    """Generates downloadable files for the import screens."""

    def generate_template_csv(self, platform: Platform) -> str:
        """
        CSV template for a platform: header row plus one sample row.

        Returns:
            CSV text
        """
        headers = template_headers(platform)
        logger.info("template_generated", platform_id=platform.id, columns=len(headers))
        return serialize([headers, [TEMPLATE_SAMPLE_VALUE] * len(headers)])

    def generate_error_report_excel(
        self,
        analysis: FileAnalysis,
        document: RowDocument,
        errors: RowErrors,
        platform: Optional[Platform] = None,
    ) -> BytesIO:
        """
        Excel workbook with a summary sheet and one line per failing cell.

        Args:
            analysis: Upload summary
            document: Current rows (values shown next to each error)
            errors: Current row errors
            platform: Selected platform, if any

        Returns:
            BytesIO containing the Excel file
        """
        wb = Workbook()

        bold_font = Font(bold=True)
        title_font = Font(bold=True, size=14)
        header_fill = PatternFill(start_color="E0E8FF", end_color="E0E8FF", fill_type="solid")
        error_fill = PatternFill(start_color="FFE0E0", end_color="FFE0E0", fill_type="solid")
        thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )

        items = collect_errors(errors)

        # Summary sheet
        ws_summary = wb.active
        ws_summary.title = "Summary"
        ws_summary.column_dimensions["A"].width = 22
        ws_summary.column_dimensions["B"].width = 40

        ws_summary["A1"] = "Import error report"
        ws_summary["A1"].font = title_font

        summary_rows = [
            ("File", analysis.file_name),
            ("Platform", platform.name if platform else "-"),
            ("Data rows", analysis.total_rows),
            ("Rows with errors", len(errors.rows())),
            ("Errors", len(items)),
            ("Generated", datetime.now().strftime("%Y-%m-%d %H:%M")),
        ]
        for offset, (label, value) in enumerate(summary_rows, start=3):
            ws_summary[f"A{offset}"] = label
            ws_summary[f"A{offset}"].font = bold_font
            ws_summary[f"B{offset}"] = value

        # Errors sheet
        ws = wb.create_sheet(title="Errors")
        columns = ["Row", "Field", "Message", *[FIELD_TITLES[f] for f in CANONICAL_FIELDS]]
        widths = [8, 12, 16, 30, 22, 12, 24]
        for col_idx, (title, width) in enumerate(zip(columns, widths), start=1):
            cell = ws.cell(row=1, column=col_idx, value=title)
            cell.font = bold_font
            cell.fill = header_fill
            cell.border = thin_border
            ws.column_dimensions[cell.column_letter].width = width

        row = 2
        for item in items:
            source = document.row(item.row - 2)
            ws.cell(row=row, column=1, value=item.row)
            ws.cell(row=row, column=2, value=item.field)
            ws.cell(row=row, column=3, value=item.message)
            for offset, field_name in enumerate(CANONICAL_FIELDS, start=4):
                value = source.get(field_name).to_python()
                cell = ws.cell(
                    row=row,
                    column=offset,
                    value="; ".join(value) if isinstance(value, list) else value,
                )
                if field_name == item.field:
                    cell.fill = error_fill
            row += 1

        logger.info(
            "error_report_generated",
            file_name=analysis.file_name,
            errors=len(items),
        )

        # Save to BytesIO
        output = BytesIO()
        wb.save(output)
        output.seek(0)

        return output


_service: Optional[ExportService] = None


def get_export_service() -> ExportService:
    global _service
    if _service is None:
        _service = ExportService()
    return _service
