"""
Excel Report Generator for xcanalyzer

Generates an .xlsx workbook with a summary sheet, a findings sheet and a
runs sheet.
"""

from typing import Optional

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..models import AnalysisResult


COLUMNS = [
    ("Severity", 12),
    ("Checker", 40),
    ("Title", 35),
    ("Category", 25),
    ("CWE", 12),
    ("Location", 60),
    ("Schemes", 25),
    ("Description", 60),
    ("Remediation", 55),
]

SEVERITY_COLORS = {
    "critical": ("DC3545", "FFFFFF"),
    "high": ("FD7E14", "000000"),
    "medium": ("FFC107", "000000"),
    "low": ("28A745", "FFFFFF"),
    "info": ("17A2B8", "FFFFFF"),
}

HEADER_FILL = PatternFill(start_color="0F3460", end_color="0F3460", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)


def _clean(value):
    # Cells reject ASCII control characters
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _severity_style(cell, severity: str) -> None:
    fill, font = SEVERITY_COLORS.get(severity, ("FFFFFF", "000000"))
    cell.fill = PatternFill(start_color=fill, end_color=fill, fill_type="solid")
    cell.font = Font(color=font, bold=True)


def _header(ws, columns) -> None:
    for col_idx, (col_name, col_width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER
        ws.column_dimensions[get_column_letter(col_idx)].width = col_width
    ws.freeze_panes = "A2"


def generate_excel_report(result: AnalysisResult, output_path: str) -> str:
    """
    Generate an Excel report from an analysis result.

    Args:
        result: Analysis result
        output_path: Path to write the .xlsx file

    Returns:
        Output file path
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Findings"
    _header(ws, COLUMNS)

    findings = sorted(result.findings, key=lambda f: -f.severity.priority)
    cell_alignment = Alignment(vertical="top", wrap_text=True)

    for row_idx, finding in enumerate(findings, start=2):
        sev = finding.severity.value
        schemes = finding.metadata.get('schemes') or ([finding.scheme] if finding.scheme else [])
        row_data = [
            sev.upper(),
            finding.checker,
            finding.bug_type,
            finding.category,
            finding.cwe or "",
            f"{finding.location.relative_to(result.project_root)}:{finding.location.line_number}",
            ", ".join(schemes),
            finding.description,
            finding.metadata.get('remediation', ""),
        ]
        for col_idx, value in enumerate(row_data, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_clean(value))
            cell.alignment = cell_alignment
            cell.border = THIN_BORDER
            if col_idx == 1:
                _severity_style(cell, sev)
                cell.alignment = Alignment(horizontal="center", vertical="top")

    ws.auto_filter.ref = f"A1:{get_column_letter(len(COLUMNS))}{len(findings) + 1}"

    # Summary sheet goes first
    ws_summary = wb.create_sheet("Summary", 0)
    ws_summary.column_dimensions["A"].width = 22
    ws_summary.column_dimensions["B"].width = 40
    ws_summary.cell(row=1, column=1, value="Static Analysis Summary").font = Font(bold=True, size=14, color="0F3460")

    info_rows = [
        ("Project", result.project),
        ("Level", result.level),
        ("Started", result.started_at),
        ("Total Findings", len(result.findings)),
        ("Analysis Runs", len(result.runs)),
    ]
    for offset, (label, value) in enumerate(info_rows):
        ws_summary.cell(row=3 + offset, column=1, value=label).font = Font(bold=True)
        ws_summary.cell(row=3 + offset, column=2, value=value)

    start_row = 4 + len(info_rows)
    for col, label in ((1, "Severity"), (2, "Count")):
        cell = ws_summary.cell(row=start_row, column=col, value=label)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER

    for i, (sev, count) in enumerate(result.summary.items(), start=1):
        cell_a = ws_summary.cell(row=start_row + i, column=1, value=sev.upper())
        cell_b = ws_summary.cell(row=start_row + i, column=2, value=count)
        cell_a.border = THIN_BORDER
        cell_b.border = THIN_BORDER
        _severity_style(cell_a, sev)

    # Runs sheet
    ws_runs = wb.create_sheet("Runs")
    run_columns = [("Scheme", 25), ("Configuration", 15), ("Exit Code", 10),
                   ("Findings", 10), ("Duration (s)", 12), ("Error", 60)]
    _header(ws_runs, run_columns)
    for row_idx, run in enumerate(result.runs, start=2):
        values = [run.scheme, run.configuration, run.exit_code, run.findings_count,
                  round(run.duration_seconds, 1), run.error or ""]
        for col_idx, value in enumerate(values, start=1):
            ws_runs.cell(row=row_idx, column=col_idx, value=_clean(value)).border = THIN_BORDER

    wb.save(output_path)
    return output_path


class ExcelReporter:
    """Excel reporter class."""

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        if not output:
            raise ValueError("The xlsx format needs an output file")
        return generate_excel_report(result, output)
