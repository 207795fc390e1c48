"""
Report Generators for xcanalyzer
"""

import csv
import io
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models import AnalysisResult, Severity

from .sarif import SARIFReporter, generate_sarif, write_sarif
from .html import HTMLReporter, generate_html_report
from .excel import ExcelReporter, generate_excel_report

logger = logging.getLogger(__name__)

REPORT_BASENAME = "xcanalyzer-report"

FILE_EXTENSIONS = {
    'json': 'json',
    'csv': 'csv',
    'sarif': 'sarif',
    'html': 'html',
    'xlsx': 'xlsx',
}


class BaseReporter:
    """Base class for reporters"""

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        """Generate report and optionally write to file"""
        raise NotImplementedError

    def _write_output(self, content: str, output: Optional[str]) -> None:
        """Write content to file or stdout"""
        if output:
            with open(output, 'w', encoding='utf-8') as f:
                f.write(content)
        else:
            print(content)


class ConsoleReporter(BaseReporter):
    """Console/terminal output reporter with colors"""

    COLORS = {
        'critical': '\033[91m',
        'high': '\033[93m',
        'medium': '\033[94m',
        'low': '\033[96m',
        'info': '\033[90m',
        'reset': '\033[0m',
        'bold': '\033[1m',
        'green': '\033[92m',
    }

    def __init__(self, use_colors: bool = True, verbose: bool = False, max_findings: int = 50):
        self.use_colors = use_colors and sys.stdout.isatty()
        self.verbose = verbose
        self.max_findings = max_findings

    def _color(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        lines = []

        lines.append("")
        lines.append(self._color("=" * 60, 'bold'))
        lines.append(self._color("  STATIC ANALYSIS RESULTS", 'bold'))
        lines.append(self._color("=" * 60, 'bold'))
        lines.append("")

        lines.append(f"Project: {result.project}")
        lines.append(f"Level: {result.level}")
        for run in result.runs:
            status = self._color("ok", 'green') if run.succeeded else self._color("FAILED", 'critical')
            lines.append(f"  {run.label}: {status}, {run.findings_count} findings, {run.duration_seconds:.1f}s")
        lines.append(f"Duration: {result.duration_seconds:.2f} seconds")
        lines.append("")

        lines.append(self._color("SUMMARY BY SEVERITY:", 'bold'))
        summary = result.summary
        for severity in Severity:
            count = summary.get(severity.value, 0)
            if count > 0:
                lines.append(f"  {self._color(severity.value.upper(), severity.value)}: {count}")
        lines.append("")

        total = len(result.findings)
        if total == 0:
            lines.append(self._color("No analyzer issues found!", 'green'))
        else:
            lines.append(self._color(f"FINDINGS ({total} total):", 'bold'))
            lines.append("-" * 60)

            shown = 0
            for severity in Severity:
                severity_findings = result.get_findings_by_severity(severity)
                if not severity_findings or shown >= self.max_findings:
                    continue

                lines.append("")
                lines.append(self._color(f"[{severity.value.upper()}]", severity.value))

                for finding in severity_findings:
                    if shown >= self.max_findings:
                        break
                    shown += 1
                    lines.append("")
                    lines.append(f"  {self._color(finding.checker, 'bold')}: {finding.bug_type}")
                    lines.append(f"  Location: {finding.location.relative_to(result.project_root)}"
                                 f":{finding.location.line_number}")
                    lines.append(f"  {finding.description}")

                    if self.verbose:
                        if finding.cwe:
                            lines.append(f"  CWE: {finding.cwe}")
                        schemes = finding.metadata.get('schemes')
                        if schemes:
                            lines.append(f"  Schemes: {', '.join(schemes)}")
                        remediation = finding.metadata.get('remediation')
                        if remediation:
                            lines.append(f"  Remediation: {remediation}")
                        if finding.report_html:
                            lines.append(f"  Report: {finding.report_html}")

            if total > shown:
                lines.append("")
                lines.append(f"  ... and {total - shown} more (see the html or json report)")

        if result.errors:
            lines.append("")
            lines.append(self._color("ERRORS:", 'critical'))
            for error in result.errors:
                lines.append(f"  - {error}")

        if gate is not None:
            lines.append("")
            lines.append(self._color(gate.describe(), 'green' if gate.passed else 'critical'))

        lines.append("")
        lines.append(self._color("=" * 60, 'bold'))

        content = "\n".join(lines)
        self._write_output(content, output)
        return content


class CSVReporter(BaseReporter):
    """CSV format reporter"""

    COLUMNS = [
        'finding_id', 'severity', 'checker', 'category', 'bug_type',
        'file_path', 'line_number', 'column', 'cwe', 'description',
        'schemes', 'configurations', 'fingerprint',
    ]

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=self.COLUMNS)
        writer.writeheader()

        for idx, finding in enumerate(result.findings, 1):
            writer.writerow({
                'finding_id': f"F{idx:04d}",
                'severity': finding.severity.value,
                'checker': finding.checker,
                'category': finding.category,
                'bug_type': finding.bug_type,
                'file_path': finding.location.relative_to(result.project_root),
                'line_number': finding.location.line_number,
                'column': finding.location.column or '',
                'cwe': finding.cwe or '',
                'description': finding.description,
                'schemes': ','.join(finding.metadata.get('schemes') or []),
                'configurations': ','.join(finding.metadata.get('configurations') or []),
                'fingerprint': finding.fingerprint,
            })

        content = buffer.getvalue()
        if output:
            with open(output, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        else:
            print(content)
        return content


class JSONReporter(BaseReporter):
    """JSON format reporter"""

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        report_data = result.to_dict()
        report_data['generated_at'] = datetime.now().isoformat(timespec='seconds')
        if gate is not None:
            report_data['quality_gate'] = gate.to_dict()

        content = json.dumps(report_data, indent=2)
        self._write_output(content, output)
        return content


def get_reporter(format: str, **kwargs):
    """Factory function to get reporter by format"""
    reporters = {
        'console': ConsoleReporter,
        'csv': CSVReporter,
        'json': JSONReporter,
        'sarif': SARIFReporter,
        'html': HTMLReporter,
        'xlsx': ExcelReporter,
    }

    reporter_class = reporters.get(format.lower())
    if not reporter_class:
        raise ValueError(f"Unknown report format: {format}. Supported: {list(reporters.keys())}")

    return reporter_class(**kwargs)


def write_reports(
    result: AnalysisResult,
    formats: Iterable[str],
    output_dir: str,
    gate=None,
    console_options: Optional[Dict] = None,
) -> List[str]:
    """
    Write one report per format.

    The console format prints to stdout; every other format is written to
    ``<output_dir>/xcanalyzer-report.<ext>``.

    Returns:
        Paths of the files written
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    written = []
    for fmt in formats:
        if fmt == 'console':
            get_reporter('console', **(console_options or {})).report(result, None, gate=gate)
            continue

        path = directory / f"{REPORT_BASENAME}.{FILE_EXTENSIONS[fmt]}"
        get_reporter(fmt).report(result, str(path), gate=gate)
        logger.info(f"Wrote {fmt} report to {path}")
        written.append(str(path))

    return written


__all__ = [
    'BaseReporter',
    'ConsoleReporter',
    'CSVReporter',
    'JSONReporter',
    'SARIFReporter',
    'HTMLReporter',
    'ExcelReporter',
    'get_reporter',
    'write_reports',
    'generate_sarif',
    'write_sarif',
    'generate_html_report',
    'generate_excel_report',
]
