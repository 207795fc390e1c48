"""
HTML Report Generator for xcanalyzer

Generates a self-contained HTML report with a severity summary, the
xcodebuild runs and every finding with links to Clang's own path reports.
"""

import html
from collections import Counter
from datetime import datetime
from typing import Optional

from ..__version__ import __version__
from ..models import AnalysisResult, AnalysisRun, Finding, Severity


HTML_TEMPLATE = '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Static Analysis Report - {title}</title>
    <style>
        :root {{
            --critical: #dc3545;
            --high: #fd7e14;
            --medium: #ffc107;
            --low: #28a745;
            --info: #17a2b8;
            --bg-dark: #1a1a2e;
            --bg-card: #16213e;
            --text-primary: #eee;
            --text-secondary: #aaa;
        }}

        * {{ margin: 0; padding: 0; box-sizing: border-box; }}

        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'SF Pro Text', 'Helvetica Neue', sans-serif;
            background: var(--bg-dark);
            color: var(--text-primary);
            line-height: 1.6;
        }}

        .container {{ max-width: 1400px; margin: 0 auto; padding: 20px; }}

        header {{
            background: linear-gradient(135deg, #0f3460 0%, #16213e 100%);
            padding: 30px;
            border-radius: 10px;
            margin-bottom: 30px;
        }}

        header h1 {{ font-size: 2.2rem; margin-bottom: 10px; }}
        header .meta {{ color: var(--text-secondary); font-size: 0.9rem; }}

        .gate {{ margin-top: 15px; font-weight: bold; }}
        .gate.passed {{ color: var(--low); }}
        .gate.failed {{ color: var(--critical); }}

        .summary-grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
            gap: 20px;
            margin-bottom: 30px;
        }}

        .summary-card {{
            background: var(--bg-card);
            padding: 25px;
            border-radius: 10px;
            text-align: center;
        }}

        .summary-card.critical {{ border-left: 4px solid var(--critical); }}
        .summary-card.high {{ border-left: 4px solid var(--high); }}
        .summary-card.medium {{ border-left: 4px solid var(--medium); }}
        .summary-card.low {{ border-left: 4px solid var(--low); }}
        .summary-card.info {{ border-left: 4px solid var(--info); }}
        .summary-card.total {{ border-left: 4px solid #fff; }}

        .summary-card .number {{ font-size: 3rem; font-weight: bold; }}
        .summary-card .label {{
            color: var(--text-secondary);
            text-transform: uppercase;
            font-size: 0.8rem;
            letter-spacing: 1px;
        }}

        section {{
            background: var(--bg-card);
            border-radius: 10px;
            padding: 25px;
            margin-bottom: 30px;
        }}

        section h2 {{ margin-bottom: 20px; }}

        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ text-align: left; padding: 8px 12px; border-bottom: 1px solid rgba(255,255,255,0.1); }}
        th {{ color: var(--text-secondary); font-weight: normal; text-transform: uppercase; font-size: 0.8rem; }}
        td.ok {{ color: var(--low); }}
        td.failed {{ color: var(--critical); }}

        .bar-row {{ display: flex; align-items: center; margin-bottom: 8px; }}
        .bar-label {{ width: 320px; font-family: monospace; font-size: 0.85rem; overflow: hidden; text-overflow: ellipsis; }}
        .bar {{ height: 14px; background: var(--info); border-radius: 3px; margin-right: 10px; }}

        .severity-badge {{
            display: inline-block;
            padding: 4px 12px;
            border-radius: 20px;
            font-size: 0.75rem;
            font-weight: bold;
            text-transform: uppercase;
        }}

        .severity-badge.critical {{ background: var(--critical); color: #fff; }}
        .severity-badge.high {{ background: var(--high); color: #000; }}
        .severity-badge.medium {{ background: var(--medium); color: #000; }}
        .severity-badge.low {{ background: var(--low); color: #fff; }}
        .severity-badge.info {{ background: var(--info); color: #fff; }}

        .finding {{
            background: rgba(255,255,255,0.05);
            border-radius: 8px;
            padding: 20px;
            margin-bottom: 15px;
        }}

        .finding-header {{
            display: flex;
            justify-content: space-between;
            align-items: flex-start;
            margin-bottom: 10px;
            gap: 20px;
        }}

        .finding-title {{ font-weight: bold; margin-left: 10px; }}
        .finding-location {{ font-family: monospace; color: var(--text-secondary); font-size: 0.85rem; }}
        .finding-meta {{ color: var(--text-secondary); font-size: 0.85rem; margin-bottom: 10px; }}
        .finding-meta span {{ margin-right: 20px; }}
        .finding-detail-block {{ margin-top: 10px; }}
        .finding-detail-label {{ color: var(--text-secondary); font-size: 0.75rem; text-transform: uppercase; }}
        a {{ color: var(--info); }}

        footer {{ text-align: center; color: var(--text-secondary); font-size: 0.85rem; padding: 20px; }}
    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>Static Analysis Report</h1>
            <div class="meta">
                <p>Project: {project}</p>
                <p>Level: {level} | Started: {started_at} | Duration: {duration}</p>
            </div>
            {gate_html}
        </header>

        <div class="summary-grid">
            <div class="summary-card total"><div class="number">{total_findings}</div><div class="label">Total</div></div>
            <div class="summary-card critical"><div class="number">{critical_count}</div><div class="label">Critical</div></div>
            <div class="summary-card high"><div class="number">{high_count}</div><div class="label">High</div></div>
            <div class="summary-card medium"><div class="number">{medium_count}</div><div class="label">Medium</div></div>
            <div class="summary-card low"><div class="number">{low_count}</div><div class="label">Low</div></div>
            <div class="summary-card info"><div class="number">{info_count}</div><div class="label">Info</div></div>
        </div>

        <section>
            <h2>Analysis Runs</h2>
            <table>
                <tr><th>Scheme</th><th>Configuration</th><th>Status</th><th>Findings</th><th>Duration</th></tr>
                {runs_html}
            </table>
        </section>

        <section>
            <h2>Top Checkers</h2>
            {checkers_html}
        </section>

        <section>
            <h2>Findings</h2>
            {findings_html}
        </section>

        <footer>
            <p>Generated by xcanalyzer v{version} on {generation_time}</p>
        </footer>
    </div>
</body>
</html>'''


def escape_html(text) -> str:
    """Escape HTML special characters."""
    return html.escape(str(text)) if text else ''


def format_run_html(run: AnalysisRun) -> str:
    status = 'ok' if run.succeeded else 'failed'
    label = 'Succeeded' if run.succeeded else escape_html(run.error or f"exit code {run.exit_code}")
    return (
        f'<tr><td>{escape_html(run.scheme)}</td><td>{escape_html(run.configuration)}</td>'
        f'<td class="{status}">{label}</td><td>{run.findings_count}</td>'
        f'<td>{run.duration_seconds:.1f}s</td></tr>'
    )


def format_finding_html(finding: Finding, base_path: Optional[str] = None) -> str:
    """Format a single finding as HTML."""
    file_path = finding.location.relative_to(base_path)
    sev = finding.severity.value

    meta = [f'<span>Checker: {escape_html(finding.checker)}</span>']
    if finding.category:
        meta.append(f'<span>Category: {escape_html(finding.category)}</span>')
    if finding.cwe:
        meta.append(f'<span>{escape_html(finding.cwe)}</span>')
    schemes = finding.metadata.get('schemes') or ([finding.scheme] if finding.scheme else [])
    if schemes:
        meta.append(f'<span>Schemes: {escape_html(", ".join(schemes))}</span>')
    if finding.path_length:
        meta.append(f'<span>Path steps: {finding.path_length}</span>')

    remediation = finding.metadata.get('remediation')
    remediation_html = ''
    if remediation:
        remediation_html = f'''
            <div class="finding-detail-block remediation">
                <div class="finding-detail-label">Remediation</div>
                <div class="finding-detail-text">{escape_html(remediation)}</div>
            </div>'''

    report_html = ''
    if finding.report_html:
        report_html = f'<p><a href="file://{escape_html(finding.report_html)}">Open analyzer path report</a></p>'

    return f'''
    <div class="finding" data-severity="{sev}">
        <div class="finding-header">
            <div>
                <span class="severity-badge {sev}">{sev.upper()}</span>
                <span class="finding-title">{escape_html(finding.bug_type or finding.checker)}</span>
            </div>
            <span class="finding-location">{escape_html(file_path)}:{finding.location.line_number}</span>
        </div>
        <div class="finding-meta">{''.join(meta)}</div>
        <div class="finding-details">
            <div class="finding-detail-block description">
                <div class="finding-detail-label">Description</div>
                <div class="finding-detail-text">{escape_html(finding.description)}</div>
            </div>{remediation_html}
        </div>
        {report_html}
    </div>
    '''


def format_checkers_html(result: AnalysisResult, limit: int = 10) -> str:
    counts = Counter(f.checker for f in result.findings).most_common(limit)
    if not counts:
        return '<p>No findings.</p>'
    top = counts[0][1]
    rows = []
    for checker, count in counts:
        width = max(int(400 * count / top), 4)
        rows.append(
            f'<div class="bar-row"><span class="bar-label">{escape_html(checker)}</span>'
            f'<span class="bar" style="width:{width}px"></span>{count}</div>'
        )
    return '\n'.join(rows)


def generate_html_report(result: AnalysisResult, title: Optional[str] = None,
                         gate=None, max_findings: int = 500) -> str:
    """
    Generate an HTML report.

    Args:
        result: Analysis result
        title: Report title (default: project name)
        gate: Optional GateResult to show in the header
        max_findings: Cap on rendered findings

    Returns:
        HTML string
    """
    counts = result.summary
    findings = sorted(result.findings, key=lambda f: -f.severity.priority)

    findings_html = '\n'.join(format_finding_html(f, result.project_root) for f in findings[:max_findings])
    if not findings:
        findings_html = '<p>No issues found.</p>'
    elif len(findings) > max_findings:
        findings_html += f'<p>... and {len(findings) - max_findings} more findings</p>'

    runs_html = '\n'.join(format_run_html(r) for r in result.runs) or \
        '<tr><td colspan="5">Reports imported without running xcodebuild</td></tr>'

    gate_html = ''
    if gate is not None:
        css = 'passed' if gate.passed else 'failed'
        gate_html = f'<div class="gate {css}">{escape_html(gate.describe()).replace(chr(10), "<br>")}</div>'

    return HTML_TEMPLATE.format(
        title=escape_html(title or result.project),
        project=escape_html(result.project),
        level=escape_html(result.level),
        started_at=escape_html(result.started_at),
        duration=f"{result.duration_seconds:.1f}s",
        gate_html=gate_html,
        total_findings=len(result.findings),
        critical_count=counts[Severity.CRITICAL.value],
        high_count=counts[Severity.HIGH.value],
        medium_count=counts[Severity.MEDIUM.value],
        low_count=counts[Severity.LOW.value],
        info_count=counts[Severity.INFO.value],
        runs_html=runs_html,
        checkers_html=format_checkers_html(result),
        findings_html=findings_html,
        version=__version__,
        generation_time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    )


class HTMLReporter:
    """HTML reporter class."""

    def __init__(self, title: Optional[str] = None):
        self.title = title

    def generate(self, result: AnalysisResult, gate=None) -> str:
        return generate_html_report(result, self.title, gate)

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        content = self.generate(result, gate)
        if output:
            with open(output, 'w', encoding='utf-8') as f:
                f.write(content)
        else:
            print(content)
        return content
