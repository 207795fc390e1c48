"""
Parser for Clang static analyzer plist reports.

``CLANG_ANALYZER_OUTPUT=plist-html`` makes Xcode write one ``.plist`` per
analysed translation unit (plus HTML reports next to it). Each plist holds a
``files`` table and a ``diagnostics`` array whose locations index into it.
"""

import logging
import plistlib
from pathlib import Path
from typing import Any, Dict, List, Optional
from xml.parsers.expat import ExpatError

from ..exceptions import ParseError
from ..models import Finding, Location, Severity

logger = logging.getLogger(__name__)


def _location(raw: Dict[str, Any], files: List[str], source: Path) -> Location:
    file_index = raw.get('file', 0)
    try:
        file_path = files[file_index]
    except (IndexError, TypeError):
        raise ParseError(f"diagnostic refers to unknown file index {file_index}", str(source)) from None

    return Location(
        file_path=file_path,
        line_number=int(raw.get('line', 0)),
        column=raw.get('col'),
    )


def _checker_name(diag: Dict[str, Any]) -> str:
    if diag.get('check_name'):
        return diag['check_name']
    # Reports from older Clang releases carry no checker id
    category = diag.get('category', 'unknown').strip().lower().replace(' ', '-')
    bug_type = diag.get('type', 'unknown').strip().lower().replace(' ', '-')
    return f"{category}/{bug_type}"


def _report_html(diag: Dict[str, Any], source: Path) -> Optional[str]:
    html_files = diag.get('HTMLDiagnostics_files') or []
    if not html_files:
        return None
    html = Path(html_files[0])
    if not html.is_absolute():
        html = source.parent / html
    return str(html)


def _convert_diagnostics(data: Dict[str, Any], source: Path) -> List[Finding]:
    files = data.get('files') or []
    findings = []

    for diag in data.get('diagnostics') or []:
        location = _location(diag.get('location') or {}, files, source)
        path_events = [p for p in diag.get('path') or [] if p.get('kind') == 'event']

        finding = Finding(
            checker=_checker_name(diag),
            category=diag.get('category', ''),
            bug_type=diag.get('type', ''),
            description=diag.get('description', ''),
            severity=Severity.MEDIUM,
            location=location,
            issue_hash=diag.get('issue_hash_content_of_line_in_context'),
            path_length=len(path_events),
            report_html=_report_html(diag, source),
        )
        if diag.get('issue_context'):
            finding.metadata['context'] = diag['issue_context']
            finding.metadata['context_kind'] = diag.get('issue_context_kind', '')
        finding.metadata['report_file'] = str(source)
        findings.append(finding)

    return findings


def parse_plist_data(data: Dict[str, Any], source: Path) -> List[Finding]:
    """Convert a loaded plist document into findings"""
    if not isinstance(data, dict):
        raise ParseError("plist root is not a dictionary", str(source))
    try:
        return _convert_diagnostics(data, source)
    except (AttributeError, TypeError, ValueError) as e:
        raise ParseError(f"malformed diagnostic entry: {e}", str(source)) from e


def parse_plist(path: str) -> List[Finding]:
    """
    Parse a Clang analyzer plist file.

    Args:
        path: Path to the .plist report

    Returns:
        Findings with severity MEDIUM; severities are assigned later from
        the checker catalog.

    Raises:
        ParseError: If the file is unreadable or not a Clang report
    """
    source = Path(path)
    try:
        with open(source, 'rb') as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise ParseError(f"invalid plist: {e}", str(source)) from e

    findings = parse_plist_data(data, source)
    logger.debug(f"Parsed {len(findings)} diagnostics from {source.name}")
    return findings
