"""
Parsers for Clang analyzer output.
"""

import logging
from pathlib import Path
from typing import List, Tuple

from ..exceptions import ParseError
from ..models import Finding
from .build_log import BuildLogSummary, parse_build_log
from .plist import parse_plist
from .sarif import parse_sarif

logger = logging.getLogger(__name__)

PARSERS = {
    '.plist': parse_plist,
    '.sarif': parse_sarif,
}


def find_reports(output_dir: Path) -> List[Path]:
    """All analyzer report files below a directory, in a stable order"""
    if not output_dir.is_dir():
        return []
    return sorted(p for p in output_dir.rglob('*') if p.suffix in PARSERS and p.is_file())


def collect_reports(output_dir: Path) -> Tuple[List[Finding], List[str]]:
    """
    Parse every report file under output_dir.

    Unreadable reports do not abort collection; they are returned as errors.

    Returns:
        Tuple of (findings, errors)
    """
    findings: List[Finding] = []
    errors: List[str] = []

    for report in find_reports(output_dir):
        try:
            findings.extend(PARSERS[report.suffix](str(report)))
        except ParseError as e:
            logger.warning(f"Skipping unreadable report: {e}")
            errors.append(str(e))

    return findings, errors


__all__ = [
    'BuildLogSummary',
    'collect_reports',
    'find_reports',
    'parse_build_log',
    'parse_plist',
    'parse_sarif',
]
