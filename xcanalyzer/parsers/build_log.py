"""
Parser for xcodebuild console output.

Used when an analyze run produced no report files, for example when the
build failed before the analyzer ran or when reports were disabled.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import Finding, Location, Severity

DIAGNOSTIC_RE = re.compile(
    r'^(?P<file>/[^:\n]+):(?P<line>\d+):(?P<col>\d+): '
    r'(?P<kind>warning|error): (?P<message>.*?)'
    r'(?: \[(?P<flag>[^\]]+)\])?\s*$'
)
STATUS_RE = re.compile(r'^\*\* (?P<action>ANALYZE|BUILD) (?P<status>SUCCEEDED|FAILED) \*\*')

ANALYZER_CATEGORY = 'Analyzer'
COMPILER_CATEGORY = 'Compiler warning'


@dataclass
class BuildLogSummary:
    findings: List[Finding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    status: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == 'FAILED' or bool(self.errors)


def _checker_for(flag: Optional[str]) -> tuple:
    if not flag:
        return 'analyzer', ANALYZER_CATEGORY
    flag = flag.split(',')[0].strip()
    if flag.startswith('-W'):
        return f"clang-diagnostic.{flag[2:]}", COMPILER_CATEGORY
    return flag, ANALYZER_CATEGORY


def parse_build_log(text: str) -> BuildLogSummary:
    """Extract diagnostics, errors and the final status from a build log"""
    summary = BuildLogSummary()
    seen = set()

    for line in text.splitlines():
        status = STATUS_RE.match(line)
        if status:
            summary.status = status.group('status')
            continue

        match = DIAGNOSTIC_RE.match(line)
        if match:
            if match.group('kind') == 'error':
                summary.errors.append(line.strip())
                continue

            # The same warning is printed once per architecture
            key = (match.group('file'), match.group('line'), match.group('col'), match.group('message'))
            if key in seen:
                continue
            seen.add(key)

            checker, category = _checker_for(match.group('flag'))
            summary.findings.append(Finding(
                checker=checker,
                category=category,
                bug_type=match.group('message'),
                description=match.group('message'),
                severity=Severity.MEDIUM,
                location=Location(
                    file_path=match.group('file'),
                    line_number=int(match.group('line')),
                    column=int(match.group('col')),
                ),
            ))
            continue

        stripped = line.strip()
        if stripped.startswith('error:') or stripped.startswith('xcodebuild: error:'):
            summary.errors.append(stripped)

    return summary
