"""
Data models for xcanalyzer.

This module defines the core data structures shared by every stage:

- Severity: Enum for finding classification
- Finding/Location: A single Clang analyzer diagnostic
- Checker: Catalog entry mapping a checker id to severity and guidance
- AnalysisRun: One xcodebuild analyze invocation
- AnalysisResult: Complete analysis output

Findings carry a stable fingerprint so they can be deduplicated across
schemes and configurations and diffed across CI runs.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Iterator


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def priority(self) -> int:
        priorities = {
            Severity.CRITICAL: 5,
            Severity.HIGH: 4,
            Severity.MEDIUM: 3,
            Severity.LOW: 2,
            Severity.INFO: 1,
        }
        return priorities[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse a severity name, case-insensitively"""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown severity: {value}. Expected one of {[s.value for s in cls]}"
            ) from None


@dataclass
class Location:
    """Location of a finding in source code"""
    file_path: str
    line_number: int
    column: Optional[int] = None
    end_line: Optional[int] = None
    end_column: Optional[int] = None
    snippet: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line_number}"

    def relative_to(self, root: Optional[str]) -> str:
        """File path relative to a project root, if it lies inside it"""
        if root:
            prefix = root.rstrip('/') + '/'
            if self.file_path.startswith(prefix):
                return self.file_path[len(prefix):]
        return self.file_path


_NUMBER_RE = re.compile(r'\d+')
_SPACE_RE = re.compile(r'\s+')


def _normalize_description(text: str) -> str:
    # Line numbers and counters embedded in messages drift between builds
    text = _NUMBER_RE.sub('N', text or '')
    return _SPACE_RE.sub(' ', text).strip().lower()


@dataclass
class Finding:
    """A single diagnostic reported by the Clang static analyzer"""
    checker: str
    category: str
    bug_type: str
    description: str
    severity: Severity
    location: Location
    cwe: Optional[str] = None
    issue_hash: Optional[str] = None
    scheme: Optional[str] = None
    configuration: Optional[str] = None
    path_length: int = 0
    report_html: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def fingerprint_for(self, root: Optional[str] = None) -> str:
        """Stable identity of this finding, independent of line drift"""
        path = self.location.relative_to(root)
        if self.issue_hash:
            return f"{self.checker}:{path}:{self.issue_hash}"
        digest = hashlib.sha1(
            f"{self.checker}\0{path}\0{_normalize_description(self.description)}".encode('utf-8')
        ).hexdigest()
        return f"{self.checker}:{path}:{digest[:16]}"

    @property
    def fingerprint(self) -> str:
        return self.fingerprint_for(self.metadata.get('project_root'))

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to dictionary"""
        return {
            'checker': self.checker,
            'category': self.category,
            'bug_type': self.bug_type,
            'description': self.description,
            'severity': self.severity.value,
            'file_path': self.location.file_path,
            'line_number': self.location.line_number,
            'column': self.location.column,
            'snippet': self.location.snippet,
            'cwe': self.cwe,
            'issue_hash': self.issue_hash,
            'scheme': self.scheme,
            'configuration': self.configuration,
            'path_length': self.path_length,
            'report_html': self.report_html,
            'fingerprint': self.fingerprint,
            'tags': self.tags,
            'metadata': self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            checker=data['checker'],
            category=data.get('category', ''),
            bug_type=data.get('bug_type', ''),
            description=data.get('description', ''),
            severity=Severity.parse(data.get('severity', 'medium')),
            location=Location(
                file_path=data['file_path'],
                line_number=int(data.get('line_number') or 0),
                column=data.get('column'),
                snippet=data.get('snippet'),
            ),
            cwe=data.get('cwe'),
            issue_hash=data.get('issue_hash'),
            scheme=data.get('scheme'),
            configuration=data.get('configuration'),
            path_length=int(data.get('path_length') or 0),
            report_html=data.get('report_html'),
            tags=list(data.get('tags') or []),
            metadata=dict(data.get('metadata') or {}),
        )


@dataclass
class Checker:
    """Catalog entry for a Clang analyzer checker (or checker prefix)"""
    id: str
    name: str
    category: str
    severity: Severity
    description: str = ""
    cwe: Optional[str] = None
    remediation: Optional[str] = None
    levels: List[str] = field(default_factory=list)

    @property
    def is_prefix(self) -> bool:
        return self.id.endswith('.')

    def matches(self, checker_id: str) -> bool:
        """Check if this entry covers the given checker id"""
        if self.is_prefix:
            return checker_id.startswith(self.id)
        return checker_id == self.id

    def enabled_at(self, level: str) -> bool:
        """Whether the checker runs at an analysis level (no list = every level)"""
        return not self.levels or level in self.levels


@dataclass
class AnalysisRun:
    """One xcodebuild analyze invocation"""
    scheme: str
    configuration: str
    command: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    duration_seconds: float = 0.0
    log_path: Optional[str] = None
    output_dir: Optional[str] = None
    findings_count: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.error is None

    @property
    def label(self) -> str:
        return f"{self.scheme} ({self.configuration})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scheme': self.scheme,
            'configuration': self.configuration,
            'command': self.command,
            'exit_code': self.exit_code,
            'duration_seconds': self.duration_seconds,
            'log_path': self.log_path,
            'output_dir': self.output_dir,
            'findings_count': self.findings_count,
            'error': self.error,
            'succeeded': self.succeeded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisRun":
        return cls(
            scheme=data['scheme'],
            configuration=data['configuration'],
            command=list(data.get('command') or []),
            exit_code=data.get('exit_code'),
            duration_seconds=float(data.get('duration_seconds') or 0.0),
            log_path=data.get('log_path'),
            output_dir=data.get('output_dir'),
            findings_count=int(data.get('findings_count') or 0),
            error=data.get('error'),
        )


@dataclass
class AnalysisResult:
    """Result of analysing a project"""
    project: str
    level: str = "standard"
    findings: List[Finding] = field(default_factory=list)
    runs: List[AnalysisRun] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    started_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))
    project_root: Optional[str] = None
    timings: Dict[str, Any] = field(default_factory=dict)

    @property
    def summary(self) -> Dict[str, int]:
        """Get count by severity"""
        counts = {s.value: 0 for s in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    @property
    def failed_runs(self) -> List[AnalysisRun]:
        return [r for r in self.runs if not r.succeeded]

    def get_findings_by_severity(self, severity: Severity) -> List[Finding]:
        """Filter findings by severity"""
        return [f for f in self.findings if f.severity == severity]

    def filter_by_severity(self, min_severity: Severity) -> List[Finding]:
        """Get findings at or above a minimum severity level."""
        return [f for f in self.findings if f.severity.priority >= min_severity.priority]

    def filter_by_checker(self, checker: str) -> List[Finding]:
        """Get findings from a checker, or from every checker under a prefix."""
        return [
            f for f in self.findings
            if f.checker == checker or f.checker.startswith(checker.rstrip('.') + '.')
        ]

    def filter_by_file(self, file_path: str) -> List[Finding]:
        """Get findings for a specific file."""
        return [f for f in self.findings if f.location.file_path == file_path]

    def get_affected_files(self) -> List[str]:
        """Get sorted list of unique files with findings."""
        return sorted(set(f.location.file_path for f in self.findings))

    def sort_findings(self) -> None:
        """Sort findings by severity (critical first), then by file and line."""
        self.findings.sort(
            key=lambda f: (-f.severity.priority, f.location.file_path, f.location.line_number)
        )

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.findings)

    def __len__(self) -> int:
        return len(self.findings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert analysis result to dictionary."""
        return {
            'project': self.project,
            'project_root': self.project_root,
            'level': self.level,
            'started_at': self.started_at,
            'duration_seconds': self.duration_seconds,
            'summary': self.summary,
            'total_findings': len(self.findings),
            'runs': [r.to_dict() for r in self.runs],
            'findings': [f.to_dict() for f in self.findings],
            'errors': self.errors,
            'timings': self.timings,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            project=data.get('project', ''),
            level=data.get('level', 'standard'),
            findings=[Finding.from_dict(f) for f in data.get('findings', [])],
            runs=[AnalysisRun.from_dict(r) for r in data.get('runs', [])],
            errors=list(data.get('errors') or []),
            duration_seconds=float(data.get('duration_seconds') or 0.0),
            started_at=data.get('started_at') or datetime.now().isoformat(timespec='seconds'),
            project_root=data.get('project_root'),
            timings=dict(data.get('timings') or {}),
        )
