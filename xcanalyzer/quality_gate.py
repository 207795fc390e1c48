"""
Quality gate - compares finding counts against configured thresholds.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .baseline import ResultDiff
from .config import Config
from .models import AnalysisResult, Finding, Severity

logger = logging.getLogger(__name__)


@dataclass
class Thresholds:
    """Maximum allowed finding counts; None means unlimited"""
    max_critical: Optional[int] = 0
    max_high: Optional[int] = None
    max_medium: Optional[int] = None
    max_low: Optional[int] = None
    max_total: Optional[int] = None
    fail_on_warnings: bool = False
    new_issues_only: bool = False

    @classmethod
    def from_config(cls, config: Config) -> "Thresholds":
        gate = config.quality_gate
        return cls(
            max_critical=gate.max_critical_issues,
            max_high=gate.max_high_issues,
            max_medium=gate.max_medium_issues,
            max_low=gate.max_low_issues,
            max_total=config.analysis.max_issues,
            fail_on_warnings=config.analysis.fail_on_warnings,
            new_issues_only=gate.new_issues_only,
        )

    def limit_for(self, severity: Severity) -> Optional[int]:
        return {
            Severity.CRITICAL: self.max_critical,
            Severity.HIGH: self.max_high,
            Severity.MEDIUM: self.max_medium,
            Severity.LOW: self.max_low,
        }.get(severity)


@dataclass
class GateViolation:
    rule: str
    count: int
    limit: int
    message: str

    def to_dict(self) -> Dict:
        return {'rule': self.rule, 'count': self.count, 'limit': self.limit, 'message': self.message}


@dataclass
class GateResult:
    passed: bool
    violations: List[GateViolation] = field(default_factory=list)
    counted: Dict[str, int] = field(default_factory=dict)
    scope: str = 'all'

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def describe(self) -> str:
        scope = "new findings" if self.scope == 'new' else "findings"
        if self.passed:
            return f"Quality gate PASSED ({sum(self.counted.values())} {scope} counted)"
        lines = [f"Quality gate FAILED ({len(self.violations)} violations):"]
        lines.extend(f"  - {v.message}" for v in self.violations)
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            'passed': self.passed,
            'scope': self.scope,
            'counted': self.counted,
            'violations': [v.to_dict() for v in self.violations],
        }


def _count(findings: List[Finding]) -> Dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for finding in findings:
        counts[finding.severity.value] += 1
    return counts


def evaluate(result: AnalysisResult, thresholds: Thresholds,
             diff: Optional[ResultDiff] = None) -> GateResult:
    """
    Evaluate the quality gate.

    Args:
        result: Analysis result to check
        thresholds: Limits to apply
        diff: Baseline diff; when thresholds.new_issues_only is set only
            diff.new is counted

    Returns:
        GateResult; passed is False if any limit is exceeded or any
        xcodebuild run failed
    """
    if thresholds.new_issues_only and diff is not None:
        findings = diff.new
        scope = 'new'
    else:
        if thresholds.new_issues_only:
            logger.warning("new_issues_only is set but no baseline was given; counting all findings")
        findings = result.findings
        scope = 'all'

    counts = _count(findings)
    gate = GateResult(passed=True, counted=counts, scope=scope)

    for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW):
        limit = thresholds.limit_for(severity)
        count = counts[severity.value]
        if limit is not None and count > limit:
            gate.violations.append(GateViolation(
                rule=f"max_{severity.value}_issues",
                count=count,
                limit=limit,
                message=f"{count} {severity.value} findings exceed the limit of {limit}",
            ))

    if thresholds.max_total is not None and len(findings) > thresholds.max_total:
        gate.violations.append(GateViolation(
            rule='max_issues',
            count=len(findings),
            limit=thresholds.max_total,
            message=f"{len(findings)} findings exceed the total limit of {thresholds.max_total}",
        ))

    if thresholds.fail_on_warnings:
        warnings = sum(1 for f in findings if f.severity.priority >= Severity.LOW.priority)
        if warnings:
            gate.violations.append(GateViolation(
                rule='fail_on_warnings',
                count=warnings,
                limit=0,
                message=f"{warnings} analyzer warnings reported and fail_on_warnings is set",
            ))

    failed_runs = result.failed_runs
    if failed_runs:
        gate.violations.append(GateViolation(
            rule='analysis-error',
            count=len(failed_runs),
            limit=0,
            message=f"{len(failed_runs)} analysis runs failed: "
                    + ", ".join(r.label for r in failed_runs),
        ))

    gate.passed = not gate.violations
    logger.info(gate.describe().splitlines()[0])
    return gate
