"""
Baselines - persist analysis results and diff them across CI runs.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from .exceptions import ParseError
from .models import AnalysisResult, Finding, Severity

logger = logging.getLogger(__name__)


@dataclass
class ResultDiff:
    """Findings that appeared, disappeared or stayed between two results"""
    new: List[Finding] = field(default_factory=list)
    fixed: List[Finding] = field(default_factory=list)
    unchanged: List[Finding] = field(default_factory=list)

    @property
    def has_new(self) -> bool:
        return bool(self.new)

    def new_by_severity(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for finding in self.new:
            counts[finding.severity.value] += 1
        return counts

    def summary(self) -> str:
        return f"{len(self.new)} new, {len(self.fixed)} fixed, {len(self.unchanged)} unchanged"

    def to_dict(self) -> Dict:
        return {
            'summary': {
                'new': len(self.new),
                'fixed': len(self.fixed),
                'unchanged': len(self.unchanged),
            },
            'new': [f.to_dict() for f in self.new],
            'fixed': [f.to_dict() for f in self.fixed],
        }


def save_baseline(result: AnalysisResult, path: str) -> str:
    """Write a result to disk so later runs can be diffed against it"""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, 'w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, indent=2)
    logger.info(f"Saved baseline with {len(result.findings)} findings to {target}")
    return str(target)


def load_baseline(path: str) -> AnalysisResult:
    """Load a result written by save_baseline (or `xcanalyzer analyze`)"""
    source = Path(path)
    try:
        with open(source, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return AnalysisResult.from_dict(data)
    except (OSError, json.JSONDecodeError) as e:
        raise ParseError(f"cannot read result file: {e}", str(source)) from e
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ParseError(f"not an xcanalyzer result file: {e}", str(source)) from e


def diff_results(baseline: AnalysisResult, current: AnalysisResult) -> ResultDiff:
    """Compare two results by finding fingerprint"""
    baseline_map = {f.fingerprint: f for f in baseline.findings}
    current_map = {f.fingerprint: f for f in current.findings}

    diff = ResultDiff()
    for key, finding in current_map.items():
        if key in baseline_map:
            diff.unchanged.append(finding)
        else:
            diff.new.append(finding)

    for key, finding in baseline_map.items():
        if key not in current_map:
            diff.fixed.append(finding)

    logger.info(f"Baseline diff: {diff.summary()}")
    return diff
