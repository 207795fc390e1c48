"""
Hook runner - executed by the installed git hooks.

The pre-commit stage only analyzes when the staged changes touch sources
the Clang analyzer understands or the Xcode project itself; the pre-push
stage always analyzes.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from ..analyzer import ProjectAnalyzer
from ..baseline import diff_results, load_baseline
from ..config import Config
from ..exceptions import HookError
from ..models import Finding
from ..quality_gate import Thresholds, evaluate

logger = logging.getLogger(__name__)

STAGES = ('pre-commit', 'pre-push')

DEFAULT_LEVELS = {
    'pre-commit': 'quick',
    'pre-push': 'standard',
}

ANALYZABLE_EXTENSIONS = {'.m', '.mm', '.c', '.cc', '.cpp', '.h', '.hpp', '.swift'}
PROJECT_FILE_NAMES = {'project.pbxproj', 'contents.xcworkspacedata'}

MAX_LISTED = 20


def get_staged_files() -> List[str]:
    """Get list of staged files from git."""
    try:
        result = subprocess.run(
            ['git', 'diff', '--cached', '--name-only', '--diff-filter=ACMR'],
            capture_output=True,
            text=True,
            check=True
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise HookError(f"Could not list staged files: {e}") from e
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]


def is_analyzable(path: str) -> bool:
    p = Path(path)
    if p.suffix.lower() in ANALYZABLE_EXTENSIONS:
        return True
    if p.name in PROJECT_FILE_NAMES:
        return True
    return any(part.endswith(('.xcodeproj', '.xcworkspace')) for part in p.parts)


def format_finding(finding: Finding, root: Optional[str]) -> str:
    sev = finding.severity.value
    location = finding.location.relative_to(root)
    return f"  [{sev.upper()}] {location}:{finding.location.line_number} - {finding.checker}: {finding.description}"


def run_hook(
    stage: str,
    config: Config,
    level: Optional[str] = None,
    analyzer: Optional[ProjectAnalyzer] = None,
    staged_files: Optional[List[str]] = None,
) -> Tuple[bool, str]:
    """
    Run the analysis for a git hook stage and evaluate the quality gate.

    Args:
        stage: pre-commit or pre-push
        config: Effective configuration
        level: Analysis level (default: quick for pre-commit, the configured
            level for pre-push)
        analyzer: Analyzer to use (default: one built from config)
        staged_files: Staged paths for pre-commit (default: from git)

    Returns:
        Tuple of (passed, message)
    """
    if stage not in STAGES:
        raise HookError(f"Unknown hook stage '{stage}'. Expected one of: {', '.join(STAGES)}")

    if stage == 'pre-commit':
        staged = get_staged_files() if staged_files is None else staged_files
        relevant = [f for f in staged if is_analyzable(f)]
        if not relevant:
            return True, "No Objective-C, C, C++, Swift or project changes staged, skipping analysis"
        logger.info(f"{len(relevant)} staged files need analysis")
        level = level or DEFAULT_LEVELS[stage]
    else:
        level = level or config.analysis.level or DEFAULT_LEVELS[stage]

    analyzer = analyzer or ProjectAnalyzer(config)
    result = analyzer.analyze(level=level)

    diff = None
    baseline_path = config.resolve_path(config.quality_gate.baseline)
    if baseline_path and Path(baseline_path).is_file():
        diff = diff_results(load_baseline(baseline_path), result)

    gate = evaluate(result, Thresholds.from_config(config), diff)

    lines = [
        f"\n{'=' * 60}",
        f"XCANALYZER {stage.upper()} ({level})",
        f"{'=' * 60}",
        f"Findings: {len(result.findings)}",
    ]
    if diff is not None:
        lines.append(f"Baseline: {diff.summary()}")

    blocking = diff.new if diff is not None and config.quality_gate.new_issues_only else result.findings
    if not gate.passed and blocking:
        lines.append("")
        for finding in blocking[:MAX_LISTED]:
            lines.append(format_finding(finding, result.project_root))
        if len(blocking) > MAX_LISTED:
            lines.append(f"  ... and {len(blocking) - MAX_LISTED} more")

    lines.append("")
    lines.append(gate.describe())
    if not gate.passed:
        verb = 'COMMIT' if stage == 'pre-commit' else 'PUSH'
        lines.append(f"{verb} BLOCKED - fix the issues or use --no-verify to bypass")
    lines.append(f"{'=' * 60}\n")

    return gate.passed, '\n'.join(lines)
