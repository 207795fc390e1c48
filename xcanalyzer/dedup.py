"""
Finding deduplication and filtering.

The same header is analysed once per translation unit that includes it, and
once per scheme, configuration and architecture, so raw analyzer output
repeats diagnostics. Findings are collapsed by fingerprint.
"""

import fnmatch
import logging
from typing import Dict, Iterable, List, Optional

from .models import Finding

logger = logging.getLogger(__name__)


def _merge_list(target: Finding, key: str, value: Optional[str]) -> None:
    if not value:
        return
    values = target.metadata.setdefault(key, [])
    if value not in values:
        values.append(value)


def deduplicate(findings: Iterable[Finding]) -> List[Finding]:
    """
    Collapse findings that share a fingerprint.

    The first occurrence is kept and input order is preserved. Every scheme
    and configuration that reported the finding is recorded in
    metadata['schemes'] / metadata['configurations'].
    """
    unique: Dict[str, Finding] = {}
    duplicates = 0

    for finding in findings:
        key = finding.fingerprint
        kept = unique.get(key)
        if kept is None:
            unique[key] = finding
            _merge_list(finding, 'schemes', finding.scheme)
            _merge_list(finding, 'configurations', finding.configuration)
            continue

        duplicates += 1
        _merge_list(kept, 'schemes', finding.scheme)
        _merge_list(kept, 'configurations', finding.configuration)
        kept.metadata['occurrences'] = kept.metadata.get('occurrences', 1) + 1

    if duplicates:
        logger.info(f"Removed {duplicates} duplicate findings")
    return list(unique.values())


def matches_checker(checker: str, patterns: Iterable[str]) -> bool:
    """True if checker equals a pattern or lies under it as a prefix"""
    for pattern in patterns:
        prefix = pattern if pattern.endswith('.') else pattern + '.'
        if checker == pattern or checker.startswith(prefix):
            return True
    return False


def matches_path(file_path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(file_path, pattern) for pattern in patterns)


def apply_filters(
    findings: Iterable[Finding],
    exclude_paths: Iterable[str] = (),
    disabled_checkers: Iterable[str] = (),
) -> List[Finding]:
    """Drop findings in excluded paths or from disabled checkers"""
    exclude_paths = list(exclude_paths)
    disabled_checkers = list(disabled_checkers)

    kept = []
    dropped = 0
    for finding in findings:
        if matches_path(finding.location.file_path, exclude_paths):
            dropped += 1
            continue
        if matches_checker(finding.checker, disabled_checkers):
            dropped += 1
            continue
        kept.append(finding)

    if dropped:
        logger.info(f"Filtered out {dropped} findings (excluded paths or disabled checkers)")
    return kept
