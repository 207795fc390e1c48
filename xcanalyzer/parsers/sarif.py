"""
Parser for SARIF files written by ``clang --analyze -Xclang
-analyzer-output=sarif`` or ``scan-build -sarif``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from ..exceptions import ParseError
from ..models import Finding, Location, Severity

logger = logging.getLogger(__name__)


def _uri_to_path(uri: str, base_ids: Dict[str, Any], base_id: Optional[str]) -> str:
    if base_id and base_id in base_ids:
        base = (base_ids[base_id] or {}).get('uri', '')
        if base and not uri.startswith('file:'):
            uri = base.rstrip('/') + '/' + uri
    if uri.startswith('file:'):
        return unquote(urlparse(uri).path)
    return unquote(uri)


def _rule_info(run: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    rules = ((run.get('tool') or {}).get('driver') or {}).get('rules') or []
    return {r.get('id'): r for r in rules if r.get('id')}


def _convert_runs(data: Dict[str, Any], source: Path) -> List[Finding]:
    findings = []
    for run in data.get('runs') or []:
        rules = _rule_info(run)
        base_ids = run.get('originalUriBaseIds') or {}

        for result in run.get('results') or []:
            rule_id = result.get('ruleId') or 'unknown'
            rule = rules.get(rule_id, {})
            locations = result.get('locations') or []
            if not locations:
                logger.debug(f"{source.name}: skipping {rule_id} result without location")
                continue

            physical = locations[0].get('physicalLocation') or {}
            artifact = physical.get('artifactLocation') or {}
            region = physical.get('region') or {}

            fingerprints = result.get('partialFingerprints') or result.get('fingerprints') or {}
            issue_hash = next(iter(fingerprints.values()), None) if fingerprints else None

            code_flows = result.get('codeFlows') or []
            path_length = sum(
                len(tf.get('locations') or [])
                for flow in code_flows
                for tf in flow.get('threadFlows') or []
            )

            findings.append(Finding(
                checker=rule_id,
                category=(rule.get('properties') or {}).get('category', ''),
                bug_type=((rule.get('shortDescription') or {}).get('text')
                          or rule.get('name') or rule_id),
                description=(result.get('message') or {}).get('text', ''),
                severity=Severity.MEDIUM,
                location=Location(
                    file_path=_uri_to_path(artifact.get('uri', ''), base_ids, artifact.get('uriBaseId')),
                    line_number=int(region.get('startLine', 0)),
                    column=region.get('startColumn'),
                    end_line=region.get('endLine'),
                    end_column=region.get('endColumn'),
                    snippet=(region.get('snippet') or {}).get('text'),
                ),
                issue_hash=issue_hash,
                path_length=path_length,
                metadata={'report_file': str(source)},
            ))

    return findings


def parse_sarif_data(data: Dict[str, Any], source: Path) -> List[Finding]:
    """Convert a loaded SARIF document into findings"""
    if not isinstance(data, dict) or 'runs' not in data:
        raise ParseError("not a SARIF document (missing 'runs')", str(source))
    try:
        return _convert_runs(data, source)
    except (AttributeError, TypeError, ValueError) as e:
        raise ParseError(f"malformed SARIF document: {e}", str(source)) from e


def parse_sarif(path: str) -> List[Finding]:
    """Parse a SARIF 2.1.0 file into findings"""
    source = Path(path)
    try:
        with open(source, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError(f"invalid SARIF: {e}", str(source)) from e

    findings = parse_sarif_data(data, source)
    logger.debug(f"Parsed {len(findings)} results from {source.name}")
    return findings
