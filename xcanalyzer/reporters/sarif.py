"""
SARIF Output Format Reporter

Generates SARIF (Static Analysis Results Interchange Format) output for
GitHub code scanning and other SARIF consumers.

SARIF Spec: https://sarifweb.azurewebsites.net/
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..__version__ import __version__
from ..models import AnalysisResult, Finding, Severity


SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
CHECKER_DOCS = "https://clang.llvm.org/docs/analyzer/checkers.html"

# GitHub maps security-severity scores onto its own severity buckets
SECURITY_SEVERITY = {
    'critical': '9.5',
    'high': '8.0',
    'medium': '5.5',
    'low': '3.0',
    'info': '1.0',
}


def severity_to_sarif_level(severity: Severity) -> str:
    """Convert severity to SARIF level."""
    mapping = {
        'critical': 'error',
        'high': 'error',
        'medium': 'warning',
        'low': 'note',
        'info': 'note',
    }
    return mapping.get(severity.value, 'warning')


def create_rule(finding: Finding) -> Dict[str, Any]:
    """Create a SARIF rule from the first finding of a checker."""
    name = finding.metadata.get('checker_name') or finding.bug_type or finding.checker
    rule = {
        "id": finding.checker,
        "name": finding.checker.replace('.', '_'),
        "shortDescription": {"text": name},
        "fullDescription": {"text": finding.bug_type or name},
        "defaultConfiguration": {"level": severity_to_sarif_level(finding.severity)},
        "helpUri": CHECKER_DOCS,
        "properties": {
            "category": finding.category,
            "tags": ["clang-analyzer"] + list(finding.tags),
        },
    }

    remediation = finding.metadata.get('remediation')
    if remediation:
        rule["help"] = {
            "text": remediation,
            "markdown": f"**Remediation:**\n\n{remediation}",
        }

    if finding.cwe:
        rule["properties"]["cwe"] = [finding.cwe]
        rule["properties"]["tags"].append(f"external/cwe/{finding.cwe.lower()}")
    if finding.category.lower() == 'security' or finding.checker.startswith('security.') or finding.cwe:
        rule["properties"]["tags"].append("security")
        rule["properties"]["security-severity"] = SECURITY_SEVERITY[finding.severity.value]

    return rule


def create_result(finding: Finding, rule_index: int, base_path: Optional[str] = None) -> Dict[str, Any]:
    """Create a SARIF result from a finding."""
    file_path = finding.location.relative_to(base_path)
    region: Dict[str, Any] = {
        "startLine": max(finding.location.line_number, 1),
        "startColumn": finding.location.column or 1,
    }
    if finding.location.end_line:
        region["endLine"] = finding.location.end_line
    if finding.location.snippet:
        region["snippet"] = {"text": finding.location.snippet[:500]}

    result = {
        "ruleId": finding.checker,
        "ruleIndex": rule_index,
        "level": severity_to_sarif_level(finding.severity),
        "message": {"text": finding.description or finding.bug_type},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {
                        "uri": file_path,
                        "uriBaseId": "%SRCROOT%",
                    },
                    "region": region,
                }
            }
        ],
        "partialFingerprints": {
            "xcanalyzer/v1": finding.fingerprint_for(base_path),
        },
        "properties": {
            "severity": finding.severity.value,
            "category": finding.category,
        },
    }

    if finding.scheme:
        result["properties"]["schemes"] = finding.metadata.get('schemes') or [finding.scheme]
    if finding.path_length:
        result["properties"]["pathLength"] = finding.path_length

    return result


def generate_sarif(result: AnalysisResult, base_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Generate a SARIF document from an analysis result.

    Args:
        result: Analysis result to convert
        base_path: Root that artifact URIs are made relative to (default:
            the result's project root)

    Returns:
        SARIF document as dictionary
    """
    base_path = base_path or result.project_root
    rules_map: Dict[str, Dict[str, Any]] = {}
    rule_indices: Dict[str, int] = {}

    for finding in result.findings:
        if finding.checker not in rules_map:
            rules_map[finding.checker] = create_rule(finding)
            rule_indices[finding.checker] = len(rules_map) - 1

    results = [create_result(f, rule_indices[f.checker], base_path) for f in result.findings]

    invocations = []
    for run in result.runs or []:
        invocations.append({
            "executionSuccessful": run.succeeded,
            "exitCode": run.exit_code,
            "commandLine": " ".join(run.command),
            "properties": {"scheme": run.scheme, "configuration": run.configuration},
        })
    if not invocations:
        invocations.append({
            "executionSuccessful": not result.errors,
            "endTimeUtc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        })

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "xcanalyzer",
                        "version": __version__,
                        "informationUri": CHECKER_DOCS,
                        "rules": list(rules_map.values()),
                    }
                },
                "results": results,
                "invocations": invocations,
                "originalUriBaseIds": {
                    "%SRCROOT%": {"uri": f"file://{base_path.rstrip('/')}/" if base_path else ""}
                },
                "properties": {"level": result.level},
            }
        ],
    }


def write_sarif(result: AnalysisResult, output_path: str, base_path: Optional[str] = None) -> str:
    """Write a SARIF report to file."""
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(generate_sarif(result, base_path), f, indent=2)
    return output_path


class SARIFReporter:
    """SARIF reporter class for integration."""

    def generate(self, result: AnalysisResult, base_path: Optional[str] = None) -> Dict[str, Any]:
        return generate_sarif(result, base_path)

    def report(self, result: AnalysisResult, output: Optional[str] = None, gate=None) -> str:
        """Generate SARIF report and optionally write to file."""
        content = json.dumps(self.generate(result), indent=2)
        if output:
            with open(output, 'w', encoding='utf-8') as f:
                f.write(content)
        else:
            print(content)
        return content
