"""
xcanalyzer - Clang static analysis for Xcode projects.

Runs ``xcodebuild analyze`` for every configured scheme and build
configuration, collects the analyzer's plist/SARIF output, and turns it into
one deduplicated result that can be reported and gated in CI.

Analysis Levels:
    quick     - Shallow analysis, core checkers only (pre-commit)
    standard  - Shallow analysis with dead stores and nullability
    deep      - Deep analysis with the optional Cocoa checkers
    security  - Deep analysis plus the insecure API checkers

Output Formats:
    console, JSON, CSV, SARIF (GitHub code scanning), HTML, Excel

Quick Start:
    >>> from xcanalyzer import create_analyzer
    >>> analyzer = create_analyzer(workspace="MyApp.xcworkspace", schemes=["MyApp"])
    >>> result = analyzer.analyze()
    >>> print(f"Found {len(result.findings)} issues")

Quality Gate:
    >>> from xcanalyzer import Thresholds, evaluate
    >>> gate = evaluate(result, Thresholds(max_critical=0, max_high=5))
    >>> gate.passed
"""

from .__version__ import __version__, __title__, __description__

from .models import Finding, Checker, AnalysisRun, AnalysisResult, Severity, Location
from .exceptions import XcanalyzerError, ConfigError, XcodebuildError, ParseError, HookError
from .config import Config, load_config, default_config
from .catalog import CheckerCatalog, load_catalog
from .xcodebuild import Xcodebuild, XcodebuildCommand
from .parsers import parse_plist, parse_sarif, parse_build_log, collect_reports
from .dedup import deduplicate, apply_filters
from .analyzer import ProjectAnalyzer, create_analyzer
from .baseline import ResultDiff, save_baseline, load_baseline, diff_results
from .quality_gate import Thresholds, GateResult, GateViolation, evaluate
from .reporters import (
    get_reporter, write_reports,
    SARIFReporter, HTMLReporter, ExcelReporter,
    generate_sarif, generate_html_report, generate_excel_report,
)
from .environment import CheckResult, verify_environment, create_debug_report, init_project
from .ci import render_github_actions, render_gitlab_ci, render_jenkinsfile, write_ci_template
from .hooks import install_hooks, uninstall_hooks, run_hook
from .profiling import PerformanceMetrics

__all__ = [
    # Core
    'ProjectAnalyzer',
    'create_analyzer',
    'Finding',
    'Checker',
    'AnalysisRun',
    'AnalysisResult',
    'Severity',
    'Location',
    # Errors
    'XcanalyzerError',
    'ConfigError',
    'XcodebuildError',
    'ParseError',
    'HookError',
    # Configuration
    'Config',
    'load_config',
    'default_config',
    'CheckerCatalog',
    'load_catalog',
    # Tooling
    'Xcodebuild',
    'XcodebuildCommand',
    'parse_plist',
    'parse_sarif',
    'parse_build_log',
    'collect_reports',
    'deduplicate',
    'apply_filters',
    # Gate and baseline
    'ResultDiff',
    'save_baseline',
    'load_baseline',
    'diff_results',
    'Thresholds',
    'GateResult',
    'GateViolation',
    'evaluate',
    # Reporters
    'get_reporter',
    'write_reports',
    'SARIFReporter',
    'HTMLReporter',
    'ExcelReporter',
    'generate_sarif',
    'generate_html_report',
    'generate_excel_report',
    # Setup and CI
    'CheckResult',
    'verify_environment',
    'create_debug_report',
    'init_project',
    'render_github_actions',
    'render_gitlab_ci',
    'render_jenkinsfile',
    'write_ci_template',
    'install_hooks',
    'uninstall_hooks',
    'run_hook',
    'PerformanceMetrics',
]
