"""
Project analyzer - orchestrates xcodebuild analyze runs and turns their
reports into a single deduplicated AnalysisResult.
"""

import logging
import re
import shutil
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Tuple

from .catalog import CheckerCatalog, load_catalog
from .config import ANALYSIS_LEVELS, Config, load_config
from .dedup import apply_filters, deduplicate
from .exceptions import ConfigError, XcodebuildError
from .models import AnalysisResult, AnalysisRun, Finding
from .parsers import collect_reports, find_reports, parse_build_log
from .profiling import PerformanceMetrics
from .xcodebuild import Xcodebuild, XcodebuildCommand

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def run_dir_name(scheme: str, configuration: str) -> str:
    """Directory name for one scheme/configuration pair"""
    return _UNSAFE_CHARS.sub('_', f"{scheme}-{configuration}")


class ProjectAnalyzer:
    """Runs the Clang static analyzer over every configured scheme"""

    def __init__(self, config: Config, xcodebuild: Optional[Xcodebuild] = None,
                 catalog: Optional[CheckerCatalog] = None):
        self.config = config
        self.xcodebuild = xcodebuild or Xcodebuild()
        self.catalog = catalog or load_catalog(
            config.resolve_path(config.analysis.checkers_dir),
            severity_overrides=config.analysis.severity_overrides,
        )
        self.metrics = PerformanceMetrics()

    def _pairs(self) -> List[Tuple[str, str]]:
        return [
            (scheme, configuration)
            for scheme in self.config.project.schemes
            for configuration in self.config.project.configurations
        ]

    def _command(self, scheme: str, configuration: str, run_dir: Path, level: str) -> XcodebuildCommand:
        project = self.config.project
        return XcodebuildCommand(
            scheme=scheme,
            configuration=configuration,
            output_dir=str(run_dir / 'reports'),
            workspace=self.config.resolve_path(project.workspace),
            project=self.config.resolve_path(project.project),
            sdk=project.sdk,
            destination=project.destination,
            derived_data_path=str(run_dir / 'DerivedData'),
            team_id=project.team_id,
            build_settings=self.catalog.build_settings_for(level),
            executable=self.xcodebuild.executable,
        )

    def _analyze_pair(self, scheme: str, configuration: str, output_dir: Path,
                      level: str) -> Tuple[AnalysisRun, List[Finding], List[str]]:
        run_dir = output_dir / run_dir_name(scheme, configuration)
        reports_dir = run_dir / 'reports'
        # Stale reports from an earlier run would be counted again
        if reports_dir.exists():
            shutil.rmtree(reports_dir)

        command = self._command(scheme, configuration, run_dir, level)
        run = AnalysisRun(
            scheme=scheme,
            configuration=configuration,
            command=command.to_argv(),
            log_path=str(run_dir / 'xcodebuild.log'),
            output_dir=str(reports_dir),
        )
        errors: List[str] = []

        try:
            with self.metrics.measure(f"xcodebuild:{scheme}/{configuration}"):
                run.exit_code, run.duration_seconds = self.xcodebuild.run(
                    command, Path(run.log_path), timeout=self.config.analysis.timeout_seconds,
                )
        except XcodebuildError as e:
            logger.error(str(e))
            run.error = str(e)
            errors.append(f"{run.label}: {e}")
            return run, [], errors

        with self.metrics.measure("parse_reports"):
            findings, parse_errors = collect_reports(reports_dir)
        errors.extend(f"{run.label}: {e}" for e in parse_errors)

        log_text = Path(run.log_path).read_text(encoding='utf-8', errors='replace')
        log_summary = parse_build_log(log_text)
        if not find_reports(reports_dir):
            # No report files: fall back to diagnostics printed in the log
            findings = log_summary.findings

        if run.exit_code != 0:
            detail = log_summary.errors[0] if log_summary.errors else f"exit code {run.exit_code}"
            run.error = f"xcodebuild analyze failed: {detail}"
            errors.append(f"{run.label}: {run.error}")

        for finding in findings:
            finding.scheme = scheme
            finding.configuration = configuration
        run.findings_count = len(findings)
        return run, findings, errors

    def _finalize(self, result: AnalysisResult, findings: List[Finding], start: float) -> AnalysisResult:
        root = result.project_root
        for finding in findings:
            if root:
                finding.metadata['project_root'] = root
            self.catalog.classify(finding)

        with self.metrics.measure("dedup"):
            findings = apply_filters(
                findings,
                exclude_paths=self.config.analysis.exclude_paths,
                disabled_checkers=self.config.analysis.disabled_checkers,
            )
            findings = deduplicate(findings)

        result.findings = findings
        result.sort_findings()
        result.duration_seconds = time.time() - start
        result.timings = self.metrics.to_dict()

        logger.info(f"Analysis complete: {len(result.findings)} findings in {result.duration_seconds:.2f}s")
        return result

    def analyze(self, level: Optional[str] = None, output_dir: Optional[str] = None) -> AnalysisResult:
        """
        Analyze every scheme x configuration pair.

        Args:
            level: Analysis level (default: analysis.level from config)
            output_dir: Where logs and reports go (default: analysis.output_dir)

        Returns:
            AnalysisResult with deduplicated, sorted findings. Failed runs are
            recorded in result.errors; they do not raise.

        Raises:
            ConfigError: If analysis is disabled or the project is not configured
        """
        if not self.config.analysis.enabled:
            raise ConfigError("Analysis is disabled (analysis.enabled is false)")
        self.config.validate_for_analysis()

        level = level or self.config.analysis.level
        if level not in ANALYSIS_LEVELS:
            raise ConfigError(f"Unknown analysis level '{level}'")

        start = time.time()
        self.metrics.reset()
        out = Path(self.config.resolve_path(output_dir or self.config.analysis.output_dir))
        out.mkdir(parents=True, exist_ok=True)

        result = AnalysisResult(
            project=self.config.project.container,
            level=level,
            project_root=self.config.project_root,
        )

        pairs = self._pairs()
        logger.info(f"Analyzing {len(pairs)} scheme/configuration pairs at level '{level}'")

        outcomes = []
        if self.config.ci.parallel_analysis and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.config.ci.max_workers) as executor:
                futures = {
                    executor.submit(self._analyze_pair, scheme, configuration, out, level): index
                    for index, (scheme, configuration) in enumerate(pairs)
                }
                for future in as_completed(futures):
                    outcomes.append((futures[future], future.result()))
            outcomes.sort(key=lambda item: item[0])
        else:
            for index, (scheme, configuration) in enumerate(pairs):
                outcomes.append((index, self._analyze_pair(scheme, configuration, out, level)))

        findings: List[Finding] = []
        for _, (run, run_findings, errors) in outcomes:
            result.runs.append(run)
            findings.extend(run_findings)
            result.errors.extend(errors)

        return self._finalize(result, findings, start)

    def analyze_reports(self, report_dir: str, level: Optional[str] = None) -> AnalysisResult:
        """
        Build a result from reports that already exist on disk.

        Used by CI jobs that ran ``xcodebuild analyze`` themselves.
        """
        start = time.time()
        self.metrics.reset()
        directory = Path(report_dir)
        if not directory.is_dir():
            raise ConfigError(f"Report directory not found: {directory}")

        result = AnalysisResult(
            project=self.config.project.container or str(directory),
            level=level or self.config.analysis.level,
            project_root=self.config.project_root,
        )

        with self.metrics.measure("parse_reports"):
            findings, errors = collect_reports(directory)
        result.errors.extend(errors)

        for log in sorted(directory.rglob('xcodebuild.log')):
            summary = parse_build_log(log.read_text(encoding='utf-8', errors='replace'))
            scheme, _, configuration = log.parent.name.rpartition('-')
            run = AnalysisRun(
                scheme=scheme or log.parent.name,
                configuration=configuration if scheme else '',
                exit_code=0,
                log_path=str(log),
                output_dir=str(log.parent),
            )
            if not find_reports(log.parent):
                # This run left no report files: fall back to its log
                findings.extend(summary.findings)
                run.findings_count = len(summary.findings)
            if summary.failed:
                detail = summary.errors[0] if summary.errors else 'build failed'
                run.exit_code = None
                run.error = f"xcodebuild analyze failed: {detail}"
                result.errors.append(f"{log.parent.name}: {detail}")
            result.runs.append(run)

        return self._finalize(result, findings, start)


def create_analyzer(config_path: Optional[str] = None, xcodebuild: Optional[Xcodebuild] = None,
                    **overrides) -> ProjectAnalyzer:
    """
    Factory function to create a configured analyzer.

    Keyword overrides are applied on top of the loaded config, e.g.
    ``create_analyzer(workspace="App.xcworkspace", schemes=["App"], level="deep")``.
    """
    config = load_config(config_path)

    project_keys = ('workspace', 'project', 'schemes', 'configurations', 'team_id', 'destination', 'sdk')
    analysis_keys = ('level', 'output_dir', 'output_formats', 'max_issues', 'fail_on_warnings')
    for key, value in overrides.items():
        if value is None:
            continue
        if key in project_keys:
            setattr(config.project, key, value)
        elif key in analysis_keys:
            setattr(config.analysis, key, value)
        elif key == 'parallel_analysis':
            config.ci.parallel_analysis = bool(value)
        else:
            raise TypeError(f"Unknown analyzer option: {key}")

    config.validate()
    return ProjectAnalyzer(config, xcodebuild=xcodebuild)
