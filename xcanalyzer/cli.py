"""
Command Line Interface for xcanalyzer
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .__version__ import __version__
from .analyzer import ProjectAnalyzer
from .baseline import diff_results, load_baseline, save_baseline
from .catalog import load_catalog
from .ci import write_ci_template
from .config import ANALYSIS_LEVELS, OUTPUT_FORMATS, Config, load_config
from .environment import create_debug_report, init_project, verify_environment
from .exceptions import XcanalyzerError
from .hooks import install_hooks, uninstall_hooks, run_hook
from .models import Severity
from .quality_gate import Thresholds, evaluate
from .reporters import write_reports

logger = logging.getLogger(__name__)

RESULT_FILENAME = 'xcanalyzer-result.json'
BASELINE_FILENAME = 'xcanalyzer-baseline.json'


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging"""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='xcanalyzer',
        description='xcanalyzer - Run the Clang static analyzer on Xcode projects and gate CI on the results',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init                                      # Write a starter config.json
  %(prog)s verify                                    # Check Xcode and the project setup
  %(prog)s analyze                                   # Analyze with config.json settings
  %(prog)s analyze --scheme App --level deep         # Deep analysis of one scheme
  %(prog)s analyze --from-reports build/reports      # Gate on existing analyzer output
  %(prog)s diff baseline.json build/xcanalyzer/xcanalyzer-result.json
  %(prog)s ci-template github                        # Write a GitHub Actions workflow
        """
    )

    parser.add_argument('--config', help='Config file (default: ./config.json if present)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug mode (very verbose)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')

    # init
    init_parser = subparsers.add_parser('init', help='Write a starter config.json')
    init_parser.add_argument('path', nargs='?', default='.', help='Project directory (default: .)')
    init_parser.add_argument('--workspace', help='Workspace to analyze (default: auto-detect)')
    init_parser.add_argument('--project', help='Project to analyze when there is no workspace')
    init_parser.add_argument('--team-id', help='Development team identifier')
    init_parser.add_argument('--ci', choices=['github', 'gitlab', 'jenkins', 'none'], default='none',
                             help='CI platform to record in the config')
    init_parser.add_argument('--force', action='store_true', help='Overwrite an existing config.json')

    # verify
    subparsers.add_parser('verify', help='Check the Xcode toolchain and project configuration')

    # analyze
    analyze_parser = subparsers.add_parser('analyze', help='Run the static analyzer')
    project_group = analyze_parser.add_argument_group('Project Options')
    container = project_group.add_mutually_exclusive_group()
    container.add_argument('--workspace', help='Workspace to analyze')
    container.add_argument('--project', help='Project to analyze')
    project_group.add_argument('--scheme', action='append', dest='schemes',
                               help='Scheme to analyze (can be repeated)')
    project_group.add_argument('--configuration', action='append', dest='configurations',
                               help='Build configuration (can be repeated)')
    project_group.add_argument('--team-id', help='Development team identifier')

    output_group = analyze_parser.add_argument_group('Output Options')
    output_group.add_argument('--level', choices=ANALYSIS_LEVELS, help='Analysis level')
    output_group.add_argument('--output-dir', help='Directory for logs and reports')
    output_group.add_argument('--format', action='append', dest='formats', choices=OUTPUT_FORMATS,
                              help='Report format (can be repeated)')
    output_group.add_argument('--no-color', action='store_true', help='Disable colored output')

    gate_group = analyze_parser.add_argument_group('Quality Gate Options')
    gate_group.add_argument('--baseline', help='Baseline result to diff against')
    gate_group.add_argument('--update-baseline', action='store_true',
                            help='Save this result as the new baseline')
    gate_group.add_argument('--no-gate', action='store_true', help='Skip the quality gate')

    run_group = analyze_parser.add_argument_group('Execution Options')
    run_group.add_argument('--from-reports', metavar='DIR',
                           help='Parse existing analyzer reports instead of running xcodebuild')
    run_group.add_argument('--parallel', action='store_true', help='Analyze schemes in parallel')
    run_group.add_argument('-j', '--jobs', type=int, help='Parallel workers (implies --parallel)')

    # gate
    gate_parser = subparsers.add_parser('gate', help='Evaluate the quality gate on a saved result')
    gate_parser.add_argument('result', help='Result JSON written by analyze')
    gate_parser.add_argument('--baseline', help='Baseline result to diff against')

    # report
    report_parser = subparsers.add_parser('report', help='Render reports from a saved result')
    report_parser.add_argument('result', help='Result JSON written by analyze')
    report_parser.add_argument('--format', action='append', dest='formats', choices=OUTPUT_FORMATS,
                               help='Report format (can be repeated)')
    report_parser.add_argument('--output-dir', help='Output directory')
    report_parser.add_argument('--no-color', action='store_true', help='Disable colored output')

    # diff
    diff_parser = subparsers.add_parser('diff', help='Compare two results')
    diff_parser.add_argument('baseline', help='Baseline result JSON')
    diff_parser.add_argument('current', help='Current result JSON')

    # hooks
    install_parser = subparsers.add_parser('install-hooks', help='Install git hooks')
    install_parser.add_argument('--repo', '-r', help='Path to git repository (default: current repository)')
    install_parser.add_argument('--no-pre-commit', action='store_true', help='Skip the pre-commit hook')
    install_parser.add_argument('--no-pre-push', action='store_true', help='Skip the pre-push hook')
    install_parser.add_argument('--commit-level', choices=ANALYSIS_LEVELS, default='quick',
                                help='Pre-commit analysis level (default: quick)')
    install_parser.add_argument('--push-level', choices=ANALYSIS_LEVELS, default='standard',
                                help='Pre-push analysis level (default: standard)')

    uninstall_parser = subparsers.add_parser('uninstall-hooks', help='Remove git hooks')
    uninstall_parser.add_argument('--repo', '-r', help='Path to git repository (default: current repository)')
    uninstall_parser.add_argument('--no-restore', action='store_true', help='Do not restore backup hooks')

    hook_parser = subparsers.add_parser('hook', help='Run a git hook stage (used by installed hooks)')
    hook_parser.add_argument('stage', choices=['pre-commit', 'pre-push'])
    hook_parser.add_argument('--level', choices=ANALYSIS_LEVELS, help='Analysis level')

    # ci-template
    ci_parser = subparsers.add_parser('ci-template', help='Write a CI pipeline template')
    ci_parser.add_argument('platform', choices=['github', 'gitlab', 'jenkins'])
    ci_parser.add_argument('-o', '--output', help='Output path (default: platform convention)')
    ci_parser.add_argument('--force', action='store_true', help='Overwrite an existing file')

    # debug-report
    debug_parser = subparsers.add_parser('debug-report', help='Write a troubleshooting bundle')
    debug_parser.add_argument('-o', '--output', default='xcanalyzer-debug.json',
                              help='Output path (default: xcanalyzer-debug.json)')

    # list-checkers
    list_parser = subparsers.add_parser('list-checkers', help='List known analyzer checkers')
    list_parser.add_argument('--level', choices=ANALYSIS_LEVELS, help='Only checkers run at this level')

    return parser


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    return build_parser().parse_args(args)


def apply_analyze_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply analyze flags on top of the loaded config"""
    if args.workspace:
        config.project.workspace = args.workspace
        config.project.project = None
    if args.project:
        config.project.project = args.project
        config.project.workspace = None
    if args.schemes:
        config.project.schemes = args.schemes
    if args.configurations:
        config.project.configurations = args.configurations
    if args.team_id:
        config.project.team_id = args.team_id
    if args.level:
        config.analysis.level = args.level
    if args.output_dir:
        config.analysis.output_dir = args.output_dir
    if args.formats:
        config.analysis.output_formats = args.formats
    if args.parallel or args.jobs:
        config.ci.parallel_analysis = True
    if args.jobs:
        config.ci.max_workers = args.jobs

    config.validate()
    return config


def _load_diff(config: Config, explicit: Optional[str], current):
    """Baseline diff from an explicit path or quality_gate.baseline"""
    if explicit:
        return diff_results(load_baseline(explicit), current)

    configured = config.resolve_path(config.quality_gate.baseline)
    if configured:
        if Path(configured).is_file():
            return diff_results(load_baseline(configured), current)
        logger.warning(f"Baseline {configured} not found, counting all findings")
    return None


def _console_options(args: argparse.Namespace) -> dict:
    return {'use_colors': not args.no_color, 'verbose': args.verbose}


def cmd_init(args: argparse.Namespace) -> int:
    path = init_project(
        path=args.path,
        workspace=args.workspace,
        project=args.project,
        team_id=args.team_id,
        platform_name=args.ci,
        force=args.force,
    )
    print(f"Wrote {path}")
    print("Next: review the schemes in the file, then run 'xcanalyzer verify'")
    return 0


def cmd_verify(args: argparse.Namespace, config: Config) -> int:
    checks = verify_environment(config)
    for check in checks:
        print(check)

    failed = [c for c in checks if not c.ok]
    if failed:
        print(f"\n{len(failed)} of {len(checks)} checks failed", file=sys.stderr)
        return 2
    print(f"\nAll {len(checks)} checks passed")
    return 0


def cmd_analyze(args: argparse.Namespace, config: Config) -> int:
    apply_analyze_overrides(config, args)
    analyzer = ProjectAnalyzer(config)

    if args.from_reports:
        result = analyzer.analyze_reports(args.from_reports, level=args.level)
    else:
        result = analyzer.analyze()

    output_dir = Path(config.resolve_path(config.analysis.output_dir))
    diff = _load_diff(config, args.baseline, result)
    gate = None if args.no_gate else evaluate(result, Thresholds.from_config(config), diff)

    write_reports(result, config.analysis.output_formats, str(output_dir), gate=gate,
                  console_options=_console_options(args))
    save_baseline(result, str(output_dir / RESULT_FILENAME))

    if diff is not None:
        print(f"Baseline: {diff.summary()}")

    if args.update_baseline:
        target = args.baseline or config.resolve_path(config.quality_gate.baseline) \
            or str(output_dir / BASELINE_FILENAME)
        save_baseline(result, target)
        print(f"Baseline updated: {target}")

    if gate is None:
        return 0
    if 'console' not in config.analysis.output_formats:
        print(gate.describe())
    return gate.exit_code


def cmd_gate(args: argparse.Namespace, config: Config) -> int:
    result = load_baseline(args.result)
    diff = _load_diff(config, args.baseline, result)
    gate = evaluate(result, Thresholds.from_config(config), diff)
    if diff is not None:
        print(f"Baseline: {diff.summary()}")
    print(gate.describe())
    return gate.exit_code


def cmd_report(args: argparse.Namespace, config: Config) -> int:
    result = load_baseline(args.result)
    formats = args.formats or config.analysis.output_formats
    output_dir = args.output_dir or str(Path(args.result).resolve().parent)
    written = write_reports(result, formats, output_dir, console_options=_console_options(args))
    for path in written:
        print(f"Wrote {path}")
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    baseline = load_baseline(args.baseline)
    current = load_baseline(args.current)
    diff = diff_results(baseline, current)

    print(diff.summary())
    for title, findings in (("New", diff.new), ("Fixed", diff.fixed)):
        if not findings:
            continue
        print(f"\n{title}:")
        for finding in findings:
            location = finding.location.relative_to(current.project_root or baseline.project_root)
            print(f"  [{finding.severity.value.upper()}] {location}:{finding.location.line_number} "
                  f"{finding.checker}: {finding.description}")

    return 1 if diff.has_new else 0


def cmd_install_hooks(args: argparse.Namespace) -> int:
    _, message = install_hooks(
        repo_path=args.repo,
        pre_commit=not args.no_pre_commit,
        pre_push=not args.no_pre_push,
        commit_level=args.commit_level,
        push_level=args.push_level,
    )
    print(message)
    return 0


def cmd_uninstall_hooks(args: argparse.Namespace) -> int:
    _, message = uninstall_hooks(repo_path=args.repo, restore_backup=not args.no_restore)
    print(message)
    return 0


def cmd_hook(args: argparse.Namespace, config: Config) -> int:
    passed, message = run_hook(args.stage, config, level=args.level)
    print(message)
    return 0 if passed else 1


def cmd_ci_template(args: argparse.Namespace, config: Config) -> int:
    path = write_ci_template(args.platform, config, args.output, force=args.force)
    print(f"Wrote {args.platform} template to {path}")
    return 0


def cmd_debug_report(args: argparse.Namespace, config: Config) -> int:
    path = create_debug_report(config, args.output)
    print(f"Wrote debug report to {path}")
    return 0


def cmd_list_checkers(args: argparse.Namespace, config: Config) -> int:
    """List catalog checkers grouped by category"""
    catalog = load_catalog(
        config.resolve_path(config.analysis.checkers_dir),
        severity_overrides=config.analysis.severity_overrides,
    )
    checkers = catalog.checkers_for_level(args.level) if args.level else catalog.checkers

    print(f"\nKnown Checkers ({len(checkers)} total):\n")
    print("-" * 80)

    by_category = {}
    for checker in checkers:
        by_category.setdefault(checker.category or 'Other', []).append(checker)

    markers = {
        Severity.CRITICAL: '!',
        Severity.HIGH: '*',
        Severity.MEDIUM: '+',
        Severity.LOW: '-',
        Severity.INFO: ' ',
    }
    for category in sorted(by_category):
        print(f"\n[{category}]")
        for checker in sorted(by_category[category], key=lambda c: c.id):
            marker = markers.get(checker.severity, ' ')
            levels = ','.join(checker.levels) if checker.levels else 'all'
            print(f"  {marker} {checker.id:<45} [{checker.severity.value}] ({levels})")

    print("\n" + "-" * 80)
    print("\nSeverity markers: ! = critical, * = high, + = medium, - = low")
    print("Ids ending in '.' cover every checker with that prefix")
    return 0


def run_command(args: argparse.Namespace) -> int:
    # Commands that do not need a config
    if args.command == 'init':
        return cmd_init(args)
    if args.command == 'diff':
        return cmd_diff(args)
    if args.command == 'install-hooks':
        return cmd_install_hooks(args)
    if args.command == 'uninstall-hooks':
        return cmd_uninstall_hooks(args)

    config = load_config(args.config)
    handlers = {
        'verify': cmd_verify,
        'analyze': cmd_analyze,
        'gate': cmd_gate,
        'report': cmd_report,
        'hook': cmd_hook,
        'ci-template': cmd_ci_template,
        'debug-report': cmd_debug_report,
        'list-checkers': cmd_list_checkers,
    }
    return handlers[args.command](args, config)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    if not parsed_args.command:
        parser.print_help()
        return 2

    try:
        return run_command(parsed_args)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except XcanalyzerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        if parsed_args.debug:
            raise
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
