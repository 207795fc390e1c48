"""
Environment setup and troubleshooting.

verify_environment() checks that the Xcode toolchain and the configured
project are usable, create_debug_report() bundles what a maintainer needs to
diagnose a failed run, and init_project() writes a starter config.
"""

import json
import logging
import platform
import sys
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .__version__ import __version__
from .config import Config, default_config, write_config
from .exceptions import ConfigError, XcodebuildError
from .xcodebuild import Xcodebuild

logger = logging.getLogger(__name__)

LOG_TAIL_LINES = 200


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str = ''

    def __str__(self) -> str:
        mark = 'ok' if self.ok else 'FAIL'
        return f"[{mark:>4}] {self.name}: {self.detail}"


def _check(name: str, func) -> CheckResult:
    try:
        return CheckResult(name, True, func() or '')
    except (XcodebuildError, ConfigError) as e:
        return CheckResult(name, False, str(e))


def verify_environment(config: Config, xcodebuild: Optional[Xcodebuild] = None) -> List[CheckResult]:
    """
    Check the toolchain and project configuration.

    Returns:
        One CheckResult per check; later checks still run when an earlier
        one fails
    """
    xcodebuild = xcodebuild or Xcodebuild()
    checks = []

    def xcode_version():
        info = xcodebuild.version()
        if not info.get('xcode'):
            raise XcodebuildError("could not determine the Xcode version")
        return f"Xcode {info['xcode']} ({info.get('build', 'unknown build')})"

    checks.append(_check('xcodebuild', xcode_version))
    checks.append(_check('clang', lambda: xcodebuild.tool_path('clang')))
    checks.append(_check('developer-dir', xcodebuild.developer_dir))

    def config_valid():
        config.validate_for_analysis()
        return config.source_path or 'defaults'

    config_check = _check('config', config_valid)
    checks.append(config_check)

    container = config.resolve_path(config.project.container)
    if container:
        exists = Path(container).exists()
        checks.append(CheckResult('project-path', exists,
                                  container if exists else f"{container} does not exist"))

        if exists and config.project.schemes:
            try:
                listing = xcodebuild.list(
                    workspace=config.resolve_path(config.project.workspace),
                    project=config.resolve_path(config.project.project),
                )
            except XcodebuildError as e:
                checks.append(CheckResult('schemes', False, str(e)))
            else:
                for scheme in config.project.schemes:
                    found = scheme in listing['schemes']
                    checks.append(CheckResult(
                        f"scheme:{scheme}", found,
                        'listed by xcodebuild' if found else
                        f"not found (available: {', '.join(listing['schemes']) or 'none'})",
                    ))

    for check in checks:
        logger.debug(str(check))
    return checks


def _tail(path: Path, lines: int = LOG_TAIL_LINES) -> List[str]:
    text = path.read_text(encoding='utf-8', errors='replace')
    return text.splitlines()[-lines:]


def create_debug_report(config: Config, path: str,
                        xcodebuild: Optional[Xcodebuild] = None) -> str:
    """Write a JSON troubleshooting bundle and return its path"""
    xcodebuild = xcodebuild or Xcodebuild()

    tools: Dict[str, Any] = {}
    try:
        tools['xcodebuild'] = xcodebuild.version()
    except XcodebuildError as e:
        tools['xcodebuild'] = {'error': str(e)}

    output_dir = Path(config.resolve_path(config.analysis.output_dir))
    logs = {}
    if output_dir.is_dir():
        recent = sorted(output_dir.rglob('xcodebuild.log'), key=lambda p: p.stat().st_mtime, reverse=True)
        for log in recent[:5]:
            logs[str(log.relative_to(output_dir))] = _tail(log)

    report = {
        'generated_at': datetime.now().isoformat(timespec='seconds'),
        'xcanalyzer_version': __version__,
        'platform': {
            'system': platform.system(),
            'release': platform.release(),
            'machine': platform.machine(),
            'python': sys.version.split()[0],
        },
        'tools': tools,
        'checks': [asdict(c) for c in verify_environment(config, xcodebuild)],
        'config': config.to_dict(),
        'config_source': config.source_path,
        'logs': logs,
    }

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    logger.info(f"Wrote debug report to {target}")
    return str(target)


def _find_container(directory: Path) -> Dict[str, Optional[str]]:
    workspaces = sorted(p for p in directory.glob('*.xcworkspace'))
    if workspaces:
        return {'workspace': workspaces[0].name, 'project': None}
    projects = sorted(directory.glob('*.xcodeproj'))
    if projects:
        return {'workspace': None, 'project': projects[0].name}
    return {'workspace': None, 'project': None}


def init_project(
    path: str = '.',
    workspace: Optional[str] = None,
    project: Optional[str] = None,
    team_id: Optional[str] = None,
    platform_name: str = 'none',
    force: bool = False,
    xcodebuild: Optional[Xcodebuild] = None,
) -> Path:
    """
    Write a starter config.json for the project in ``path``.

    The workspace (or project) is discovered when not given, and the scheme
    list comes from ``xcodebuild -list``. Scheme discovery failures are
    logged and leave the list empty.

    Raises:
        ConfigError: If config.json exists and force is not set, or no
            workspace or project can be found
    """
    directory = Path(path)
    target = directory / 'config.json'
    if target.exists() and not force:
        raise ConfigError(f"{target} already exists (use --force to overwrite)")

    if not workspace and not project:
        found = _find_container(directory)
        workspace, project = found['workspace'], found['project']
    if not workspace and not project:
        raise ConfigError(f"No .xcworkspace or .xcodeproj found in {directory.resolve()}")

    xcodebuild = xcodebuild or Xcodebuild()
    schemes: List[str] = []
    configurations: List[str] = []
    try:
        listing = xcodebuild.list(
            workspace=str(directory / workspace) if workspace else None,
            project=str(directory / project) if project else None,
        )
        schemes = listing['schemes']
        configurations = listing['configurations']
    except XcodebuildError as e:
        logger.warning(f"Could not list schemes, fill in project.schemes by hand: {e}")

    config = default_config(
        workspace=workspace,
        project=project,
        schemes=schemes,
        configurations=[c for c in configurations if c == 'Debug'] or configurations[:1] or None,
        team_id=team_id,
        platform=platform_name,
    )
    return write_config(config, target, force=force)
