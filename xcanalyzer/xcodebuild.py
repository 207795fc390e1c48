"""
xcodebuild invocation.

Builds ``xcodebuild analyze`` command lines for a scheme/configuration pair
and runs them, streaming the build log to disk. The process runner is
injectable so everything above this module can be tested without Xcode.
"""

import json
import logging
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import XcodebuildError

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class XcodebuildCommand:
    """Arguments for one ``xcodebuild analyze`` invocation"""
    scheme: str
    configuration: str
    output_dir: str
    workspace: Optional[str] = None
    project: Optional[str] = None
    sdk: Optional[str] = None
    destination: Optional[str] = None
    derived_data_path: Optional[str] = None
    team_id: Optional[str] = None
    build_settings: Dict[str, str] = field(default_factory=dict)
    executable: str = 'xcodebuild'

    def to_argv(self) -> List[str]:
        if not self.workspace and not self.project:
            raise XcodebuildError("Either a workspace or a project is required")

        argv = [self.executable, 'analyze']
        if self.workspace:
            argv += ['-workspace', self.workspace]
        else:
            argv += ['-project', self.project]
        argv += ['-scheme', self.scheme, '-configuration', self.configuration]
        if self.sdk:
            argv += ['-sdk', self.sdk]
        if self.destination:
            argv += ['-destination', self.destination]
        if self.derived_data_path:
            argv += ['-derivedDataPath', self.derived_data_path]

        settings = {
            'RUN_CLANG_STATIC_ANALYZER': 'YES',
            'CLANG_ANALYZER_OUTPUT': 'plist-html',
            'CLANG_ANALYZER_OUTPUT_DIR': self.output_dir,
            'CODE_SIGNING_ALLOWED': 'NO',
        }
        settings.update(self.build_settings)
        if self.team_id:
            settings['DEVELOPMENT_TEAM'] = self.team_id

        argv += [f"{key}={value}" for key, value in settings.items()]
        return argv


class Xcodebuild:
    """Thin wrapper around the xcodebuild binary"""

    def __init__(self, executable: str = 'xcodebuild', runner: Optional[Runner] = None):
        self.executable = executable
        self._run = runner or subprocess.run

    def run(self, command: XcodebuildCommand, log_path: Path,
            timeout: Optional[float] = None) -> Tuple[int, float]:
        """
        Run an analyze command, writing combined output to log_path.

        Returns:
            Tuple of (exit_code, duration_seconds)

        Raises:
            XcodebuildError: If xcodebuild is missing or times out
        """
        argv = command.to_argv()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        Path(command.output_dir).mkdir(parents=True, exist_ok=True)

        logger.info(f"Running: {' '.join(argv)}")
        start = time.perf_counter()
        with open(log_path, 'w', encoding='utf-8') as log_file:
            try:
                completed = self._run(
                    argv,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    timeout=timeout,
                    check=False,
                )
            except FileNotFoundError as e:
                raise XcodebuildError(
                    f"{self.executable} not found. Install Xcode and run 'xcode-select --install'."
                ) from e
            except subprocess.TimeoutExpired as e:
                raise XcodebuildError(
                    f"Analysis of {command.scheme} ({command.configuration}) timed out after {timeout}s"
                ) from e
        duration = time.perf_counter() - start

        logger.info(f"{command.scheme} ({command.configuration}) finished with exit code "
                    f"{completed.returncode} in {duration:.1f}s")
        return completed.returncode, duration

    def _capture(self, argv: List[str], timeout: float = 120) -> str:
        try:
            completed = self._run(argv, capture_output=True, text=True, timeout=timeout, check=False)
        except FileNotFoundError as e:
            raise XcodebuildError(f"{argv[0]} not found") from e
        except subprocess.TimeoutExpired as e:
            raise XcodebuildError(f"'{' '.join(argv)}' timed out") from e

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or '').strip().splitlines()
            raise XcodebuildError(
                f"'{' '.join(argv)}' failed with exit code {completed.returncode}"
                + (f": {detail[-1]}" if detail else "")
            )
        return completed.stdout or ''

    def list(self, workspace: Optional[str] = None, project: Optional[str] = None) -> Dict[str, List[str]]:
        """Schemes and build configurations known to a workspace or project"""
        argv = [self.executable, '-list', '-json']
        if workspace:
            argv += ['-workspace', workspace]
        elif project:
            argv += ['-project', project]

        output = self._capture(argv)
        # xcodebuild may print warnings before the JSON document
        start = output.find('{')
        try:
            data = json.loads(output[start:] if start >= 0 else output)
        except json.JSONDecodeError as e:
            raise XcodebuildError(f"Could not parse 'xcodebuild -list' output: {e}") from e

        container = data.get('workspace') or data.get('project') or {}
        return {
            'name': container.get('name', ''),
            'schemes': list(container.get('schemes') or []),
            'configurations': list(container.get('configurations') or []),
            'targets': list(container.get('targets') or []),
        }

    def version(self) -> Dict[str, str]:
        """Parse ``xcodebuild -version`` into {'xcode': ..., 'build': ...}"""
        output = self._capture([self.executable, '-version'], timeout=30)
        info = {}
        for line in output.splitlines():
            line = line.strip()
            if line.startswith('Xcode '):
                info['xcode'] = line[len('Xcode '):].strip()
            elif line.startswith('Build version '):
                info['build'] = line[len('Build version '):].strip()
        return info

    def tool_path(self, tool: str) -> str:
        """Resolve a developer tool with ``xcrun --find``"""
        return self._capture(['xcrun', '--find', tool], timeout=30).strip()

    def developer_dir(self) -> str:
        return self._capture(['xcode-select', '-p'], timeout=30).strip()
