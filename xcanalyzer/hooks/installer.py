"""
Git Hooks Installer for xcanalyzer

Installs and manages the pre-commit and pre-push hooks that run the
static analyzer before code leaves the developer's machine.
"""

import logging
import os
import stat
import subprocess
from pathlib import Path
from typing import Optional, Tuple

from ..config import ANALYSIS_LEVELS
from ..exceptions import HookError

logger = logging.getLogger(__name__)

HOOK_MARKER = '# Installed by: xcanalyzer install-hooks'

HOOK_TEMPLATE = '''#!/bin/bash
# xcanalyzer {stage} hook
{marker}

LEVEL="${{{level_var}:-{level}}}"

if ! command -v xcanalyzer &> /dev/null; then
    echo "Warning: xcanalyzer not found, skipping {stage} analysis"
    exit 0
fi

xcanalyzer hook {stage} --level "$LEVEL"
exit $?
'''

HOOK_LEVEL_VARS = {
    'pre-commit': 'XCANALYZER_COMMIT_LEVEL',
    'pre-push': 'XCANALYZER_PUSH_LEVEL',
}


def render_hook(stage: str, level: str) -> str:
    return HOOK_TEMPLATE.format(
        stage=stage,
        marker=HOOK_MARKER,
        level_var=HOOK_LEVEL_VARS[stage],
        level=level,
    )


def get_git_hooks_dir(repo_path: Optional[str] = None) -> Path:
    """Get the git hooks directory for a repository."""
    if repo_path is None:
        try:
            result = subprocess.run(
                ['git', 'rev-parse', '--show-toplevel'],
                capture_output=True,
                text=True,
                check=True
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise HookError("Not inside a git repository") from e
        repo_path = result.stdout.strip()

    hooks_dir = Path(repo_path) / '.git' / 'hooks'
    if not hooks_dir.is_dir():
        raise HookError(f"Git hooks directory not found: {hooks_dir}")
    return hooks_dir


def backup_existing_hook(hook_path: Path) -> Optional[Path]:
    """Move an existing hook aside; returns the backup path."""
    if not hook_path.exists():
        return None

    backup_path = hook_path.with_name(f"{hook_path.name}.backup")
    counter = 1
    while backup_path.exists():
        backup_path = hook_path.with_name(f"{hook_path.name}.backup.{counter}")
        counter += 1

    hook_path.rename(backup_path)
    return backup_path


def latest_backup(hook_path: Path) -> Optional[Path]:
    """The most recent backup written by backup_existing_hook, if any."""
    numbered = []
    for candidate in hook_path.parent.glob(f"{hook_path.name}.backup.*"):
        suffix = candidate.name.rsplit('.', 1)[1]
        if suffix.isdigit():
            numbered.append((int(suffix), candidate))
    if numbered:
        return max(numbered)[1]

    backup_path = hook_path.with_name(f"{hook_path.name}.backup")
    return backup_path if backup_path.exists() else None


def is_xcanalyzer_hook(hook_path: Path) -> bool:
    try:
        return HOOK_MARKER in hook_path.read_text(encoding='utf-8', errors='replace')
    except OSError:
        return False


def install_hook(hooks_dir: Path, stage: str, content: str) -> str:
    """Install a single hook and return a status line."""
    hook_path = hooks_dir / stage

    # Reinstalling over our own hook must not pile up backups
    backup = None if is_xcanalyzer_hook(hook_path) else backup_existing_hook(hook_path)

    try:
        hook_path.write_text(content, encoding='utf-8')
        os.chmod(hook_path, hook_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        raise HookError(f"Failed to install {stage}: {e}") from e

    msg = f"Installed {stage}"
    if backup:
        msg += f" (backup: {backup.name})"
    logger.info(msg)
    return msg


def install_hooks(
    repo_path: Optional[str] = None,
    pre_commit: bool = True,
    pre_push: bool = True,
    commit_level: str = 'quick',
    push_level: str = 'standard',
) -> Tuple[bool, str]:
    """
    Install xcanalyzer git hooks.

    Args:
        repo_path: Path to git repository (default: current repository)
        pre_commit: Install pre-commit hook
        pre_push: Install pre-push hook
        commit_level: Analysis level for pre-commit
        push_level: Analysis level for pre-push

    Returns:
        Tuple of (success, message)

    Raises:
        HookError: If the repository or hooks directory cannot be found
    """
    for name, level in (('commit_level', commit_level), ('push_level', push_level)):
        if level not in ANALYSIS_LEVELS:
            raise HookError(f"Unknown {name} '{level}'. Expected one of: {', '.join(ANALYSIS_LEVELS)}")

    hooks_dir = get_git_hooks_dir(repo_path)
    messages = []

    if pre_commit:
        messages.append(install_hook(hooks_dir, 'pre-commit', render_hook('pre-commit', commit_level)))
    if pre_push:
        messages.append(install_hook(hooks_dir, 'pre-push', render_hook('pre-push', push_level)))

    summary = '\n'.join(messages)
    summary = f"Git hooks installed.\n{summary}\n\nConfiguration:\n" \
              f"  Pre-commit level: {commit_level}\n" \
              f"  Pre-push level: {push_level}\n\n" \
              f"Environment variables:\n" \
              f"  XCANALYZER_COMMIT_LEVEL - Override pre-commit level\n" \
              f"  XCANALYZER_PUSH_LEVEL - Override pre-push level"

    return True, summary


def uninstall_hooks(
    repo_path: Optional[str] = None,
    pre_commit: bool = True,
    pre_push: bool = True,
    restore_backup: bool = True
) -> Tuple[bool, str]:
    """
    Uninstall xcanalyzer git hooks.

    Hooks not written by xcanalyzer are left alone.

    Returns:
        Tuple of (success, message)
    """
    hooks_dir = get_git_hooks_dir(repo_path)

    stages = []
    if pre_commit:
        stages.append('pre-commit')
    if pre_push:
        stages.append('pre-push')

    messages = []
    for stage in stages:
        hook_path = hooks_dir / stage

        if not hook_path.exists():
            messages.append(f"  {stage}: not installed")
            continue

        if not is_xcanalyzer_hook(hook_path):
            messages.append(f"  {stage}: not an xcanalyzer hook, skipping")
            continue

        hook_path.unlink()

        backup_path = latest_backup(hook_path)
        if restore_backup and backup_path is not None:
            backup_path.rename(hook_path)
            messages.append(f"  {stage}: removed, backup restored")
        else:
            messages.append(f"  {stage}: removed")

    return True, "Git hooks status:\n" + '\n'.join(messages)
