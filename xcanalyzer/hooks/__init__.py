"""
Git Hooks Integration for xcanalyzer
"""

from .installer import install_hooks, uninstall_hooks
from .runner import run_hook, get_staged_files

__all__ = [
    'install_hooks',
    'uninstall_hooks',
    'run_hook',
    'get_staged_files',
]
