"""Tests for xcanalyzer.hooks (installer and runner)"""

import os

import pytest

from xcanalyzer.analyzer import ProjectAnalyzer
from xcanalyzer.baseline import save_baseline
from xcanalyzer.exceptions import HookError
from xcanalyzer.hooks import install_hooks, run_hook, uninstall_hooks
from xcanalyzer.hooks.installer import (
    HOOK_MARKER, backup_existing_hook, get_git_hooks_dir, is_xcanalyzer_hook, latest_backup, render_hook,
)
from xcanalyzer.hooks.runner import is_analyzable


@pytest.fixture
def git_repo(tmp_path):
    repo = tmp_path / "repo"
    (repo / ".git" / "hooks").mkdir(parents=True)
    return repo


def _hooks(repo):
    return repo / ".git" / "hooks"


class TestRenderHook:
    def test_content(self):
        script = render_hook("pre-push", "deep")
        assert script.startswith("#!/bin/bash")
        assert HOOK_MARKER in script
        assert 'LEVEL="${XCANALYZER_PUSH_LEVEL:-deep}"' in script
        assert 'xcanalyzer hook pre-push --level "$LEVEL"' in script


class TestInstall:
    def test_installs_both_hooks(self, git_repo):
        ok, message = install_hooks(str(git_repo))
        assert ok
        assert message.startswith("Git hooks installed.")
        for stage in ("pre-commit", "pre-push"):
            hook = _hooks(git_repo) / stage
            assert is_xcanalyzer_hook(hook)
            assert os.access(hook, os.X_OK)
        assert "XCANALYZER_COMMIT_LEVEL:-quick" in (_hooks(git_repo) / "pre-commit").read_text()
        assert "XCANALYZER_PUSH_LEVEL:-standard" in (_hooks(git_repo) / "pre-push").read_text()

    def test_only_pre_push(self, git_repo):
        install_hooks(str(git_repo), pre_commit=False, push_level="security")
        assert not (_hooks(git_repo) / "pre-commit").exists()
        assert "security" in (_hooks(git_repo) / "pre-push").read_text()

    def test_backs_up_foreign_hook(self, git_repo):
        existing = _hooks(git_repo) / "pre-commit"
        existing.write_text("#!/bin/sh\nswiftlint\n")

        ok, message = install_hooks(str(git_repo), pre_push=False)
        assert "backup: pre-commit.backup" in message
        assert (_hooks(git_repo) / "pre-commit.backup").read_text() == "#!/bin/sh\nswiftlint\n"

    def test_reinstall_does_not_back_up_own_hook(self, git_repo):
        install_hooks(str(git_repo))
        install_hooks(str(git_repo), commit_level="standard")
        assert not (_hooks(git_repo) / "pre-commit.backup").exists()
        assert "XCANALYZER_COMMIT_LEVEL:-standard" in (_hooks(git_repo) / "pre-commit").read_text()

    def test_invalid_level(self, git_repo):
        with pytest.raises(HookError, match="paranoid"):
            install_hooks(str(git_repo), commit_level="paranoid")

    def test_not_a_repository(self, tmp_path):
        with pytest.raises(HookError, match="not found"):
            get_git_hooks_dir(str(tmp_path))

    def test_numbered_backups(self, git_repo):
        hook = _hooks(git_repo) / "pre-push"
        (_hooks(git_repo) / "pre-push.backup").write_text("old")
        hook.write_text("newer")
        assert backup_existing_hook(hook).name == "pre-push.backup.1"
        assert backup_existing_hook(hook) is None


class TestUninstall:
    def test_removes_and_restores(self, git_repo):
        (_hooks(git_repo) / "pre-commit").write_text("#!/bin/sh\nswiftlint\n")
        install_hooks(str(git_repo))

        ok, message = uninstall_hooks(str(git_repo))
        assert ok
        assert "pre-commit: removed, backup restored" in message
        assert "pre-push: removed" in message
        assert (_hooks(git_repo) / "pre-commit").read_text() == "#!/bin/sh\nswiftlint\n"
        assert not (_hooks(git_repo) / "pre-push").exists()

    def test_no_restore(self, git_repo):
        (_hooks(git_repo) / "pre-commit").write_text("custom")
        install_hooks(str(git_repo), pre_push=False)
        uninstall_hooks(str(git_repo), restore_backup=False)
        assert not (_hooks(git_repo) / "pre-commit").exists()
        assert (_hooks(git_repo) / "pre-commit.backup").exists()

    def test_restores_most_recent_backup(self, git_repo):
        (_hooks(git_repo) / "pre-commit.backup").write_text("oldest")
        (_hooks(git_repo) / "pre-commit.backup.1").write_text("older")
        (_hooks(git_repo) / "pre-commit").write_text("newest")
        install_hooks(str(git_repo), pre_push=False)
        assert (_hooks(git_repo) / "pre-commit.backup.2").read_text() == "newest"

        uninstall_hooks(str(git_repo))
        assert (_hooks(git_repo) / "pre-commit").read_text() == "newest"
        assert (_hooks(git_repo) / "pre-commit.backup").read_text() == "oldest"
        assert latest_backup(_hooks(git_repo) / "pre-commit").name == "pre-commit.backup.1"

    def test_leaves_foreign_hooks(self, git_repo):
        (_hooks(git_repo) / "pre-push").write_text("custom")
        _, message = uninstall_hooks(str(git_repo))
        assert "pre-commit: not installed" in message
        assert "pre-push: not an xcanalyzer hook, skipping" in message
        assert (_hooks(git_repo) / "pre-push").read_text() == "custom"


class TestIsAnalyzable:
    @pytest.mark.parametrize("path", [
        "Sources/Parser.m", "Sources/Bridge.mm", "lib/cache.c", "App/View.swift", "include/api.h",
        "MyApp.xcodeproj/project.pbxproj", "MyApp.xcworkspace/contents.xcworkspacedata",
    ])
    def test_analyzable(self, path):
        assert is_analyzable(path)

    @pytest.mark.parametrize("path", ["README.md", "Podfile", "Resources/Info.plist", "docs/api.html"])
    def test_not_analyzable(self, path):
        assert not is_analyzable(path)


class TestRunHook:
    def test_pre_commit_skips_unrelated_changes(self, project_config):
        passed, message = run_hook("pre-commit", project_config, staged_files=["README.md"])
        assert passed
        assert "skipping analysis" in message

    def test_pre_commit_blocks_on_critical(self, project_config, fake_xcodebuild, fake_runner):
        analyzer = ProjectAnalyzer(project_config, xcodebuild=fake_xcodebuild)
        passed, message = run_hook("pre-commit", project_config, analyzer=analyzer,
                                   staged_files=["Sources/main.m"])

        assert not passed
        assert "XCANALYZER PRE-COMMIT (quick)" in message
        assert "[CRITICAL] Sources/main.m:12 - core.NullDereference" in message
        assert "COMMIT BLOCKED" in message
        assert "CLANG_STATIC_ANALYZER_MODE=shallow" in fake_runner.analyze_calls[0]

    def test_pre_push_uses_configured_level(self, project_config, fake_xcodebuild):
        project_config.quality_gate.max_critical_issues = None
        analyzer = ProjectAnalyzer(project_config, xcodebuild=fake_xcodebuild)
        passed, message = run_hook("pre-push", project_config, analyzer=analyzer)

        assert passed
        assert "XCANALYZER PRE-PUSH (standard)" in message
        assert "Quality gate PASSED" in message
        assert "BLOCKED" not in message

    def test_pre_push_blocked(self, project_config, fake_xcodebuild):
        analyzer = ProjectAnalyzer(project_config, xcodebuild=fake_xcodebuild)
        passed, message = run_hook("pre-push", project_config, level="deep", analyzer=analyzer)
        assert not passed
        assert "PUSH BLOCKED" in message

    def test_baseline_allows_known_findings(self, project_config, fake_xcodebuild, project_dir):
        analyzer = ProjectAnalyzer(project_config, xcodebuild=fake_xcodebuild)
        save_baseline(analyzer.analyze(), str(project_dir / "baseline.json"))

        project_config.quality_gate.baseline = "baseline.json"
        project_config.quality_gate.new_issues_only = True
        passed, message = run_hook("pre-push", project_config, analyzer=analyzer)

        assert passed
        assert "Baseline: 0 new, 0 fixed, 2 unchanged" in message

    def test_unknown_stage(self, project_config):
        with pytest.raises(HookError, match="post-merge"):
            run_hook("post-merge", project_config)
