"""Tests for xcanalyzer.xcodebuild"""

import subprocess

import pytest

from xcanalyzer.exceptions import XcodebuildError
from xcanalyzer.xcodebuild import Xcodebuild, XcodebuildCommand

from conftest import FakeRunner


def _command(tmp_path, **kwargs):
    defaults = dict(scheme="MyApp", configuration="Debug", output_dir=str(tmp_path / "reports"),
                    workspace="MyApp.xcworkspace")
    defaults.update(kwargs)
    return XcodebuildCommand(**defaults)


class TestXcodebuildCommand:
    def test_argv_order(self, tmp_path):
        argv = _command(tmp_path).to_argv()
        assert argv[:8] == ["xcodebuild", "analyze", "-workspace", "MyApp.xcworkspace",
                            "-scheme", "MyApp", "-configuration", "Debug"]

    def test_analyzer_settings(self, tmp_path):
        argv = _command(tmp_path).to_argv()
        assert "RUN_CLANG_STATIC_ANALYZER=YES" in argv
        assert "CLANG_ANALYZER_OUTPUT=plist-html" in argv
        assert f"CLANG_ANALYZER_OUTPUT_DIR={tmp_path / 'reports'}" in argv
        assert "CODE_SIGNING_ALLOWED=NO" in argv

    def test_project_and_optional_flags(self, tmp_path):
        argv = _command(tmp_path, workspace=None, project="MyApp.xcodeproj", sdk="iphonesimulator",
                        destination="generic/platform=iOS Simulator",
                        derived_data_path="/tmp/dd").to_argv()
        assert argv[2:4] == ["-project", "MyApp.xcodeproj"]
        assert "-workspace" not in argv
        assert argv[argv.index("-sdk") + 1] == "iphonesimulator"
        assert argv[argv.index("-destination") + 1] == "generic/platform=iOS Simulator"
        assert argv[argv.index("-derivedDataPath") + 1] == "/tmp/dd"

    def test_level_settings_and_team(self, tmp_path):
        argv = _command(tmp_path, team_id="ABCDE12345",
                        build_settings={"CLANG_STATIC_ANALYZER_MODE": "deep"}).to_argv()
        assert "CLANG_STATIC_ANALYZER_MODE=deep" in argv
        assert "DEVELOPMENT_TEAM=ABCDE12345" in argv

    def test_requires_container(self, tmp_path):
        with pytest.raises(XcodebuildError):
            _command(tmp_path, workspace=None).to_argv()


class TestRun:
    def test_writes_log_and_reports(self, tmp_path, null_deref_diagnostics):
        runner = FakeRunner(tmp_path, diagnostics=null_deref_diagnostics, log_text="building...\n")
        log_path = tmp_path / "logs" / "xcodebuild.log"
        exit_code, duration = Xcodebuild(runner=runner).run(_command(tmp_path), log_path)

        assert exit_code == 0
        assert duration >= 0
        assert log_path.read_text() == "building...\n"
        assert (tmp_path / "reports" / "StaticAnalyzer" / "MyApp" / "main.plist").exists()
        assert len(runner.analyze_calls) == 1

    def test_nonzero_exit(self, tmp_path):
        runner = FakeRunner(tmp_path, returncode=65)
        exit_code, _ = Xcodebuild(runner=runner).run(_command(tmp_path), tmp_path / "x.log")
        assert exit_code == 65

    def test_missing_executable(self, tmp_path):
        with pytest.raises(XcodebuildError, match="not found"):
            Xcodebuild(runner=FakeRunner(tmp_path, missing=True)).run(_command(tmp_path), tmp_path / "x.log")

    def test_timeout(self, tmp_path):
        def runner(argv, **kwargs):
            raise subprocess.TimeoutExpired(argv, kwargs.get("timeout"))

        with pytest.raises(XcodebuildError, match="timed out"):
            Xcodebuild(runner=runner).run(_command(tmp_path), tmp_path / "x.log", timeout=5)


class TestQueries:
    def test_list(self, fake_xcodebuild, fake_runner):
        info = fake_xcodebuild.list(workspace="MyApp.xcworkspace")
        assert info["schemes"] == ["MyApp", "MyAppKit"]
        assert info["configurations"] == ["Debug", "Release"]
        assert fake_runner.calls[-1] == ["xcodebuild", "-list", "-json", "-workspace", "MyApp.xcworkspace"]

    def test_list_skips_leading_warnings(self, tmp_path):
        def runner(argv, **kwargs):
            out = 'warning: stale cache\n{"workspace": {"name": "W", "schemes": ["A"]}}'
            return subprocess.CompletedProcess(argv, 0, stdout=out, stderr="")

        info = Xcodebuild(runner=runner).list(workspace="W.xcworkspace")
        assert info["name"] == "W"
        assert info["schemes"] == ["A"]
        assert info["configurations"] == []

    def test_list_failure(self, tmp_path):
        def runner(argv, **kwargs):
            return subprocess.CompletedProcess(argv, 66, stdout="", stderr="xcodebuild: error: no project\n")

        with pytest.raises(XcodebuildError, match="no project"):
            Xcodebuild(runner=runner).list(project="Missing.xcodeproj")

    def test_version(self, fake_xcodebuild):
        assert fake_xcodebuild.version() == {"xcode": "15.3", "build": "15E204a"}

    def test_tool_path_and_developer_dir(self, fake_xcodebuild):
        assert fake_xcodebuild.tool_path("clang").endswith("/usr/bin/clang")
        assert fake_xcodebuild.developer_dir() == "/Applications/Xcode.app/Contents/Developer"

    def test_missing_tool(self, tmp_path):
        with pytest.raises(XcodebuildError, match="not found"):
            Xcodebuild(runner=FakeRunner(tmp_path, missing=True)).version()
