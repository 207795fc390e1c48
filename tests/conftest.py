"""Shared test fixtures for the xcanalyzer test suite."""

import json
import plistlib
import subprocess
import sys
from pathlib import Path

import pytest

# Ensure xcanalyzer is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from xcanalyzer.config import Config
from xcanalyzer.models import AnalysisResult, AnalysisRun, Finding, Location, Severity
from xcanalyzer.xcodebuild import Xcodebuild

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PROJECT_ROOT = "/Users/dev/MyApp"


def write_plist(path, diagnostics, files):
    """Write a Clang analyzer style plist report."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        plistlib.dump({"files": list(files), "diagnostics": list(diagnostics)}, f)
    return path


def make_diagnostic(check_name, line, description, file_index=0, category="Logic error",
                    bug_type="Bug", issue_hash=None):
    diag = {
        "check_name": check_name,
        "category": category,
        "type": bug_type,
        "description": description,
        "location": {"line": line, "col": 3, "file": file_index},
        "path": [{"kind": "event", "location": {"line": line, "col": 3, "file": file_index},
                  "message": description}],
    }
    if issue_hash:
        diag["issue_hash_content_of_line_in_context"] = issue_hash
    return diag


class FakeRunner:
    """
    Stand-in for subprocess.run that mimics xcodebuild.

    Analyze invocations write a plist into the CLANG_ANALYZER_OUTPUT_DIR
    build setting and a log to the stdout file; the helper commands return
    canned output.
    """

    def __init__(self, source_dir, diagnostics=None, returncode=0, log_text=None,
                 schemes=("MyApp", "MyAppKit"), configurations=("Debug", "Release"),
                 missing=False):
        self.source_dir = str(source_dir)
        self.diagnostics = diagnostics
        self.returncode = returncode
        self.log_text = log_text if log_text is not None else "** ANALYZE SUCCEEDED **\n"
        self.schemes = list(schemes)
        self.configurations = list(configurations)
        self.missing = missing
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        if self.missing:
            raise FileNotFoundError(argv[0])

        if "analyze" in argv:
            return self._analyze(argv, kwargs)
        if "-list" in argv:
            listing = {"project": {"name": "MyApp", "schemes": self.schemes,
                                   "configurations": self.configurations, "targets": ["MyApp"]}}
            return subprocess.CompletedProcess(argv, 0, stdout=json.dumps(listing), stderr="")
        if "-version" in argv:
            return subprocess.CompletedProcess(argv, 0, stdout="Xcode 15.3\nBuild version 15E204a\n", stderr="")
        if argv[0] == "xcrun":
            return subprocess.CompletedProcess(
                argv, 0, stdout="/Applications/Xcode.app/Contents/Developer/Toolchains/"
                                "XcodeDefault.xctoolchain/usr/bin/clang\n", stderr="")
        if argv[0] == "xcode-select":
            return subprocess.CompletedProcess(argv, 0, stdout="/Applications/Xcode.app/Contents/Developer\n",
                                               stderr="")
        return subprocess.CompletedProcess(argv, 1, stdout="", stderr="unexpected command")

    @property
    def analyze_calls(self):
        return [c for c in self.calls if "analyze" in c]

    def _analyze(self, argv, kwargs):
        output_dir = next(a.split("=", 1)[1] for a in argv if a.startswith("CLANG_ANALYZER_OUTPUT_DIR="))
        scheme = argv[argv.index("-scheme") + 1]
        if self.diagnostics is not None:
            write_plist(
                Path(output_dir) / "StaticAnalyzer" / scheme / "main.plist",
                self.diagnostics,
                [f"{self.source_dir}/Sources/main.m", f"{self.source_dir}/Pods/Lib/lib.m"],
            )
        kwargs["stdout"].write(self.log_text)
        return subprocess.CompletedProcess(argv, self.returncode)


@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_plist(tmp_path):
    """Copy of the sample plist report in a reports directory."""
    target = tmp_path / "reports" / "Parser.plist"
    target.parent.mkdir(parents=True)
    target.write_bytes((FIXTURES_DIR / "sample_report.plist").read_bytes())
    return target


@pytest.fixture
def sample_sarif(tmp_path):
    target = tmp_path / "reports" / "clang.sarif"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text((FIXTURES_DIR / "sample.sarif").read_text())
    return target


@pytest.fixture
def sample_finding():
    """A fully populated critical finding."""
    return Finding(
        checker="core.NullDereference",
        category="Logic error",
        bug_type="Dereference of null pointer",
        description="Dereference of null pointer (loaded from variable 'buffer')",
        severity=Severity.CRITICAL,
        location=Location(file_path=f"{PROJECT_ROOT}/Sources/Parser.m", line_number=42, column=5),
        cwe="CWE-476",
        issue_hash="4c9e8b1f0a2d3e5f",
        scheme="MyApp",
        configuration="Debug",
        path_length=2,
        metadata={"project_root": PROJECT_ROOT,
                  "remediation": "Check the pointer before dereferencing it."},
    )


@pytest.fixture
def sample_finding_high():
    return Finding(
        checker="unix.Malloc",
        category="Memory error",
        bug_type="Memory leak",
        description="Potential leak of memory pointed to by 'entry'",
        severity=Severity.HIGH,
        location=Location(file_path=f"{PROJECT_ROOT}/Sources/Cache.c", line_number=17, column=3),
        cwe="CWE-401",
        issue_hash="9f8e7d6c5b4a3928",
        scheme="MyApp",
        configuration="Debug",
        metadata={"project_root": PROJECT_ROOT},
    )


@pytest.fixture
def sample_finding_low():
    """A low severity finding without an issue hash."""
    return Finding(
        checker="deadcode.DeadStores",
        category="Dead store",
        bug_type="Dead assignment",
        description="Value stored to 'count' is never read",
        severity=Severity.LOW,
        location=Location(file_path=f"{PROJECT_ROOT}/Sources/Parser.m", line_number=88, column=9),
        cwe="CWE-563",
        scheme="MyAppKit",
        configuration="Release",
        metadata={"project_root": PROJECT_ROOT},
    )


@pytest.fixture
def sample_result(sample_finding, sample_finding_high, sample_finding_low):
    """An analysis result with mixed severity findings and two runs."""
    return AnalysisResult(
        project="MyApp.xcworkspace",
        level="standard",
        findings=[sample_finding, sample_finding_high, sample_finding_low],
        runs=[
            AnalysisRun(scheme="MyApp", configuration="Debug", command=["xcodebuild", "analyze"],
                        exit_code=0, duration_seconds=12.5, findings_count=2),
            AnalysisRun(scheme="MyAppKit", configuration="Release", command=["xcodebuild", "analyze"],
                        exit_code=0, duration_seconds=8.0, findings_count=1),
        ],
        duration_seconds=20.5,
        project_root=PROJECT_ROOT,
    )


@pytest.fixture
def empty_result():
    return AnalysisResult(project="MyApp.xcworkspace", project_root=PROJECT_ROOT)


@pytest.fixture
def project_dir(tmp_path):
    """A project directory with a workspace and a config.json."""
    (tmp_path / "MyApp.xcworkspace").mkdir()
    (tmp_path / "Sources").mkdir()
    config = {
        "project": {
            "workspace": "MyApp.xcworkspace",
            "schemes": ["MyApp"],
            "configurations": ["Debug"],
        },
        "analysis": {
            "level": "standard",
            "output_formats": ["json"],
            "output_dir": "build/xcanalyzer",
        },
    }
    (tmp_path / "config.json").write_text(json.dumps(config))
    return tmp_path


@pytest.fixture
def project_config(project_dir):
    """Config loaded from project_dir/config.json."""
    from xcanalyzer.config import load_config
    return load_config(str(project_dir / "config.json"), environ={})


@pytest.fixture
def null_deref_diagnostics():
    return [
        make_diagnostic("core.NullDereference", 12, "Dereference of null pointer",
                        issue_hash="aaaa1111"),
        make_diagnostic("deadcode.DeadStores", 30, "Value stored to 'x' is never read",
                        category="Dead store", issue_hash="bbbb2222"),
    ]


@pytest.fixture
def fake_runner(project_dir, null_deref_diagnostics):
    return FakeRunner(project_dir.resolve(), diagnostics=null_deref_diagnostics)


@pytest.fixture
def fake_xcodebuild(fake_runner):
    return Xcodebuild(runner=fake_runner)


@pytest.fixture
def bare_config():
    """Config with built-in defaults only."""
    return Config()
