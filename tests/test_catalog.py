"""Tests for xcanalyzer.catalog"""

import pytest
import yaml

from xcanalyzer.catalog import CheckerCatalog, load_catalog
from xcanalyzer.exceptions import ConfigError
from xcanalyzer.models import Finding, Location, Severity


@pytest.fixture
def catalog():
    return load_catalog()


def _finding(checker, category=""):
    return Finding(
        checker=checker, category=category, bug_type="Bug", description="desc",
        severity=Severity.MEDIUM, location=Location(file_path="/src/a.m", line_number=1),
    )


class TestLoading:
    def test_bundled_catalog_loads(self, catalog):
        stats = catalog.stats
        assert stats["total_checkers"] > 30
        assert stats["files_loaded"] == 1
        assert set(stats["levels"]) == {"quick", "standard", "deep", "security"}

    def test_user_catalog_overrides_by_id(self, tmp_path):
        (tmp_path / "team.yaml").write_text(yaml.safe_dump({
            "checkers": [
                {"id": "deadcode.DeadStores", "name": "Dead store", "category": "Dead store",
                 "severity": "high"},
                {"id": "alpha.security.ArrayBound", "name": "Array bound", "category": "Security",
                 "severity": "critical"},
            ]
        }))
        catalog = load_catalog(str(tmp_path))
        assert catalog.severity_for("deadcode.DeadStores") is Severity.HIGH
        assert catalog.severity_for("alpha.security.ArrayBound") is Severity.CRITICAL
        assert len([c for c in catalog.checkers if c.id == "deadcode.DeadStores"]) == 1

    def test_broken_user_catalog_is_skipped(self, tmp_path, caplog):
        (tmp_path / "broken.yaml").write_text("checkers: [unclosed")
        catalog = load_catalog(str(tmp_path))
        assert catalog.stats["files_loaded"] == 1
        assert "broken.yaml" in caplog.text

    def test_load_file_error(self, tmp_path):
        with pytest.raises(ConfigError):
            CheckerCatalog().load_file(tmp_path / "missing.yaml")

    def test_entry_without_id_skipped(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.safe_dump({"checkers": [{"name": "no id"}, {"id": "x.Y", "severity": "low"}]}))
        parsed = CheckerCatalog().load_file(path)
        assert [c.id for c in parsed] == ["x.Y"]


class TestSeverity:
    def test_exact_id(self, catalog):
        assert catalog.severity_for("core.NullDereference") is Severity.CRITICAL
        assert catalog.severity_for("deadcode.DeadStores") is Severity.LOW

    def test_longest_prefix_wins(self, catalog):
        assert catalog.severity_for("security.insecureAPI.bcmp") is Severity.MEDIUM
        assert catalog.severity_for("core.uninitialized.Assign") is Severity.HIGH
        assert catalog.severity_for("optin.osx.cocoa.localizability.NonLocalizedStringChecker") is Severity.INFO

    def test_category_fallback(self, catalog):
        assert catalog.severity_for("clang-diagnostic.unused-variable", "Compiler warning") is Severity.LOW
        assert catalog.severity_for("unknown/bug", "Logic error") is Severity.HIGH

    def test_default_medium(self, catalog):
        assert catalog.severity_for("totally.Unknown") is Severity.MEDIUM

    def test_override_exact_and_prefix(self):
        catalog = load_catalog(severity_overrides={
            "deadcode.DeadStores": "info",
            "security.": "high",
        })
        assert catalog.severity_for("deadcode.DeadStores") is Severity.INFO
        assert catalog.severity_for("security.insecureAPI.rand") is Severity.HIGH
        assert catalog.severity_for("core.NullDereference") is Severity.CRITICAL

    def test_invalid_override(self):
        with pytest.raises(ValueError):
            CheckerCatalog(severity_overrides={"core.": "urgent"})


class TestClassify:
    def test_sets_severity_and_metadata(self, catalog):
        finding = catalog.classify(_finding("core.NullDereference", "Logic error"))
        assert finding.severity is Severity.CRITICAL
        assert finding.cwe == "CWE-476"
        assert finding.metadata["checker_name"]
        assert finding.metadata["remediation"]

    def test_keeps_existing_cwe(self, catalog):
        finding = _finding("core.NullDereference")
        finding.cwe = "CWE-690"
        assert catalog.classify(finding).cwe == "CWE-690"

    def test_unknown_checker(self, catalog):
        finding = catalog.classify(_finding("vendor.Custom", "Memory error"))
        assert finding.severity is Severity.HIGH
        assert finding.cwe is None
        assert "checker_name" not in finding.metadata


class TestLevels:
    def test_build_settings(self, catalog):
        quick = catalog.build_settings_for("quick")
        deep = catalog.build_settings_for("deep")
        security = catalog.build_settings_for("security")
        assert quick["CLANG_STATIC_ANALYZER_MODE"] == "shallow"
        assert deep["CLANG_STATIC_ANALYZER_MODE"] == "deep"
        assert security["CLANG_ANALYZER_SECURITY_INSECUREAPI_STRCPY"] == "YES"
        assert "CLANG_ANALYZER_SECURITY_INSECUREAPI_STRCPY" not in deep
        assert deep.items() <= security.items()

    def test_build_settings_are_strings(self, catalog):
        for level in ("quick", "standard", "deep", "security"):
            assert all(isinstance(v, str) for v in catalog.build_settings_for(level).values())

    def test_build_settings_copy(self, catalog):
        catalog.build_settings_for("quick")["EXTRA"] = "1"
        assert "EXTRA" not in catalog.build_settings_for("quick")

    def test_unknown_level(self, catalog):
        with pytest.raises(ConfigError, match="paranoid"):
            catalog.build_settings_for("paranoid")

    def test_checkers_for_level(self, catalog):
        quick = {c.id for c in catalog.checkers_for_level("quick")}
        security = {c.id for c in catalog.checkers_for_level("security")}
        assert "core.NullDereference" in quick
        assert "security.insecureAPI.strcpy" not in quick
        assert "security.insecureAPI.strcpy" in security
        assert quick < security
