"""Tests for xcanalyzer.quality_gate"""

from xcanalyzer.baseline import diff_results
from xcanalyzer.config import config_from_dict
from xcanalyzer.models import AnalysisResult, Severity
from xcanalyzer.quality_gate import Thresholds, evaluate


class TestThresholds:
    def test_defaults(self):
        thresholds = Thresholds()
        assert thresholds.max_critical == 0
        assert thresholds.limit_for(Severity.HIGH) is None
        assert thresholds.limit_for(Severity.INFO) is None

    def test_from_config(self):
        config = config_from_dict({
            "analysis": {"max_issues": 100, "fail_on_warnings": True},
            "quality_gate": {"max_critical_issues": 1, "max_high_issues": 5, "max_low_issues": 50,
                             "new_issues_only": True},
        })
        thresholds = Thresholds.from_config(config)
        assert thresholds.max_critical == 1
        assert thresholds.max_high == 5
        assert thresholds.max_medium is None
        assert thresholds.max_low == 50
        assert thresholds.max_total == 100
        assert thresholds.fail_on_warnings is True
        assert thresholds.new_issues_only is True


class TestEvaluate:
    def test_empty_result_passes(self, empty_result):
        gate = evaluate(empty_result, Thresholds())
        assert gate.passed
        assert gate.exit_code == 0
        assert gate.describe() == "Quality gate PASSED (0 findings counted)"

    def test_default_critical_limit(self, sample_result):
        gate = evaluate(sample_result, Thresholds())
        assert not gate.passed
        assert gate.exit_code == 1
        assert [v.rule for v in gate.violations] == ["max_critical_issues"]
        assert gate.violations[0].count == 1
        assert gate.violations[0].limit == 0

    def test_limits_equal_to_count_pass(self, sample_result):
        gate = evaluate(sample_result, Thresholds(max_critical=1, max_high=1, max_low=1, max_total=3))
        assert gate.passed
        assert gate.counted == {"critical": 1, "high": 1, "medium": 0, "low": 1, "info": 0}

    def test_multiple_violations(self, sample_result):
        gate = evaluate(sample_result, Thresholds(max_critical=None, max_high=0, max_total=2))
        assert [v.rule for v in gate.violations] == ["max_high_issues", "max_issues"]
        text = gate.describe()
        assert text.startswith("Quality gate FAILED (2 violations):")
        assert "1 high findings exceed the limit of 0" in text
        assert "3 findings exceed the total limit of 2" in text

    def test_fail_on_warnings_ignores_info(self, sample_result):
        for finding in sample_result.findings:
            finding.severity = Severity.INFO
        assert evaluate(sample_result, Thresholds(fail_on_warnings=True)).passed

        sample_result.findings[0].severity = Severity.LOW
        gate = evaluate(sample_result, Thresholds(fail_on_warnings=True))
        assert [v.rule for v in gate.violations] == ["fail_on_warnings"]
        assert gate.violations[0].count == 1

    def test_failed_run_fails_gate(self, empty_result, sample_result):
        empty_result.runs = sample_result.runs
        empty_result.runs[1].exit_code = 65
        gate = evaluate(empty_result, Thresholds(max_critical=None))
        assert not gate.passed
        assert gate.violations[0].rule == "analysis-error"
        assert "MyAppKit (Release)" in gate.violations[0].message

    def test_new_issues_only(self, sample_result, sample_finding, sample_finding_low):
        baseline = AnalysisResult(project="MyApp.xcworkspace", findings=[sample_finding, sample_finding_low])
        diff = diff_results(baseline, sample_result)

        gate = evaluate(sample_result, Thresholds(max_high=0, new_issues_only=True), diff)
        assert gate.scope == "new"
        assert gate.counted["critical"] == 0
        assert gate.counted["high"] == 1
        assert [v.rule for v in gate.violations] == ["max_high_issues"]

    def test_new_issues_only_without_baseline(self, sample_result, caplog):
        gate = evaluate(sample_result, Thresholds(new_issues_only=True))
        assert gate.scope == "all"
        assert not gate.passed
        assert "no baseline" in caplog.text

    def test_diff_ignored_unless_new_issues_only(self, sample_result):
        diff = diff_results(sample_result, sample_result)
        gate = evaluate(sample_result, Thresholds(), diff)
        assert gate.scope == "all"
        assert not gate.passed

    def test_to_dict(self, sample_result):
        data = evaluate(sample_result, Thresholds()).to_dict()
        assert data["passed"] is False
        assert data["violations"][0]["rule"] == "max_critical_issues"
        assert data["counted"]["critical"] == 1
