"""Tests for xcanalyzer.dedup"""

from xcanalyzer.dedup import apply_filters, deduplicate, matches_checker, matches_path
from xcanalyzer.models import Finding


def _copy(finding, **changes):
    other = Finding.from_dict(finding.to_dict())
    for key, value in changes.items():
        setattr(other, key, value)
    return other


class TestDeduplicate:
    def test_distinct_findings_kept_in_order(self, sample_finding, sample_finding_high, sample_finding_low):
        result = deduplicate([sample_finding_low, sample_finding, sample_finding_high])
        assert result == [sample_finding_low, sample_finding, sample_finding_high]

    def test_collapses_same_fingerprint(self, sample_finding):
        release = _copy(sample_finding, configuration="Release")
        kit = _copy(sample_finding, scheme="MyAppKit")
        result = deduplicate([sample_finding, release, kit])

        assert len(result) == 1
        kept = result[0]
        assert kept is sample_finding
        assert kept.metadata["schemes"] == ["MyApp", "MyAppKit"]
        assert kept.metadata["configurations"] == ["Debug", "Release"]
        assert kept.metadata["occurrences"] == 3

    def test_single_occurrence_metadata(self, sample_finding):
        kept = deduplicate([sample_finding])[0]
        assert kept.metadata["schemes"] == ["MyApp"]
        assert "occurrences" not in kept.metadata

    def test_header_reported_from_two_units(self, sample_finding_low):
        # Same header diagnostic, reported by two translation units on a moved line
        other = _copy(sample_finding_low)
        other.location.line_number = 90
        assert len(deduplicate([sample_finding_low, other])) == 1

    def test_empty(self):
        assert deduplicate([]) == []


class TestMatching:
    def test_checker_exact_and_prefix(self):
        assert matches_checker("deadcode.DeadStores", ["deadcode.DeadStores"])
        assert matches_checker("deadcode.DeadStores", ["deadcode"])
        assert matches_checker("deadcode.DeadStores", ["deadcode."])
        assert not matches_checker("deadcodeX.Other", ["deadcode"])
        assert not matches_checker("core.NullDereference", [])

    def test_path_globs(self):
        assert matches_path("/Users/dev/MyApp/Pods/Lib/lib.m", ["*/Pods/*"])
        assert not matches_path("/Users/dev/MyApp/Sources/main.m", ["*/Pods/*", "*/Carthage/*"])


class TestApplyFilters:
    def test_excluded_paths(self, sample_finding, sample_finding_high):
        sample_finding_high.location.file_path = "/Users/dev/MyApp/Pods/Cache/Cache.c"
        assert apply_filters([sample_finding, sample_finding_high], exclude_paths=["*/Pods/*"]) == [sample_finding]

    def test_disabled_checkers(self, sample_finding, sample_finding_low):
        kept = apply_filters([sample_finding, sample_finding_low], disabled_checkers=["deadcode"])
        assert kept == [sample_finding]

    def test_no_filters(self, sample_finding, sample_finding_low):
        assert apply_filters([sample_finding, sample_finding_low]) == [sample_finding, sample_finding_low]
