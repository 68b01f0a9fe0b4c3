"""Tests for advisory matching."""

import pytest

from cpan_audit.core.discovery import Dependency
from cpan_audit.core.errors import MalformedRange
from cpan_audit.core.matcher import AuditResult, QueryStatus, RangeMatcher
from cpan_audit.db.index import AdvisoryIndex


def make_matcher(*advisories, module2dist=None):
    """Matcher over a single distribution "Foo" holding the given advisories."""
    records = [
        dict(advisory, id=f"CPANSA-Foo-2020-{number:03d}", description="")
        for number, advisory in enumerate(advisories, 1)
    ]
    return RangeMatcher(AdvisoryIndex.from_mapping({
        "dists": {"Foo": {"advisories": records}},
        "module2dist": module2dist or {},
    }))


def ids(advisories):
    return [advisory.id for advisory in advisories]


class TestAdvisoriesFor:
    """Test RangeMatcher.advisories_for."""

    def test_overlapping_requirement_matches(self):
        matcher = make_matcher({"affected_versions": ">=1.0,<2.0"})
        assert len(matcher.advisories_for("Foo", ">=1.5,<1.8")) == 1

    def test_disjoint_requirement_does_not_match(self):
        matcher = make_matcher({"affected_versions": ">=1.0,<2.0"})
        assert matcher.advisories_for("Foo", ">=2.0") == []

    def test_fixed_versions_are_removed(self):
        matcher = make_matcher({"affected_versions": ">=1.0", "fixed_versions": ">=1.5"})
        assert matcher.advisories_for("Foo", ">=1.6") == []
        assert len(matcher.advisories_for("Foo", "<1.2")) == 1

    def test_effective_vulnerable_set(self, index):
        advisory = index.find_advisory("CPANSA-Foo-2019-002")
        vulnerable = RangeMatcher.effective_vulnerable_set(advisory)
        assert str(vulnerable) == ">=1.0,<1.5"

    def test_empty_fixed_range_removes_nothing(self):
        matcher = make_matcher({"affected_versions": "<2.0", "fixed_versions": ""})
        assert len(matcher.advisories_for("Foo", ">=1.0")) == 1

    def test_fully_fixed_advisory_never_matches(self):
        matcher = make_matcher({"affected_versions": ">=1.0,<2.0", "fixed_versions": ">=1.0"})
        assert matcher.advisories_for("Foo", ">=1.0") == []

    def test_boundary_is_inclusive_only_when_both_sides_are(self):
        matcher = make_matcher({"affected_versions": "<=1.0"})
        assert len(matcher.advisories_for("Foo", "1.0")) == 1
        assert matcher.advisories_for("Foo", ">1.0") == []

    def test_dev_release_ordering(self, matcher):
        assert matcher.advisories_for("Bar-Baz", "0.24") == []
        assert len(matcher.advisories_for("Bar-Baz", ">=0.23")) == 1

    @pytest.mark.parametrize("requirement", [None, "", "0", "  "])
    def test_universal_requirement_returns_all(self, matcher, requirement):
        assert ids(matcher.advisories_for("Foo", requirement)) == [
            "CPANSA-Foo-2017-001",
            "CPANSA-Foo-2019-002",
        ]

    def test_database_order_preserved(self, matcher):
        assert ids(matcher.advisories_for("Foo", "<1.2")) == [
            "CPANSA-Foo-2017-001",
            "CPANSA-Foo-2019-002",
        ]

    def test_unknown_package_is_empty(self, matcher):
        assert matcher.advisories_for("Nope", ">=1.0") == []
        assert matcher.advisories_for("Nope", ">=abc") == []

    def test_malformed_requirement_raises(self, matcher):
        with pytest.raises(MalformedRange):
            matcher.advisories_for("Foo", ">=abc")

    def test_malformed_advisory_range_raises(self):
        matcher = make_matcher({"affected_versions": "~>1.0"})
        with pytest.raises(MalformedRange):
            matcher.advisories_for("Foo", ">=1.0")


class TestQueries:
    """Test the status-reporting query helpers."""

    def test_query_release(self, matcher):
        result = matcher.query_release("Foo", ">=1.5,<1.8")
        assert result.status is QueryStatus.MATCHED
        assert ids(result.advisories) == ["CPANSA-Foo-2017-001"]

    def test_query_release_clean(self, matcher):
        result = matcher.query_release("Clean-Dist")
        assert result.status is QueryStatus.MATCHED
        assert not result.has_advisories

    def test_query_release_not_in_database(self, matcher):
        assert matcher.query_release("Nope", ">=1.0").status is QueryStatus.NOT_IN_DATABASE

    def test_query_release_failure_is_captured(self, matcher):
        result = matcher.query_release("Foo", ">=abc")
        assert result.status is QueryStatus.FAILED
        assert isinstance(result.error, MalformedRange)
        assert result.advisories == ()

    def test_query_module_resolves(self, matcher):
        result = matcher.query_module("Foo::Parser", "<1.2")
        assert result.distribution == "Foo"
        assert result.modules == ("Foo::Parser",)
        assert len(result.advisories) == 2

    def test_unresolved_module_and_missing_dist_are_distinct(self, matcher):
        unresolved = matcher.query_module("Unknown::Module")
        missing = matcher.query_module("Orphan::Module")

        assert unresolved.status is QueryStatus.UNRESOLVED_MODULE
        assert unresolved.distribution is None
        assert missing.status is QueryStatus.NOT_IN_DATABASE
        assert missing.distribution == "Gone-Dist"

    @pytest.mark.parametrize("requirement,display", [("", "Any"), ("0", "Any"), (">=1.0", ">=1.0")])
    def test_requirement_display(self, requirement, display):
        result = AuditResult("Foo", requirement, QueryStatus.MATCHED)
        assert result.requirement_display == display


class TestBatchAudit:
    """Test auditing many requirements at once."""

    def test_malformed_range_fails_only_its_query(self, matcher):
        report = matcher.audit_packages([("Foo", ">=abc"), ("Bar-Baz", ""), ("Foo", "<1.2")])

        assert [result.status for result in report.results] == [
            QueryStatus.FAILED,
            QueryStatus.MATCHED,
            QueryStatus.MATCHED,
        ]
        assert report.total_dependencies == 3
        assert report.total_advisories == 3
        assert len(report.failures) == 1

    def test_audit_groups_by_distribution(self, matcher):
        dependencies = [
            Dependency("Foo::Parser", ">=1.5,<1.6"),
            Dependency("Unknown::Module", "1.0"),
            Dependency("Foo", ">=1.7,<1.8"),
            Dependency("Bar::Baz", "0.24"),
            Dependency("Orphan::Module"),
        ]
        report = matcher.audit(dependencies)

        assert [result.distribution for result in report.results] == ["Bar-Baz", "Foo", "Gone-Dist", None]
        foo = report.results[1]
        assert foo.requirement == ">=1.5,<1.6 || >=1.7,<1.8"
        assert foo.modules == ("Foo::Parser", "Foo")
        assert ids(foo.advisories) == ["CPANSA-Foo-2017-001"]

        assert report.results[2].status is QueryStatus.NOT_IN_DATABASE
        assert [result.modules for result in report.unresolved] == [("Unknown::Module",)]
        assert [result.distribution for result in report.vulnerable] == ["Foo"]
        assert report.total_dependencies == 5

    def test_audit_uses_declared_distribution(self, matcher):
        report = matcher.audit([Dependency("Not::Indexed", "<1.2", dist="Foo")])
        assert report.results[0].distribution == "Foo"
        assert len(report.results[0].advisories) == 2

    def test_audit_with_worker_pool_matches_serial(self, matcher):
        dependencies = [
            Dependency("Foo", "<1.2"),
            Dependency("Bar::Baz", ">=0.1"),
            Dependency("Clean::Dist"),
            Dependency("Orphan::Module"),
        ]
        serial = matcher.audit(dependencies)
        threaded = matcher.audit(dependencies, max_workers=4)
        assert threaded.results == serial.results

    def test_empty_audit(self, matcher):
        report = matcher.audit([])
        assert report.results == []
        assert report.total_advisories == 0

    def test_optional_requirement_does_not_narrow_required_range(self, matcher):
        report = matcher.audit([
            Dependency("Foo::Parser", ">=1.0", metadata={"relationship": "requires"}),
            Dependency("Foo::Parser", ">=2.0", metadata={"relationship": "recommends"}),
        ])

        [result] = report.results
        assert result.requirement == ">=1.0 || >=2.0"
        assert result.modules == ("Foo::Parser",)
        assert ids(result.advisories) == ["CPANSA-Foo-2017-001", "CPANSA-Foo-2019-002"]

    def test_unconstrained_declaration_covers_all_versions(self, matcher):
        report = matcher.audit([Dependency("Foo", ">=2.0"), Dependency("Foo::Parser")])
        assert report.results[0].requirement_display == "Any"
        assert len(report.results[0].advisories) == 2

    def test_alternatives_combine_as_ranges_not_text(self, matcher):
        report = matcher.audit([
            Dependency("Foo", "<1.0 || >=2.5"),
            Dependency("Foo::Parser", ">=1.8"),
        ])

        [result] = report.results
        assert result.requirement == "<1.0 || >=2.5 || >=1.8"
        assert ids(result.advisories) == ["CPANSA-Foo-2017-001"]

    def test_malformed_range_fails_only_its_dependency(self, matcher):
        report = matcher.audit([
            Dependency("Foo::Parser", ">=abc"),
            Dependency("Foo", "<1.2"),
            Dependency("Bar::Baz", ">=0.1"),
        ])

        assert [(result.distribution, result.requirement, result.status) for result in report.results] == [
            ("Bar-Baz", ">=0.1", QueryStatus.MATCHED),
            ("Foo", "<1.2", QueryStatus.MATCHED),
            ("Foo", ">=abc", QueryStatus.FAILED),
        ]
        assert len(report.results[1].advisories) == 2
        assert report.results[1].modules == ("Foo",)
        assert isinstance(report.failures[0].error, MalformedRange)
        assert report.failures[0].modules == ("Foo::Parser",)

    def test_all_ranges_malformed(self, matcher):
        report = matcher.audit([Dependency("Foo", "~1.0"), Dependency("Foo::Parser", "=>2")])
        assert [result.status for result in report.results] == [QueryStatus.FAILED, QueryStatus.FAILED]
        assert report.total_advisories == 0

    def test_missing_distribution_is_not_parsed(self, matcher):
        report = matcher.audit([Dependency("Orphan::Module", ">=abc")])
        assert report.results[0].status is QueryStatus.NOT_IN_DATABASE
