"""Advisory matching: which advisories overlap a declared requirement range."""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..db.index import AdvisoryIndex, AdvisoryRecord
from .discovery import Dependency
from .errors import AuditError
from .ranges import UNION_SEPARATOR, RangeSet, parse_range


class QueryStatus(str, Enum):
    """Outcome of a single package or module query."""

    MATCHED = "matched"
    NOT_IN_DATABASE = "not_in_database"
    UNRESOLVED_MODULE = "unresolved_module"
    FAILED = "failed"


@dataclass(frozen=True)
class AuditResult:
    """Result of auditing one distribution against one requirement range."""

    distribution: Optional[str]
    requirement: str
    status: QueryStatus
    advisories: Tuple[AdvisoryRecord, ...] = ()
    error: Optional[AuditError] = None
    modules: Tuple[str, ...] = ()

    @property
    def requirement_display(self) -> str:
        """Requirement as shown to users; unconstrained ranges read as 'Any'."""
        requirement = self.requirement.strip()
        if requirement in ("", "0"):
            return "Any"
        return requirement

    @property
    def has_advisories(self) -> bool:
        return bool(self.advisories)


@dataclass
class AuditReport:
    """Ordered results for a batch of queries."""

    results: List[AuditResult] = field(default_factory=list)
    total_dependencies: int = 0
    scan_time: float = 0.0

    @property
    def total_advisories(self) -> int:
        return sum(len(result.advisories) for result in self.results)

    @property
    def vulnerable(self) -> List[AuditResult]:
        return [result for result in self.results if result.has_advisories]

    @property
    def failures(self) -> List[AuditResult]:
        return [result for result in self.results if result.status is QueryStatus.FAILED]

    @property
    def unresolved(self) -> List[AuditResult]:
        return [result for result in self.results if result.status is QueryStatus.UNRESOLVED_MODULE]


class RangeMatcher:
    """Answers "which advisories apply to this package under this range?".

    The matcher only reads from its :class:`AdvisoryIndex`, so one instance can
    serve queries from several threads at once.
    """

    def __init__(self, index: AdvisoryIndex) -> None:
        self.index = index

    @staticmethod
    def effective_vulnerable_set(advisory: AdvisoryRecord) -> RangeSet:
        """Affected range minus fixed range.

        Raises:
            MalformedRange: If either range in the advisory is malformed
        """
        affected = parse_range(advisory.affected_versions)
        if advisory.fixed_versions:
            return affected.difference(parse_range(advisory.fixed_versions))
        return affected

    def is_affected(self, advisory: AdvisoryRecord, requirement: RangeSet) -> bool:
        return requirement.overlaps(self.effective_vulnerable_set(advisory))

    def advisories_for(self, package_name: str, requirement_range_text: Optional[str] = "") -> List[AdvisoryRecord]:
        """Advisories whose vulnerable versions overlap the requirement.

        Args:
            package_name: Distribution name
            requirement_range_text: Declared range; empty or "0" means any version

        Returns:
            Matching advisories in database order; empty for unknown packages

        Raises:
            MalformedRange: If the requirement (or an advisory range) is malformed
        """
        advisories = self.index.lookup_by_package(package_name)
        if not advisories:
            return []

        return self._select(advisories, parse_range(requirement_range_text))

    def _select(self, advisories: List[AdvisoryRecord], requirement: RangeSet) -> List[AdvisoryRecord]:
        if requirement.is_universal:
            return advisories
        return [advisory for advisory in advisories if self.is_affected(advisory, requirement)]

    def query_release(self, distribution: str, requirement: Optional[str] = "", modules: Sequence[str] = ()) -> AuditResult:
        """Query one distribution, capturing failures in the result."""
        requirement = requirement or ""
        if not self.index.has_package(distribution):
            return AuditResult(distribution, requirement, QueryStatus.NOT_IN_DATABASE, modules=tuple(modules))

        try:
            parsed = parse_range(requirement)
        except AuditError as e:
            return AuditResult(distribution, requirement, QueryStatus.FAILED, error=e, modules=tuple(modules))

        return self.query_range(distribution, parsed, requirement, modules)

    def query_range(
        self,
        distribution: str,
        requirement: RangeSet,
        requirement_text: str = "",
        modules: Sequence[str] = ()
    ) -> AuditResult:
        """Query one distribution against an already parsed requirement.

        Args:
            distribution: Distribution name
            requirement: Parsed requirement range
            requirement_text: Range text reported in the result
            modules: Modules that led to this distribution

        Returns:
            Query result; a malformed advisory range is reported as a failure
        """
        if not self.index.has_package(distribution):
            return AuditResult(distribution, requirement_text, QueryStatus.NOT_IN_DATABASE, modules=tuple(modules))

        try:
            advisories = self._select(self.index.lookup_by_package(distribution), requirement)
        except AuditError as e:
            return AuditResult(distribution, requirement_text, QueryStatus.FAILED, error=e, modules=tuple(modules))

        return AuditResult(distribution, requirement_text, QueryStatus.MATCHED, tuple(advisories), modules=tuple(modules))

    def query_module(self, module: str, requirement: Optional[str] = "") -> AuditResult:
        """Resolve a module to its distribution, then query it."""
        distribution = self.index.resolve_module(module)
        if distribution is None:
            return AuditResult(None, requirement or "", QueryStatus.UNRESOLVED_MODULE, modules=(module,))
        return self.query_release(distribution, requirement, modules=(module,))

    def audit_packages(
        self,
        requirements: Iterable[Tuple[str, str]],
        max_workers: int = 1
    ) -> AuditReport:
        """Query (distribution, range) pairs in the given order.

        A malformed range fails only its own query.
        """
        pairs = list(requirements)
        start_time = time.perf_counter()
        results = self._run(lambda pair: self.query_release(pair[0], pair[1]), pairs, max_workers)
        return AuditReport(results, len(pairs), time.perf_counter() - start_time)

    def audit(self, dependencies: Iterable[Dependency], max_workers: int = 1) -> AuditReport:
        """Audit discovered dependencies.

        Modules are resolved to distributions. Several requirements on the
        same distribution are audited once against the union of their ranges,
        so an optional or narrower declaration never hides an advisory that
        another declaration can reach. A malformed range fails only its own
        dependency; the remaining ranges of that distribution are still
        audited. Results are sorted by distribution name, followed by modules
        that resolve to no distribution.

        Args:
            dependencies: Discovered module requirements
            max_workers: Thread pool size for evaluating distributions

        Returns:
            Audit report
        """
        dependencies = list(dependencies)
        start_time = time.perf_counter()

        grouped: Dict[str, List[Dependency]] = {}
        unresolved: List[AuditResult] = []
        for dependency in dependencies:
            distribution = dependency.dist or self.index.resolve_module(dependency.module)
            if distribution is None:
                unresolved.append(AuditResult(
                    None,
                    dependency.required_range,
                    QueryStatus.UNRESOLVED_MODULE,
                    modules=(dependency.module,),
                ))
                continue
            grouped.setdefault(distribution, []).append(dependency)

        queries = []
        failures: Dict[str, List[AuditResult]] = {}
        for distribution, deps in sorted(grouped.items()):
            if not self.index.has_package(distribution):
                text = f" {UNION_SEPARATOR} ".join(dict.fromkeys(dep.required_range for dep in deps))
                queries.append((distribution, RangeSet.universal(), text, self._modules(deps)))
                continue

            ranges: Dict[str, RangeSet] = {}
            valid: List[Dependency] = []
            for dep in deps:
                try:
                    ranges.setdefault(dep.required_range, parse_range(dep.required_range))
                except AuditError as e:
                    failures.setdefault(distribution, []).append(AuditResult(
                        distribution,
                        dep.required_range,
                        QueryStatus.FAILED,
                        error=e,
                        modules=(dep.module,),
                    ))
                    continue
                valid.append(dep)

            if valid:
                requirement, text = self._union(ranges)
                queries.append((distribution, requirement, text, self._modules(valid)))

        queried = self._run(lambda query: self.query_range(*query), queries, max_workers)

        results: List[AuditResult] = []
        by_distribution = {result.distribution: result for result in queried}
        for distribution in sorted(grouped):
            if distribution in by_distribution:
                results.append(by_distribution[distribution])
            results.extend(failures.get(distribution, ()))

        return AuditReport(results + unresolved, len(dependencies), time.perf_counter() - start_time)

    @staticmethod
    def _union(ranges: Dict[str, RangeSet]) -> Tuple[RangeSet, str]:
        """Union of parsed ranges plus the matching ``||``-joined range text."""
        combined = RangeSet.empty()
        for requirement in ranges.values():
            combined = combined | requirement
        if combined.is_universal:
            return combined, ""
        return combined, f" {UNION_SEPARATOR} ".join(ranges)

    @staticmethod
    def _modules(dependencies: Sequence[Dependency]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(dep.module for dep in dependencies))

    @staticmethod
    def _run(func: Callable, items: list, max_workers: int) -> List[AuditResult]:
        if max_workers <= 1 or len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(func, items))
