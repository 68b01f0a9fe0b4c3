"""Read-only advisory index built from the advisory database."""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..core.errors import IndexConstructionError

ADVISORY_ID_PATTERN = re.compile(r"^(?P<dist>.+)-(?P<year>\d{4})-(?P<number>\d+)$")

REQUIRED_FIELDS = ("id", "description", "affected_versions")


@dataclass(frozen=True)
class AdvisoryRecord:
    """A single advisory for one distribution."""

    id: str
    description: str
    affected_versions: str
    fixed_versions: Optional[str] = None
    references: Tuple[str, ...] = field(default_factory=tuple)
    distribution: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], distribution: str = "") -> "AdvisoryRecord":
        """Build a record from a raw database entry.

        Args:
            data: Raw advisory mapping
            distribution: Name of the owning distribution

        Returns:
            Validated advisory record

        Raises:
            IndexConstructionError: If a required field is missing or mistyped
        """
        if not isinstance(data, Mapping):
            raise IndexConstructionError(
                f"Advisory entry for {distribution!r} is not a mapping: {type(data).__name__}"
            )

        label = data.get("id") or "<no id>"
        for name in REQUIRED_FIELDS:
            if name not in data:
                raise IndexConstructionError(
                    f"Advisory {label} for {distribution!r} is missing required field {name!r}"
                )
            if not isinstance(data[name], str):
                raise IndexConstructionError(
                    f"Advisory {label} for {distribution!r}: field {name!r} must be a string"
                )
        if not data["id"]:
            raise IndexConstructionError(f"Advisory for {distribution!r} has an empty id")

        fixed = data.get("fixed_versions")
        if fixed is not None and not isinstance(fixed, str):
            raise IndexConstructionError(
                f"Advisory {label}: field 'fixed_versions' must be a string"
            )

        references = data.get("references") or []
        if not isinstance(references, (list, tuple)) or not all(isinstance(ref, str) for ref in references):
            raise IndexConstructionError(
                f"Advisory {label}: field 'references' must be a list of strings"
            )

        return cls(
            id=data["id"],
            description=data["description"],
            affected_versions=data["affected_versions"],
            fixed_versions=fixed or None,
            references=tuple(references),
            distribution=distribution,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "distribution": self.distribution,
            "description": self.description,
            "affected_versions": self.affected_versions,
            "fixed_versions": self.fixed_versions,
            "references": list(self.references),
        }


class AdvisoryIndex:
    """Immutable lookup tables over the advisory database.

    Several indices may coexist, e.g. one per test fixture; nothing here is
    process-global.
    """

    def __init__(
        self,
        dists: Mapping[str, Tuple[AdvisoryRecord, ...]],
        module2dist: Mapping[str, str],
    ) -> None:
        by_id: Dict[str, AdvisoryRecord] = {}
        for advisories in dists.values():
            for advisory in advisories:
                if advisory.id in by_id:
                    raise IndexConstructionError(f"Duplicate advisory id: {advisory.id}")
                by_id[advisory.id] = advisory

        self._dists: Mapping[str, Tuple[AdvisoryRecord, ...]] = MappingProxyType(
            {name: tuple(advisories) for name, advisories in dists.items()}
        )
        self._module2dist: Mapping[str, str] = MappingProxyType(dict(module2dist))
        self._by_id: Mapping[str, AdvisoryRecord] = MappingProxyType(by_id)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AdvisoryIndex":
        """Build an index from the raw database structure.

        The expected layout is ``{"dists": {name: {"advisories": [...]}},
        "module2dist": {module: name}}``; a bare advisory list is accepted in
        place of the ``{"advisories": [...]}`` wrapper.

        Raises:
            IndexConstructionError: On any structural problem
        """
        if not isinstance(data, Mapping):
            raise IndexConstructionError("Advisory database must be a mapping")

        raw_dists = data.get("dists", {})
        raw_modules = data.get("module2dist", {})
        if not isinstance(raw_dists, Mapping):
            raise IndexConstructionError("'dists' must be a mapping")
        if not isinstance(raw_modules, Mapping):
            raise IndexConstructionError("'module2dist' must be a mapping")

        dists: Dict[str, Tuple[AdvisoryRecord, ...]] = {}
        for name, entry in raw_dists.items():
            if isinstance(entry, Mapping):
                advisories = entry.get("advisories", [])
            else:
                advisories = entry
            if not isinstance(advisories, (list, tuple)):
                raise IndexConstructionError(f"Advisories for {name!r} must be a list")
            dists[name] = tuple(AdvisoryRecord.from_dict(item, name) for item in advisories)

        for module, dist in raw_modules.items():
            if not isinstance(dist, str):
                raise IndexConstructionError(f"module2dist entry for {module!r} must be a string")

        return cls(dists, raw_modules)

    def lookup_by_package(self, name: str) -> List[AdvisoryRecord]:
        """Advisories for a distribution in database order; empty if unknown."""
        return list(self._dists.get(name, ()))

    def has_package(self, name: str) -> bool:
        return name in self._dists

    def resolve_module(self, module_name: str) -> Optional[str]:
        """Distribution that ships ``module_name``, or None."""
        return self._module2dist.get(module_name)

    def find_advisory(self, advisory_id: str) -> Optional[AdvisoryRecord]:
        return self._by_id.get(advisory_id)

    @property
    def packages(self) -> List[str]:
        return sorted(self._dists)

    def stats(self) -> Dict[str, Any]:
        """Summary counts for the loaded database."""
        total_packages = len(self._dists)
        total_advisories = len(self._by_id)
        return {
            "total_packages": total_packages,
            "total_advisories": total_advisories,
            "total_modules": len(self._module2dist),
            "average_advisories_per_package": total_advisories / total_packages if total_packages else 0,
        }

    def __len__(self) -> int:
        return len(self._dists)

    def __contains__(self, name: object) -> bool:
        return name in self._dists


def parse_advisory_id(advisory_id: str) -> Optional[Tuple[str, int, int]]:
    """Split an id such as ``CPANSA-Foo-Bar-2017-001`` into (prefix, year, number)."""
    match = ADVISORY_ID_PATTERN.match(advisory_id.strip())
    if not match:
        return None
    return match.group("dist"), int(match.group("year")), int(match.group("number"))
