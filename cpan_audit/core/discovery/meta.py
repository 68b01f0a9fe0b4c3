"""Parser for CPAN ``META.json`` / ``MYMETA.json`` files."""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple

from .base import BaseParser, Dependency, ParsedDependencies

# `conflicts` lists versions that must NOT be installed; it is not a requirement.
AUDITED_RELATIONSHIPS = ("requires", "recommends", "suggests")


class MetaJsonParser(BaseParser):
    """Reads the ``prereqs`` section of a CPAN::Meta v2 document."""

    FILENAMES = ("META.json", "MYMETA.json")

    def __init__(self) -> None:
        super().__init__()
        self.parser_type = "meta"

    def can_parse(self, file_path: Path) -> bool:
        return file_path.name in self.FILENAMES

    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse a META.json file.

        Args:
            file_path: Path to the META file

        Returns:
            Parsed dependencies

        Raises:
            ValueError: If the file is not valid JSON
        """
        self.validate_file(file_path)

        with open(file_path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

        result = ParsedDependencies(
            source_file=file_path,
            parser_type=self.parser_type,
            metadata={"name": data.get("name"), "version": data.get("version")},
        )

        for phase, relationship, module, version in self._iter_prereqs(data):
            if self._is_ignored_module(module):
                continue
            result.add_dependency(Dependency(
                module=module,
                version_specifier=self._normalize_range(version),
                source_file=file_path,
                metadata={"phase": phase, "relationship": relationship},
            ))

        return result

    def _iter_prereqs(self, data: Dict[str, Any]) -> Iterator[Tuple[str, str, str, Any]]:
        prereqs = data.get("prereqs") or {}
        if not isinstance(prereqs, dict):
            return

        for phase, relationships in prereqs.items():
            if not isinstance(relationships, dict):
                continue
            for relationship in AUDITED_RELATIONSHIPS:
                modules = relationships.get(relationship) or {}
                if not isinstance(modules, dict):
                    continue
                for module, version in modules.items():
                    yield phase, relationship, module, version
