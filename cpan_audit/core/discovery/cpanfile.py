"""Parser for ``cpanfile`` manifests."""

import re
from pathlib import Path
from typing import List, Optional, Tuple

from .base import BaseParser, Dependency, ParsedDependencies

RELATIONSHIPS = {
    "requires": ("runtime", "requires"),
    "recommends": ("runtime", "recommends"),
    "suggests": ("runtime", "suggests"),
    "test_requires": ("test", "requires"),
    "build_requires": ("build", "requires"),
    "configure_requires": ("configure", "requires"),
    "author_requires": ("develop", "requires"),
}

_STATEMENT = re.compile(
    r"""^\s*(?P<keyword>\w+)\s*\(?\s*
        (?P<quote>['"])(?P<module>[\w:.-]+)(?P=quote)
        (?:\s*(?:,|=>)\s*(?P<version>'[^']*'|"[^"]*"|[\w.]+))?
    """,
    re.VERBOSE,
)
# `on 'test' => sub {` and `feature 'sqlite', 'SQLite support' => sub {`
_BLOCK = re.compile(
    r"""^\s*(?P<kind>on|feature)\s*\(?\s*['"]?(?P<name>[\w-]+)['"]?[^{]*\bsub\s*\{"""
)


class CpanfileParser(BaseParser):
    """Reads ``requires 'Module', '>= 1.0';`` style statements from a cpanfile."""

    def __init__(self) -> None:
        super().__init__()
        self.parser_type = "cpanfile"

    def can_parse(self, file_path: Path) -> bool:
        return file_path.name == "cpanfile"

    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse a cpanfile.

        Args:
            file_path: Path to the cpanfile

        Returns:
            Parsed dependencies
        """
        self.validate_file(file_path)

        result = ParsedDependencies(source_file=file_path, parser_type=self.parser_type)

        # open blocks as (kind, name, brace depth outside the block)
        blocks: List[Tuple[str, str, int]] = []
        depth = 0

        with open(file_path, "r", encoding="utf-8") as f:
            for line_num, raw_line in enumerate(f, 1):
                line = re.sub(r"#.*$", "", raw_line).strip()
                if not line:
                    continue

                block = _BLOCK.match(line)
                if block:
                    blocks.append((block.group("kind"), block.group("name"), depth))
                    depth += 1
                    line = line[block.end():].strip()

                dependency = self._parse_statement(line, line_num, file_path, blocks)
                if dependency:
                    result.add_dependency(dependency)

                depth += line.count("{") - line.count("}")
                while blocks and depth <= blocks[-1][2]:
                    blocks.pop()

        return result

    def _parse_statement(
        self,
        line: str,
        line_num: int,
        file_path: Path,
        blocks: List[Tuple[str, str, int]],
    ) -> Optional[Dependency]:
        """Parse a single ``requires``-style statement.

        Args:
            line: Statement text with comments removed
            line_num: Line number for reporting
            file_path: Manifest being parsed
            blocks: Enclosing ``on``/``feature`` blocks

        Returns:
            Parsed dependency or None if the line is not a requirement
        """
        match = _STATEMENT.match(line)
        if not match:
            return None

        keyword = match.group("keyword")
        if keyword not in RELATIONSHIPS:
            return None

        module = match.group("module")
        if self._is_ignored_module(module):
            return None

        phase, relationship = RELATIONSHIPS[keyword]
        metadata = {"phase": phase, "relationship": relationship}
        for kind, name, _ in blocks:
            if kind == "on" and keyword in ("requires", "recommends", "suggests"):
                metadata["phase"] = name
            elif kind == "feature":
                metadata["feature"] = name

        version = match.group("version")
        if version and version[0] in "'\"":
            version = version[1:-1]

        return Dependency(
            module=module,
            version_specifier=self._normalize_range(version),
            source_file=file_path,
            line_number=line_num,
            metadata=metadata,
        )
