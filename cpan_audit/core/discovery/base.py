"""Base parser class and data models for dependency discovery."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set


@dataclass
class Dependency:
    """A module requirement found in a project manifest."""

    module: str
    version_specifier: Optional[str] = None
    dist: Optional[str] = None
    source_file: Optional[Path] = None
    line_number: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate and normalize the dependency."""
        if not self.module or not self.module.strip():
            raise ValueError("Dependency module cannot be empty")

        self.module = self.module.strip()
        if self.version_specifier is not None:
            self.version_specifier = str(self.version_specifier).strip()

    @property
    def required_range(self) -> str:
        """Range text as declared; empty means any version."""
        return self.version_specifier or ""

    def __hash__(self) -> int:
        return hash((self.module, self.required_range))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Dependency):
            return False
        return self.module == other.module and self.required_range == other.required_range


@dataclass
class ParsedDependencies:
    """Container for dependencies parsed from one manifest."""

    dependencies: List[Dependency] = field(default_factory=list)
    source_file: Optional[Path] = None
    parser_type: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_dependency(self, dependency: Dependency) -> None:
        self.dependencies.append(dependency)

    def get_module_names(self) -> Set[str]:
        return {dep.module for dep in self.dependencies}

    def find_dependency(self, module: str) -> Optional[Dependency]:
        for dep in self.dependencies:
            if dep.module == module:
                return dep
        return None

    def filter_by_phase(self, phase: str) -> List[Dependency]:
        """Dependencies declared for one phase (runtime, test, build, ...)."""
        return [dep for dep in self.dependencies if dep.metadata.get("phase") == phase]


class BaseParser(ABC):
    """Abstract base class for manifest parsers."""

    # Modules that never map to a distribution in the advisory database.
    IGNORED_MODULES = frozenset({"perl"})

    def __init__(self) -> None:
        self.parser_type: str = ""

    @abstractmethod
    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the given file."""

    @abstractmethod
    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse a manifest file.

        Args:
            file_path: Path to the file to parse

        Returns:
            Parsed dependencies from the file
        """

    def validate_file(self, file_path: Path) -> None:
        """Validate that the file exists and is readable.

        Raises:
            FileNotFoundError: If file doesn't exist
            PermissionError: If file is not readable
        """
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if not file_path.is_file():
            raise ValueError(f"Path is not a file: {file_path}")

        if not os.access(file_path, os.R_OK):
            raise PermissionError(f"File is not readable: {file_path}")

    def _is_ignored_module(self, module: str) -> bool:
        return module in self.IGNORED_MODULES

    @staticmethod
    def _normalize_range(specifier: Any) -> str:
        """Turn a manifest version value into range text.

        META files store numbers as JSON numbers on occasion, and cpanfiles
        often write ``0`` for "any version".
        """
        if specifier is None:
            return ""
        text = str(specifier).strip()
        return "" if text == "0" else text
