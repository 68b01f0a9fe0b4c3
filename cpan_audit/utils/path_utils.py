"""Path utilities for finding Perl manifests and filtering paths."""

import fnmatch
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional


@dataclass
class ManifestFile:
    """A manifest file found in a project tree."""

    path: Path
    parser_type: str

    def __post_init__(self) -> None:
        if not self.path.exists():
            raise ValueError(f"Manifest file does not exist: {self.path}")


class PathFilter:
    """Filters paths based on glob patterns."""

    DEFAULT_IGNORE_PATTERNS = [
        "**/.git/**",
        "**/local/**",
        "**/blib/**",
        "**/.build/**",
        "**/_build/**",
        "**/extlib/**",
        "**/node_modules/**",
    ]

    def __init__(self, ignore_patterns: Optional[List[str]] = None) -> None:
        """Initialize path filter.

        Args:
            ignore_patterns: Extra glob patterns to ignore on top of the defaults
        """
        self.ignore_patterns = list(self.DEFAULT_IGNORE_PATTERNS)
        if ignore_patterns:
            self.ignore_patterns.extend(ignore_patterns)

    def is_ignored(self, path: Path) -> bool:
        path_str = path.as_posix()
        return any(fnmatch.fnmatch(path_str, pattern) for pattern in self.ignore_patterns)


class ManifestFinder:
    """Finds dependency manifests in a project directory."""

    MANIFEST_PATTERNS = {
        "cpanfile": "cpanfile",
        "META.json": "meta",
        "MYMETA.json": "meta",
    }

    def __init__(self, ignore_patterns: Optional[List[str]] = None) -> None:
        self.path_filter = PathFilter(ignore_patterns)

    def find_manifests(self, root_path: Path) -> List[ManifestFile]:
        """Find all manifests in a directory tree, sorted by path.

        Args:
            root_path: Root directory (or a single manifest file)

        Returns:
            List of found manifests

        Raises:
            ValueError: If the root path does not exist
        """
        if not root_path.exists():
            raise ValueError(f"Root path does not exist: {root_path}")

        if root_path.is_file():
            candidates: Iterator[Path] = iter([root_path])
        else:
            candidates = self._walk_files(root_path)

        manifests = []
        for file_path in candidates:
            parser_type = self.MANIFEST_PATTERNS.get(file_path.name)
            if parser_type:
                manifests.append(ManifestFile(path=file_path, parser_type=parser_type))

        return sorted(manifests, key=lambda manifest: manifest.path)

    def _walk_files(self, root_path: Path) -> Iterator[Path]:
        for file_path in root_path.rglob("*"):
            relative = file_path.relative_to(root_path)
            if file_path.is_file() and not self.path_filter.is_ignored(Path("/") / relative):
                yield file_path


def find_manifests(root_path: Path, ignore_patterns: Optional[List[str]] = None) -> List[ManifestFile]:
    """Convenience function to find manifest files.

    Args:
        root_path: Root directory to search
        ignore_patterns: Additional ignore patterns

    Returns:
        List of found manifests
    """
    return ManifestFinder(ignore_patterns).find_manifests(root_path)


def is_ignored_path(path: Path, ignore_patterns: Optional[List[str]] = None) -> bool:
    return PathFilter(ignore_patterns).is_ignored(path)
