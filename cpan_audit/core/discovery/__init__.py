"""Dependency discovery from Perl project manifests."""

from .base import BaseParser, Dependency, ParsedDependencies
from .cpanfile import CpanfileParser
from .meta import MetaJsonParser
from .registry import ParserRegistry

# Register built-in parsers
registry = ParserRegistry()
registry.register("cpanfile", CpanfileParser())
registry.register("meta", MetaJsonParser())

# Convenience exports
DependencyParser = registry
__all__ = [
    "BaseParser",
    "CpanfileParser",
    "Dependency",
    "DependencyParser",
    "MetaJsonParser",
    "ParsedDependencies",
    "ParserRegistry",
    "registry",
]
