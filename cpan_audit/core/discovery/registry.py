"""Registry of manifest parsers."""

from pathlib import Path
from typing import Dict, List, Optional

from .base import BaseParser, ParsedDependencies


class ParserRegistry:
    """Registry for manifest parsers keyed by parser type."""

    def __init__(self) -> None:
        self._parsers: Dict[str, BaseParser] = {}

    def register(self, parser_type: str, parser: BaseParser) -> None:
        """Register a parser.

        Args:
            parser_type: Parser type (e.g. 'cpanfile', 'meta')
            parser: Parser instance to register
        """
        self._parsers[parser_type] = parser

    def get_parser(self, parser_type: str) -> Optional[BaseParser]:
        return self._parsers.get(parser_type)

    def find_parser_for_file(self, file_path: Path) -> Optional[BaseParser]:
        """Find a parser that can handle the given file.

        Args:
            file_path: Path to the file

        Returns:
            Parser that can handle the file or None
        """
        for parser in self._parsers.values():
            if parser.can_parse(file_path):
                return parser
        return None

    def get_supported_parser_types(self) -> List[str]:
        return list(self._parsers)

    def parse_file(self, file_path: Path) -> Optional[ParsedDependencies]:
        """Parse a file using the appropriate parser.

        Returns:
            Parsed dependencies or None if no parser found
        """
        parser = self.find_parser_for_file(file_path)
        if parser:
            return parser.parse(file_path)
        return None

