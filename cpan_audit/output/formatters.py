"""Output formatters for cpan-audit results."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.text import Text

from ..core.matcher import AuditReport, AuditResult
from ..db.index import AdvisoryRecord
from ..utils.logging import get_logger


class ConsoleFormatter:
    """Renders audit results as rich text lines.

    The ``render_*`` methods are pure and return :class:`rich.text.Text`
    objects; the ``print_*`` methods send them to the console.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        verbose: bool = False,
        ascii_only: bool = False
    ) -> None:
        """Initialize the console formatter.

        Args:
            console: Rich console instance
            verbose: Show advisory descriptions, ranges and references
            ascii_only: Use ASCII bullets only
        """
        self.console = console or Console(highlight=False)
        self.verbose = verbose
        self.bullet = "*" if ascii_only else "•"
        self.logger = get_logger("ConsoleFormatter")

    def render_advisory(self, advisory: AdvisoryRecord, verbose: Optional[bool] = None) -> List[Text]:
        """Render one advisory: its id, plus details in verbose mode."""
        verbose = self.verbose if verbose is None else verbose

        lines = [Text(f"  {self.bullet} {advisory.id}", style="bold")]
        if not verbose:
            return lines

        lines.append(Text(f"    {advisory.description}"))
        if advisory.affected_versions:
            lines.append(Text(f"    Affected range: {advisory.affected_versions}"))
        if advisory.fixed_versions:
            lines.append(Text(f"    Fixed range: {advisory.fixed_versions}"))
        for reference in advisory.references:
            lines.append(Text(f"    {reference}", style="blue"))
        lines.append(Text(""))
        return lines

    def render_result(self, result: AuditResult) -> List[Text]:
        """Render a single query result; nothing for clean distributions."""
        if result.error is not None:
            return [Text(
                f"{result.distribution} (requires {result.requirement_display}) could not be audited: {result.error}",
                style="yellow",
            )]

        if not result.advisories:
            return []

        lines = [Text(
            f"{result.distribution} (requires {result.requirement_display}) "
            f"has {len(result.advisories)} advisories",
            style="red",
        )]
        for advisory in result.advisories:
            lines.extend(self.render_advisory(advisory))
        return lines

    def render_summary(self, report: AuditReport) -> Text:
        total = report.total_advisories
        if total:
            return Text(f"Total advisories found: {total}", style="red")
        return Text("No advisories found", style="green")

    def render_report(self, report: AuditReport) -> List[Text]:
        """Render every result followed by the summary line."""
        lines: List[Text] = []
        for result in report.results:
            lines.extend(self.render_result(result))
        lines.append(self.render_summary(report))
        return lines

    def render_not_in_database(self, kind: str, name: str) -> Text:
        """Message for a module or distribution that the database does not know."""
        return Text(f"{kind} '{name}' is not in database", style="green")

    def print_lines(self, lines: List[Text]) -> None:
        for line in lines:
            self.console.print(line)

    def print_report(self, report: AuditReport) -> None:
        self.print_lines(self.render_report(report))

    def print_advisory(self, advisory: AdvisoryRecord, verbose: Optional[bool] = None) -> None:
        self.print_lines(self.render_advisory(advisory, verbose))

    def print_message(self, message: str, style: Optional[str] = None) -> None:
        self.console.print(Text(message, style=style or ""))

    def format_error(self, error: str) -> None:
        self.console.print(Text(f"Error: {error}", style="red"))


class JSONFormatter:
    """JSON formatter for cpan-audit output."""

    def __init__(self, output_file: Optional[Path] = None) -> None:
        self.output_file = output_file
        self.logger = get_logger("JSONFormatter")

    def format_result(self, result: AuditResult) -> Dict[str, Any]:
        return {
            "distribution": result.distribution,
            "modules": list(result.modules),
            "requirement": result.requirement,
            "status": result.status.value,
            "error": str(result.error) if result.error is not None else None,
            "advisories": [advisory.to_dict() for advisory in result.advisories],
        }

    def format_report(
        self,
        report: AuditReport,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format an audit report as a JSON-serializable dictionary.

        Args:
            report: Audit report
            metadata: Optional additional metadata

        Returns:
            Formatted JSON data
        """
        result: Dict[str, Any] = {
            "scan_summary": {
                "total_dependencies": report.total_dependencies,
                "vulnerable_distributions": len(report.vulnerable),
                "total_advisories": report.total_advisories,
                "failed_queries": len(report.failures),
                "unresolved_modules": len(report.unresolved),
                "scan_time_seconds": report.scan_time,
                "timestamp": datetime.now().isoformat(),
            },
            "results": [self.format_result(item) for item in report.results],
        }

        if metadata:
            result["metadata"] = metadata

        return result

    def save_results(
        self,
        results: Dict[str, Any],
        output_file: Optional[Path] = None
    ) -> None:
        """Save results to a JSON file.

        Raises:
            ValueError: If no output file was given
        """
        file_path = output_file or self.output_file
        if not file_path:
            raise ValueError("No output file specified")

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(results, f, indent=2, ensure_ascii=False)

            self.logger.info("Results saved to %s", file_path)
        except IOError as e:
            self.logger.error("Failed to save results to %s: %s", file_path, e)
            raise
