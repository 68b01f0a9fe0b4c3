"""Main CLI interface for cpan-audit."""

from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console

from ..config import DATABASE_ENV_VAR, AuditConfig
from ..core.discovery import Dependency, DependencyParser
from ..core.errors import AuditError
from ..core.matcher import AuditReport, AuditResult, QueryStatus, RangeMatcher
from ..db.index import AdvisoryIndex, parse_advisory_id
from ..db.loader import load_index
from ..output.formatters import ConsoleFormatter, JSONFormatter
from ..utils.logging import get_logger, setup_logging
from ..utils.path_utils import find_manifests
from ..utils.performance import PerformanceMonitor

app = typer.Typer(
    name="cpan-audit",
    help="Audit CPAN distributions for known vulnerabilities",
    add_completion=False
)

logger = get_logger("CLI")

EXIT_ERROR = 255


class CliState:
    """Per-invocation objects shared between the callback and commands."""

    def __init__(self, config: AuditConfig) -> None:
        self.config = config
        self.console = Console(no_color=config.no_color, highlight=False, soft_wrap=True)
        # plain bullets when output is piped
        ascii_only = config.ascii_only or not self.console.is_terminal
        self.formatter = ConsoleFormatter(self.console, verbose=config.verbose, ascii_only=ascii_only)
        self.performance_monitor = PerformanceMonitor(console=Console(stderr=True))
        self._index: Optional[AdvisoryIndex] = None

    def fail(self, message: str) -> NoReturn:
        self.formatter.format_error(message)
        raise typer.Exit(EXIT_ERROR)

    @property
    def index(self) -> AdvisoryIndex:
        if self._index is None:
            database_path = self.config.database_path
            if database_path is None:
                self.fail(f"No advisory database given. Use --database or set {DATABASE_ENV_VAR}")
            try:
                self._index = load_index(database_path, self.performance_monitor)
            except (ValueError, AuditError) as e:
                logger.debug("Database load failed: %s", e)
                self.fail(str(e))
        return self._index

    @property
    def matcher(self) -> RangeMatcher:
        return RangeMatcher(self.index)

    def finish(self, report: AuditReport, metadata: Optional[dict] = None) -> None:
        """Print the report and write the optional JSON and performance output."""
        self.formatter.print_report(report)

        if self.config.json_output:
            json_formatter = JSONFormatter(self.config.json_output)
            json_formatter.save_results(json_formatter.format_report(report, metadata))

        if self.config.performance:
            self.performance_monitor.print_summary()


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Optional[Path] = typer.Option(
        None,
        "--database",
        "-d",
        help=f"Path to the advisory database (JSON, optionally gzipped). Defaults to ${DATABASE_ENV_VAR}"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show advisory details and debug logging"
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output"
    ),
    ascii_only: bool = typer.Option(
        False,
        "--ascii",
        help="Use ASCII characters only"
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Worker threads for auditing many distributions"
    ),
    json_output: Optional[Path] = typer.Option(
        None,
        "--json",
        "-o",
        help="Also write results to this JSON file"
    ),
    performance: bool = typer.Option(
        False,
        "--performance",
        help="Show performance summary"
    ),
) -> None:
    """Audit CPAN distributions for known vulnerabilities."""
    setup_logging(verbose=verbose)

    try:
        config = AuditConfig.from_env(
            database_path=database,
            verbose=verbose,
            no_color=no_color,
            ascii_only=ascii_only,
            max_workers=workers,
            json_output=json_output,
            performance=performance,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_ERROR)

    ctx.obj = CliState(config)


def _single_query(state: CliState, result: AuditResult) -> None:
    if result.status is QueryStatus.FAILED:
        state.fail(str(result.error))
    state.finish(AuditReport([result], total_dependencies=1))


@app.command()
def module(
    ctx: typer.Context,
    module_name: str = typer.Argument(..., metavar="MODULE", help="Module name, e.g. Foo::Bar"),
    version_range: str = typer.Argument("", help="Required version range, e.g. '>=1.0,<2.0'"),
) -> None:
    """Audit the distribution that ships a module."""
    state: CliState = ctx.obj
    index = state.index

    distribution = index.resolve_module(module_name)
    if distribution is None or not index.has_package(distribution):
        state.formatter.console.print(state.formatter.render_not_in_database("Module", module_name))
        return

    _single_query(state, state.matcher.query_release(distribution, version_range, modules=(module_name,)))


@app.command()
def release(
    ctx: typer.Context,
    distribution: str = typer.Argument(..., metavar="DISTRIBUTION", help="Distribution name, e.g. Foo-Bar"),
    version_range: str = typer.Argument("", help="Required version range, e.g. '>=1.0,<2.0'"),
) -> None:
    """Audit a distribution by name."""
    state: CliState = ctx.obj
    index = state.index

    if not index.has_package(distribution):
        state.formatter.console.print(state.formatter.render_not_in_database("Distribution", distribution))
        return

    _single_query(state, state.matcher.query_release(distribution, version_range))


@app.command()
def show(
    ctx: typer.Context,
    advisory_id: str = typer.Argument(..., help="Advisory id, e.g. CPANSA-Foo-2017-001"),
) -> None:
    """Show the details of one advisory."""
    state: CliState = ctx.obj

    if parse_advisory_id(advisory_id) is None:
        state.fail("Invalid advisory id")

    advisory = state.index.find_advisory(advisory_id.strip())
    if advisory is None:
        state.fail("Unknown advisory id")

    state.formatter.print_advisory(advisory, verbose=True)


def _discover(state: CliState, path: Path, ignore_patterns: Optional[List[str]]) -> List[Dependency]:
    with state.performance_monitor.measure("discover"):
        manifests = find_manifests(path, ignore_patterns)
        logger.debug("Found %d manifest files under %s", len(manifests), path)

        dependencies: List[Dependency] = []
        seen = set()
        for manifest in manifests:
            try:
                parsed = DependencyParser.parse_file(manifest.path)
            except (ValueError, OSError) as e:
                logger.warning("Skipping %s: %s", manifest.path, e)
                continue
            if parsed is None:
                continue
            for dependency in parsed.dependencies:
                if dependency not in seen:
                    seen.add(dependency)
                    dependencies.append(dependency)

    return dependencies


@app.command("deps")
def deps(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help="Project directory to scan"),
    ignore_patterns: Optional[List[str]] = typer.Option(
        None,
        "--ignore",
        help="Additional ignore patterns"
    ),
) -> None:
    """Discover a project's dependencies and audit them."""
    state: CliState = ctx.obj

    if not path.is_dir():
        state.fail("Usage: deps <path>")

    index = state.index
    dependencies = _discover(state, path, ignore_patterns)
    state.formatter.print_message(f"Discovered {len(dependencies)} dependencies")

    with state.performance_monitor.measure("audit"):
        report = RangeMatcher(index).audit(dependencies, max_workers=state.config.max_workers)

    for result in report.unresolved:
        logger.debug("Skipping %s: no distribution in database", ", ".join(result.modules))
    for result in report.failures:
        logger.warning("Could not audit %s: %s", result.distribution, result.error)

    state.finish(report, metadata={"path": str(path)})


app.command("dependencies", hidden=True)(deps)


def main() -> None:
    """Main entry point for the cpan-audit CLI."""
    app()


if __name__ == "__main__":
    main()
