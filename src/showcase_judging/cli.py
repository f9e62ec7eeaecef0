"""CLI for showcase judging."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import structlog
import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from showcase_judging import __version__
from showcase_judging.core.config import JudgingConfig, load_config
from showcase_judging.core.errors import ConfigurationError, GroupNotFound, JudgingError
from showcase_judging.models.views import CriterionInput
from showcase_judging.services.collaborators import Caller, ContentInfo, InMemoryContentCatalog
from showcase_judging.services.export import leaderboard_markdown
from showcase_judging.system import JudgingSystem, create_system

T = TypeVar("T")

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="showcase-judging",
    help="Showcase Judging - run judged contests over showcase submissions",
    add_completion=False,
)
console = Console()

# Local CLI runs act as an admin
CLI_ADMIN = Caller.admin("cli")

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
CatalogOption = Annotated[
    Path | None, typer.Option("--catalog", help="YAML file listing stories (id, title, slug)")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"showcase-judging v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Showcase Judging CLI."""
    load_dotenv()


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_catalog(path: Path | None) -> InMemoryContentCatalog:
    """Read stories from YAML: a list, or a mapping with a ``stories`` list."""
    if path is None:
        return InMemoryContentCatalog()
    if not path.exists():
        msg = f"Catalog file not found: {path}"
        raise FileNotFoundError(msg)
    with path.open() as f:
        data: Any = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("stories", [])
    if not isinstance(data, list):
        raise ConfigurationError(
            "Catalog must be a list of stories",
            "Use a top-level list or a 'stories:' key.",
        )
    return InMemoryContentCatalog(ContentInfo.model_validate(item) for item in data)


def _build(config_path: Path | None, catalog_path: Path | None = None) -> JudgingSystem:
    config = load_config(config_path) if config_path is not None else JudgingConfig()
    return create_system(config, catalog=load_catalog(catalog_path))


def _execute(
    config_path: Path | None,
    catalog_path: Path | None,
    verbose: bool,
    action: Callable[[JudgingSystem], Awaitable[T]],
) -> T:
    """Build the system, run ``action`` and map failures to exit code 1."""
    _configure_logging(verbose)
    try:
        system = _build(config_path, catalog_path)
        try:
            return asyncio.run(action(system))
        finally:
            system.close()
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except (ConfigurationError, JudgingError) as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1) from e


async def _group_id(system: JudgingSystem, slug: str) -> str:
    group = await system.groups.get_group_by_slug(CLI_ADMIN, slug)
    if group is None:
        raise GroupNotFound(slug)
    return group.id


@app.command("init-db")
def init_db(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Create the database tables."""

    async def _init(system: JudgingSystem) -> None:
        console.print(
            f"[green]Database ready:[/green] {system.engine.url.get_backend_name()}"
        )

    _execute(config_path, None, verbose, _init)


@app.command("create-group")
def create_group(
    name: Annotated[str, typer.Argument(help="Group name")],
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    judge_password: Annotated[
        str | None, typer.Option("--judge-password", help="Password judges must enter")
    ] = None,
    private: Annotated[
        bool, typer.Option("--private", help="Only admins may judge unless a password is set")
    ] = False,
    results_public: Annotated[
        bool, typer.Option("--results-public", help="Publish the results page")
    ] = False,
    results_password: Annotated[
        str | None, typer.Option("--results-password", help="Password for the results page")
    ] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Create a judging group."""

    async def _create(system: JudgingSystem) -> None:
        group = await system.groups.create_group(
            CLI_ADMIN,
            name,
            description=description,
            scoring_public=not private,
            judge_password=judge_password,
            results_public=results_public,
            results_password=results_password,
        )
        console.print(f"[green]Created group[/green] {group.name} ({group.slug})")
        console.print(f"  id: {group.id}")

    _execute(config_path, None, verbose, _create)


@app.command("add-criterion")
def add_criterion(
    group_slug: Annotated[str, typer.Argument(help="Group slug")],
    question: Annotated[str, typer.Argument(help="Criterion question")],
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    weight: Annotated[float | None, typer.Option("--weight", help="Weight (default 1)")] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Append a criterion to a group."""

    async def _add(system: JudgingSystem) -> None:
        group_id = await _group_id(system, group_slug)
        existing = await system.criteria.list_by_group(CLI_ADMIN, group_id)
        items = [CriterionInput(**c.model_dump()) for c in existing]
        next_order = max((c.order for c in existing), default=-1) + 1
        items.append(
            CriterionInput(
                question=question, description=description, weight=weight, order=next_order
            )
        )
        saved = await system.criteria.save_criteria(CLI_ADMIN, group_id, items)
        console.print(f"[green]Group now has {len(saved)} criteria[/green]")
        for criterion in saved:
            console.print(f"  {criterion.order}. {criterion.question} ({criterion.id})")

    _execute(config_path, None, verbose, _add)


@app.command("add-submission")
def add_submission(
    group_slug: Annotated[str, typer.Argument(help="Group slug")],
    story_ids: Annotated[list[str], typer.Argument(help="Story ids to add")],
    catalog_path: CatalogOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Add catalog stories to a group."""

    async def _add(system: JudgingSystem) -> None:
        group_id = await _group_id(system, group_slug)
        result = await system.submissions.add_submissions(CLI_ADMIN, group_id, story_ids)
        console.print(f"  Added: {result.added}")
        console.print(f"  Skipped: {result.skipped}")
        for error in result.errors:
            console.print(f"  [yellow]{error}[/yellow]")

    _execute(config_path, catalog_path, verbose, _add)


@app.command("register-judge")
def register_judge(
    group_slug: Annotated[str, typer.Argument(help="Group slug")],
    name: Annotated[str, typer.Argument(help="Judge name")],
    email: Annotated[str | None, typer.Option("--email")] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Register a judge and print the session id."""

    async def _register(system: JudgingSystem) -> None:
        group_id = await _group_id(system, group_slug)
        registration = await system.judges.register(group_id, name, email)
        console.print(f"[green]Judge registered[/green] {registration.judge_id}")
        console.print(f"  session: {registration.session_id}")

    _execute(config_path, None, verbose, _register)


@app.command()
def score(
    session_id: Annotated[str, typer.Argument(help="Judge session id")],
    story_id: Annotated[str, typer.Argument(help="Story id")],
    criteria_id: Annotated[str, typer.Argument(help="Criterion id")],
    value: Annotated[int, typer.Argument(help="Score value")],
    comment: Annotated[str | None, typer.Option("--comment", "-m")] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Submit a score as a judge."""

    async def _score(system: JudgingSystem) -> None:
        record = await system.scores.submit_score(
            session_id, story_id, criteria_id, value, comment
        )
        console.print(f"[green]Score saved[/green] {record.id} = {record.score}")

    _execute(config_path, None, verbose, _score)


@app.command()
def results(
    group_slug: Annotated[str, typer.Argument(help="Group slug")],
    markdown: Annotated[
        Path | None, typer.Option("--markdown", help="Also write a markdown leaderboard")
    ] = None,
    catalog_path: CatalogOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show submission rankings for a group."""

    async def _results(system: JudgingSystem) -> None:
        group_id = await _group_id(system, group_slug)
        rollup = await system.aggregation.group_scores(CLI_ADMIN, group_id)

        table = Table(title=f"Results: {group_slug}")
        table.add_column("Rank", justify="right")
        table.add_column("Submission")
        table.add_column("Total", justify="right")
        table.add_column("Average", justify="right")
        table.add_column("Completion", justify="right")
        for rank, r in enumerate(rollup.submission_rankings, 1):
            table.add_row(
                str(rank),
                r.story_title,
                str(r.total_score),
                f"{r.average_score:.2f}",
                f"{r.completion_percentage:.0f}%",
            )
        console.print(table)
        console.print(
            f"  Scores: {rollup.total_scores}  Judges: {rollup.judge_count}  "
            f"Completion: {rollup.completion_percentage:.1f}%"
        )

        if markdown is not None:
            markdown.parent.mkdir(parents=True, exist_ok=True)
            markdown.write_text(
                leaderboard_markdown(rollup, f"Leaderboard: {group_slug}"), encoding="utf-8"
            )
            console.print(f"Leaderboard saved to: {markdown}")

    _execute(config_path, catalog_path, verbose, _results)


@app.command()
def export(
    group_slug: Annotated[str, typer.Argument(help="Group slug")],
    output: Annotated[Path | None, typer.Option("--output", "-o", help="CSV path")] = None,
    catalog_path: CatalogOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Export every score in a group to CSV."""

    async def _export(system: JudgingSystem) -> None:
        group_id = await _group_id(system, group_slug)
        rows = await system.exporter.export_rows(CLI_ADMIN, group_id)
        path = output or Path(system.config.export_dir) / f"{group_slug}-scores.csv"
        await system.exporter.write_csv(rows, path)
        console.print(f"[green]Exported {len(rows)} rows[/green] to {path}")

    _execute(config_path, catalog_path, verbose, _export)


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file.

    Args:
        config_path: Path to YAML configuration file.
    """
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        for key, value in config.model_dump_public().items():
            console.print(f"  {key}: {value}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Showcase Judging[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Create a group with a judge password")
    console.print('  showcase-judging create-group "Demo" --judge-password secret\n')

    console.print("  # Add a criterion")
    console.print('  showcase-judging add-criterion demo "How polished is it?"\n')

    console.print("  # Add stories from a catalog file")
    console.print("  showcase-judging add-submission demo story-1 story-2 --catalog stories.yaml\n")

    console.print("  # Register a judge")
    console.print('  showcase-judging register-judge demo "Ada"\n')

    console.print("  # Show rankings")
    console.print("  showcase-judging results demo --catalog stories.yaml\n")

    console.print("  # Export scores to CSV")
    console.print("  showcase-judging export demo --catalog stories.yaml")


if __name__ == "__main__":
    app()
