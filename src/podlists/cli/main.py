"""Command-line interface for podlists."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from podlists.core.codec import load_episodes, load_smart_list
from podlists.core.config import Config, load_config
from podlists.core.errors import PodlistsError
from podlists.core.evaluator import evaluate, sort_and_limit
from podlists.core.rules import (
    BUILTIN_SMART_LISTS,
    BUILTIN_TEMPLATES,
    SmartList,
    get_builtin_smart_list,
)
from podlists.core.search import parse_query, search_episodes

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=verbose)],
        force=True,
    )


def _fail(error: Exception) -> None:
    """Print an error in red on stderr and exit with status 1."""
    error_console.print(f"[red]Error: {escape(str(error))}[/red]")
    sys.exit(1)


def _resolve_smart_list(name: str, config: Config) -> SmartList:
    path = Path(name)
    if path.suffix == ".json" or path.is_file():
        return load_smart_list(
            path,
            default_sort=config.smart_lists.default_sort,
            default_refresh_interval=config.smart_lists.refresh_interval,
        )

    smart_list = get_builtin_smart_list(name)
    if smart_list is None:
        known = ", ".join(s.id for s in BUILTIN_SMART_LISTS)
        raise PodlistsError(f"Unknown smart list '{name}' (built-in lists: {known})")
    return smart_list


@click.group()
@click.version_option(package_name="podlists")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a configuration file (replaces .podlists/config)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """podlists - smart episode lists and advanced search.

    Evaluate smart list rules and search queries against episode
    collections stored as JSON.
    """
    _configure_logging(verbose)

    try:
        if config_path is not None:
            if not config_path.exists():
                raise PodlistsError(f"Config file not found: {config_path}")
            ctx.obj = load_config(local_path=config_path, auto_create_local=False)
        else:
            ctx.obj = load_config()
    except PodlistsError as e:
        _fail(e)


@main.command("lists")
def list_smart_lists() -> None:
    """Show the built-in smart lists."""
    from podlists.cli.output import display_smart_lists

    display_smart_lists(list(BUILTIN_SMART_LISTS), console)


@main.command()
def templates() -> None:
    """Show the rule templates offered for new smart lists."""
    from podlists.cli.output import display_templates

    display_templates(list(BUILTIN_TEMPLATES), console)


@main.command()
@click.argument("smart_list")
@click.argument("episodes_json", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--limit", "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of episodes to show (overrides the list's own limit)",
)
@click.pass_obj
def run(config: Config, smart_list: str, episodes_json: Path, limit: int | None) -> None:
    """Evaluate a smart list against episodes.

    SMART_LIST is a built-in list id or a smart list JSON file.

    Example: podlists run highly_rated episodes.json
    """
    from podlists.cli.output import display_episodes

    try:
        definition = _resolve_smart_list(smart_list, config)
        episodes = load_episodes(episodes_json)
        context = config.evaluation_context()

        selected = evaluate(definition.rules, episodes, context)
        cap = limit or definition.max_episodes or config.smart_lists.episode_limit
        results = sort_and_limit(selected, definition.sort_by, cap)
    except PodlistsError as e:
        _fail(e)
        return

    logger.debug("%s: %d of %d episodes selected", definition.id, len(results), len(episodes))
    console.print(f"[bold]{escape(definition.name)}[/bold] ({definition.sort_by.display_name})")
    display_episodes(results, console)


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("episodes_json", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("query", nargs=-1, required=True)
@click.option(
    "--include-archived",
    is_flag=True,
    help="Also search archived episodes",
)
@click.pass_obj
def search(
    config: Config,
    episodes_json: Path,
    query: tuple[str, ...],
    include_archived: bool,
) -> None:
    """Search episodes with an advanced query.

    Terms can be scoped to a field (title:, description:, podcast:,
    duration:, date:), negated with a leading - or NOT, quoted as phrases
    and joined with AND/OR.

    Example: podlists search episodes.json 'title:news AND -duration:"30 minutes"'
    """
    from podlists.cli.output import display_search_results

    include_archived = include_archived or config.search.include_archived

    try:
        parsed = parse_query(" ".join(query))
        episodes = load_episodes(episodes_json)
    except PodlistsError as e:
        _fail(e)
        return

    console.print(f"Query: [bold]{escape(parsed.text)}[/bold]")
    results = search_episodes(parsed, episodes, include_archived=include_archived)
    display_search_results(results, console)


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("query", nargs=-1, required=True)
def query(query: tuple[str, ...]) -> None:
    """Print the normalized form of a search query.

    Example: podlists query 'title:news -duration:"30 minutes"'
    """
    click.echo(parse_query(" ".join(query)).text)


if __name__ == "__main__":
    main()
