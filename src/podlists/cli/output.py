"""CLI output formatting utilities."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from podlists.core.models import Episode
from podlists.core.rules import RuleTemplate, SmartList
from podlists.core.search import SearchResult


def display_smart_lists(smart_lists: list[SmartList], console: Console) -> None:
    """Display smart list definitions in a table."""
    if not smart_lists:
        console.print("[yellow]No smart lists defined.[/yellow]")
        return

    table = Table(title="Smart Lists")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Rules")
    table.add_column("Sort", style="dim")
    table.add_column("Limit", style="dim", justify="right")

    for smart_list in smart_lists:
        table.add_row(
            smart_list.id,
            escape(smart_list.name),
            _describe_rules(smart_list),
            smart_list.sort_by.display_name,
            str(smart_list.max_episodes) if smart_list.max_episodes else "-",
        )

    console.print(table)


def display_templates(templates: list[RuleTemplate], console: Console) -> None:
    """Display rule templates grouped by category order."""
    table = Table(title="Rule Templates")
    table.add_column("Category", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Rules")

    for template in sorted(templates, key=lambda t: t.category.value):
        joiner = f" {template.rules.logic.value} "
        table.add_row(
            template.category.display_name,
            template.name,
            joiner.join(rule.description for rule in template.rules.rules),
        )

    console.print(table)


def display_episodes(episodes: list[Episode], console: Console) -> None:
    """Display an episode list in a table."""
    if not episodes:
        console.print("[yellow]No episodes matched.[/yellow]")
        return

    table = Table(title="Episodes")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Podcast")
    table.add_column("Published", style="green")
    table.add_column("Duration", style="cyan")
    table.add_column("Status", style="dim")

    for i, episode in enumerate(episodes, 1):
        table.add_row(
            str(i),
            escape(episode.title),
            escape(episode.podcast_title) or "-",
            episode.pub_date.strftime("%Y-%m-%d") if episode.pub_date else "-",
            episode.duration_formatted,
            episode.play_status.display_name,
        )

    console.print(table)


def display_search_results(results: list[SearchResult], console: Console) -> None:
    """Display scored search results in a table."""
    if not results:
        console.print("[yellow]No episodes matched.[/yellow]")
        return

    table = Table(title="Search Results")
    table.add_column("#", style="dim", width=4)
    table.add_column("Score", style="cyan", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Podcast")
    table.add_column("Matched", style="dim")

    for i, result in enumerate(results, 1):
        table.add_row(
            str(i),
            f"{result.score:.1f}",
            escape(result.episode.title),
            escape(result.episode.podcast_title) or "-",
            ", ".join(field.value for field in result.matched_fields) or "-",
        )

    console.print(table)


def _describe_rules(smart_list: SmartList) -> str:
    rules = smart_list.rules
    if rules.is_empty:
        return "-"
    return f" {rules.logic.value} ".join(rule.description for rule in rules.rules)
