"""pluginhub CLI - find, update and install Obsidian plugins."""

import asyncio
import click
from rich.console import Console
from rich.table import Table

from pluginhub import __version__
from pluginhub.config import HubConfig, validate_config
from pluginhub.core.errors import HubError, classify_error
from pluginhub.core.hub import PluginHub
from pluginhub.logging import configure_logging

console = Console()


def _truncate(text: str, width: int) -> str:
    text = (text or "").replace("\n", " ")
    return text[: width - 3] + "..." if len(text) > width else text


def _run(coro):
    """Run a hub coroutine, turning HubErrors into a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except HubError as e:
        classified = classify_error(e)
        console.print(f"[red]✗ {classified.message}[/red]")
        if classified.suggestion:
            console.print(f"[dim]{classified.suggestion}[/dim]")
        raise SystemExit(1)


def _hub(ctx: click.Context) -> PluginHub:
    if "hub" not in ctx.obj:
        ctx.obj["hub"] = PluginHub.from_config(ctx.obj["config"])
    return ctx.obj["hub"]


def _set_position(hub: PluginHub, number: int) -> int:
    """Convert a 1-based set number from the command line to a position."""
    position = number - 1
    if position < 0 or position >= len(hub.list_sets()):
        console.print(f"[red]No plugin set #{number}[/red]")
        raise SystemExit(1)
    return position


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: str = None, verbose: bool = False):
    """pluginhub - Obsidian plugin discovery and installation"""
    ctx.ensure_object(dict)
    config = HubConfig.load(config_path)
    configure_logging(config, verbose=verbose)
    ctx.obj["config"] = config


# ============================================
# Search
# ============================================


@cli.group()
def search():
    """Search the archive, GitHub or the forum."""
    pass


def _repo_table(title: str, repos, show_stars: bool = True) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Repository", style="cyan")
    if show_stars:
        table.add_column("Stars", justify="right", width=7)
    table.add_column("Desktop", width=7)
    table.add_column("Description", width=50)

    for repo in repos:
        if repo.is_desktop_only is None:
            desktop = "[dim]?[/dim]"
        else:
            desktop = "[yellow]yes[/yellow]" if repo.is_desktop_only else "no"
        row = [repo.full_name]
        if show_stars:
            row.append(str(repo.popularity_score))
        row += [desktop, _truncate(repo.description, 50)]
        table.add_row(*row)
    return table


@search.command("archive")
@click.argument("query", required=False, default="")
@click.pass_context
def search_archive(ctx, query: str = ""):
    """Search the official community plugin list.

    Examples:
        pluginhub search archive calendar
        pluginhub search archive plugins
    """
    hub = _hub(ctx)
    repos = _run(hub.search_archive(query))

    if not repos:
        console.print("[yellow]No plugins found in the community archive.[/yellow]")
        return

    console.print(_repo_table(f"Community Archive ({len(repos)})", repos, show_stars=False))


@search.command("github")
@click.argument("query", required=False, default="")
@click.option("--desktop", is_flag=True, help="Check which results are desktop-only")
@click.pass_context
def search_github(ctx, query: str = "", desktop: bool = False):
    """Search GitHub repositories (use @user for a user's repositories).

    Examples:
        pluginhub search github kanban
        pluginhub search github @chhoumann
        pluginhub search github "dark theme"
    """
    hub = _hub(ctx)

    async def execute():
        repos = await hub.search_repositories(query)
        if desktop:
            await hub.annotate_desktop_only(repos)
        return repos

    repos = _run(execute())

    if not repos:
        console.print("[yellow]No matching repositories on GitHub.[/yellow]")
        return

    console.print(_repo_table(f"GitHub Repositories ({len(repos)})", repos))


@search.command("authors")
@click.argument("handle")
@click.pass_context
def search_authors(ctx, handle: str):
    """Find GitHub accounts by handle."""
    hub = _hub(ctx)
    users = _run(hub.search_authors(handle))

    if not users:
        console.print(f"[yellow]No GitHub users matching '{handle}'.[/yellow]")
        return

    table = Table(title=f"GitHub Users ({len(users)})", show_header=True, header_style="bold cyan")
    table.add_column("Login", style="cyan")
    table.add_column("Type", width=12)
    table.add_column("Profile")
    for user in users:
        table.add_row(user.login, user.type, user.html_url)
    console.print(table)
    console.print("[dim]List an author's repositories with: pluginhub search github @<login>[/dim]")


@search.command("forum")
@click.argument("query", required=False, default="")
@click.pass_context
def search_forum(ctx, query: str = ""):
    """Search plugin showcase topics on the Obsidian forum."""
    hub = _hub(ctx)
    topics = _run(hub.search_forum(query))

    if not topics:
        console.print("[yellow]No forum topics found.[/yellow]")
        return

    table = Table(title=f"Forum Topics ({len(topics)})", show_header=True, header_style="bold cyan")
    table.add_column("Title", style="cyan", width=45)
    table.add_column("Likes", justify="right", width=6)
    table.add_column("Views", justify="right", width=7)
    table.add_column("URL")
    for topic in topics:
        table.add_row(_truncate(topic.title, 45), str(topic.like_count), str(topic.views), topic.url)
    console.print(table)


# ============================================
# Updates and installation
# ============================================


STATUS_STYLES = {
    "update-available": "[green]update available[/green]",
    "up-to-date": "[dim]up to date[/dim]",
    "local-newer": "[blue]local newer[/blue]",
    "unknown": "[yellow]unknown[/yellow]",
}


@cli.command()
@click.option("--apply", "apply_updates", is_flag=True, help="Install all available updates")
@click.pass_context
def updates(ctx, apply_updates: bool = False):
    """Check installed plugins for newer releases.

    Examples:
        pluginhub updates
        pluginhub updates --apply
    """
    hub = _hub(ctx)

    with console.status("[bold green]Checking installed plugins..."):
        candidates = _run(hub.check_installed_updates())

    if not candidates:
        console.print("[yellow]No installed plugins found.[/yellow]")
        return

    table = Table(
        title=f"Installed Plugins ({len(candidates)})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Plugin", style="cyan")
    table.add_column("Installed", width=10)
    table.add_column("Latest", width=10)
    table.add_column("Status", width=18)
    table.add_column("Repository")
    table.add_column("Source", width=9)

    for c in candidates:
        repo = c.resolved_repo or f"[dim]{c.error or ''}[/dim]"
        if c.resolved_repo and c.error:
            repo = f"{c.resolved_repo} [dim]({c.error})[/dim]"
        table.add_row(
            c.package_id,
            c.installed_version,
            c.latest_version or "-",
            STATUS_STYLES[c.version_status.value],
            repo,
            c.resolution_source.value,
        )
    console.print(table)

    pending = [c.resolved_repo for c in candidates if c.needs_update]
    if not pending:
        console.print("[green]✓ All resolved plugins are up to date[/green]")
        return

    if not apply_updates:
        console.print(f"\n[bold]{len(pending)} update(s) available.[/bold] Run with --apply to install.")
        return

    result = _run(hub.update_many(pending))
    _print_batch(result)


def _print_batch(result) -> None:
    if result.updated:
        console.print(f"[green]✓ Installed {result.updated} plugin(s)[/green]")
    if result.failed:
        console.print(f"[red]✗ {result.failed} plugin(s) failed[/red]")
        for full_name, error in result.errors.items():
            console.print(f"  [dim]{full_name}: {error}[/dim]")


@cli.command()
@click.argument("full_names", nargs=-1, required=True)
@click.pass_context
def install(ctx, full_names: tuple):
    """Install plugins from their latest GitHub release.

    Examples:
        pluginhub install chhoumann/quickadd
        pluginhub install blacksmithgu/obsidian-dataview mgmeyers/obsidian-kanban
    """
    hub = _hub(ctx)

    if len(full_names) == 1:
        console.print(f"[bold]Installing {full_names[0]}[/bold]")
        count = _run(hub.install_from_repository(full_names[0]))
        console.print(f"[green]✓ Installed to {count} vault(s)[/green]")
        return

    result = _run(hub.update_many(list(full_names)))
    _print_batch(result)
    if result.failed and not result.updated:
        raise SystemExit(1)


# ============================================
# Plugin sets
# ============================================


@cli.group()
def sets():
    """Manage named groups of plugins."""
    pass


@sets.command("list")
@click.pass_context
def sets_list(ctx):
    """List plugin sets."""
    hub = _hub(ctx)
    plugin_sets = hub.list_sets()

    if not plugin_sets:
        console.print("[yellow]No plugin sets yet.[/yellow] Create one with: pluginhub sets create")
        return

    table = Table(title="Plugin Sets", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", width=3)
    table.add_column("Name", style="cyan")
    table.add_column("Plugins")
    for number, plugin_set in enumerate(plugin_sets, start=1):
        table.add_row(str(number), plugin_set.name, ", ".join(plugin_set.plugins) or "[dim]empty[/dim]")
    console.print(table)


@sets.command("create")
@click.argument("name", required=False, default="New Set")
@click.pass_context
def sets_create(ctx, name: str = "New Set"):
    """Create an empty plugin set."""
    hub = _hub(ctx)
    position = hub.create_set(name)
    console.print(f"[green]✓ Created set #{position + 1}: {name}[/green]")


@sets.command("rename")
@click.argument("number", type=int)
@click.argument("name")
@click.pass_context
def sets_rename(ctx, number: int, name: str):
    """Rename plugin set NUMBER."""
    hub = _hub(ctx)
    hub.rename_set(_set_position(hub, number), name)
    console.print(f"[green]✓ Renamed set #{number} to {name}[/green]")


@sets.command("add")
@click.argument("number", type=int)
@click.argument("full_name")
@click.pass_context
def sets_add(ctx, number: int, full_name: str):
    """Add repository FULL_NAME to plugin set NUMBER."""
    hub = _hub(ctx)
    if hub.add_to_set(_set_position(hub, number), full_name):
        console.print(f"[green]✓ Added {full_name}[/green]")
    else:
        console.print(f"[yellow]{full_name} is already in set #{number}[/yellow]")


@sets.command("remove")
@click.argument("number", type=int)
@click.argument("full_name")
@click.pass_context
def sets_remove(ctx, number: int, full_name: str):
    """Remove repository FULL_NAME from plugin set NUMBER."""
    hub = _hub(ctx)
    if hub.remove_from_set(_set_position(hub, number), full_name):
        console.print(f"[green]✓ Removed {full_name}[/green]")
    else:
        console.print(f"[yellow]{full_name} is not in set #{number}[/yellow]")


@sets.command("delete")
@click.argument("number", type=int)
@click.pass_context
def sets_delete(ctx, number: int):
    """Delete plugin set NUMBER."""
    hub = _hub(ctx)
    removed = hub.delete_set(_set_position(hub, number))
    console.print(f"[green]✓ Deleted set {removed.name}[/green]")


@sets.command("install")
@click.argument("number", type=int)
@click.pass_context
def sets_install(ctx, number: int):
    """Install every plugin of set NUMBER."""
    hub = _hub(ctx)
    position = _set_position(hub, number)
    plugin_set = hub.list_sets()[position]

    if not plugin_set.plugins:
        console.print(f"[yellow]Set {plugin_set.name} is empty.[/yellow]")
        return

    console.print(f"[bold]Installing set {plugin_set.name} ({len(plugin_set.plugins)} plugins)[/bold]")
    result = _run(hub.install_set(position))
    _print_batch(result)


# ============================================
# Configuration
# ============================================


@cli.group()
def config():
    """Inspect configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show the effective configuration and any warnings."""
    cfg: HubConfig = ctx.obj["config"]

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    data = cfg.model_dump(mode="json")
    data["github_token"] = "(set)" if cfg.github_token else "(not set)"
    for key, value in data.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value) or "-"
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)

    for warning in validate_config(cfg):
        console.print(f"[yellow]⚠ {warning}[/yellow]")


if __name__ == "__main__":
    cli()
