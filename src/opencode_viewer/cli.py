"""CLI entry point for opencode-viewer."""

import logging
import sys
from pathlib import Path

import click
import uvicorn

from .backends import get_available_providers
from .config import THEMES, get_default_theme
from .errors import StorageError
from .export import EXPORT_FORMATS, ExportOptions, expanded_ids_for, export_session
from .formatters import format_cost, format_date, format_tokens, truncate
from .grouping import assistant_stats, group_messages, group_summary
from .provider import LoadResult, SessionProvider
from .relations import build_ancestor_chain, parse_subagent_title
from .search import search_sessions
from .totals import calculate_totals

logger = logging.getLogger(__name__)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load_providers(source: str | None = None) -> list[tuple[SessionProvider, LoadResult]]:
    providers = get_available_providers()
    if source:
        providers = [p for p in providers if p.name == source]
    if not providers:
        _fail("No session storage found" + (f" for source {source}" if source else ""))

    loaded = []
    for provider in providers:
        try:
            result = provider.load_all_sessions()
        except StorageError as e:
            _fail(f"{e}\n{e.suggestion}")
        if result.error_count:
            logger.warning("%s: %d session files could not be read", provider.name, result.error_count)
        loaded.append((provider, result))
    return loaded


def _find_session(session_id: str):
    for provider, result in _load_providers():
        if session_id in result.sessions:
            return provider.load_session(session_id, result.sessions), result.sessions
    _fail(f"Session not found: {session_id}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Browse, search and export OpenCode and Claude Code sessions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web API."""
    click.echo(f"Starting opencode-viewer on http://{host}:{port}")
    uvicorn.run("opencode_viewer.server:app", host=host, port=port, reload=False)


@main.command("list")
@click.option("--source", default=None, help="Only list sessions from this source.")
def list_sessions(source: str | None):
    """List sessions, newest first."""
    sessions = [s for _, result in _load_providers(source) for s in result.sessions.values()]
    for info in sorted(sessions, key=lambda s: s.updated, reverse=True):
        marker = "  " if info.parent_id else ""
        subagent = parse_subagent_title(info.title)
        title = f"[{subagent[0]}] {subagent[1]}" if subagent else info.title
        click.echo(f"{marker}{info.id}  {format_date(info.updated)}  {truncate(title, 60)}")


@main.command()
@click.argument("query")
@click.option("--messages", is_flag=True, help="Also search user message text.")
def search(query: str, messages: bool):
    """Search sessions by title, summary, message text or date."""
    sessions = {}
    for provider, result in _load_providers():
        if messages:
            for info in result.sessions.values():
                if info.user_messages is None:
                    info.user_messages = provider.load_user_messages(info.id)
        sessions.update(result.sessions)

    matches = search_sessions(query, sessions, include_messages=messages)
    if not matches:
        click.echo("No matching sessions.")
        return
    for match in matches:
        click.echo(f"{match.session_id}  [{match.match_type}]  {truncate(match.session.title, 60)}")
        click.echo(f"    {match.preview}")


@main.command()
@click.argument("session_id")
def show(session_id: str):
    """Print a session's turns with step counts."""
    session, all_sessions = _find_session(session_id)
    chain = build_ancestor_chain(session.info, all_sessions)
    totals = calculate_totals(session)

    if chain.ancestors:
        click.echo(" > ".join(truncate(a.title, 30) for a in chain.ancestors) + " >")
    if chain.has_cycle:
        click.echo(f"(parent chain loops back to {chain.cycle_at})")
    click.echo(session.info.title)
    click.echo(f"{session.info.directory}  {format_cost(totals.cost)}  {format_tokens(totals.tokens.total)} tokens")
    click.echo("")

    for index, group in enumerate(group_messages(session.messages), 1):
        stats = assistant_stats(group.assistant_messages)
        detail = f"{stats.step_count} steps, {stats.tool_count} tools"
        if stats.has_reasoning:
            detail += ", thinking"
        click.echo(f"{index:>3}. {truncate(group_summary(group), 60)}  ({detail})")


@main.command()
@click.argument("session_id")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write to this file instead of stdout.")
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default="html", show_default=True)
@click.option("--theme", type=click.Choice(THEMES), default=None, help="Theme of the HTML export.")
@click.option("--expand", "expand", multiple=True, help="Id of a section to render expanded.")
@click.option("--expand-all", is_flag=True, help="Render every collapsible section expanded.")
def export(session_id: str, output: Path | None, fmt: str, theme: str | None, expand: tuple, expand_all: bool):
    """Export a session as HTML, Markdown or JSON."""
    session, all_sessions = _find_session(session_id)
    options = ExportOptions(
        theme=theme or get_default_theme(),
        expanded_ids=expanded_ids_for(session, expand, expand_all),
    )
    ordered = {s.id: s for s in sorted(all_sessions.values(), key=lambda s: s.created)}
    content = export_session(session, fmt, options, ordered)

    if output is None:
        click.echo(content)
        return
    output.write_text(content, encoding="utf-8")
    click.echo(f"Wrote {output}", err=True)
