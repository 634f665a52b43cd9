"""FastAPI web server for opencode-viewer."""

import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response

from .backends import get_available_providers
from .config import get_default_theme
from .core import Session, SessionInfo, SubtaskPart, ToolPart
from .errors import StorageError
from .export import (
    ExportOptions,
    expanded_ids_for,
    export_session as render_export,
    group_to_dict,
    session_info_to_dict,
)
from .grouping import group_messages
from .provider import LoadResult, SessionProvider
from .relations import (
    build_ancestor_chain,
    child_sessions,
    find_delegated_session,
    flatten_tree,
    parse_subagent_title,
)
from .search import MESSAGE_FILTERS, search_session, search_sessions
from .totals import calculate_totals

logger = logging.getLogger(__name__)

app = FastAPI(title="opencode-viewer", version="0.1.0")

EXPORT_MEDIA_TYPES = {
    "html": "text/html",
    "md": "text/markdown",
    "json": "application/json",
}

# Provider and load caches (populated on first request)
_providers: list[SessionProvider] | None = None
_loaded: dict[str, LoadResult] = {}


def _get_providers() -> list[SessionProvider]:
    """Lazily initialize and cache providers."""
    global _providers
    if _providers is None:
        _providers = get_available_providers()
        logger.info("Detected providers: %s", [p.name for p in _providers])
    return _providers


def _load(provider: SessionProvider) -> LoadResult:
    if provider.name not in _loaded:
        try:
            result = provider.load_all_sessions()
        except StorageError as e:
            logger.warning("Failed to load %s sessions: %s", provider.name, e)
            raise HTTPException(status_code=404, detail=f"{e} {e.suggestion}")
        if result.circular_ref_count:
            logger.warning("%s: broke %d circular parent references", provider.name, result.circular_ref_count)
        _loaded[provider.name] = result
    return _loaded[provider.name]


def _selected_providers(source: str | None) -> list[SessionProvider]:
    providers = _get_providers()
    if source:
        providers = [p for p in providers if p.name == source]
        if not providers:
            raise HTTPException(status_code=404, detail=f"Provider not available: {source}")
    return providers


def _all_sessions(source: str | None = None) -> dict[str, SessionInfo]:
    sessions: dict[str, SessionInfo] = {}
    for provider in _selected_providers(source):
        sessions.update(_load(provider).sessions)
    return sessions


def _locate(session_id: str) -> tuple[SessionProvider, LoadResult]:
    """Find the provider that owns ``session_id``."""
    for provider in _get_providers():
        result = _load(provider)
        if session_id in result.sessions:
            return provider, result
    raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")


def _load_session(session_id: str) -> tuple[Session, LoadResult]:
    provider, result = _locate(session_id)
    try:
        session = provider.load_session(session_id, result.sessions)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    except OSError as e:
        logger.error("Failed to load session %s: %s", session_id, e)
        raise HTTPException(status_code=500, detail="Failed to load session")
    return session, result


def _ensure_user_messages(session_ids: list[str]) -> None:
    """Load user message texts for sessions that have not been searched yet."""
    for provider in _get_providers():
        result = _load(provider)
        for session_id in session_ids:
            info = result.sessions.get(session_id)
            if info is not None and info.user_messages is None:
                info.user_messages = provider.load_user_messages(session_id)


def _safe_filename(title: str) -> str:
    safe = "".join(c if c.isalnum() or c in "-_ " else "" for c in title)[:50].strip()
    return safe or "session"


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/sources")
async def get_sources():
    """Return list of available session sources."""
    return [p.name for p in _get_providers()]


@app.get("/api/projects")
async def get_projects(source: str | None = Query(None, description="Filter by source")):
    """Return projects with their session forests."""
    projects = []
    for provider in _selected_providers(source):
        for project in _load(provider).projects:
            projects.append({
                "id": project.id,
                "path": project.path,
                "source": project.source,
                "sessions": [_node_to_dict(n) for n in project.sessions],
            })
    return projects


def _node_to_dict(node) -> dict:
    subagent = parse_subagent_title(node.session.title)
    return {
        "session": session_info_to_dict(node.session),
        "agent": subagent[0] if subagent else None,
        "display_title": subagent[1] if subagent else node.session.title,
        "children": [_node_to_dict(c) for c in node.children],
    }


@app.get("/api/sessions")
async def get_sessions(
    source: str | None = Query(None, description="Filter by source"),
    search: str | None = Query(None, description="Title, summary or date query"),
    include_messages: bool = Query(False, description="Also search user message text"),
):
    """Return all sessions, newest first, or the sessions matching ``search``."""
    sessions = _all_sessions(source)

    if search and search.strip():
        if include_messages:
            _ensure_user_messages(list(sessions))
        matches = search_sessions(search, sessions, include_messages=include_messages)
        return {
            "total": len(matches),
            "sessions": [
                {
                    **session_info_to_dict(m.session),
                    "match_type": m.match_type,
                    "match_text": m.match_text,
                    "preview": m.preview,
                }
                for m in matches
            ],
        }

    ordered = sorted(sessions.values(), key=lambda s: s.updated, reverse=True)
    return {
        "total": len(ordered),
        "sessions": [session_info_to_dict(s) for s in ordered],
    }


@app.get("/api/session/{session_id}")
async def get_session(session_id: str):
    """Return a session's grouped turns, totals and relatives."""
    session, result = _load_session(session_id)
    chain = build_ancestor_chain(session.info, result.sessions)
    roots = [node for project in result.projects for node in project.sessions]
    totals = calculate_totals(session)

    return {
        "info": session_info_to_dict(session.info),
        "groups": [group_to_dict(g) for g in group_messages(session.messages)],
        "totals": {
            "cost": totals.cost,
            "tokens": totals.tokens.total,
            "messages": totals.messages.total,
            "duration_ms": totals.duration_ms,
        },
        "ancestors": [session_info_to_dict(a) for a in chain.ancestors],
        "cycle_at": chain.cycle_at,
        "children": [session_info_to_dict(n.session) for n in child_sessions(roots, session_id)],
    }


@app.get("/api/session/{session_id}/search")
async def search_in_session(
    session_id: str,
    q: str = Query("", description="Text to search for"),
    filter: str = Query("all", description="all or user"),
):
    """Search the parts of one session."""
    if filter not in MESSAGE_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown filter: {filter}")
    session, _ = _load_session(session_id)
    matches = search_session(session, q, message_filter=filter)
    return {
        "total": len(matches),
        "matches": [
            {
                "message_id": m.message_id,
                "part_id": m.part_id,
                "match_type": m.match_type,
                "match_text": m.match_text,
                "context": m.context,
            }
            for m in matches
        ],
    }


@app.get("/api/session/{session_id}/subtask/{part_id}")
async def get_spawned_session(session_id: str, part_id: str):
    """Return the session spawned by a subtask or task delegation part."""
    session, result = _load_session(session_id)
    part = next(
        (p for m in session.messages for p in m.parts if p.id == part_id),
        None,
    )
    if not isinstance(part, (SubtaskPart, ToolPart)):
        raise HTTPException(status_code=404, detail=f"No delegation part {part_id}")

    candidates = sorted(result.sessions.values(), key=lambda s: s.created)
    spawned = find_delegated_session(part, candidates)
    if spawned is None:
        raise HTTPException(status_code=404, detail="Spawned session not found")
    return session_info_to_dict(spawned)


@app.get("/api/export/{session_id}")
async def export_session(
    session_id: str,
    format: str = Query("html", description="Export format: html, md or json"),
    theme: str | None = Query(None, description="light or dark"),
    expanded: list[str] = Query([], description="Ids of sections to render expanded"),
    expand_all: bool = Query(False, description="Expand every collapsible section"),
):
    """Export a session as a download."""
    if format not in EXPORT_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown export format: {format}")

    session, result = _load_session(session_id)
    options = ExportOptions(
        theme=theme or get_default_theme(),
        expanded_ids=expanded_ids_for(session, expanded, expand_all),
    )
    known = sorted(flatten_tree([n for p in result.projects for n in p.sessions]), key=lambda s: s.created)
    content = render_export(session, format, options, {s.id: s for s in known})

    filename = f"{_safe_filename(session.info.title)}.{format}"
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def reset_caches() -> None:
    """Forget detected providers and loaded sessions."""
    global _providers
    _providers = None
    _loaded.clear()
