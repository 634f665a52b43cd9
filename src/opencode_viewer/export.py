"""Export sessions as a self-contained HTML page, Markdown, or JSON.

The HTML export re-renders a session as plain string concatenation. Every
piece of transcript-derived text goes through ``escape_html`` before it is
placed in the document, including ids used in attributes. Which sections
render expanded is decided by ``ExportOptions.expanded_ids`` only.
"""

import dataclasses
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .core import (
    FilePart,
    Message,
    MessageGroup,
    Part,
    ReasoningPart,
    Session,
    SessionInfo,
    SubtaskPart,
    TextPart,
    ToolPart,
    is_file_part,
    part_type,
)
from .export_assets import EXPORT_SCRIPT, EXPORT_STYLES
from .formatters import (
    format_cost,
    format_date,
    format_duration,
    format_duration_compact,
    format_file_changes,
    format_time,
    format_tokens,
    truncate,
)
from .grouping import (
    assistant_stats,
    group_messages,
    group_summary,
    partition_steps,
    sidebar_items,
    turn_parts,
    turn_steps,
)
from .relations import find_delegated_session
from .totals import calculate_message_totals, calculate_totals

EXPORT_FORMATS = ("html", "md", "json")

_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
})


def escape_html(text: Any) -> str:
    """Escape the five HTML-significant characters."""
    return str(text).translate(_ESCAPES)


@dataclass
class ExportOptions:
    """UI state captured at export time."""

    theme: str = "light"  # "light" | "dark"
    expanded_ids: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        self.expanded_ids = frozenset(self.expanded_ids)

    def is_expanded(self, element_id: str) -> bool:
        return element_id in self.expanded_ids


def _svg(size: int, body: str) -> str:
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 24 24" '
        f'fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" '
        f'stroke-linejoin="round">{body}</svg>'
    )


ICONS = {
    "user": _svg(16, '<path d="M19 21v-2a4 4 0 0 0-4-4H9a4 4 0 0 0-4 4v2"/><circle cx="12" cy="7" r="4"/>'),
    "bot": _svg(16, '<path d="M12 8V4H8"/><rect width="16" height="12" x="4" y="8" rx="2"/><path d="M15 13v2"/><path d="M9 13v2"/>'),
    "chevron": _svg(16, '<path d="m9 18 6-6-6-6"/>'),
    "check": _svg(16, '<path d="M20 6 9 17l-5-5"/>'),
    "x": _svg(16, '<path d="M18 6 6 18"/><path d="m6 6 12 12"/>'),
    "loader": _svg(16, '<path d="M21 12a9 9 0 1 1-6.219-8.56"/>'),
    "clock": _svg(12, '<circle cx="12" cy="12" r="10"/><polyline points="12 6 12 12 16 14"/>'),
    "brain": _svg(16, '<path d="M12 5a3 3 0 1 0-5.997.125 4 4 0 0 0-2.526 5.77 4 4 0 0 0 .556 6.588A4 4 0 1 0 12 18Z"/><path d="M12 5a3 3 0 1 1 5.997.125 4 4 0 0 1 2.526 5.77 4 4 0 0 1-.556 6.588A4 4 0 1 1 12 18Z"/>'),
    "terminal": _svg(16, '<polyline points="4 17 10 11 4 5"/><line x1="12" x2="20" y1="19" y2="19"/>'),
    "file": _svg(16, '<path d="M15 2H6a2 2 0 0 0-2 2v16a2 2 0 0 0 2 2h12a2 2 0 0 0 2-2V7Z"/><path d="M14 2v4a2 2 0 0 0 2 2h4"/>'),
    "coins": _svg(16, '<circle cx="8" cy="8" r="6"/><path d="M18.09 10.37A6 6 0 1 1 10.34 18"/><path d="M7 6h1v4"/>'),
    "hash": _svg(16, '<line x1="4" x2="20" y1="9" y2="9"/><line x1="4" x2="20" y1="15" y2="15"/><line x1="10" x2="8" y1="3" y2="21"/><line x1="16" x2="14" y1="3" y2="21"/>'),
    "sun": _svg(20, '<circle cx="12" cy="12" r="4"/><path d="M12 2v2"/><path d="M12 20v2"/><path d="M2 12h2"/><path d="M20 12h2"/>'),
    "moon": _svg(20, '<path d="M12 3a6 6 0 0 0 9 9 9 9 0 1 1-9-9Z"/>'),
    "menu": _svg(20, '<line x1="4" x2="20" y1="12" y2="12"/><line x1="4" x2="20" y1="6" y2="6"/><line x1="4" x2="20" y1="18" y2="18"/>'),
}


# ── Element ids ──────────────────────────────────────────────────


def group_element_id(group: MessageGroup) -> str:
    return f"msg-{group.id}"


def assistant_element_id(group: MessageGroup) -> str:
    return f"assistant-response-{group.assistant_messages[0].id}"


def tool_element_id(part: ToolPart) -> str:
    return f"tool-{part.id}"


def reasoning_element_id(part: ReasoningPart) -> str:
    return f"reasoning-{part.id}"


def _tool_has_details(part: ToolPart) -> bool:
    return part.state.is_completed or part.state.is_error


def collapsible_ids(session: Session) -> set[str]:
    """Ids of every collapsible section the HTML export would contain."""
    ids = set()
    for group in group_messages(session.messages):
        if group.assistant_messages:
            ids.add(assistant_element_id(group))
        for part in turn_parts(group):
            if isinstance(part, ToolPart) and _tool_has_details(part):
                ids.add(tool_element_id(part))
            elif isinstance(part, ReasoningPart):
                ids.add(reasoning_element_id(part))
    return ids


# ── HTML rendering ───────────────────────────────────────────────


def _classes(*names: Optional[str]) -> str:
    return " ".join(name for name in names if name)


def _toggle_attrs(content_id: str, expanded: bool) -> str:
    state = "true" if expanded else "false"
    return f'data-toggle="{escape_html(content_id)}" aria-controls="{escape_html(content_id)}" aria-expanded="{state}"'


def _format_input(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def _model_name(session: Session) -> str:
    for message in session.messages:
        if message.is_assistant and message.info.model_id:
            return message.info.model_id
    return "Unknown"


def _status_icon(status: str) -> str:
    if status == "completed":
        return f'<span class="tool-status tool-status-completed">{ICONS["check"]}</span>'
    if status == "error":
        return f'<span class="tool-status tool-status-error">{ICONS["x"]}</span>'
    return f'<span class="tool-status tool-status-pending">{ICONS["loader"]}</span>'


def _tool_style(tool: str) -> str:
    return tool if tool in ("task", "skill") else "default"


def _render_header(session: Session) -> str:
    totals = calculate_totals(session)
    title = session.info.title or "Untitled Session"
    changes = ""
    if session.info.summary and session.info.summary.files:
        changes = f"""
      <span class="badge"><span class="badge-value">{escape_html(format_file_changes(session.info.summary))}</span></span>"""

    return f"""
<header class="header">
  <div class="header-content">
    <button class="mobile-sidebar-toggle theme-toggle" onclick="toggleMobileSidebar()" aria-label="Toggle message index">{ICONS["menu"]}</button>
    <div>
      <h1 class="header-title">{escape_html(title)}</h1>
      <p class="header-subtitle">{escape_html(session.info.directory)}</p>
    </div>
    <div class="header-badges">
      <span class="badge"><span class="badge-label">Model:</span><span class="badge-value">{escape_html(_model_name(session))}</span></span>
      <span class="badge">{ICONS["coins"]}<span class="badge-value">{format_cost(totals.cost)}</span></span>
      <span class="badge">{ICONS["hash"]}<span class="badge-value">{format_tokens(totals.tokens.total)}</span></span>
      <span class="badge">{ICONS["clock"]}<span class="badge-value">{format_duration(totals.duration_ms)}</span></span>{changes}
    </div>
    <button class="theme-toggle" onclick="toggleTheme()" aria-label="Toggle theme">
      <span class="sun-icon" style="display: none;">{ICONS["sun"]}</span>
      <span class="moon-icon">{ICONS["moon"]}</span>
    </button>
  </div>
</header>""".strip()


def _render_file_part(part: FilePart) -> str:
    label = part.filename or part.source_path or part.url or "attachment"
    mime = f' <span class="badge-label">({escape_html(part.mime)})</span>' if part.mime else ""
    return f'<div id="part-{escape_html(part.id)}" class="file-part">{ICONS["file"]} {escape_html(label)}{mime}</div>'


def _render_user_message(message: Message, index: int) -> str:
    text = "\n".join(p.text for p in message.parts if isinstance(p, TextPart) and not p.ignored)
    files = "".join(_render_file_part(p) for p in message.parts if is_file_part(p))
    content = escape_html(text) if text else '<span class="no-content">No text content</span>'

    return f"""
<div class="user-message">
  <div class="user-header">
    <div class="user-header-left">
      <span class="user-icon">{ICONS["user"]}</span>
      <span class="user-label">User</span>
      <span class="user-index">#{index + 1}</span>
    </div>
    <span class="user-time">{format_time(message.info.created)}</span>
  </div>
  <div class="user-content">{content}</div>{files}
</div>""".strip()


def _render_text_part(part: TextPart) -> str:
    if part.ignored:
        return ""
    return f'<div class="prose">{escape_html(part.text)}</div>'


def _render_reasoning_part(part: ReasoningPart, expanded: bool) -> str:
    content_id = reasoning_element_id(part)
    preview = part.text[:50].strip() + "..." if len(part.text) > 50 else part.text
    action = "Collapse" if expanded else "Expand"

    return f"""
<div class="reasoning-wrapper">
  <button class="reasoning-chip" {_toggle_attrs(content_id, expanded)} aria-label="{action} thinking section">
    <span class="{_classes("reasoning-chevron", "expanded" if expanded else None)}">{ICONS["chevron"]}</span>
    <span class="reasoning-icon">{ICONS["brain"]}</span>
    <span class="reasoning-label">Thinking</span>
    <span class="{_classes("reasoning-preview", "hidden" if expanded else None)}">{escape_html(preview)}</span>
  </button>
  <div id="{escape_html(content_id)}" class="{_classes("reasoning-content", None if expanded else "hidden")}">
    <pre class="reasoning-text">{escape_html(part.text)}</pre>
  </div>
</div>""".strip()


def _render_embedded_session(part: Part, all_sessions: Optional[Mapping[str, SessionInfo]]) -> str:
    spawned = find_delegated_session(part, all_sessions) if all_sessions else None
    if spawned is None:
        label = "[Embedded session content]"
    else:
        label = f"Sub-session: {spawned.title} ({spawned.id})"
    return f"""
<div class="embedded-session">
  <div class="embedded-header">
    <span class="embedded-chevron">{ICONS["chevron"]}</span>
    <span class="embedded-title">{escape_html(label)}</span>
  </div>
</div>""".strip()


def _render_tool_part(part: ToolPart, expanded: bool, all_sessions: Optional[Mapping[str, SessionInfo]]) -> str:
    state = part.state
    style = _tool_style(part.tool)
    content_id = tool_element_id(part)
    has_details = _tool_has_details(part)
    title = state.title if state.is_completed and state.title else ""

    if has_details:
        action = "Collapse" if expanded else "Expand"
        toggle = f'{_toggle_attrs(content_id, expanded)} aria-label="{action} {escape_html(part.tool)} tool details"'
        chevron = f'<span class="{_classes("tool-chevron", "expanded" if expanded else None)}">{ICONS["chevron"]}</span>'
    else:
        toggle = f'aria-label="{escape_html(part.tool)} tool"'
        chevron = ""
    title_html = f'<span class="tool-title">{escape_html(title)}</span>' if title else ""

    chip = f"""
<button class="tool-chip tool-{style}" {toggle}>
  {chevron}
  <span class="tool-icon">{ICONS["terminal"]}</span>
  <span class="tool-name">{escape_html(part.tool)}</span>
  {title_html}
  {_status_icon(state.status)}
</button>""".strip()

    if not has_details:
        return f'<div id="part-{escape_html(part.id)}">{chip}</div>'

    sections = [f"""
<div class="tool-section">
  <div class="tool-section-label">Input</div>
  <pre class="tool-section-content">{escape_html(_format_input(state.input))}</pre>
</div>"""]
    if state.is_completed and state.output:
        sections.append(f"""
<div class="tool-section">
  <div class="tool-section-label">Output</div>
  <pre class="tool-section-content">{escape_html(state.output)}</pre>
</div>""")
    if state.is_error:
        sections.append(f"""
<div class="tool-section tool-error">
  <div class="tool-section-label">Error</div>
  <pre class="tool-section-content">{escape_html(state.error)}</pre>
</div>""")
    if state.duration_ms is not None:
        sections.append(f"""
<div class="tool-duration">{ICONS["clock"]}<span>Duration: {format_duration_compact(state.duration_ms)}</span></div>""")
    if part.tool == "task" and state.is_completed:
        sections.append(_render_embedded_session(part, all_sessions))

    return f"""
<div id="part-{escape_html(part.id)}">
  {chip}
  <div id="{escape_html(content_id)}" class="{_classes("tool-details", f"tool-{style}", None if expanded else "hidden")}">
    {"".join(sections)}
  </div>
</div>""".strip()


def _render_subtask_part(part: SubtaskPart, all_sessions: Optional[Mapping[str, SessionInfo]]) -> str:
    prompt = f'<pre class="subtask-prompt">{escape_html(part.prompt)}</pre>' if part.prompt else ""
    return f"""
<div id="part-{escape_html(part.id)}" class="subtask-part">
  <div><span class="subtask-agent">@{escape_html(part.agent)}</span> {escape_html(part.description)}</div>
  {prompt}
  {_render_embedded_session(part, all_sessions)}
</div>""".strip()


def _render_part(part: Part, options: ExportOptions, all_sessions: Optional[Mapping[str, SessionInfo]]) -> str:
    if isinstance(part, TextPart):
        return _render_text_part(part)
    if isinstance(part, ReasoningPart):
        return _render_reasoning_part(part, options.is_expanded(reasoning_element_id(part)))
    if isinstance(part, ToolPart):
        return _render_tool_part(part, options.is_expanded(tool_element_id(part)), all_sessions)
    if isinstance(part, SubtaskPart):
        return _render_subtask_part(part, all_sessions)
    if isinstance(part, FilePart):
        return _render_file_part(part)
    # step markers and unknown parts have no visual form
    return ""


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _render_assistant_response(
    group: MessageGroup, options: ExportOptions, all_sessions: Optional[Mapping[str, SessionInfo]]
) -> str:
    if not group.assistant_messages:
        return ""

    stats = assistant_stats(group.assistant_messages)
    totals = calculate_message_totals(group.assistant_messages)
    content_id = assistant_element_id(group)
    expanded = options.is_expanded(content_id)
    steps = partition_steps(turn_parts(group))

    summary = []
    if stats.step_count:
        summary.append(_plural(stats.step_count, "step"))
    if stats.tool_count:
        summary.append(_plural(stats.tool_count, "tool"))
    if stats.has_reasoning:
        summary.append("thinking")
    summary_html = f'<span class="assistant-summary">{", ".join(summary)}</span>' if summary else ""

    turn_tokens = totals.tokens.input + totals.tokens.output
    cost = f" / {format_cost(totals.cost)}" if totals.cost > 0 else ""

    rendered_steps = []
    for step in steps:
        body = "\n".join(html for html in (_render_part(p, options, all_sessions) for p in step.parts) if html)
        if not body:
            continue
        if len(steps) > 1:
            body = f'<div class="step" data-step="{step.number}"><div class="step-label">Step {step.number}</div>\n{body}\n</div>'
        rendered_steps.append(body)
    content = "\n".join(rendered_steps) or '<p class="no-content">No content</p>'
    action = "Collapse" if expanded else "Expand"

    return f"""
<div class="assistant-response">
  <button class="assistant-header" {_toggle_attrs(content_id, expanded)} aria-label="{action} assistant response">
    <span class="{_classes("assistant-chevron", "expanded" if expanded else None)}">{ICONS["chevron"]}</span>
    <span class="assistant-icon">{ICONS["bot"]}</span>
    <span class="assistant-label">Assistant</span>
    {summary_html}
    <span class="assistant-stats">{format_tokens(turn_tokens)} tokens{cost}</span>
  </button>
  <div id="{escape_html(content_id)}" class="{_classes("assistant-content", None if expanded else "hidden")}">
    {content}
  </div>
</div>""".strip()


def _render_group(
    group: MessageGroup, index: int, options: ExportOptions, all_sessions: Optional[Mapping[str, SessionInfo]]
) -> str:
    user = _render_user_message(group.user_message, index) if group.user_message is not None else ""
    return f"""
<div id="{escape_html(group_element_id(group))}" class="message-group">
  {user}
  {_render_assistant_response(group, options, all_sessions)}
</div>""".strip()


def _render_sidebar(groups: list[MessageGroup]) -> str:
    if not groups:
        return """
<aside class="sidebar">
  <h2 class="sidebar-title">Messages</h2>
  <p class="no-content">No messages loaded</p>
</aside>""".strip()

    items = "\n".join(
        f"""<li class="sidebar-item">
  <button class="sidebar-link" data-scroll-to="{escape_html(group_element_id(group))}">
    <span class="sidebar-number">{index + 1}.</span>
    <span class="sidebar-text">{escape_html(truncate(group_summary(group), 40))}</span>
  </button>
</li>"""
        for index, group in enumerate(groups)
    )
    return f"""
<aside class="sidebar">
  <h2 class="sidebar-title">Messages</h2>
  <nav aria-label="Message navigation">
    <ul class="sidebar-list">
{items}
    </ul>
  </nav>
</aside>""".strip()


def generate_session_html(
    session: Session,
    options: Optional[ExportOptions] = None,
    all_sessions: Optional[Mapping[str, SessionInfo]] = None,
) -> str:
    """Render ``session`` as one standalone HTML document.

    ``all_sessions`` lets delegations name the sub-session they spawned;
    without it they render a placeholder.
    """
    options = options or ExportOptions()
    groups = group_messages(session.messages)
    theme_class = "dark" if options.theme == "dark" else ""
    messages_html = "\n".join(
        _render_group(group, index, options, all_sessions) for index, group in enumerate(groups)
    )

    return f"""<!DOCTYPE html>
<html lang="en" class="{theme_class}">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape_html(session.info.title or "OpenCode Session")}</title>
  <style>
{EXPORT_STYLES}
  </style>
</head>
<body>
  <div class="layout">
    {_render_header(session)}
    <div class="main-container">
      <main class="content-area">
        {messages_html}
      </main>
      {_render_sidebar(groups)}
    </div>
    <div class="sidebar-overlay"></div>
  </div>
  <script>
{EXPORT_SCRIPT}
  </script>
</body>
</html>"""


# ── Plain data ───────────────────────────────────────────────────


def _plain(value: Any) -> Any:
    """Convert dataclass output into JSON-ready values."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    return value


def session_info_to_dict(info: SessionInfo) -> dict:
    return _plain(dataclasses.asdict(info))


def part_to_dict(part: Part) -> dict:
    data = _plain(dataclasses.asdict(part))
    data["type"] = part_type(part)
    return data


def message_to_dict(message: Message) -> dict:
    return {
        "info": _plain(dataclasses.asdict(message.info)),
        "parts": [part_to_dict(p) for p in message.parts],
    }


def group_to_dict(group: MessageGroup) -> dict:
    return {
        "id": group.id,
        "summary": group_summary(group),
        "user_message": message_to_dict(group.user_message) if group.user_message else None,
        "assistant_messages": [message_to_dict(m) for m in group.assistant_messages],
        "steps": [
            {"number": step.number, "part_ids": [p.id for p in step.parts]}
            for step in turn_steps(group)
        ],
        "sidebar": [dataclasses.asdict(item) for item in sidebar_items(group)],
    }


def session_to_json(session: Session) -> str:
    """Export a session, its messages and its groups as structured JSON."""
    groups = group_messages(session.messages)
    totals = calculate_totals(session)
    data = {
        "session": session_info_to_dict(session.info),
        "totals": {
            "cost": totals.cost,
            "tokens": {**_plain(dataclasses.asdict(totals.tokens)), "total": totals.tokens.total},
            "messages": {
                "user": totals.messages.user,
                "assistant": totals.messages.assistant,
                "total": totals.messages.total,
            },
            "duration_ms": totals.duration_ms,
        },
        "messages": [message_to_dict(m) for m in session.messages],
        "groups": [
            {"id": group.id, "message_ids": [m.id for m in group.messages]}
            for group in groups
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


# ── Markdown ─────────────────────────────────────────────────────


def _fence(text: str) -> str:
    ticks = "```"
    while ticks in text:
        ticks += "`"
    return f"{ticks}\n{text}\n{ticks}"


def _part_markdown(part: Part) -> list[str]:
    if isinstance(part, TextPart):
        return [] if part.ignored or not part.text.strip() else [part.text]
    if isinstance(part, ReasoningPart):
        quoted = "\n".join(f"> {line}" for line in part.text.splitlines())
        return [f"> **Thinking**\n{quoted}"]
    if isinstance(part, ToolPart):
        heading = f"**Tool:** `{part.tool}` ({part.state.status})"
        if part.state.title:
            heading += f" {part.state.title}"
        lines = [heading]
        if part.state.input not in (None, "", {}):
            lines.append(_fence(_format_input(part.state.input)))
        if part.state.is_completed and part.state.output:
            lines.append(_fence(part.state.output))
        if part.state.is_error:
            lines.append(f"**Error:** {part.state.error}")
        return lines
    if isinstance(part, SubtaskPart):
        return [f"**Subtask (@{part.agent}):** {part.description}"]
    if isinstance(part, FilePart):
        return [f"**File:** {part.filename or part.source_path or part.url}"]
    return []


def session_to_markdown(session: Session) -> str:
    """Export a session as Markdown, one section per conversational turn."""
    info = session.info
    totals = calculate_totals(session)
    lines = [f"# {info.title}", ""]

    if info.directory:
        lines.append(f"**Project:** {info.directory}")
    if info.source:
        lines.append(f"**Source:** {info.source}")
    lines.append(f"**Created:** {info.created.isoformat()}")
    lines.append(f"**Updated:** {info.updated.isoformat()}")
    lines.append(f"**Messages:** {totals.messages.total}")
    lines.append(f"**Cost:** {format_cost(totals.cost)} | **Tokens:** {format_tokens(totals.tokens.total)}")
    if info.summary and info.summary.files:
        lines.append(f"**Changes:** {format_file_changes(info.summary)}")
    lines.extend(["", "---", ""])

    for index, group in enumerate(group_messages(session.messages), 1):
        if group.user_message is not None:
            stamp = format_date(group.user_message.info.created)
            lines.append(f"## User #{index}" + (f" ({stamp})" if stamp else ""))
            lines.append("")
            for part in group.user_message.parts:
                for block in _part_markdown(part):
                    lines.extend([block, ""])

        steps = partition_steps(turn_parts(group))
        if steps:
            lines.append("### Assistant")
            lines.append("")
        for step in steps:
            if len(steps) > 1:
                lines.extend([f"#### Step {step.number}", ""])
            for part in step.parts:
                for block in _part_markdown(part):
                    lines.extend([block, ""])

        lines.extend(["---", ""])

    return "\n".join(lines)


def export_session(session: Session, fmt: str, options: Optional[ExportOptions] = None,
                   all_sessions: Optional[Mapping[str, SessionInfo]] = None) -> str:
    """Export in ``fmt`` ("html", "md" or "json")."""
    if fmt == "html":
        return generate_session_html(session, options, all_sessions)
    if fmt == "json":
        return session_to_json(session)
    if fmt == "md":
        return session_to_markdown(session)
    raise ValueError(f"Unknown export format: {fmt}")


def expanded_ids_for(session: Session, requested: Iterable[str] = (), expand_all: bool = False) -> frozenset:
    """Expanded-section set for an export request."""
    if expand_all:
        return frozenset(collapsible_ids(session))
    return frozenset(requested)
