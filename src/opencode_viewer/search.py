"""Search across sessions and within a single session.

Both searches are pure functions that rescan their input on every call;
there is no persistent index. ``DebouncedSearch`` is a helper for interactive
front ends that call them on every keystroke: it delays each call and runs only
the latest query of a burst. The web API and the CLI answer one query per
request and call the search functions directly.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Union

from .config import DEFAULT_DEBOUNCE_MS, get_debounce_ms
from .core import Part, ReasoningPart, Session, SessionInfo, TextPart, ToolPart
from .formatters import format_day

logger = logging.getLogger(__name__)

DEBOUNCE_MS = DEFAULT_DEBOUNCE_MS
SESSION_PREVIEW_RADIUS = 30
MESSAGE_CONTEXT_RADIUS = 50

MESSAGE_FILTERS = ("all", "user")

_MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_MONTH_DAY_RE = re.compile(r"^([a-z]+)\s+(\d{1,2})$")
_WHITESPACE_RE = re.compile(r"\s+")


# ── Date queries ─────────────────────────────────────────────────


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of naive local datetimes."""

    start: datetime
    end: datetime

    def __contains__(self, value: datetime) -> bool:
        return self.start <= _to_local(value) <= self.end


def _to_local(value: datetime) -> datetime:
    """Naive local datetime for comparison against a DateRange."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _end_of_day(day: date) -> datetime:
    return datetime.combine(day, time(23, 59, 59, 999000))


def _single_day(day: date) -> DateRange:
    return DateRange(_start_of_day(day), _end_of_day(day))


def parse_date_query(query: str, now: Optional[datetime] = None) -> Optional[DateRange]:
    """Interpret ``query`` as a date expression, or return None.

    Accepted forms: ``today``, ``yesterday``, ``last week``, ``this month``,
    ``YYYY-MM-DD`` and ``<month> <day>`` (``jan 3``, ``january 03``). A
    month/day resolves to its most recent occurrence that is not in the
    future. Dates that do not exist on the calendar (``2025-02-30``,
    ``feb 30``) are not date queries.
    """
    text = query.strip().lower()
    now = _to_local(now) if now is not None else datetime.now()
    today = now.date()

    if text == "today":
        return _single_day(today)
    if text == "yesterday":
        return _single_day(today - timedelta(days=1))
    if text == "last week":
        return DateRange(_start_of_day(today - timedelta(days=7)), _end_of_day(today))
    if text == "this month":
        return DateRange(_start_of_day(today.replace(day=1)), _end_of_day(today))

    match = _ISO_DATE_RE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        try:
            return _single_day(date(year, month, day))
        except ValueError:
            return None

    match = _MONTH_DAY_RE.match(text)
    if match:
        month = _MONTHS.get(match.group(1))
        if month is None:
            return None
        day = int(match.group(2))
        year = today.year if (month, day) <= (today.month, today.day) else today.year - 1
        try:
            return _single_day(date(year, month, day))
        except ValueError:
            return None

    return None


# ── Results ──────────────────────────────────────────────────────


@dataclass
class SessionMatch:
    """A session found by cross-session search."""

    session_id: str
    session: SessionInfo
    match_type: str  # "title" | "summary" | "message" | "date"
    match_text: str
    preview: str


@dataclass
class MessageMatch:
    """A hit inside one session, keyed by the id of the owning group."""

    message_id: str
    part_id: str
    match_type: str  # "user" | "assistant" | "tool" | "reasoning"
    match_text: str
    context: str


def _context(text: str, index: int, length: int, radius: int) -> str:
    start = max(0, index - radius)
    end = min(len(text), index + length + radius)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return _WHITESPACE_RE.sub(" ", snippet).strip()


def _find(text: str, lower_query: str) -> int:
    return text.lower().find(lower_query)


# ── Cross-session search ─────────────────────────────────────────


SessionCollection = Union[Mapping[str, SessionInfo], Iterable[SessionInfo]]


def _session_entries(sessions: SessionCollection) -> Iterable[tuple[str, SessionInfo]]:
    if isinstance(sessions, Mapping):
        return sessions.items()
    return ((s.id, s) for s in sessions)


def _match_session(session_id: str, session: SessionInfo, query: str, include_messages: bool) -> Optional[SessionMatch]:
    lower_query = query.lower()

    candidates = [("title", [session.title or ""])]
    if session.summary and session.summary.diffs:
        candidates.append(("summary", session.summary.diffs))
    if include_messages and session.user_messages:
        candidates.append(("message", session.user_messages))

    for match_type, texts in candidates:
        for text in texts:
            index = _find(text, lower_query)
            if index == -1:
                continue
            return SessionMatch(
                session_id=session_id,
                session=session,
                match_type=match_type,
                match_text=text[index:index + len(query)],
                preview=_context(text, index, len(query), SESSION_PREVIEW_RADIUS),
            )
    return None


def search_sessions(
    query: str,
    sessions: SessionCollection,
    include_messages: bool = False,
    now: Optional[datetime] = None,
) -> list[SessionMatch]:
    """Find sessions by date expression or by substring.

    A date expression matches sessions created inside its range and nothing
    else. Any other query is matched case-insensitively against the title,
    then the summary diffs, then (with ``include_messages``) the user message
    texts; the first field that matches decides the result. Results are
    ordered newest first.
    """
    query = query.strip()
    if not query:
        return []

    results = []
    date_range = parse_date_query(query, now=now)

    for session_id, session in _session_entries(sessions):
        if date_range is not None:
            if session.created in date_range:
                results.append(SessionMatch(
                    session_id=session_id,
                    session=session,
                    match_type="date",
                    match_text=query,
                    preview=format_day(session.created),
                ))
            continue

        match = _match_session(session_id, session, query, include_messages)
        if match:
            results.append(match)

    results.sort(key=lambda r: _to_local(r.session.created), reverse=True)
    return results


# ── Within-session search ────────────────────────────────────────


def extract_part_text(part: Part) -> Optional[str]:
    """Searchable text of a part, or None for parts without any."""
    if isinstance(part, (TextPart, ReasoningPart)):
        return part.text
    if isinstance(part, ToolPart):
        texts = [part.tool]
        if part.state.is_completed:
            if part.state.title:
                texts.append(part.state.title)
            if part.state.output:
                texts.append(part.state.output)
        if part.state.is_error and part.state.error:
            texts.append(part.state.error)
        return " ".join(texts)
    return None


def search_session(session: Session, query: str, message_filter: str = "all") -> list[MessageMatch]:
    """Find every part of ``session`` whose text contains ``query``.

    ``message_filter="user"`` restricts the scan to user messages. Hits in
    assistant messages carry the id of the user message they answer, so all
    hits of one turn point at the same group.
    """
    if not query.strip():
        return []

    lower_query = query.lower()
    results = []

    for message in session.messages:
        if message_filter == "user" and not message.is_user:
            continue

        group_id = message.id
        if message.is_assistant and message.info.parent_id:
            group_id = message.info.parent_id

        for part in message.parts:
            text = extract_part_text(part)
            if not text:
                continue
            index = _find(text, lower_query)
            if index == -1:
                continue

            match_type = message.info.role
            if isinstance(part, ToolPart):
                match_type = "tool"
            elif isinstance(part, ReasoningPart):
                match_type = "reasoning"

            results.append(MessageMatch(
                message_id=group_id,
                part_id=part.id,
                match_type=match_type,
                match_text=text[index:index + len(query)],
                context=_context(text, index, len(query), MESSAGE_CONTEXT_RADIUS),
            ))

    return results


def matched_group_ids(results: Iterable[MessageMatch]) -> set[str]:
    return {r.message_id for r in results}


# ── Debouncing ───────────────────────────────────────────────────


class DebouncedSearch:
    """Run a synchronous search only after input has settled.

    Every ``update`` cancels the pending timer and bumps a query token. When
    the timer fires, the search runs and its results are published only if
    no newer update arrived meanwhile.
    """

    def __init__(self, search: Callable[..., list], delay_ms: Optional[int] = None):
        self._search = search
        self.delay_ms = get_debounce_ms() if delay_ms is None else delay_ms
        self.results: list = []
        self._token = 0
        self._pending: Optional[asyncio.Task] = None

    @property
    def token(self) -> int:
        return self._token

    def update(self, *args: Any, **kwargs: Any) -> "asyncio.Task":
        """Schedule a search with new arguments; must be called from a running loop."""
        self.cancel()
        self._token += 1
        self._pending = asyncio.ensure_future(self._run(self._token, args, kwargs))
        return self._pending

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _run(self, token: int, args: tuple, kwargs: dict) -> Optional[list]:
        await asyncio.sleep(self.delay_ms / 1000)

        results = self._search(*args, **kwargs)
        if token != self._token:
            logger.debug("Discarding results of stale search %d", token)
            return None
        self.results = results
        return results
