"""Claude Code transcript backend.

Reads transcripts from ~/.claude/projects/. Each project directory is the
project path with separators encoded as dashes, holding one ``<uuid>.jsonl``
file per session.

JSONL entry types:
- "user": User prompts. Content is a string or an array of blocks, and may
  carry tool_result blocks answering an earlier tool_use.
- "assistant": Model output. Content is an array of text, thinking and
  tool_use blocks.
- Anything else (summary, system, file-history-snapshot, ...) is skipped.
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import get_claude_code_path
from ..core import (
    Message,
    MessageInfo,
    Part,
    ProjectInfo,
    ReasoningPart,
    Session,
    SessionInfo,
    TextPart,
    TokenUsage,
    ToolPart,
    ToolState,
)
from ..errors import StorageError, StorageErrorCode
from ..provider import LoadResult, SessionProvider
from ..relations import build_session_tree

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MESSAGE_TYPES = ("user", "assistant")


class ClaudeCodeProvider(SessionProvider):
    """Provider for Claude Code transcripts."""

    name = "claude_code"

    def get_base_path(self) -> Path:
        return get_claude_code_path()

    def is_available(self) -> bool:
        return (self.get_base_path() / "projects").is_dir()

    def load_all_sessions(self) -> LoadResult:
        projects_dir = self.get_base_path() / "projects"
        if not projects_dir.is_dir():
            raise StorageError(
                f"Could not find projects directory in {self.get_base_path()}. "
                "This may not be a Claude Code storage folder.",
                StorageErrorCode.NOT_STORAGE_FOLDER,
            )

        try:
            project_dirs = sorted(d for d in projects_dir.iterdir() if d.is_dir())
        except PermissionError as e:
            raise StorageError(f"Permission denied reading {projects_dir}: {e}", StorageErrorCode.PERMISSION_DENIED)

        result = LoadResult()
        for project_dir in project_dirs:
            infos = []
            spawned_from = {}
            for jsonl_file in sorted(project_dir.glob("*.jsonl")):
                entries = self._read_entries(jsonl_file)
                if entries is None:
                    result.error_count += 1
                    continue
                info = session_info_from_entries(entries, jsonl_file, project_dir.name)
                infos.append(info)
                origin = next((e["sessionId"] for e in entries if _str(e.get("sessionId"))), None)
                if origin and origin != info.id:
                    spawned_from[info.id] = origin

            known = {info.id for info in infos}
            for info in infos:
                if spawned_from.get(info.id) in known:
                    info.parent_id = spawned_from[info.id]
                result.sessions[info.id] = info

            tree = build_session_tree(infos)
            result.circular_ref_count += tree.circular_ref_count
            result.projects.append(ProjectInfo(
                id=project_dir.name,
                path=decode_project_path(project_dir.name),
                sessions=tree.roots,
                source=self.name,
            ))

        return result

    def load_session(self, session_id: str, all_sessions: Mapping[str, SessionInfo]) -> Session:
        info = all_sessions.get(session_id)
        if info is None:
            raise KeyError(f"Session not found: {session_id}")

        path = self.get_base_path() / "projects" / info.project_id / f"{session_id}.jsonl"
        entries = self._read_entries(path)
        if entries is None:
            return Session(info=info, messages=[])
        return Session(info=info, messages=convert_entries(entries, session_id))

    def load_user_messages(self, session_id: str) -> list[str]:
        projects_dir = self.get_base_path() / "projects"
        for path in projects_dir.glob(f"*/{session_id}.jsonl"):
            entries = self._read_entries(path) or []
            texts = [_user_text(e) for e in entries if e.get("type") == "user"]
            return [t for t in texts if t]
        return []

    # ── Private helpers ──────────────────────────────────────────────

    def _read_entries(self, path: Path) -> list[dict] | None:
        """Parse a JSONL transcript, skipping bad lines. None if unreadable."""
        entries = []
        try:
            with path.open(encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError as e:
                        logger.debug("Bad JSON at %s:%d: %s", path, line_num, e)
                        continue
                    if isinstance(entry, dict):
                        entries.append(entry)
        except OSError as e:
            logger.warning("Failed to read JSONL %s: %s", path, e)
            return None
        return entries


def decode_project_path(encoded: str) -> str:
    """``-Users-me--config`` -> ``/Users/me/.config``."""
    return encoded.replace("--", "/.").replace("-", "/")


def _parse_iso(value: Any) -> datetime | None:
    """Parse an ISO 8601 datetime string."""
    if not isinstance(value, str) or not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _int(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0


def _content_blocks(entry: dict) -> list:
    message = entry.get("message")
    content = message.get("content", []) if isinstance(message, dict) else []
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return content if isinstance(content, list) else []


def _user_text(entry: dict) -> str:
    """Plain text of a user entry, ignoring tool results."""
    parts = []
    for block in _content_blocks(entry):
        if isinstance(block, dict) and block.get("type") == "text":
            parts.append(_str(block.get("text")))
        elif isinstance(block, str):
            parts.append(block)
    return "\n".join(p for p in parts if p.strip())


def _tool_result_text(block: dict) -> str:
    content = block.get("content", "")
    if isinstance(content, str):
        return content
    texts = []
    if isinstance(content, list):
        for sub in content:
            if isinstance(sub, dict):
                if sub.get("type") == "image":
                    texts.append("[Image]")
                elif _str(sub.get("text")):
                    texts.append(sub["text"])
            elif isinstance(sub, str):
                texts.append(sub)
    return "\n".join(texts)


def _title(text: str) -> str:
    text = text.strip()
    if len(text) > MAX_TITLE_LENGTH:
        return text[:MAX_TITLE_LENGTH - 3] + "..."
    return text


def session_info_from_entries(entries: list[dict], path: Path, project_id: str) -> SessionInfo:
    """Session metadata derived from a transcript's entries."""
    session_id = path.stem
    title = ""
    directory = ""
    stamps = []

    for entry in entries:
        stamp = _parse_iso(entry.get("timestamp"))
        if stamp is not None:
            stamps.append(stamp)
        if not directory and isinstance(entry.get("cwd"), str):
            directory = entry["cwd"]
        if not title and entry.get("type") == "user":
            title = _title(_user_text(entry))

    if not stamps:
        try:
            stamps.append(datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc))
        except OSError:
            stamps.append(datetime.now(timezone.utc))

    return SessionInfo(
        id=session_id,
        title=title or session_id,
        directory=directory or decode_project_path(project_id),
        created=min(stamps),
        updated=max(stamps),
        project_id=project_id,
        version="claude-code",
        source=ClaudeCodeProvider.name,
    )


def _parse_usage(usage: Any) -> TokenUsage:
    if not isinstance(usage, dict):
        return TokenUsage()
    return TokenUsage(
        input=_int(usage.get("input_tokens")),
        output=_int(usage.get("output_tokens")),
        cache_read=_int(usage.get("cache_read_input_tokens")),
        cache_write=_int(usage.get("cache_creation_input_tokens")),
    )


def convert_entries(entries: list[dict], session_id: str) -> list[Message]:
    """Convert transcript entries into messages with typed parts.

    User entries that only carry tool results produce no message; their
    results are written onto the matching tool call instead. Assistant
    messages point at the most recent user message.
    """
    messages = []
    tool_calls: dict[str, ToolPart] = {}
    last_user_id = None

    for index, entry in enumerate(e for e in entries if e.get("type") in MESSAGE_TYPES):
        message_id = _str(entry.get("uuid")) or f"{session_id}-msg-{index}"
        timestamp = _parse_iso(entry.get("timestamp"))
        parts: list[Part] = []

        def base(n: int) -> dict:
            return {"id": f"{message_id}-{n:03d}", "session_id": session_id, "message_id": message_id}

        for block in _content_blocks(entry):
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")

            if block_type == "text" and _str(block.get("text")).strip():
                parts.append(TextPart(**base(len(parts)), text=block["text"]))
            elif block_type == "thinking" and _str(block.get("thinking")).strip():
                parts.append(ReasoningPart(**base(len(parts)), text=block["thinking"]))
            elif block_type == "tool_use":
                part = ToolPart(
                    **base(len(parts)),
                    tool=_str(block.get("name")) or "unknown",
                    call_id=_str(block.get("id")),
                    state=ToolState(status="running", input=block.get("input", {}), started=timestamp),
                )
                parts.append(part)
                if part.call_id:
                    tool_calls[part.call_id] = part
            elif block_type == "tool_result":
                call = tool_calls.get(_str(block.get("tool_use_id")))
                if call is None:
                    logger.debug("Tool result %s has no matching call", block.get("tool_use_id"))
                    continue
                output = _tool_result_text(block)
                if block.get("is_error"):
                    call.state.status = "error"
                    call.state.error = output
                else:
                    call.state.status = "completed"
                    call.state.output = output
                    call.state.title = call.tool
                call.state.ended = timestamp

        if entry["type"] == "user":
            if not parts:
                continue
            last_user_id = message_id
            info = MessageInfo(id=message_id, session_id=session_id, role="user", created=timestamp, agent="user")
        else:
            message = entry.get("message") if isinstance(entry.get("message"), dict) else {}
            info = MessageInfo(
                id=message_id,
                session_id=session_id,
                role="assistant",
                created=timestamp,
                completed=timestamp,
                parent_id=last_user_id,
                model_id=_str(message.get("model")) or "claude",
                provider_id="anthropic",
                agent="claude",
                mode="agent",
                tokens=_parse_usage(message.get("usage") or entry.get("usage")),
                finish=_str(message.get("stop_reason")) or None,
            )
        messages.append(Message(info=info, parts=parts))

    return messages
