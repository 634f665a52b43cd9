"""OpenCode session storage backend.

Reads sessions from ~/.local/share/opencode/storage/ directory.
Data is organized as a session/ -> message/ -> part/ hierarchy:

- session/<projectId>/project.json: project metadata (``path``)
- session/<projectId>/<sessionId>.json: session info
- message/<sessionId>/<messageId>.json: message info
- part/<messageId>/<partId>.json: one part of a message
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import get_opencode_path
from ..core import (
    FilePart,
    Message,
    MessageError,
    MessageInfo,
    OtherPart,
    Part,
    ProjectInfo,
    ReasoningPart,
    Session,
    SessionInfo,
    SessionSummary,
    StepFinishPart,
    StepStartPart,
    SubtaskPart,
    TextPart,
    TokenUsage,
    ToolPart,
    ToolState,
)
from ..errors import StorageError, StorageErrorCode
from ..provider import LoadResult, SessionProvider
from ..relations import build_session_tree

logger = logging.getLogger(__name__)

PROJECT_FILE = "project.json"


class OpenCodeProvider(SessionProvider):
    """Provider for OpenCode session storage."""

    name = "opencode"

    def get_base_path(self) -> Path:
        return get_opencode_path()

    def is_available(self) -> bool:
        return (self.get_base_path() / "session").is_dir()

    def load_all_sessions(self) -> LoadResult:
        base = self.get_base_path()
        session_dir = base / "session"
        if not session_dir.is_dir():
            raise StorageError(
                f"Could not find session directory in {base}. This may not be an OpenCode storage folder.",
                StorageErrorCode.NOT_STORAGE_FOLDER,
            )

        try:
            project_dirs = sorted(d for d in session_dir.iterdir() if d.is_dir())
        except PermissionError as e:
            raise StorageError(f"Permission denied reading {session_dir}: {e}", StorageErrorCode.PERMISSION_DENIED)

        result = LoadResult()
        for project_dir in project_dirs:
            project_sessions = []
            for ses_file in sorted(project_dir.glob("*.json")):
                if ses_file.name == PROJECT_FILE:
                    continue
                info = self._parse_session_file(ses_file, project_dir.name)
                if info is None:
                    result.error_count += 1
                    continue
                project_sessions.append(info)
                result.sessions[info.id] = info

            tree = build_session_tree(project_sessions)
            result.circular_ref_count += tree.circular_ref_count
            result.projects.append(ProjectInfo(
                id=project_dir.name,
                path=self._get_project_path(project_dir),
                sessions=tree.roots,
                source=self.name,
            ))

        if result.error_count:
            logger.warning("Skipped %d unreadable session files in %s", result.error_count, session_dir)
        return result

    def load_session(self, session_id: str, all_sessions: Mapping[str, SessionInfo]) -> Session:
        info = all_sessions.get(session_id)
        if info is None:
            raise KeyError(f"Session not found: {session_id}")

        messages = []
        for message_info in self._iter_message_infos(session_id):
            messages.append(Message(info=message_info, parts=self._load_parts(message_info.id)))

        messages.sort(key=lambda m: m.info.created or _EPOCH)
        return Session(info=info, messages=messages)

    def load_user_messages(self, session_id: str) -> list[str]:
        texts = []
        for message_info in self._iter_message_infos(session_id):
            if message_info.role != "user":
                continue
            parts = self._load_parts(message_info.id)
            text = " ".join(p.text for p in parts if isinstance(p, TextPart) and p.text)
            if text:
                texts.append(text)
        return texts

    # ── Private helpers ──────────────────────────────────────────────

    def _get_project_path(self, project_dir: Path) -> str:
        """Display path from project.json, falling back to the project id."""
        project_file = project_dir / PROJECT_FILE
        if not project_file.is_file():
            return project_dir.name
        try:
            data = json.loads(project_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to parse %s: %s", project_file, e)
            return project_dir.name
        if isinstance(data, dict) and isinstance(data.get("path"), str) and data["path"]:
            return data["path"]
        return project_dir.name

    def _parse_session_file(self, ses_file: Path, project_id: str) -> SessionInfo | None:
        try:
            data = json.loads(ses_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read session file %s: %s", ses_file, e)
            return None

        info = parse_session_info(data, project_id)
        if info is None:
            logger.warning("Session file %s is missing required fields", ses_file)
        return info

    def _iter_message_infos(self, session_id: str):
        msg_dir = self.get_base_path() / "message" / session_id
        if not msg_dir.is_dir():
            logger.warning("No message directory for session %s", session_id)
            return

        for msg_file in sorted(msg_dir.glob("*.json")):
            try:
                data = json.loads(msg_file.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Failed to read message file %s: %s", msg_file, e)
                continue
            info = parse_message_info(data, msg_file.stem, session_id)
            if info is not None:
                yield info

    def _load_parts(self, message_id: str) -> list[Part]:
        part_dir = self.get_base_path() / "part" / message_id
        if not part_dir.is_dir():
            return []

        parts = []
        for part_file in part_dir.glob("*.json"):
            try:
                data = json.loads(part_file.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Failed to read part file %s: %s", part_file, e)
                continue
            if not isinstance(data, dict):
                logger.warning("Ignoring malformed part file %s", part_file)
                continue
            if not isinstance(data.get("id"), str) or not data["id"]:
                data["id"] = part_file.stem
            parts.append(parse_part(data))

        parts.sort(key=lambda p: p.id)
        return parts


# ── Record parsing ───────────────────────────────────────────────

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _ms_to_datetime(ms: Any) -> datetime | None:
    """Convert millisecond timestamp to datetime, or None."""
    if not isinstance(ms, (int, float)) or isinstance(ms, bool):
        return None
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return default


def _parse_tokens(data: Any) -> TokenUsage:
    data = _dict(data)
    cache = _dict(data.get("cache"))
    return TokenUsage(
        input=int(_number(data.get("input"))),
        output=int(_number(data.get("output"))),
        reasoning=int(_number(data.get("reasoning"))),
        cache_read=int(_number(cache.get("read"))),
        cache_write=int(_number(cache.get("write"))),
    )


def parse_session_info(data: Any, project_id: str = "") -> SessionInfo | None:
    """Build a SessionInfo from a session file, or None if it is invalid."""
    if not isinstance(data, dict):
        return None
    # Some versions nest the record under "info".
    if isinstance(data.get("info"), dict):
        data = data["info"]

    time_data = _dict(data.get("time"))
    created = _ms_to_datetime(time_data.get("created"))
    updated = _ms_to_datetime(time_data.get("updated"))
    if (
        not isinstance(data.get("id"), str)
        or not isinstance(data.get("title"), str)
        or not isinstance(data.get("directory"), str)
        or created is None
        or updated is None
    ):
        return None

    summary = None
    raw_summary = data.get("summary")
    if isinstance(raw_summary, dict):
        diffs = raw_summary.get("diffs")
        summary = SessionSummary(
            additions=int(_number(raw_summary.get("additions"))),
            deletions=int(_number(raw_summary.get("deletions"))),
            files=int(_number(raw_summary.get("files"))),
            diffs=[d for d in diffs if isinstance(d, str)] if isinstance(diffs, list) else [],
        )

    parent_id = data.get("parentID")
    return SessionInfo(
        id=data["id"],
        title=data["title"],
        directory=data["directory"],
        created=created,
        updated=updated,
        parent_id=parent_id if isinstance(parent_id, str) and parent_id else None,
        project_id=data.get("projectID") if isinstance(data.get("projectID"), str) else project_id,
        version=data.get("version") if isinstance(data.get("version"), str) else "",
        summary=summary,
        source=OpenCodeProvider.name,
    )


def parse_message_info(data: Any, fallback_id: str = "", session_id: str = "") -> MessageInfo | None:
    if not isinstance(data, dict):
        return None

    time_data = _dict(data.get("time"))
    model = _dict(data.get("model"))
    summary = data.get("summary")
    summary_title = summary.get("title") if isinstance(summary, dict) else None

    error = None
    raw_error = data.get("error")
    if isinstance(raw_error, dict):
        error = MessageError(
            name=str(raw_error.get("name", "UnknownError")),
            message=str(_dict(raw_error.get("data")).get("message", "")),
        )

    return MessageInfo(
        id=_str(data.get("id")) or fallback_id,
        session_id=_str(data.get("sessionID")) or session_id,
        role=data["role"] if data.get("role") in ("user", "assistant") else "user",
        created=_ms_to_datetime(time_data.get("created")),
        completed=_ms_to_datetime(time_data.get("completed")),
        parent_id=_optional_str(data.get("parentID")),
        model_id=_str(data.get("modelID")) or _str(model.get("modelID")),
        provider_id=_str(data.get("providerID")) or _str(model.get("providerID")),
        agent=_str(data.get("agent")),
        mode=_str(data.get("mode")),
        cost=float(_number(data.get("cost"))),
        tokens=_parse_tokens(data.get("tokens")),
        finish=_optional_str(data.get("finish")),
        error=error,
        summary_title=summary_title if isinstance(summary_title, str) and summary_title else None,
    )


def _parse_tool_state(data: Any) -> ToolState:
    data = _dict(data)
    time_data = _dict(data.get("time"))
    return ToolState(
        status=_str(data.get("status")) or "pending",
        input=data.get("input"),
        output=_str(data.get("output")),
        title=_str(data.get("title")),
        error=_str(data.get("error")),
        started=_ms_to_datetime(time_data.get("start")),
        ended=_ms_to_datetime(time_data.get("end")),
    )


def parse_part(data: dict) -> Part:
    """Turn a stored part record into a typed part.

    Types the viewer does not render (patch, snapshot, compaction, ...) are
    kept as ``OtherPart`` so no record is lost.
    """
    common = {
        "id": _str(data.get("id")),
        "session_id": _str(data.get("sessionID")),
        "message_id": _str(data.get("messageID")),
    }
    kind = data.get("type")

    if kind == "text":
        return TextPart(
            **common,
            text=_str(data.get("text")),
            synthetic=bool(data.get("synthetic")),
            ignored=bool(data.get("ignored")),
        )
    if kind == "reasoning":
        return ReasoningPart(**common, text=_str(data.get("text")))
    if kind == "tool":
        return ToolPart(
            **common,
            tool=_str(data.get("tool")) or "unknown",
            call_id=_str(data.get("callID")),
            state=_parse_tool_state(data.get("state")),
        )
    if kind == "file":
        source = _dict(data.get("source"))
        return FilePart(
            **common,
            mime=_str(data.get("mime")),
            filename=_optional_str(data.get("filename")),
            url=_str(data.get("url")),
            source_path=_optional_str(source.get("path")),
        )
    if kind == "step-start":
        return StepStartPart(**common, snapshot=_optional_str(data.get("snapshot")))
    if kind == "step-finish":
        return StepFinishPart(
            **common,
            reason=_str(data.get("reason")),
            cost=float(_number(data.get("cost"))),
            tokens=_parse_tokens(data.get("tokens")),
        )
    if kind == "subtask":
        return SubtaskPart(
            **common,
            agent=_str(data.get("agent")),
            description=_str(data.get("description")),
            prompt=_str(data.get("prompt")),
            command=_optional_str(data.get("command")),
        )

    extra = {k: v for k, v in data.items() if k not in ("id", "sessionID", "messageID", "type")}
    return OtherPart(**common, kind=_str(kind) or "unknown", data=extra)
