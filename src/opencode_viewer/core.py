"""Core data models for opencode-viewer.

A session is a list of messages; each message is a list of parts. Parts are
typed records (text, reasoning, tool call, file, step markers, subtask
delegations). Derived structures such as message groups and session trees
live here too, but are always rebuilt from the raw records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Optional


@dataclass
class SessionSummary:
    """File change summary attached to a session."""

    additions: int = 0
    deletions: int = 0
    files: int = 0
    diffs: list[str] = field(default_factory=list)


@dataclass
class SessionInfo:
    """Metadata for one recorded session."""

    id: str
    title: str
    directory: str
    created: datetime
    updated: datetime
    parent_id: Optional[str] = None  # set when spawned by another session
    project_id: str = ""
    version: str = ""
    summary: Optional[SessionSummary] = None
    user_messages: Optional[list[str]] = None  # loaded on demand for message search
    source: str = ""  # "opencode" | "claude_code"


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache_read: int = 0
    cache_write: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output + self.reasoning


@dataclass
class MessageError:
    name: str
    message: str = ""


@dataclass
class MessageInfo:
    """Header of a message. Assistant messages point at their user message."""

    id: str
    session_id: str
    role: str  # "user" | "assistant"
    created: Optional[datetime] = None
    completed: Optional[datetime] = None
    parent_id: Optional[str] = None
    model_id: str = ""
    provider_id: str = ""
    agent: str = ""
    mode: str = ""
    cost: float = 0.0
    tokens: TokenUsage = field(default_factory=TokenUsage)
    finish: Optional[str] = None
    error: Optional[MessageError] = None
    summary_title: Optional[str] = None


# ── Parts ────────────────────────────────────────────────────────


@dataclass
class Part:
    """Base class for all message parts."""

    type: ClassVar[str] = ""

    id: str
    session_id: str = ""
    message_id: str = ""


@dataclass
class TextPart(Part):
    type: ClassVar[str] = "text"

    text: str = ""
    synthetic: bool = False
    ignored: bool = False


@dataclass
class ReasoningPart(Part):
    type: ClassVar[str] = "reasoning"

    text: str = ""


@dataclass
class ToolState:
    """State machine of a tool call: pending -> running -> completed | error."""

    status: str = "pending"
    input: Any = None
    output: str = ""
    title: str = ""
    error: str = ""
    started: Optional[datetime] = None
    ended: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @property
    def duration_ms(self) -> Optional[int]:
        if self.started is None or self.ended is None:
            return None
        return int((self.ended - self.started).total_seconds() * 1000)


@dataclass
class ToolPart(Part):
    type: ClassVar[str] = "tool"

    tool: str = ""
    call_id: str = ""
    state: ToolState = field(default_factory=ToolState)


@dataclass
class FilePart(Part):
    type: ClassVar[str] = "file"

    mime: str = ""
    filename: Optional[str] = None
    url: str = ""
    source_path: Optional[str] = None


@dataclass
class StepStartPart(Part):
    type: ClassVar[str] = "step-start"

    snapshot: Optional[str] = None


@dataclass
class StepFinishPart(Part):
    type: ClassVar[str] = "step-finish"

    reason: str = ""
    cost: float = 0.0
    tokens: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class SubtaskPart(Part):
    """A delegation of work to a named agent."""

    type: ClassVar[str] = "subtask"

    agent: str = ""
    description: str = ""
    prompt: str = ""
    command: Optional[str] = None


@dataclass
class OtherPart(Part):
    """Any part type the viewer carries through without interpreting it
    (compaction, patch, agent, retry, snapshot, ...)."""

    kind: str = ""
    data: dict = field(default_factory=dict)


def is_text_part(part: Part) -> bool:
    return isinstance(part, TextPart)


def is_reasoning_part(part: Part) -> bool:
    return isinstance(part, ReasoningPart)


def is_tool_part(part: Part) -> bool:
    return isinstance(part, ToolPart)


def is_task_tool(part: Part) -> bool:
    return isinstance(part, ToolPart) and part.tool == "task"


def is_file_part(part: Part) -> bool:
    return isinstance(part, FilePart)


def is_step_start(part: Part) -> bool:
    return isinstance(part, StepStartPart)


def is_step_finish(part: Part) -> bool:
    return isinstance(part, StepFinishPart)


def is_subtask_part(part: Part) -> bool:
    return isinstance(part, SubtaskPart)


def part_type(part: Part) -> str:
    """Storage type name of a part (``OtherPart`` keeps its original one)."""
    if isinstance(part, OtherPart):
        return part.kind
    return part.type


# ── Messages and sessions ────────────────────────────────────────


@dataclass
class Message:
    info: MessageInfo
    parts: list[Part] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.info.id

    @property
    def is_user(self) -> bool:
        return self.info.role == "user"

    @property
    def is_assistant(self) -> bool:
        return self.info.role == "assistant"


@dataclass
class Session:
    info: SessionInfo
    messages: list[Message] = field(default_factory=list)


# ── Derived structures ───────────────────────────────────────────


@dataclass
class MessageGroup:
    """One user turn and the assistant messages answering it.

    ``user_message`` is None only for an orphan group: assistant messages
    that appeared before any user message.
    """

    user_message: Optional[Message]
    assistant_messages: list[Message] = field(default_factory=list)

    @property
    def id(self) -> str:
        if self.user_message is not None:
            return self.user_message.id
        if self.assistant_messages:
            return self.assistant_messages[0].id
        return ""

    @property
    def messages(self) -> list[Message]:
        head = [self.user_message] if self.user_message is not None else []
        return head + self.assistant_messages


@dataclass
class Step:
    number: int
    parts: list[Part] = field(default_factory=list)

    @property
    def finish(self) -> Optional[StepFinishPart]:
        for part in self.parts:
            if is_step_finish(part):
                return part
        return None


@dataclass
class SessionNode:
    session: SessionInfo
    children: list["SessionNode"] = field(default_factory=list)


@dataclass
class ProjectInfo:
    """A project/folder and the session forest stored under it."""

    id: str
    path: str
    sessions: list[SessionNode] = field(default_factory=list)
    source: str = ""
