"""Partition a session's flat message list into conversational turns and steps."""

from dataclasses import dataclass

from .core import (
    Message,
    MessageGroup,
    Part,
    Step,
    ToolPart,
    is_reasoning_part,
    is_step_start,
    is_subtask_part,
    is_task_tool,
    is_text_part,
    is_tool_part,
)


def group_messages(messages: list[Message]) -> list[MessageGroup]:
    """Group messages into turns of one user message plus its assistant replies.

    Each user message opens a group. An assistant message joins the group of
    the user message named by its ``parent_id``; when that pointer is missing
    or dangling it joins the most recently opened group, and when no group
    exists yet it gets an orphan group of its own. No message is dropped.
    """
    groups: list[MessageGroup] = []
    by_user_id: dict[str, MessageGroup] = {}

    for message in messages:
        if message.is_user:
            group = MessageGroup(user_message=message)
            groups.append(group)
            by_user_id.setdefault(message.id, group)
            continue

        group = by_user_id.get(message.info.parent_id) if message.info.parent_id else None
        if group is None:
            if groups:
                group = groups[-1]
            else:
                group = MessageGroup(user_message=None)
                groups.append(group)
        group.assistant_messages.append(message)

    return groups


def partition_steps(parts: list[Part]) -> list[Step]:
    """Split an assistant turn's parts into steps bounded by step-start markers.

    Parts before the first marker form step 1. A marker closes the current
    step (if non-empty) and begins the next one. Concatenating the parts of
    all steps gives back the input unchanged.
    """
    steps: list[Step] = []
    current: list[Part] = []

    for part in parts:
        if is_step_start(part) and current:
            steps.append(Step(number=len(steps) + 1, parts=current))
            current = []
        current.append(part)

    if current:
        steps.append(Step(number=len(steps) + 1, parts=current))

    return steps


def turn_parts(group: MessageGroup) -> list[Part]:
    """All parts of a group's assistant messages, in order."""
    return [part for message in group.assistant_messages for part in message.parts]


def turn_steps(group: MessageGroup) -> list[Step]:
    return partition_steps(turn_parts(group))


def group_summary(group: MessageGroup) -> str:
    """Short label for a group, used in navigation."""
    if group.user_message is None:
        return "Message"

    if group.user_message.info.summary_title:
        return group.user_message.info.summary_title

    for part in group.user_message.parts:
        if is_text_part(part):
            text = part.text.strip()
            if len(text) > 50:
                return text[:47] + "..."
            return text

    return "Message"


@dataclass
class AssistantStats:
    step_count: int = 0
    tool_count: int = 0
    has_reasoning: bool = False


def assistant_stats(assistant_messages: list[Message]) -> AssistantStats:
    """Count steps and tool calls across assistant messages."""
    stats = AssistantStats()
    for message in assistant_messages:
        for part in message.parts:
            if is_step_start(part):
                stats.step_count += 1
            elif is_tool_part(part):
                stats.tool_count += 1
            elif is_reasoning_part(part):
                stats.has_reasoning = True
    return stats


@dataclass
class SidebarItem:
    id: str  # part id, used for scrolling
    label: str
    message_id: str
    item_type: str  # "subtask" | "task" | "skill"


def _input_field(part: ToolPart, key: str, default: str) -> str:
    data = part.state.input
    if isinstance(data, dict) and isinstance(data.get(key), str):
        return data[key]
    return default


def sidebar_items(group: MessageGroup) -> list[SidebarItem]:
    """Delegations and skill calls of a group, in document order."""
    items = []
    for message in group.assistant_messages:
        for part in message.parts:
            if is_subtask_part(part):
                items.append(SidebarItem(part.id, part.agent, message.id, "subtask"))
            elif is_task_tool(part):
                items.append(SidebarItem(part.id, _input_field(part, "subagent_type", "task"), message.id, "task"))
            elif isinstance(part, ToolPart) and part.tool == "skill":
                items.append(SidebarItem(part.id, _input_field(part, "name", "skill"), message.id, "skill"))
    return items
