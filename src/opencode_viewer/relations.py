"""Parent/child relationships between sessions.

Sessions are kept in a flat id-keyed table and relationships are resolved by
following ``parent_id`` pointers with an explicit visited set, so corrupted
data with parent cycles terminates instead of looping.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional, Union

from .core import SessionInfo, SessionNode, SubtaskPart, ToolPart

logger = logging.getLogger(__name__)

SessionTable = Union[Mapping[str, SessionInfo], Iterable[SessionInfo]]

# "Find files (@explore subagent)" / "Review (@code-reviewer subagent)"
_CHILD_TITLE_RE = re.compile(r"^(.+?)\s+\(@([\w-]+)\s+subagent\)$", re.IGNORECASE)
# "@explore subagent: Find files"
_SUBAGENT_TITLE_RE = re.compile(r"^@(\S+)\s+subagent:\s*(.+)$", re.IGNORECASE)


def _iter_sessions(sessions: SessionTable) -> Iterable[SessionInfo]:
    if isinstance(sessions, Mapping):
        return sessions.values()
    return sessions


# ── Ancestor chain ───────────────────────────────────────────────


@dataclass
class AncestorChain:
    """Ancestors of a session, oldest first, excluding the session itself."""

    ancestors: list[SessionInfo] = field(default_factory=list)
    cycle_at: Optional[str] = None  # id revisited while walking up, if any

    @property
    def has_cycle(self) -> bool:
        return self.cycle_at is not None


def build_ancestor_chain(current: SessionInfo, all_sessions: Mapping[str, SessionInfo]) -> AncestorChain:
    """Walk ``parent_id`` pointers up from ``current`` for breadcrumb display.

    Stops at a session without a parent or at a parent id that is not in
    ``all_sessions``. A parent id seen before ends the walk and is recorded
    in ``cycle_at``.
    """
    chain = AncestorChain()
    visited = {current.id}
    parent_id = current.parent_id

    while parent_id:
        if parent_id in visited:
            logger.warning("Cycle detected in session parent chain at session %s", parent_id)
            chain.cycle_at = parent_id
            break
        visited.add(parent_id)

        parent = all_sessions.get(parent_id)
        if parent is None:
            break
        chain.ancestors.insert(0, parent)
        parent_id = parent.parent_id

    return chain


# ── Spawned sub-task sessions ────────────────────────────────────


def parse_child_session_title(title: str) -> Optional[tuple[str, str]]:
    """Split ``"<description> (@<agent> subagent)"`` into ``(agent, description)``.

    The agent is lowercased. Returns None when the title has another shape.
    """
    match = _CHILD_TITLE_RE.match(title or "")
    if not match:
        return None
    return match.group(2).lower(), match.group(1).strip()


def parse_subagent_title(title: str) -> Optional[tuple[str, str]]:
    """Split ``"@<agent> subagent: <description>"`` into ``(agent, description)``."""
    match = _SUBAGENT_TITLE_RE.match(title or "")
    if not match:
        return None
    return match.group(1).lower(), match.group(2).strip()


def _descriptions_match(child: str, wanted: str) -> bool:
    # Either side may have been truncated.
    return child == wanted or child.startswith(wanted) or wanted.startswith(child)


def find_spawned_session(subtask: SubtaskPart, all_sessions: SessionTable) -> Optional[SessionInfo]:
    """Find the session a subtask delegation spawned.

    The first session, in iteration order, whose title names the same agent
    and a matching description wins. Pass sessions in a stable order (for
    example sorted by creation time) when the result must be deterministic.
    """
    agent = (subtask.agent or "").lower()
    description = (subtask.description or "").lower().strip()

    for session in _iter_sessions(all_sessions):
        parsed = parse_child_session_title(session.title)
        if parsed is None:
            continue
        child_agent, child_description = parsed
        if child_agent != agent:
            continue
        if _descriptions_match(child_description.lower(), description):
            return session

    return None


def spawned_session_id(subtask: SubtaskPart, all_sessions: SessionTable) -> Optional[str]:
    session = find_spawned_session(subtask, all_sessions)
    return session.id if session else None


def task_delegation(part: ToolPart) -> Optional[SubtaskPart]:
    """Read a ``task`` tool call's input as a delegation record."""
    if part.tool != "task" or not isinstance(part.state.input, dict):
        return None
    agent = part.state.input.get("subagent_type")
    description = part.state.input.get("description")
    prompt = part.state.input.get("prompt")
    if not isinstance(agent, str) or not isinstance(description, str):
        return None
    return SubtaskPart(
        id=part.id,
        session_id=part.session_id,
        message_id=part.message_id,
        agent=agent,
        description=description,
        prompt=prompt if isinstance(prompt, str) else "",
    )


def find_delegated_session(part: Union[SubtaskPart, ToolPart], all_sessions: SessionTable) -> Optional[SessionInfo]:
    """Spawned session for a subtask part or a ``task`` tool call."""
    if isinstance(part, ToolPart):
        delegation = task_delegation(part)
        if delegation is None:
            return None
        return find_spawned_session(delegation, all_sessions)
    return find_spawned_session(part, all_sessions)


# ── Session forest ───────────────────────────────────────────────


@dataclass
class SessionTree:
    roots: list[SessionNode] = field(default_factory=list)
    circular_ref_count: int = 0


def _cycle_members(sessions: list[SessionInfo]) -> set[str]:
    """Ids of every session that lies on a parent cycle."""
    parent_of = {s.id: s.parent_id for s in sessions}
    members: set[str] = set()
    done: set[str] = set()

    for session in sessions:
        if session.id in done:
            continue
        path: list[str] = []
        on_path: set[str] = set()
        current = session.id
        while current and current in parent_of and current not in done:
            if current in on_path:
                members.update(path[path.index(current):])
                break
            path.append(current)
            on_path.add(current)
            current = parent_of[current]
        done.update(path)

    return members


def build_session_tree(sessions: Iterable[SessionInfo]) -> SessionTree:
    """Build a forest from sessions grouped by ``parent_id``.

    Sessions whose parent is unknown are roots. Self-references and every
    session on a parent cycle are also made roots, and counted in
    ``circular_ref_count``. Children are ordered oldest first, roots by
    most recent update.
    """
    sessions = list(sessions)
    nodes = {s.id: SessionNode(session=s) for s in sessions}
    cyclic = _cycle_members(sessions)
    tree = SessionTree()

    for session in sessions:
        node = nodes[session.id]
        if session.parent_id == session.id:
            logger.warning("Session %s has self-referential parent id, treating as root", session.id)
            tree.circular_ref_count += 1
            tree.roots.append(node)
        elif session.id in cyclic:
            logger.warning("Circular parent reference detected for session %s, treating as root", session.id)
            tree.circular_ref_count += 1
            tree.roots.append(node)
        elif session.parent_id and session.parent_id in nodes:
            nodes[session.parent_id].children.append(node)
        else:
            tree.roots.append(node)

    for node in nodes.values():
        node.children.sort(key=lambda n: n.session.created)
    tree.roots.sort(key=lambda n: n.session.updated, reverse=True)
    return tree


def find_session_node(nodes: list[SessionNode], session_id: str) -> Optional[SessionNode]:
    """Depth-first lookup of a node by session id."""
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        if node.session.id == session_id:
            return node
        stack.extend(reversed(node.children))
    return None


def child_sessions(nodes: list[SessionNode], session_id: str) -> list[SessionNode]:
    node = find_session_node(nodes, session_id)
    return node.children if node else []


def flatten_tree(nodes: list[SessionNode]) -> list[SessionInfo]:
    """Sessions of a forest in depth-first order."""
    result = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        result.append(node.session)
        stack.extend(reversed(node.children))
    return result
