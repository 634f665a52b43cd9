"""Abstract base class for session storage providers."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .core import ProjectInfo, Session, SessionInfo


@dataclass
class LoadResult:
    """Everything a provider found in its storage folder."""

    projects: list[ProjectInfo] = field(default_factory=list)
    sessions: dict[str, SessionInfo] = field(default_factory=dict)
    error_count: int = 0  # session files that could not be read or parsed
    circular_ref_count: int = 0  # parent cycles broken while building trees


class SessionProvider(ABC):
    """Base class for transcript storage backends.

    Each backend (OpenCode, Claude Code) implements this interface to turn
    its on-disk format into the shared session model.
    """

    name: str  # "opencode", "claude_code"

    @abstractmethod
    def get_base_path(self) -> Path:
        """Return the root directory where this tool stores sessions."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if this tool's data exists on this machine."""
        ...

    @abstractmethod
    def load_all_sessions(self) -> LoadResult:
        """Return every project with its session forest, plus a flat lookup table."""
        ...

    @abstractmethod
    def load_session(self, session_id: str, all_sessions: Mapping[str, SessionInfo]) -> Session:
        """Return one session with all of its messages and parts.

        Raises KeyError when ``session_id`` is not in ``all_sessions``.
        """
        ...

    @abstractmethod
    def load_user_messages(self, session_id: str) -> list[str]:
        """Return the text of each user message, for message search."""
        ...
