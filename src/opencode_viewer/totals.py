"""Cost, token and duration totals for sessions and turns."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .core import Message, Session, TokenUsage


@dataclass
class MessageCounts:
    user: int = 0
    assistant: int = 0

    @property
    def total(self) -> int:
        return self.user + self.assistant


@dataclass
class Totals:
    cost: float = 0.0
    tokens: TokenUsage = field(default_factory=TokenUsage)
    messages: MessageCounts = field(default_factory=MessageCounts)
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def duration_ms(self) -> int:
        if self.start is None or self.end is None:
            return 0
        return int((self.end - self.start).total_seconds() * 1000)


def calculate_message_totals(messages: list[Message]) -> Totals:
    """Sum cost and token usage over assistant messages; count both roles."""
    totals = Totals()
    for message in messages:
        if not message.is_assistant:
            totals.messages.user += 1
            continue
        info = message.info
        totals.messages.assistant += 1
        totals.cost += info.cost or 0
        totals.tokens.input += info.tokens.input
        totals.tokens.output += info.tokens.output
        totals.tokens.reasoning += info.tokens.reasoning
        totals.tokens.cache_read += info.tokens.cache_read
        totals.tokens.cache_write += info.tokens.cache_write
    return totals


def calculate_totals(session: Session) -> Totals:
    """Totals for a whole session, with its time span.

    The span runs from the earliest of session creation and message creation
    to the latest of the session update and assistant completion times.
    """
    totals = calculate_message_totals(session.messages)
    start = session.info.created
    end = session.info.updated

    for message in session.messages:
        created = message.info.created
        if created is not None and created < start:
            start = created
        completed = message.info.completed
        if message.is_assistant and completed is not None and completed > end:
            end = completed

    totals.start = start
    totals.end = end
    return totals
