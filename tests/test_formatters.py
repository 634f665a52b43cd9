"""Tests for display formatting and session totals."""

from datetime import timedelta

import pytest
from builders import BASE_TIME, assistant, session, user

from opencode_viewer.core import SessionSummary, TokenUsage
from opencode_viewer.formatters import (
    format_cost,
    format_duration,
    format_duration_compact,
    format_file_changes,
    format_tokens,
    truncate,
)
from opencode_viewer.totals import calculate_message_totals, calculate_totals


@pytest.mark.parametrize("cost, expected", [
    (0, "$0.00"),
    (0.0034, "$0.0034"),
    (0.01, "$0.01"),
    (1.5, "$1.50"),
])
def test_format_cost(cost, expected):
    assert format_cost(cost) == expected


@pytest.mark.parametrize("tokens, expected", [
    (500, "500"),
    (1500, "1.5k"),
    (1_500_000, "1.5M"),
])
def test_format_tokens(tokens, expected):
    assert format_tokens(tokens) == expected


@pytest.mark.parametrize("ms, expected", [
    (90_060_000, "1d 1h 1m"),
    (7_200_000, "2h 0m"),
    (3_599_000, "59m 59s"),
    (5_000, "5s"),
    (0, "0s"),
    (-10, "0s"),
])
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


@pytest.mark.parametrize("ms, expected", [
    (500, "500ms"),
    (5_000, "5s"),
    (60_000, "1m"),
    (65_000, "1m 5s"),
])
def test_format_duration_compact(ms, expected):
    assert format_duration_compact(ms) == expected


def test_format_file_changes():
    assert format_file_changes(SessionSummary(additions=10, deletions=5, files=3)) == "+10 -5 (3 files)"
    assert format_file_changes(SessionSummary(files=1)) == "1 file"


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("a" * 20, 10) == "aaaaaaa..."


class TestTotals:

    def test_sums_assistant_usage(self):
        messages = [
            user("u1"),
            assistant("a1", cost=0.5, tokens=TokenUsage(input=100, output=20, reasoning=5, cache_read=7)),
            assistant("a2", cost=0.25, tokens=TokenUsage(input=50, output=10)),
        ]
        totals = calculate_message_totals(messages)
        assert totals.cost == pytest.approx(0.75)
        assert totals.tokens.input == 150
        assert totals.tokens.cache_read == 7
        assert totals.tokens.total == 185
        assert (totals.messages.user, totals.messages.assistant, totals.messages.total) == (1, 2, 3)

    def test_session_span_covers_messages(self):
        early = BASE_TIME - timedelta(minutes=5)
        late = BASE_TIME + timedelta(hours=1)
        reply = assistant("a1")
        reply.info.completed = late
        s = session([user("u1", created=early), reply], created=BASE_TIME)

        totals = calculate_totals(s)
        assert totals.start == early
        assert totals.end == late
        assert totals.duration_ms == 65 * 60 * 1000

    def test_empty_session_uses_session_times(self):
        s = session([], created=BASE_TIME, updated=BASE_TIME + timedelta(seconds=30))
        assert calculate_totals(s).duration_ms == 30_000
