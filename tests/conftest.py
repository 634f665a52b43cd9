"""Shared test fixtures for opencode-viewer."""

import json
from datetime import datetime, timezone

import pytest


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


T0 = datetime(2025, 1, 22, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def tmp_opencode_dir(tmp_path):
    """Create a synthetic OpenCode storage directory.

    Includes:
    - A parent session with two turns, steps, reasoning and tool calls
    - A task delegation and the child session it spawned
    - An older session with a file change summary and no messages
    - A corrupt session file (counted as an error)
    """
    storage = tmp_path / "storage"
    ses_dir = storage / "session" / "proj1"
    _write(ses_dir / "project.json", {"id": "proj1", "path": "/Users/testuser/dev/api-server"})

    _write(ses_dir / "ses_001.json", {
        "id": "ses_001",
        "version": "1.1.34",
        "projectID": "proj1",
        "title": "Debug API endpoint",
        "directory": "/Users/testuser/dev/api-server",
        "time": {"created": _ms(T0), "updated": _ms(T0.replace(minute=30))},
    })
    _write(ses_dir / "ses_002.json", {
        "id": "ses_002",
        "version": "1.1.34",
        "projectID": "proj1",
        "parentID": "ses_001",
        "title": "Find files (@explore subagent)",
        "directory": "/Users/testuser/dev/api-server",
        "time": {"created": _ms(T0.replace(minute=2)), "updated": _ms(T0.replace(minute=5))},
    })
    _write(ses_dir / "ses_003.json", {
        "id": "ses_003",
        "version": "1.1.30",
        "projectID": "proj1",
        "title": "Refactor database layer",
        "directory": "/Users/testuser/dev/api-server",
        "time": {
            "created": _ms(datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)),
            "updated": _ms(datetime(2025, 1, 10, 10, 0, tzinfo=timezone.utc)),
        },
        "summary": {"additions": 42, "deletions": 7, "files": 3, "diffs": ["src/db/pool.ts", "src/db/query.ts"]},
    })
    (ses_dir / "ses_bad.json").write_text("{not json", encoding="utf-8")

    msg_dir = storage / "message" / "ses_001"
    _write(msg_dir / "msg_001.json", {
        "id": "msg_001",
        "sessionID": "ses_001",
        "role": "user",
        "time": {"created": _ms(T0)},
        "summary": {"title": "API 500 error investigation", "diffs": []},
        "agent": "build",
        "model": {"providerID": "anthropic", "modelID": "claude-sonnet-4"},
    })
    _write(msg_dir / "msg_002.json", {
        "id": "msg_002",
        "sessionID": "ses_001",
        "role": "assistant",
        "parentID": "msg_001",
        "time": {"created": _ms(T0.replace(second=30)), "completed": _ms(T0.replace(minute=1))},
        "modelID": "claude-sonnet-4",
        "providerID": "anthropic",
        "mode": "build",
        "cost": 0.0125,
        "tokens": {"input": 1200, "output": 300, "reasoning": 50, "cache": {"read": 100, "write": 0}},
        "finish": "stop",
    })
    _write(msg_dir / "msg_003.json", {
        "id": "msg_003",
        "sessionID": "ses_001",
        "role": "user",
        "time": {"created": _ms(T0.replace(minute=1, second=30))},
    })
    _write(msg_dir / "msg_004.json", {
        "id": "msg_004",
        "sessionID": "ses_001",
        "role": "assistant",
        "parentID": "msg_003",
        "time": {"created": _ms(T0.replace(minute=2)), "completed": _ms(T0.replace(minute=6))},
        "modelID": "claude-sonnet-4",
        "cost": 0.02,
        "tokens": {"input": 2000, "output": 500, "reasoning": 0, "cache": {"read": 0, "write": 0}},
    })

    part = storage / "part"
    _write(part / "msg_001" / "prt_001.json", {
        "id": "prt_001", "sessionID": "ses_001", "messageID": "msg_001", "type": "text",
        "text": "Why is the /api/users endpoint returning 500?",
    })
    _write(part / "msg_002" / "prt_002a.json", {
        "id": "prt_002a", "sessionID": "ses_001", "messageID": "msg_002", "type": "step-start", "snapshot": "abc123",
    })
    _write(part / "msg_002" / "prt_002b.json", {
        "id": "prt_002b", "sessionID": "ses_001", "messageID": "msg_002", "type": "reasoning",
        "text": "The stack trace points at the users query, so grep for it first.",
    })
    _write(part / "msg_002" / "prt_002c.json", {
        "id": "prt_002c", "sessionID": "ses_001", "messageID": "msg_002", "type": "tool", "tool": "grep",
        "callID": "call_1",
        "state": {
            "status": "completed",
            "input": {"pattern": "SELECT.*FROM users", "include": "*.ts"},
            "output": "Found 3 matches\nsrc/db.ts:15: SELECT * FROM users WHERE id = $1",
            "title": "SELECT.*FROM users",
            "time": {"start": _ms(T0.replace(second=31)), "end": _ms(T0.replace(second=33))},
        },
    })
    _write(part / "msg_002" / "prt_002d.json", {
        "id": "prt_002d", "sessionID": "ses_001", "messageID": "msg_002", "type": "step-finish",
        "reason": "tool-calls", "cost": 0.005,
        "tokens": {"input": 600, "output": 100, "reasoning": 50, "cache": {"read": 0, "write": 0}},
    })
    _write(part / "msg_002" / "prt_002e.json", {
        "id": "prt_002e", "sessionID": "ses_001", "messageID": "msg_002", "type": "step-start",
    })
    _write(part / "msg_002" / "prt_002f.json", {
        "id": "prt_002f", "sessionID": "ses_001", "messageID": "msg_002", "type": "text",
        "text": "The error is in the database query: the users table lost its email index.",
    })
    _write(part / "msg_002" / "prt_002g.json", {
        "id": "prt_002g", "sessionID": "ses_001", "messageID": "msg_002", "type": "patch",
        "hash": "deadbeef", "files": ["src/db.ts"],
    })
    _write(part / "msg_003" / "prt_003.json", {
        "id": "prt_003", "sessionID": "ses_001", "messageID": "msg_003", "type": "text",
        "text": "Find every file that queries the users table",
    })
    _write(part / "msg_004" / "prt_004a.json", {
        "id": "prt_004a", "sessionID": "ses_001", "messageID": "msg_004", "type": "tool", "tool": "task",
        "callID": "call_2",
        "state": {
            "status": "completed",
            "input": {"subagent_type": "explore", "description": "Find files", "prompt": "List files touching users"},
            "output": "src/db.ts\nsrc/routes/users.ts",
            "title": "Find files",
            "time": {"start": _ms(T0.replace(minute=2)), "end": _ms(T0.replace(minute=5))},
        },
    })
    _write(part / "msg_004" / "prt_004b.json", {
        "id": "prt_004b", "sessionID": "ses_001", "messageID": "msg_004", "type": "tool", "tool": "bash",
        "callID": "call_3",
        "state": {
            "status": "error",
            "input": {"command": "npm test"},
            "error": "Command failed: 2 tests failing",
            "time": {"start": _ms(T0.replace(minute=5)), "end": _ms(T0.replace(minute=6))},
        },
    })
    (part / "msg_004" / "prt_004c.json").write_text("{truncated", encoding="utf-8")

    child_dir = storage / "message" / "ses_002"
    _write(child_dir / "msg_101.json", {
        "id": "msg_101", "sessionID": "ses_002", "role": "user", "time": {"created": _ms(T0.replace(minute=2))},
    })
    _write(part / "msg_101" / "prt_101.json", {
        "id": "prt_101", "sessionID": "ses_002", "messageID": "msg_101", "type": "text",
        "text": "List files touching users",
    })

    return storage


@pytest.fixture
def tmp_opencode_cycle_dir(tmp_path):
    """OpenCode storage whose sessions reference each other as parents."""
    storage = tmp_path / "cycle-storage"
    ses_dir = storage / "session" / "projc"
    created = _ms(T0)
    for ses_id, parent in (("ses_a", "ses_b"), ("ses_b", "ses_a"), ("ses_self", "ses_self"), ("ses_ok", "ses_a")):
        _write(ses_dir / f"{ses_id}.json", {
            "id": ses_id,
            "projectID": "projc",
            "parentID": parent,
            "title": ses_id,
            "directory": "/tmp/cycle",
            "time": {"created": created, "updated": created},
        })
    return storage


@pytest.fixture
def tmp_claude_code_dir(tmp_path):
    """Create a synthetic Claude Code data directory with realistic JSONL.

    Includes:
    - User text messages
    - Assistant text + tool_use in same entry
    - User tool_result entries, one of them an error
    - Thinking blocks
    - Entry types that should be skipped
    """
    base = tmp_path / "claude"
    project_dir = base / "projects" / "-Users-testuser-dev-myapp"
    project_dir.mkdir(parents=True)

    lines = [
        {
            "type": "user",
            "message": {"role": "user", "content": [{"type": "text", "text": "Help me refactor the auth module"}]},
            "timestamp": "2025-01-20T10:00:00Z",
            "uuid": "uuid-001",
            "sessionId": "session-001",
            "cwd": "/Users/testuser/dev/myapp",
        },
        {
            "type": "assistant",
            "message": {
                "role": "assistant",
                "model": "claude-sonnet-4",
                "content": [
                    {"type": "text", "text": "I'll help you refactor the auth module. Let me read the current code."},
                    {"type": "tool_use", "id": "toolu_001", "name": "Read", "input": {"file_path": "/src/auth.ts"}},
                ],
                "usage": {"input_tokens": 100, "output_tokens": 50, "cache_read_input_tokens": 20},
            },
            "timestamp": "2025-01-20T10:00:30Z",
            "uuid": "uuid-002",
            "sessionId": "session-001",
        },
        {
            "type": "user",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_001", "content": "export function authenticate() {}"},
            ]},
            "timestamp": "2025-01-20T10:00:31Z",
            "uuid": "uuid-003",
            "sessionId": "session-001",
        },
        {
            "type": "assistant",
            "message": {"role": "assistant", "model": "claude-sonnet-4", "content": [
                {"type": "thinking", "thinking": "Split validation from token refresh.", "signature": "sig"},
                {"type": "tool_use", "id": "toolu_002", "name": "Bash", "input": {"command": "npm test"}},
            ]},
            "timestamp": "2025-01-20T10:01:00Z",
            "uuid": "uuid-004",
            "sessionId": "session-001",
        },
        {
            "type": "user",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_002", "is_error": True,
                 "content": [{"type": "text", "text": "1 test failing"}]},
            ]},
            "timestamp": "2025-01-20T10:01:05Z",
            "uuid": "uuid-005",
            "sessionId": "session-001",
        },
        {"type": "file-history-snapshot", "snapshot": {}},
        {"type": "summary", "summary": "Refactored auth module"},
        {
            "type": "user",
            "message": {"role": "user", "content": "Looks good, now split it into separate files"},
            "timestamp": "2025-01-20T10:05:00Z",
            "uuid": "uuid-006",
            "sessionId": "session-001",
        },
        {
            "type": "assistant",
            "message": {"role": "assistant", "model": "claude-sonnet-4", "content": [
                {"type": "text", "text": "Done."},
            ]},
            "timestamp": "2025-01-20T10:06:00Z",
            "uuid": "uuid-007",
            "sessionId": "session-001",
        },
    ]
    body = "\n".join(json.dumps(line) for line in lines) + "\n{broken line\n"
    (project_dir / "session-001.jsonl").write_text(body, encoding="utf-8")

    return base


@pytest.fixture
def tmp_opencode_mistyped_dir(tmp_path):
    """OpenCode storage whose records decode as JSON but carry wrongly typed fields."""
    storage = tmp_path / "mistyped-storage"
    _write(storage / "session" / "projm" / "ses_m.json", {
        "id": "ses_m",
        "projectID": "projm",
        "title": "Mistyped records",
        "directory": "/tmp/mistyped",
        "time": {"created": _ms(T0), "updated": _ms(T0)},
    })

    msg_dir = storage / "message" / "ses_m"
    _write(msg_dir / "msg_u.json", {
        "id": "msg_u", "sessionID": ["ses_m"], "role": "user", "time": {"created": _ms(T0)},
        "agent": 7,
    })
    _write(msg_dir / "msg_a.json", {
        "id": 42, "sessionID": "ses_m", "role": "assistant", "parentID": ["msg_u"],
        "time": {"created": _ms(T0.replace(second=5))}, "modelID": {"name": "x"}, "finish": 3,
    })

    part = storage / "part"
    _write(part / "msg_u" / "prt_u1.json", {"id": "prt_u1", "type": "text", "text": 42})
    _write(part / "msg_u" / "prt_u2.json", {"id": "prt_u2", "type": "text", "text": "find the leak"})
    _write(part / "msg_a" / "prt_a1.json", {"id": ["prt_a1"], "type": "reasoning", "text": None})
    _write(part / "msg_a" / "prt_a2.json", {
        "id": "prt_a2", "type": "tool", "tool": None, "callID": 5,
        "state": {"status": ["completed"], "output": 17, "title": None, "error": {"x": 1}},
    })
    _write(part / "msg_a" / "prt_a3.json", {
        "id": "prt_a3", "type": "subtask", "agent": None, "description": 9, "prompt": ["go"],
    })
    _write(part / "msg_a" / "prt_a4.json", {"id": "prt_a4", "type": "text", "text": "the leak is in the pool"})
    return storage


@pytest.fixture
def tmp_claude_code_mistyped_dir(tmp_path):
    """Claude Code transcript with null and wrongly typed block fields."""
    base = tmp_path / "claude-mistyped"
    project_dir = base / "projects" / "-tmp-mistyped"
    project_dir.mkdir(parents=True)

    lines = [
        {
            "type": "user",
            "message": {"role": "user", "content": [{"type": "text", "text": None}]},
            "timestamp": "2025-01-20T09:00:00Z",
            "uuid": "m-001",
            "sessionId": ["not", "a", "string"],
        },
        {
            "type": "user",
            "message": {"role": "user", "content": [{"type": "text", "text": "where is the leak"}]},
            "timestamp": "2025-01-20T09:00:10Z",
            "uuid": "m-002",
        },
        {
            "type": "assistant",
            "message": {
                "role": "assistant",
                "model": 4,
                "content": [
                    {"type": "thinking", "thinking": None},
                    {"type": "text", "text": None},
                    {"type": "tool_use", "id": ["toolu_x"], "name": None, "input": {"command": "ls"}},
                    {"type": "text", "text": "the leak is in the pool"},
                ],
                "usage": {"input_tokens": "many", "output_tokens": 12},
                "stop_reason": ["end_turn"],
            },
            "timestamp": "2025-01-20T09:00:20Z",
            "uuid": 99,
        },
        {
            "type": "user",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": ["toolu_x"], "content": None},
                {"type": "tool_result", "tool_use_id": "toolu_y", "content": [{"type": "text", "text": None}]},
            ]},
            "timestamp": "2025-01-20T09:00:25Z",
            "uuid": "m-004",
        },
    ]
    body = "\n".join(json.dumps(line) for line in lines) + "\n"
    (project_dir / "session-m.jsonl").write_text(body, encoding="utf-8")
    return base
