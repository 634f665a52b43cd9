"""Tests for the FastAPI server."""

import json
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

import opencode_viewer.server as srv
from opencode_viewer.backends.claude_code import ClaudeCodeProvider
from opencode_viewer.backends.opencode import OpenCodeProvider
from opencode_viewer.server import app


@pytest.fixture(autouse=True)
def reset_server_caches():
    """Reset the provider and session caches before each test."""
    srv.reset_caches()
    yield
    srv.reset_caches()


@pytest.fixture
def opencode_provider(tmp_opencode_dir):
    """Create an OpenCodeProvider pointed at test fixtures."""
    provider = OpenCodeProvider()
    provider.get_base_path = lambda: tmp_opencode_dir
    return provider


@pytest.fixture
def client(opencode_provider):
    with patch("opencode_viewer.server.get_available_providers", return_value=[opencode_provider]):
        yield AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_get_sources(client):
    async with client:
        resp = await client.get("/api/sources")
        assert resp.status_code == 200
        assert resp.json() == ["opencode"]


@pytest.mark.asyncio
async def test_get_projects(client):
    async with client:
        resp = await client.get("/api/projects")
        assert resp.status_code == 200
        [project] = resp.json()
        assert project["path"] == "/Users/testuser/dev/api-server"
        roots = {n["session"]["id"]: n for n in project["sessions"]}
        assert set(roots) == {"ses_001", "ses_003"}
        assert [c["session"]["id"] for c in roots["ses_001"]["children"]] == ["ses_002"]


@pytest.mark.asyncio
async def test_get_sessions(client):
    async with client:
        resp = await client.get("/api/sessions")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert [s["id"] for s in data["sessions"]] == ["ses_001", "ses_002", "ses_003"]
        for session in data["sessions"]:
            assert "title" in session
            assert "created" in session


@pytest.mark.asyncio
async def test_get_sessions_with_search(client):
    async with client:
        resp = await client.get("/api/sessions", params={"search": "database"})
        data = resp.json()
        assert data["total"] == 1
        assert data["sessions"][0]["id"] == "ses_003"
        assert data["sessions"][0]["match_type"] == "title"

        resp = await client.get("/api/sessions", params={"search": "pool.ts"})
        assert resp.json()["sessions"][0]["match_type"] == "summary"


@pytest.mark.asyncio
async def test_search_user_messages_on_request(client):
    async with client:
        resp = await client.get("/api/sessions", params={"search": "endpoint returning"})
        assert resp.json()["total"] == 0

        resp = await client.get("/api/sessions", params={"search": "endpoint returning", "include_messages": True})
        data = resp.json()
        assert [s["id"] for s in data["sessions"]] == ["ses_001"]
        assert data["sessions"][0]["match_type"] == "message"


@pytest.mark.asyncio
async def test_unknown_source(client):
    async with client:
        resp = await client.get("/api/sessions", params={"source": "codex"})
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_session_detail(client):
    async with client:
        resp = await client.get("/api/session/ses_001")
        assert resp.status_code == 200
        data = resp.json()
        assert data["info"]["title"] == "Debug API endpoint"
        assert [g["id"] for g in data["groups"]] == ["msg_001", "msg_003"]
        assert [s["number"] for s in data["groups"][0]["steps"]] == [1, 2]
        assert data["totals"]["messages"] == 4
        assert data["totals"]["cost"] == pytest.approx(0.0325)
        assert data["ancestors"] == []
        assert data["cycle_at"] is None
        assert [c["id"] for c in data["children"]] == ["ses_002"]


@pytest.mark.asyncio
async def test_child_session_has_ancestors(client):
    async with client:
        data = (await client.get("/api/session/ses_002")).json()
        assert [a["id"] for a in data["ancestors"]] == ["ses_001"]
        assert data["children"] == []


@pytest.mark.asyncio
async def test_search_within_session(client):
    async with client:
        resp = await client.get("/api/session/ses_001/search", params={"q": "users"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == len(data["matches"]) > 2
        assert {m["message_id"] for m in data["matches"]} == {"msg_001", "msg_003"}

        resp = await client.get("/api/session/ses_001/search", params={"q": "users", "filter": "user"})
        assert [m["part_id"] for m in resp.json()["matches"]] == ["prt_001", "prt_003"]

        resp = await client.get("/api/session/ses_001/search", params={"q": "users", "filter": "tools"})
        assert resp.status_code == 400


@pytest.mark.asyncio
async def test_spawned_session_lookup(client):
    async with client:
        resp = await client.get("/api/session/ses_001/subtask/prt_004a")
        assert resp.status_code == 200
        assert resp.json()["id"] == "ses_002"

        resp = await client.get("/api/session/ses_001/subtask/prt_001")
        assert resp.status_code == 404

        resp = await client.get("/api/session/ses_001/subtask/prt_004b")
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_export_html(client):
    async with client:
        resp = await client.get("/api/export/ses_001", params={"expanded": ["tool-prt_002c"], "theme": "dark"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert resp.headers["content-disposition"] == 'attachment; filename="Debug API endpoint.html"'
        html = resp.text
        assert '<html lang="en" class="dark">' in html
        assert 'id="tool-prt_002c" class="tool-details tool-default"' in html
        assert "Sub-session: Find files (@explore subagent) (ses_002)" in html


@pytest.mark.asyncio
async def test_export_markdown_and_json(client):
    async with client:
        resp = await client.get("/api/export/ses_001", params={"format": "md"})
        assert resp.status_code == 200
        assert resp.text.startswith("# Debug API endpoint")

        resp = await client.get("/api/export/ses_001", params={"format": "json"})
        assert resp.json()["session"]["id"] == "ses_001"

        resp = await client.get("/api/export/ses_001", params={"format": "pdf"})
        assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_session_not_found(client):
    async with client:
        resp = await client.get("/api/session/nonexistent")
        assert resp.status_code == 404
        resp = await client.get("/api/export/nonexistent")
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_missing_storage_is_reported(tmp_path):
    provider = OpenCodeProvider()
    provider.get_base_path = lambda: tmp_path
    with patch("opencode_viewer.server.get_available_providers", return_value=[provider]):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.get("/api/sessions")
            assert resp.status_code == 404
            assert "OPENCODE_VIEWER_OPENCODE_PATH" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_merged_sessions_all_backends(tmp_claude_code_dir, opencode_provider):
    """Sessions from both backends are merged and can be filtered by source."""
    claude = ClaudeCodeProvider()
    claude.get_base_path = lambda: tmp_claude_code_dir

    with patch("opencode_viewer.server.get_available_providers", return_value=[opencode_provider, claude]):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            sources = (await client.get("/api/sources")).json()
            assert sources == ["opencode", "claude_code"]

            data = (await client.get("/api/sessions")).json()
            assert data["total"] == 4

            data = (await client.get("/api/sessions", params={"source": "claude_code"})).json()
            assert [s["id"] for s in data["sessions"]] == ["session-001"]

            resp = await client.get("/api/session/session-001")
            assert resp.status_code == 200
            assert len(resp.json()["groups"]) == 2


@pytest.mark.asyncio
async def test_projects_carry_subagent_display_titles(tmp_path):
    ses_dir = tmp_path / "session" / "proj"
    ses_dir.mkdir(parents=True)
    (ses_dir / "ses_c.json").write_text(json.dumps({
        "id": "ses_c", "title": "@code-reviewer subagent: Review auth", "directory": "/tmp/app",
        "time": {"created": 0, "updated": 1000},
    }), encoding="utf-8")
    provider = OpenCodeProvider()
    provider.get_base_path = lambda: tmp_path
    with patch("opencode_viewer.server.get_available_providers", return_value=[provider]):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            [project] = (await client.get("/api/projects")).json()
            [node] = project["sessions"]
            assert node["agent"] == "code-reviewer"
            assert node["display_title"] == "Review auth"
