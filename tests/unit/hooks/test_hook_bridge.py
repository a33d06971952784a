"""Unit tests for the HookBridge event handlers."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from agentic_skills.hooks import HookBridge, create_plugin
from agentic_skills.hooks import bridge as bridge_module
from agentic_skills.hooks.bridge import (
    COMPACTION_HEADER,
    COMPACTION_INSTRUCTION,
    FAILURE_LOG,
    append_failure_log,
    build_compact_context,
    build_session_start_context,
    get_session_id,
)


@pytest.fixture
def workspace(tmp_path):
    """Project directory with deployed skills and agents."""
    project = tmp_path / "project"
    for name in ("git-workflow", "docker-production"):
        (project / ".claude" / "skills" / name).mkdir(parents=True)
    (project / ".claude" / "agents").mkdir()
    (project / ".claude" / "agents" / "pr-reviewer.md").write_text("---\n---\n")
    (project / ".claude" / "agents" / "notes.txt").write_text("ignored")
    return project


@pytest.fixture
def client():
    """Host client whose session.prompt is awaitable."""
    mock = MagicMock()
    mock.session.prompt = AsyncMock()
    return mock


@pytest.fixture
def no_git(monkeypatch):
    """Pretend the project is not a git repository."""
    monkeypatch.setattr(bridge_module, "git_info", lambda directory: "")


def _injected_text(client):
    request = client.session.prompt.call_args.args[0]
    return request["body"]["parts"][0]["text"]


@pytest.mark.unit
@pytest.mark.hooks
class TestToolExecuteBefore:
    """Test HookBridge.tool_execute_before()."""

    def test_rewrites_dangerous_command(self):
        """Should replace the command with a blocking one."""
        output = {"args": {"command": "rm -rf /", "description": "clean"}}

        HookBridge().tool_execute_before({"tool": "bash"}, output)

        assert output["args"]["command"].endswith("exit 2")
        assert output["args"]["description"] == "clean"

    def test_tool_name_is_case_insensitive(self):
        """Should guard Bash as well as bash."""
        output = {"args": {"command": "cat .env"}}
        HookBridge().tool_execute_before({"tool": "Bash"}, output)
        assert "exit 2" in output["args"]["command"]

    def test_leaves_safe_commands_untouched(self):
        """Should not modify allowed commands."""
        output = {"args": {"command": "ls -la"}}
        HookBridge().tool_execute_before({"tool": "shell"}, output)
        assert output == {"args": {"command": "ls -la"}}

    def test_ignores_other_tools(self):
        """Should only inspect shell tools."""
        output = {"args": {"command": "rm -rf /"}}
        HookBridge().tool_execute_before({"tool": "write"}, output)
        assert output["args"]["command"] == "rm -rf /"

    @pytest.mark.parametrize("tool_input,output", [(None, {}), ({"tool": "bash"}, None)])
    def test_tolerates_malformed_arguments(self, tool_input, output):
        """Should never raise on unexpected shapes."""
        HookBridge().tool_execute_before(tool_input, output)


@pytest.mark.unit
@pytest.mark.hooks
class TestSessionContext:
    """Test context builders."""

    def test_compact_context(self, workspace):
        """Should list deployed skills and agents."""
        text = build_compact_context(workspace)

        assert text.splitlines() == [
            COMPACTION_HEADER,
            "Skills (2): docker-production, git-workflow",
            "Agents (1): pr-reviewer",
            COMPACTION_INSTRUCTION,
        ]

    def test_compact_context_prefers_opencode(self, workspace):
        """Should read .opencode before .claude."""
        (workspace / ".opencode" / "skills" / "api-design").mkdir(parents=True)

        assert "Skills (1): api-design" in build_compact_context(workspace)

    def test_compact_context_without_artifacts(self, tmp_path):
        """Should say none found for each empty category."""
        text = build_compact_context(tmp_path)
        assert "Skills: none found" in text
        assert "Agents: none found" in text

    def test_session_start_context(self, workspace, monkeypatch):
        """Should include date, git state and context file heads."""
        monkeypatch.setattr(
            bridge_module, "git_info", lambda directory: "Git: branch=main, uncommitted_files=2"
        )
        (workspace / ".claude" / "CONTEXT.md").write_text("x" * 600)
        (workspace / ".opencode").mkdir()
        (workspace / ".opencode" / "TODO.md").write_text("- ship it\n")

        lines = build_session_start_context(workspace).splitlines()

        assert lines[0].startswith("Date: ")
        assert lines[1] == "Git: branch=main, uncommitted_files=2"
        assert lines[2] == "CONTEXT.md: " + "x" * 500
        assert lines[3] == "TODO.md: - ship it"

    def test_session_start_context_minimal(self, tmp_path, no_git):
        """Should emit only the date outside a repository."""
        text = build_session_start_context(tmp_path)
        assert text.startswith("Date: ")
        assert "\n" not in text


@pytest.mark.unit
@pytest.mark.hooks
class TestEvents:
    """Test HookBridge.event()."""

    @pytest.mark.asyncio
    async def test_session_compacted_injects_context(self, client, workspace):
        """Should send a synthetic no-reply prompt to the session."""
        bridge = HookBridge(client=client, directory=workspace)

        await bridge.event(
            {"event": {"type": "session.compacted", "properties": {"sessionID": "ses_1"}}}
        )

        request = client.session.prompt.call_args.args[0]
        assert request["path"] == {"id": "ses_1"}
        assert request["body"]["noReply"] is True
        assert request["body"]["parts"][0]["synthetic"] is True
        assert "Skills (2)" in _injected_text(client)

    @pytest.mark.asyncio
    async def test_session_created_injects_context(self, client, workspace, no_git):
        """Should accept a bare event without the envelope."""
        bridge = HookBridge(client=client, directory=workspace)

        await bridge.event({"type": "session.created", "properties": {"info": {"id": "ses_2"}}})

        assert _injected_text(client).startswith("Date: ")

    @pytest.mark.asyncio
    async def test_event_without_session_id_is_ignored(self, client, workspace):
        """Should not prompt when no session id can be found."""
        await HookBridge(client=client, directory=workspace).event({"type": "session.compacted"})
        client.session.prompt.assert_not_called()

    @pytest.mark.asyncio
    async def test_injection_failure_is_swallowed(self, client, workspace):
        """Should never propagate client errors into the host."""
        client.session.prompt.side_effect = RuntimeError("host gone")
        bridge = HookBridge(client=client, directory=workspace)

        await bridge.event({"type": "session.compacted", "session": {"id": "ses_3"}})

        client.session.prompt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sync_client_is_supported(self, workspace):
        """Should accept a client whose prompt returns a plain value."""
        calls = []

        class Session:
            def prompt(self, request):
                calls.append(request)
                return {"ok": True}

        class Client:
            session = Session()

        await HookBridge(client=Client(), directory=workspace).event(
            {"type": "session.compacted", "session": {"id": "ses_4"}}
        )

        assert calls[0]["path"] == {"id": "ses_4"}

    @pytest.mark.asyncio
    async def test_session_error_is_logged(self, client, tmp_path):
        """Should append one JSON line to the failure log."""
        bridge = HookBridge(client=client, directory=tmp_path)

        await bridge.event(
            {"event": {"type": "session.error", "properties": {"error": "boom"}}}
        )

        log_file = tmp_path / ".opencode" / FAILURE_LOG
        entry = json.loads(log_file.read_text().splitlines()[0])
        assert entry["type"] == "session.error"
        assert entry["properties"] == {"error": "boom"}
        assert entry["timestamp"].endswith("Z")
        client.session.prompt.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("envelope", [None, "text", {"event": "x"}, {"type": "file.edited"}])
    async def test_unknown_events_are_ignored(self, client, envelope):
        """Should ignore events it does not handle."""
        await HookBridge(client=client).event(envelope)
        client.session.prompt.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_plugin(self, client, workspace):
        """Should expose the handler map for plugin hosts."""
        plugin = create_plugin(client, workspace)

        output = {"args": {"command": "rm -rf ~"}}
        plugin["tool.execute.before"]({"tool": "bash"}, output)
        await plugin["event"]({"type": "session.compacted", "session": {"id": "s"}})

        assert "exit 2" in output["args"]["command"]
        client.session.prompt.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.hooks
class TestHelpers:
    """Test event helpers."""

    @pytest.mark.parametrize(
        "event,expected",
        [
            ({"properties": {"info": {"id": "a"}, "sessionID": "b"}}, "a"),
            ({"properties": {"sessionID": "b"}, "session": {"id": "c"}}, "b"),
            ({"session": {"id": "c"}}, "c"),
            ({"properties": ["not", "a", "dict"]}, None),
            ({}, None),
            ("nope", None),
        ],
    )
    def test_get_session_id(self, event, expected):
        """Should look up the session id in priority order."""
        assert get_session_id(event) == expected

    def test_failure_log_appends(self, tmp_path):
        """Should append one line per event with an unknown-type default."""
        append_failure_log(tmp_path, {"properties": {"a": 1}})
        append_failure_log(tmp_path, "garbage")

        lines = (tmp_path / FAILURE_LOG).read_text().splitlines()
        assert [json.loads(line)["type"] for line in lines] == ["unknown", "unknown"]

    def test_failure_log_never_raises(self, tmp_path):
        """Should swallow filesystem errors."""
        blocker = tmp_path / "hooks"
        blocker.write_text("a file where a directory should be")

        append_failure_log(tmp_path, {"type": "session.error"})
