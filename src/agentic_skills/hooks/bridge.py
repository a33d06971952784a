"""Runtime hook bridge loaded by the assistant host.

This module is deployed by copying its source into the target root
(``hooks/agentic_skills_hooks.py`` or ``plugins/agentic_skills_hooks.py``)
and runs inside the host process, so it imports only the standard library.

It provides:

- a command guard that rewrites dangerous shell commands into a blocking
  ``exit 2`` command before the host runs them
- session context injection on session start and after compaction
- a best-effort JSONL log of session errors

Two entry styles are supported. Plugin-style hosts call
:func:`create_plugin` and receive ``tool.execute.before`` / ``event``
handlers. Command-hook hosts run ``python3 agentic_skills_hooks.py
<subcommand>`` with the event payload on stdin (see :func:`main`).
"""

import inspect
import json
import logging
import os
import re
import shlex
import subprocess
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONTEXT_HEAD_LIMIT = 500
GIT_TIMEOUT_SECONDS = 3
SHELL_TOOLS = {"bash", "shell"}
COMPACTION_HEADER = "CRITICAL CONTEXT TO PRESERVE AFTER COMPACTION:"
COMPACTION_INSTRUCTION = "Always use relevant skills for the task at hand."
FAILURE_LOG = Path("hooks") / "logs" / "tool_failures.jsonl"

_COMMAND_KEYS = ("command", "cmd", "script")
_WRAPPER_KEYS = ("input", "payload")

# ---------------------------------------------------------------------------
# Command extraction
# ---------------------------------------------------------------------------


def normalize_command(command: Any) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not isinstance(command, str):
        return ""
    return " ".join(command.split())


def _find_command(args: Any) -> tuple[dict, str] | None:
    """Locate the dict and key holding the command text."""
    if not isinstance(args, dict):
        return None
    for key in _COMMAND_KEYS:
        if isinstance(args.get(key), str):
            return args, key
    for wrapper in _WRAPPER_KEYS:
        nested = args.get(wrapper)
        if isinstance(nested, dict):
            for key in _COMMAND_KEYS:
                if isinstance(nested.get(key), str):
                    return nested, key
    return None


def extract_command(args: Any) -> str:
    """Extract command text from tool arguments.

    Looks at ``command``, ``cmd`` and ``script``, then one level of
    ``input`` / ``payload`` wrapper. Returns "" when nothing is found.
    """
    found = _find_command(args)
    if found is None:
        return ""
    container, key = found
    return container[key]


def set_command(args: Any, command: str) -> dict:
    """Replace the command text in place, wherever it was found."""
    if not isinstance(args, dict):
        return {"command": command}
    found = _find_command(args)
    if found is None:
        args["command"] = command
    else:
        container, key = found
        container[key] = command
    return args


def block_command(reason: str) -> str:
    """Build a command that prints reason to stderr and exits 2.

    Examples:
        >>> block_command("no")
        "printf '%s\\\\n' 'no' >&2; exit 2"
    """
    escaped = reason.replace("'", "'\"'\"'")
    return f"printf '%s\\n' '{escaped}' >&2; exit 2"


# ---------------------------------------------------------------------------
# Command classification
# ---------------------------------------------------------------------------

_SEGMENT_SEPARATORS = re.compile(r"\|\||&&|[;|&\n]")
_TOKEN_PREFIXES = ("$(", "`", "(", "{")
_NESTING_LIMIT = 3
# The default IFS splits words on whitespace
_IFS_EXPANSION = re.compile(r"\$\{IFS\}|\$IFS\b")

_PROTECTED_TARGETS = {
    "/",
    "/*",
    "/.",
    "~",
    "~/*",
    "~/.",
    "$HOME",
    "${HOME}",
    "$HOME/*",
    "${HOME}/*",
    ".",
    "./*",
    "..",
    "../*",
    "*",
}

_ENV_READERS = {
    "cat",
    "less",
    "more",
    "head",
    "tail",
    "bat",
    "batcat",
    "nl",
    "tac",
    "strings",
    "xxd",
    "od",
    "hexdump",
}
# Readers only recognized in command position
_ENV_SOURCERS = {"source", "."}

_ENV_ALLOWED_SUFFIXES = (
    ".env.example",
    ".env.sample",
    ".env.template",
    ".env.test",
    ".env.local.example",
)

# Single-line patterns kept as an additional net over the token analysis
_RM_PATTERN = re.compile(
    r"rm\s+(-[a-zA-Z]*r[a-zA-Z]*f|--recursive\s+--force|-[a-zA-Z]*f[a-zA-Z]*r)[a-zA-Z]*\s+"
    r"(/\s*$|/\*|~/?(\s|$)|\./?(\s|$)|\*(\s|$))",
    re.IGNORECASE,
)
_NO_PRESERVE_ROOT = re.compile(r"--no-preserve-root", re.IGNORECASE)
_ENV_READ_PATTERN = re.compile(
    r"(cat|less|more|head|tail|source|\.)\s+\S*\.env(\s|$)", re.IGNORECASE
)


def _unfold(command: str) -> str:
    """Join backslash-newline continuations and read ``$IFS`` as a space."""
    return _IFS_EXPANSION.sub(" ", command.replace("\\\n", ""))


def _clean_token(token: str) -> str:
    stripped = True
    while stripped:
        stripped = False
        for prefix in _TOKEN_PREFIXES:
            if token.startswith(prefix) and len(token) > len(prefix):
                token = token[len(prefix) :]
                stripped = True
    return token.rstrip(")`") or token


def _tokenize(segment: str) -> list[str]:
    try:
        tokens = shlex.split(segment)
    except ValueError:
        # Unbalanced quotes: fall back to whitespace splitting
        tokens = [token.strip("'\"") for token in segment.split()]
    return [_clean_token(token) for token in tokens if token]


def _iter_invocations(command: str, depth: int = 0) -> Iterator[list[str]]:
    """Yield the token list of every simple command, including quoted
    sub-commands such as ``bash -c "..."``."""
    for segment in _SEGMENT_SEPARATORS.split(command):
        tokens = _tokenize(segment)
        if not tokens:
            continue
        yield tokens
        if depth < _NESTING_LIMIT:
            for token in tokens:
                if any(char.isspace() or char in ";|&" for char in token):
                    yield from _iter_invocations(token, depth + 1)


def _basename(token: str) -> str:
    return token.rstrip("/").rsplit("/", 1)[-1] if token.strip("/") else token


def _is_protected_target(target: str) -> bool:
    while len(target) > 1 and target.endswith("/"):
        target = target[:-1]
    return target in _PROTECTED_TARGETS


def _rm_is_destructive(args: list[str]) -> bool:
    recursive = force = False
    targets = []
    options_done = False
    for arg in args:
        if not options_done and arg == "--":
            options_done = True
        elif not options_done and arg.startswith("--"):
            if arg == "--recursive":
                recursive = True
            elif arg == "--force":
                force = True
        elif not options_done and arg.startswith("-") and len(arg) > 1:
            cluster = arg[1:]
            recursive = recursive or "r" in cluster or "R" in cluster
            force = force or "f" in cluster
        else:
            targets.append(arg)
    return recursive and force and any(_is_protected_target(target) for target in targets)


def is_destructive_rm(command: str) -> bool:
    """Detect recursive forced deletes of root, home, cwd or glob-everything.

    Examples:
        >>> is_destructive_rm("rm -rf /")
        True
        >>> is_destructive_rm("rm -rf ./build")
        False
    """
    command = _unfold(command)
    if _NO_PRESERVE_ROOT.search(command):
        return True
    for tokens in _iter_invocations(command):
        for index, token in enumerate(tokens):
            if _basename(token) == "rm" and _rm_is_destructive(tokens[index + 1 :]):
                return True
    return bool(_RM_PATTERN.search(normalize_command(command)))


def _is_secret_env_path(token: str) -> bool:
    path = token.lstrip("<").lower()
    if ".env" not in path:
        return False
    return not _basename(path).endswith(_ENV_ALLOWED_SUFFIXES)


def is_dotenv_read(command: str) -> bool:
    """Detect reads of ``.env`` files other than the template variants.

    Examples:
        >>> is_dotenv_read("cat .env")
        True
        >>> is_dotenv_read("cat .env.example")
        False
    """
    command = _unfold(command)
    for tokens in _iter_invocations(command):
        for index, token in enumerate(tokens):
            name = _basename(token)
            is_reader = name in _ENV_READERS or (index == 0 and token in _ENV_SOURCERS)
            if is_reader and any(_is_secret_env_path(arg) for arg in tokens[index + 1 :]):
                return True
            # Input redirection: "< .env" or "<.env"
            if token == "<" and index + 1 < len(tokens) and _is_secret_env_path(tokens[index + 1]):
                return True
            if token.startswith("<") and len(token) > 1 and _is_secret_env_path(token):
                return True
    return bool(_ENV_READ_PATTERN.search(normalize_command(command)))


@dataclass(frozen=True)
class HookRule:
    """A command guard rule.

    Attributes:
        name: Rule identifier (used in logs)
        matches: Predicate over the raw command text
        reason: Message shown to the agent; ``{command}`` is replaced with
            the normalized command
    """

    name: str
    matches: Callable[[str], bool]
    reason: str

    def render_reason(self, command: str) -> str:
        return self.reason.replace("{command}", normalize_command(command))


# Evaluated in order; the first match wins
RULES: tuple[HookRule, ...] = (
    HookRule(
        name="destructive-rm",
        matches=is_destructive_rm,
        reason="BLOCKED: Dangerous rm -rf pattern detected: {command}",
    ),
    HookRule(
        name="dotenv-read",
        matches=is_dotenv_read,
        reason="BLOCKED: Direct .env file access detected. Use environment variables instead.",
    ),
)


def classify_command(command: str) -> HookRule | None:
    """Return the first rule matching the command, or None if it is allowed."""
    if not normalize_command(command):
        return None
    for rule in RULES:
        if rule.matches(command):
            return rule
    return None


def guard_command(command: str) -> str | None:
    """Return the blocking replacement for a command, or None to allow it."""
    rule = classify_command(command)
    if rule is None:
        return None
    logger.debug(f"Command blocked by {rule.name}")
    return block_command(rule.render_reason(command))


# ---------------------------------------------------------------------------
# Session context
# ---------------------------------------------------------------------------


def _read_head(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")[:CONTEXT_HEAD_LIMIT].strip()
    except OSError:
        return ""


def _first_existing(candidates: list[Path]) -> Path | None:
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _list_names(directory: Path, suffix: str | None = None) -> list[str]:
    try:
        entries = list(directory.iterdir())
    except OSError:
        return []
    if suffix:
        names = [e.name[: -len(suffix)] for e in entries if e.is_file() and e.name.endswith(suffix)]
    else:
        names = [e.name for e in entries if e.is_dir()]
    return sorted(names)


def _run_git(directory: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=directory,
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT_SECONDS,
        check=True,
    )
    return result.stdout


def git_info(directory: Path) -> str:
    """Best-effort ``Git: branch=<b>, uncommitted_files=<n>`` line ("" outside a repo)."""
    try:
        branch = _run_git(directory, "branch", "--show-current").strip() or "detached"
        status = _run_git(directory, "status", "--porcelain")
    except (OSError, subprocess.SubprocessError):
        return ""
    uncommitted = len([line for line in status.splitlines() if line])
    return f"Git: branch={branch}, uncommitted_files={uncommitted}"


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def build_session_start_context(directory: Path) -> str:
    """Context injected when a session starts."""
    directory = Path(directory)
    parts = [f"Date: {_today()}"]

    git = git_info(directory)
    if git:
        parts.append(git)

    for file_name in ("CONTEXT.md", "TODO.md"):
        found = _first_existing(
            [directory / ".claude" / file_name, directory / ".opencode" / file_name]
        )
        if found:
            content = _read_head(found)
            if content:
                parts.append(f"{file_name}: {content}")

    return "\n".join(parts).strip()


def build_compact_context(directory: Path) -> str:
    """Reminder of deployed skills and agents injected after compaction."""
    directory = Path(directory)
    parts = [COMPACTION_HEADER]

    for label, sub_dir, suffix in (("Skills", "skills", None), ("Agents", "agents", ".md")):
        found = _first_existing(
            [directory / ".opencode" / sub_dir, directory / ".claude" / sub_dir]
        )
        names = _list_names(found, suffix) if found else []
        if names:
            parts.append(f"{label} ({len(names)}): {', '.join(names)}")
        else:
            parts.append(f"{label}: none found")

    parts.append(COMPACTION_INSTRUCTION)
    return "\n".join(parts)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def append_failure_log(host_root: Path, event: Any) -> None:
    """Append one JSON line describing a session error; never raises."""
    try:
        log_file = Path(host_root) / FAILURE_LOG
        log_file.parent.mkdir(parents=True, exist_ok=True)
        event = event if isinstance(event, dict) else {}
        payload = {
            "timestamp": _timestamp(),
            "type": event.get("type") or "unknown",
            "properties": event.get("properties"),
        }
        with log_file.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, default=str) + "\n")
    except (OSError, TypeError, ValueError) as e:
        logger.debug(f"Could not write failure log: {e}")


def get_session_id(event: Any) -> str | None:
    """Find the session id in an event envelope."""
    if not isinstance(event, dict):
        return None
    properties = event.get("properties")
    properties = properties if isinstance(properties, dict) else {}
    info = properties.get("info")
    session = event.get("session")
    for candidate in (
        info.get("id") if isinstance(info, dict) else None,
        properties.get("sessionID"),
        session.get("id") if isinstance(session, dict) else None,
    ):
        if candidate:
            return str(candidate)
    return None


# ---------------------------------------------------------------------------
# Host entry points
# ---------------------------------------------------------------------------


class HookBridge:
    """Event handlers bound to one host client and project directory.

    Attributes:
        client: Host client exposing ``session.prompt`` (may be None)
        directory: Project directory the host runs in
        host_root: Target root holding the deployed artifacts (failure log
            location)
    """

    def __init__(
        self,
        client: Any = None,
        directory: Path | str = ".",
        host_root: Path | None = None,
    ):
        self.client = client
        self.directory = Path(directory)
        self.host_root = Path(host_root) if host_root else self.directory / ".opencode"
        self._handlers = {
            "session.created": self._on_session_created,
            "session.compacted": self._on_session_compacted,
            "session.error": self._on_session_error,
        }

    def tool_execute_before(self, input: Any, output: Any) -> None:
        """Rewrite a dangerous shell command in ``output["args"]`` in place."""
        tool = str((input or {}).get("tool") or "").lower() if isinstance(input, dict) else ""
        if tool not in SHELL_TOOLS or not isinstance(output, dict):
            return

        args = output.get("args")
        replacement = guard_command(extract_command(args))
        if replacement is not None:
            output["args"] = set_command(args, replacement)

    async def event(self, envelope: Any) -> None:
        """Dispatch a host lifecycle event; unknown types are ignored."""
        if not isinstance(envelope, dict):
            return
        event = envelope.get("event", envelope)
        if not isinstance(event, dict):
            return
        handler = self._handlers.get(event.get("type"))
        if handler is not None:
            await handler(event)

    async def _inject(self, session_id: str, text: str) -> None:
        if not text or self.client is None:
            return
        request = {
            "path": {"id": session_id},
            "body": {
                "noReply": True,
                "parts": [{"type": "text", "text": text, "synthetic": True}],
            },
        }
        try:
            result = self.client.session.prompt(request)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # Context injection must never break the host session
            logger.debug(f"Context injection failed: {e}")

    async def _on_session_created(self, event: dict) -> None:
        session_id = get_session_id(event)
        if session_id:
            await self._inject(session_id, build_session_start_context(self.directory))

    async def _on_session_compacted(self, event: dict) -> None:
        session_id = get_session_id(event)
        if session_id:
            await self._inject(session_id, build_compact_context(self.directory))

    async def _on_session_error(self, event: dict) -> None:
        append_failure_log(self.host_root, event)


def create_plugin(client: Any, directory: Path | str) -> dict[str, Callable]:
    """Plugin factory for hosts that load handler maps."""
    bridge = HookBridge(client=client, directory=directory)
    return {
        "tool.execute.before": bridge.tool_execute_before,
        "event": bridge.event,
    }


def _artifact_host_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _payload_directory(payload: dict) -> Path:
    return Path(payload.get("cwd") or os.getcwd())


def _pre_tool_use(payload: dict) -> dict | None:
    bridge = HookBridge(directory=_payload_directory(payload), host_root=_artifact_host_root())
    tool_input = payload.get("tool_input")
    if not isinstance(tool_input, dict):
        return None
    output = {"args": json.loads(json.dumps(tool_input))}
    bridge.tool_execute_before({"tool": payload.get("tool_name")}, output)
    if output["args"] == tool_input:
        return None
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            # The rewritten command only prints the reason and exits 2; "deny"
            # would drop that stderr message
            "permissionDecision": "allow",
            "updatedInput": output["args"],
        }
    }


def _session_start(text: str) -> dict | None:
    if not text:
        return None
    return {"hookSpecificOutput": {"hookEventName": "SessionStart", "additionalContext": text}}


def _session_created(payload: dict) -> dict | None:
    return _session_start(build_session_start_context(_payload_directory(payload)))


def _session_compacted(payload: dict) -> dict | None:
    return _session_start(build_compact_context(_payload_directory(payload)))


def _session_error(payload: dict) -> dict | None:
    event = {"type": payload.get("hook_event_name") or "session.error", "properties": payload}
    append_failure_log(_artifact_host_root(), event)
    return None


COMMANDS: dict[str, Callable[[dict], dict | None]] = {
    "pre-tool-use": _pre_tool_use,
    "session-created": _session_created,
    "session-compacted": _session_compacted,
    "session-error": _session_error,
}


def main(argv: list[str] | None = None) -> int:
    """Command-hook entry point.

    Reads the host's JSON payload from stdin and writes the JSON response (if
    any) to stdout.

    Returns:
        0 on success, 1 on unknown subcommand
    """
    args = sys.argv[1:] if argv is None else argv
    if not args or args[0] not in COMMANDS:
        sys.stderr.write(f"usage: agentic_skills_hooks.py {{{','.join(COMMANDS)}}}\n")
        return 1

    raw = sys.stdin.read()
    try:
        payload = json.loads(raw) if raw.strip() else {}
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    response = COMMANDS[args[0]](payload)
    if response is not None:
        sys.stdout.write(json.dumps(response) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
