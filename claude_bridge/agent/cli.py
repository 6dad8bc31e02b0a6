"""Subprocess wrapper around the claude CLI (``claude -p``).

Invocation invariants:
- The prompt is always written to stdin, never passed as an argument.
- ``--session-id`` (first turn) or ``--resume`` (later turns) is always set.
- ``--max-turns`` is always set.
- ``--output-format stream-json`` is always paired with ``--verbose`` and
  ``--include-partial-messages``; without ``--verbose`` the CLI exits
  without output.
- Nested-session markers are removed from the child environment; the CLI
  refuses to start when it believes it runs inside another session.
"""

import asyncio
import json
import logging
import os
from dataclasses import replace
from typing import AsyncIterator, Iterable, Mapping, Optional

from ..core.exceptions import (
    AgentProcessError,
    AgentTimeoutError,
    MalformedAgentOutputError,
)
from ..types import AgentResult, AgentStreamEvent
from .base import AgentBackend, AgentOptions

logger = logging.getLogger("claude-bridge")

DEFAULT_EXECUTABLE = "claude"
DEFAULT_MAX_TURNS = 15
DEFAULT_TIMEOUT = 300.0
DEFAULT_MAX_OUTPUT_BYTES = 50 * 1024 * 1024
DEFAULT_STRIP_ENV = ("CLAUDECODE",)

READ_CHUNK_SIZE = 64 * 1024
STDERR_TAIL_BYTES = 64 * 1024


class _OutputLimitExceeded(Exception):
    pass


def build_cli_args(options: AgentOptions, max_turns: int) -> list[str]:
    """Build the argument list for one CLI call (without the executable)."""
    args = ["-p", "--model", options.model]

    if options.continue_session:
        args.extend(["--resume", options.session_id])
    else:
        args.extend(["--session-id", options.session_id])

    if options.stream:
        args.extend(["--output-format", "stream-json", "--verbose", "--include-partial-messages"])
    else:
        args.extend(["--output-format", "json"])

    args.extend(["--allowedTools", options.allowed_tools])

    # Resumed sessions already carry their system prompt.
    if options.system_prompt and not options.continue_session:
        args.extend(["--system-prompt", options.system_prompt])

    args.extend(["--max-turns", str(max_turns)])
    return args


def build_child_env(
    strip: Iterable[str] = DEFAULT_STRIP_ENV,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Copy the environment without the nested-session markers."""
    source = os.environ if environ is None else environ
    stripped = set(strip)
    return {key: value for key, value in source.items() if key not in stripped}


async def _write_stdin(proc: asyncio.subprocess.Process, prompt: str) -> None:
    assert proc.stdin is not None
    try:
        proc.stdin.write(prompt.encode("utf-8"))
        await proc.stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.warning("claude CLI closed stdin before the prompt was fully written")
    finally:
        proc.stdin.close()


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> bytes:
    data = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return bytes(data)
        data.extend(chunk)
        if len(data) > limit:
            raise _OutputLimitExceeded(f"claude CLI output exceeded {limit} bytes")


async def _read_tail(stream: asyncio.StreamReader, keep: int = STDERR_TAIL_BYTES) -> bytes:
    data = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return bytes(data)
        data.extend(chunk)
        if len(data) > keep:
            del data[:-keep]


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Kill the child if it is still running and reap it."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


def _failure_text(stdout: bytes) -> str:
    """Diagnostic from stdout of a failed run: the result text when stdout is a
    result document, otherwise the raw output."""
    text = _decode(stdout)
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(document, dict) and isinstance(document.get("result"), str):
        return document["result"].strip() or text
    return text


class ClaudeCLI(AgentBackend):
    """Runs conversations through the claude CLI in print mode."""

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        max_turns: int = DEFAULT_MAX_TURNS,
        timeout: float = DEFAULT_TIMEOUT,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        strip_env: Iterable[str] = DEFAULT_STRIP_ENV,
    ) -> None:
        self.executable = executable
        self.max_turns = max_turns
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self.strip_env = tuple(strip_env)

    async def _spawn(self, options: AgentOptions) -> asyncio.subprocess.Process:
        args = build_cli_args(options, self.max_turns)
        logger.info(
            "Spawning claude CLI: model=%s session=%s resume=%s stream=%s",
            options.model,
            options.session_id,
            options.continue_session,
            options.stream,
        )
        logger.debug("claude CLI args: %s", args)
        try:
            return await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_child_env(self.strip_env),
                limit=self.max_output_bytes,
            )
        except OSError as exc:
            raise AgentProcessError(f"failed to start {self.executable}: {exc}") from exc

    async def _communicate(
        self, proc: asyncio.subprocess.Process, prompt: str
    ) -> tuple[bytes, bytes]:
        assert proc.stdout is not None and proc.stderr is not None
        tasks = [
            asyncio.ensure_future(_write_stdin(proc, prompt)),
            asyncio.ensure_future(_read_capped(proc.stdout, self.max_output_bytes)),
            asyncio.ensure_future(_read_tail(proc.stderr)),
        ]
        try:
            _, stdout, stderr = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        await proc.wait()
        return stdout, stderr

    async def invoke_sync(self, prompt: str, options: AgentOptions) -> AgentResult:
        """Run the CLI with json output and parse the result document."""
        proc = await self._spawn(replace(options, stream=False))
        try:
            stdout, stderr = await asyncio.wait_for(
                self._communicate(proc, prompt), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            await _terminate(proc)
            logger.error(f"claude CLI timed out after {self.timeout:g}s (pid {proc.pid})")
            raise AgentTimeoutError(
                f"claude CLI timeout after {self.timeout:g}s", timeout=self.timeout
            ) from exc
        except _OutputLimitExceeded as exc:
            await _terminate(proc)
            raise AgentProcessError(str(exc), returncode=proc.returncode) from exc
        except BaseException:
            await _terminate(proc)
            raise

        if proc.returncode != 0:
            diagnostic = _decode(stderr) or _failure_text(stdout)
            logger.error(f"claude CLI exited with code {proc.returncode}: {diagnostic[:500]}")
            raise AgentProcessError(
                diagnostic or f"claude CLI exited with code {proc.returncode}",
                returncode=proc.returncode,
                stderr=_decode(stderr),
            )

        text = stdout.decode("utf-8", errors="replace")
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedAgentOutputError(
                f"claude CLI output is not valid JSON: {exc}", output=text[:500]
            ) from exc
        if not isinstance(document, dict):
            raise MalformedAgentOutputError(
                "claude CLI output is not a JSON object", output=text[:500]
            )
        return document  # type: ignore[return-value]

    async def invoke_stream(
        self, prompt: str, options: AgentOptions
    ) -> AsyncIterator[AgentStreamEvent]:
        """Run the CLI with stream-json output, yielding one event per line.

        Lines that are not JSON objects are skipped. If the consumer stops
        early the child is killed and reaped before the generator closes.
        """
        proc = await self._spawn(replace(options, stream=True))
        assert proc.stdout is not None and proc.stderr is not None
        stdin_task = asyncio.ensure_future(_write_stdin(proc, prompt))
        stderr_task = asyncio.ensure_future(_read_tail(proc.stderr))
        returncode: Optional[int] = None

        try:
            while True:
                try:
                    line = await proc.stdout.readline()
                except ValueError as exc:
                    raise AgentProcessError(
                        f"claude CLI output line exceeded {self.max_output_bytes} bytes"
                    ) from exc
                if not line:
                    break
                text = line.decode("utf-8", errors="replace").strip()
                if not text:
                    continue
                try:
                    event = json.loads(text)
                except json.JSONDecodeError:
                    logger.debug(f"Skipping non-JSON CLI line: {text[:100]}")
                    continue
                if not isinstance(event, dict):
                    continue
                yield event  # type: ignore[misc]
            returncode = await proc.wait()
        finally:
            if returncode is None:
                await _terminate(proc)
            if not stdin_task.done():
                stdin_task.cancel()
            await asyncio.gather(stdin_task, stderr_task, return_exceptions=True)

        # A negative code means the child was killed by a signal; whoever
        # sent it owns that outcome.
        if returncode > 0:
            stderr = b""
            if not stderr_task.cancelled() and stderr_task.exception() is None:
                stderr = stderr_task.result()
            diagnostic = _decode(stderr)
            logger.error(f"claude CLI stream exited with code {returncode}: {diagnostic[:500]}")
            raise AgentProcessError(
                diagnostic or f"claude CLI exited with code {returncode}",
                returncode=returncode,
                stderr=diagnostic,
            )
