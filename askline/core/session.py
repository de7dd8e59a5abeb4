"""Line-reading sessions the prompt engine talks to."""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import Iterable, Protocol, TextIO, Union

from prompt_toolkit import PromptSession
from prompt_toolkit.input import Input, create_input
from prompt_toolkit.output import Output, create_output
from rich.console import Console, ConsoleOptions, RenderResult
from rich.segment import Segment

from .session_log import log_debug


class SessionClosedError(RuntimeError):
    """Raised when a session is read from after it was closed."""


class LineSession(Protocol):
    async def readline(self, prompt: str) -> str:
        ...

    def close(self) -> None:
        ...


class _VerbatimPrompt:
    """Prompt text handed to rich as a single segment, so it is not wrapped
    to the console width and tabs are not expanded."""

    def __init__(self, text: str) -> None:
        self.text = text

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        yield Segment(self.text)


class ConsoleSession:
    """Plain stream session backed by ``rich.console.Console.input``.

    Suitable for pipes and non-interactive streams. Each read runs in a daemon
    thread so the event loop stays responsive, and a read that is cancelled
    while blocked on the stream does not keep the process alive.
    """

    def __init__(
        self,
        stdin: TextIO,
        stdout: TextIO,
        *,
        console: Console | None = None,
    ) -> None:
        self.stdin = stdin
        self.console = console or Console(file=stdout, highlight=False, soft_wrap=True)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def readline(self, prompt: str) -> str:
        if self._closed:
            raise SessionClosedError("console session is closed")
        line = await self._read_in_thread(prompt)
        if not line:
            raise EOFError("input stream closed")
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        return line

    def _read_in_thread(self, prompt: str) -> asyncio.Future[str]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def deliver(line: str | None, error: BaseException | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(line or "")

        def worker() -> None:
            try:
                line = self.console.input(
                    _VerbatimPrompt(prompt) if prompt else "", stream=self.stdin
                )
            except Exception as exc:  # noqa: BLE001 - handed to the awaiting task
                result: tuple[str | None, BaseException | None] = (None, exc)
            else:
                result = (line, None)
            if not loop.is_closed():
                loop.call_soon_threadsafe(deliver, *result)

        threading.Thread(target=worker, name="askline-console-read", daemon=True).start()
        return future

    def close(self) -> None:
        # the process streams are borrowed; only the session is released
        self._closed = True
        log_debug("session", "session.close", {"backend": "console"})


class PromptToolkitSession:
    """Terminal session backed by ``prompt_toolkit.PromptSession.prompt_async``."""

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        *,
        input: Input | None = None,  # noqa: A002 - mirrors prompt_toolkit
        output: Output | None = None,
    ) -> None:
        self._input = input or create_input(stdin)
        self._output = output or create_output(stdout)
        self._session: PromptSession[str] = PromptSession(
            input=self._input, output=self._output
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def readline(self, prompt: str) -> str:
        if self._closed:
            raise SessionClosedError("prompt_toolkit session is closed")
        return await self._session.prompt_async(prompt)

    def close(self) -> None:
        self._closed = True
        closer = getattr(self._input, "close", None)
        if callable(closer):
            closer()
        log_debug("session", "session.close", {"backend": "prompt_toolkit"})


ScriptItem = Union[str, BaseException]


class ScriptedSession:
    """In-memory session that replays a fixed list of lines.

    Items that are exceptions are raised from ``readline`` instead of being
    returned, which simulates a failing channel. Running out of lines raises
    ``EOFError`` like a closed stream.
    """

    def __init__(self, lines: Iterable[ScriptItem]) -> None:
        self._lines: deque[ScriptItem] = deque(lines)
        self.prompts: list[str] = []
        self.reads = 0
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    @property
    def remaining(self) -> int:
        return len(self._lines)

    async def readline(self, prompt: str) -> str:
        if self.closed:
            raise SessionClosedError("scripted session is closed")
        self.prompts.append(prompt)
        if not self._lines:
            raise EOFError("script exhausted")
        item = self._lines.popleft()
        if isinstance(item, BaseException):
            raise item
        self.reads += 1
        return item

    def close(self) -> None:
        self.close_count += 1


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(callable(isatty) and isatty())


def open_session(backend: str, stdin: TextIO, stdout: TextIO) -> LineSession:
    """Open a session of the named backend over explicit streams."""
    if backend == "auto":
        backend = "prompt_toolkit" if _is_tty(stdin) and _is_tty(stdout) else "console"
    if backend == "prompt_toolkit":
        session: LineSession = PromptToolkitSession(stdin, stdout)
    elif backend == "console":
        session = ConsoleSession(stdin, stdout)
    else:
        raise ValueError(f"unknown session backend: {backend!r}")
    log_debug("session", "session.open", {"backend": backend})
    return session
