"""Binding of the prompt engine to sessions and session lifetimes."""

from __future__ import annotations

import inspect
import sys
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, AsyncIterator, Awaitable, Callable, Generic, TextIO, TypeVar

from .engine import run_prompt
from .session import LineSession, open_session
from .session_log import get_active_logger, log_debug
from .types import (
    AskOptions,
    AskProps,
    GeneratedQuestion,
    LiteralQuestion,
    P,
    QuestionGenerator,
    QuestionSource,
)

R = TypeVar("R")
PropsFactory = Callable[[], P]


class Asker(Generic[P]):
    """Asks questions against sessions obtained from a props factory.

    A root asker owns its sessions: every call opens a fresh one and closes it
    when the answer settles, and :meth:`scoped` keeps one open for a whole
    block. Bound askers (handed to scoped blocks, or built by :meth:`use`)
    reuse one props bag and never close its session.
    """

    def __init__(self, acquire: PropsFactory[P], *, owns_session: bool = True) -> None:
        self._acquire = acquire
        self.owns_session = owns_session

    async def __call__(
        self,
        question: str,
        options: AskOptions | None = None,
        **overrides: Any,
    ) -> str:
        if overrides:
            options = replace(options or AskOptions(), **overrides)
        return await self._run(LiteralQuestion(question, options))

    async def generate(self, generator: QuestionGenerator[P]) -> str:
        """Ask with a question rebuilt from *generator* on every attempt."""
        return await self._run(GeneratedQuestion(generator))

    def scoped(self, block: Callable[["Asker[P]", P], R]) -> R:
        """Run *block* with a bound asker sharing one session.

        The session is closed once *block* finishes. When *block* returns an
        awaitable, a coroutine is returned instead and the session closes
        after that awaitable settles.
        """
        props = self._acquire()
        self._open_scope()
        try:
            result = block(self._bind(props), props)
        except BaseException:
            self._close_scope(props, "error")
            raise
        if inspect.isawaitable(result):
            return self._settle_scope(result, props)  # type: ignore[return-value]
        self._close_scope(props, "ok")
        return result

    @asynccontextmanager
    async def session(self) -> AsyncIterator[tuple["Asker[P]", P]]:
        """Async context manager form of :meth:`scoped`."""
        props = self._acquire()
        self._open_scope()
        status = "error"
        try:
            yield self._bind(props), props
            status = "ok"
        finally:
            self._close_scope(props, status)

    def use(self, session: LineSession) -> "Asker[AskProps]":
        """Return an asker over an externally owned *session*."""
        props = AskProps(session=session)
        return Asker(lambda: props, owns_session=False)

    async def _run(self, source: QuestionSource) -> str:
        props = self._acquire()
        try:
            return await run_prompt(props, source)
        finally:
            if self.owns_session:
                props.session.close()

    async def _settle_scope(self, awaitable: Awaitable[R], props: P) -> R:
        status = "error"
        try:
            result = await awaitable
            status = "ok"
            return result
        finally:
            self._close_scope(props, status)

    def _bind(self, props: P) -> "Asker[P]":
        return Asker(lambda: props, owns_session=False)

    def _open_scope(self) -> None:
        if not self.owns_session:
            return
        logger = get_active_logger()
        if logger is not None:
            logger.start_interaction("scope")

    def _close_scope(self, props: P, status: str) -> None:
        if not self.owns_session:
            return
        try:
            props.session.close()
        finally:
            log_debug("scope", "scope.close", {"status": status})
            logger = get_active_logger()
            if logger is not None:
                logger.end_interaction("scope", status=status)


def default_props_factory(
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    backend: str = "auto",
) -> PropsFactory[AskProps]:
    """Build the stock props factory: one new session per call.

    Streams left as ``None`` are looked up on ``sys`` at every call, so
    redirections made after the factory was built are honoured.
    """

    def init() -> AskProps:
        return AskProps(
            session=open_session(
                backend,
                stdin if stdin is not None else sys.stdin,
                stdout if stdout is not None else sys.stdout,
            )
        )

    return init


def create_ask(
    init: PropsFactory[P] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    backend: str = "auto",
) -> Asker[Any]:
    """Create a root asker.

    *init* replaces the props factory, which lets integrators attach their own
    fields to the props bag. Without it, sessions read from *stdin* and write
    to *stdout*, defaulting to the process streams current at each call.
    """
    if init is None:
        return Asker(default_props_factory(stdin, stdout, backend))
    return Asker(init)
