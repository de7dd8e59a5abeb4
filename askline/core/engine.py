"""The prompt retry loop."""

from __future__ import annotations

import asyncio

from .session_log import get_active_logger, log_debug, log_exception
from .types import (
    Acceptance,
    AskEvent,
    AskProps,
    AttemptContext,
    Question,
    QuestionSource,
    settle,
)


async def _emit(question: Question, event: AskEvent) -> None:
    if question.on is not None:
        await settle(question.on(event))


async def _read(props: AskProps, question: Question) -> str:
    await _emit(question, "before_ask")
    pending = asyncio.ensure_future(props.session.readline(question.text))
    try:
        # let the read start before the "ask" hook fires
        await asyncio.sleep(0)
        await _emit(question, "ask")
        raw = await pending
    except BaseException:
        if not pending.done():
            pending.cancel()
        elif not pending.cancelled():
            pending.exception()
        raise
    await _emit(question, "answer")
    return raw


def _transform(question: Question, raw: str, context: AttemptContext) -> str:
    answer = raw.strip() if question.trim else raw
    if question.format is not None:
        answer = question.format(answer, context)
    return answer


async def run_prompt(props: AskProps, source: QuestionSource, *, origin: str = "ask") -> str:
    """Ask until an answer is accepted and return it.

    Every iteration resolves the question afresh from *source*, reads one line
    from ``props.session``, trims and formats it, then checks it against the
    question's ``accept`` option. There is no retry limit; rejected answers
    become ``previous_answer`` of the next attempt.
    """
    logger = get_active_logger()
    answer = ""
    iteration = 0
    try:
        while True:
            context = AttemptContext(iteration=iteration, previous_answer=answer)
            question = source.resolve(context, props)
            acceptance = Acceptance.from_option(question.accept)
            if logger is not None:
                logger.log_question(origin, question.text, iteration=iteration)
            raw = await _read(props, question)
            answer = _transform(question, raw, context)
            if logger is not None:
                logger.log_answer(origin, raw, answer)
            accepted = await acceptance.check(answer)
            if logger is not None:
                logger.log_verdict(origin, answer, accepted=accepted, iteration=iteration)
            if accepted:
                return answer
            log_debug(origin, "answer.rejected", {"iteration": iteration, "answer": answer})
            iteration += 1
    except Exception as exc:
        log_exception(origin, exc)
        raise
