"""Value types shared by the prompt engine and the scope controller."""

from __future__ import annotations

import inspect
from collections.abc import Collection
from dataclasses import dataclass, fields
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Generic,
    Literal,
    TypeVar,
    Union,
)

if TYPE_CHECKING:
    from .session import LineSession


AskEvent = Literal["before_ask", "ask", "answer"]
EventHandler = Callable[[AskEvent], Union[None, Awaitable[None]]]
AnswerFormatter = Callable[[str, "AttemptContext"], str]
AnswerPredicate = Callable[[str], Union[bool, Awaitable[bool]]]
AcceptOption = Union[bool, Collection[str], AnswerPredicate, None]


async def settle(value: Any) -> Any:
    """Await *value* when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class AskProps:
    """Properties shared by every question asked within one scope.

    Subclass to attach extra fields (mute controls, counters, ...). The same
    instance is handed to every question generator of the scope.
    """

    session: LineSession


P = TypeVar("P", bound=AskProps)


@dataclass(frozen=True)
class AttemptContext:
    iteration: int = 0
    previous_answer: str = ""


@dataclass(frozen=True, kw_only=True)
class AskOptions:
    trim: bool = False
    format: AnswerFormatter | None = None
    accept: AcceptOption = None
    on: EventHandler | None = None


@dataclass(frozen=True, kw_only=True)
class Question(AskOptions):
    text: str

    @classmethod
    def from_options(cls, text: str, options: AskOptions | None = None) -> "Question":
        options = options or AskOptions()
        values = {field.name: getattr(options, field.name) for field in fields(AskOptions)}
        return cls(text=text, **values)


QuestionGenerator = Callable[[AttemptContext, P], Question]


@dataclass(frozen=True)
class LiteralQuestion:
    text: str
    options: AskOptions | None = None

    def resolve(self, context: AttemptContext, props: AskProps) -> Question:
        return Question.from_options(self.text, self.options)


@dataclass(frozen=True)
class GeneratedQuestion(Generic[P]):
    generator: QuestionGenerator[P]

    def resolve(self, context: AttemptContext, props: P) -> Question:
        return self.generator(context, props)


QuestionSource = Union[LiteralQuestion, GeneratedQuestion]


class Acceptance:
    """Decides whether a transformed answer ends the retry loop."""

    async def check(self, answer: str) -> bool:
        raise NotImplementedError

    @staticmethod
    def from_option(accept: AcceptOption) -> "Acceptance":
        if accept is None:
            return Always(True)
        if isinstance(accept, bool):
            return Always(accept)
        if isinstance(accept, str):
            return OneOf((accept,))
        if callable(accept):
            return Predicate(accept)
        if isinstance(accept, Collection):
            return OneOf(tuple(accept))
        raise TypeError(
            "accept must be a bool, a collection of strings or a callable, "
            f"not {type(accept).__name__}"
        )


@dataclass(frozen=True)
class Always(Acceptance):
    verdict: bool

    async def check(self, answer: str) -> bool:
        return self.verdict


@dataclass(frozen=True)
class OneOf(Acceptance):
    choices: tuple[str, ...]

    async def check(self, answer: str) -> bool:
        return answer in self.choices


@dataclass(frozen=True)
class Predicate(Acceptance):
    fn: AnswerPredicate

    async def check(self, answer: str) -> bool:
        return bool(await settle(self.fn(answer)))
