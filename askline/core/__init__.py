"""Prompt engine, sessions and scope control."""

from .engine import run_prompt
from .scope import Asker, create_ask, default_props_factory
from .session import (
    ConsoleSession,
    LineSession,
    PromptToolkitSession,
    ScriptedSession,
    SessionClosedError,
    open_session,
)
from .session_log import SessionLogger
from .types import (
    Acceptance,
    Always,
    AskOptions,
    AskProps,
    AttemptContext,
    GeneratedQuestion,
    LiteralQuestion,
    OneOf,
    Predicate,
    Question,
)

__all__ = [
    "Acceptance",
    "Always",
    "AskOptions",
    "AskProps",
    "Asker",
    "AttemptContext",
    "ConsoleSession",
    "GeneratedQuestion",
    "LineSession",
    "LiteralQuestion",
    "OneOf",
    "Predicate",
    "PromptToolkitSession",
    "Question",
    "ScriptedSession",
    "SessionClosedError",
    "SessionLogger",
    "create_ask",
    "default_props_factory",
    "open_session",
    "run_prompt",
]
