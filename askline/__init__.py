"""askline: validated, retrying line prompts for command-line programs."""

from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
import re

from .core import (
    AskOptions,
    AskProps,
    Asker,
    AttemptContext,
    Question,
    ScriptedSession,
    SessionClosedError,
    create_ask,
)


def _load_version() -> str:
    try:
        return pkg_version("askline")
    except PackageNotFoundError:
        pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
        if pyproject.exists():
            match = re.search(
                r'^version\s*=\s*"(?P<version>[^"]+)"',
                pyproject.read_text(),
                re.MULTILINE,
            )
            if match:
                return match.group("version")
        return "0.0.0"


__version__: str = _load_version()

ask: Asker[AskProps] = create_ask()

__all__ = [
    "AskOptions",
    "AskProps",
    "Asker",
    "AttemptContext",
    "Question",
    "ScriptedSession",
    "SessionClosedError",
    "ask",
    "create_ask",
]
