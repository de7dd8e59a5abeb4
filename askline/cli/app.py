from __future__ import annotations

import argparse
import asyncio
import errno
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence, TextIO

from rich.console import Console

from ..config.manager import SESSION_BACKENDS, ConfigManager
from ..config.paths import AsklinePaths
from ..core.scope import create_ask
from ..core.session_log import log_error, log_info, set_active_logger
from ..core.types import AnswerFormatter, AskOptions, AskProps, AttemptContext, Question

EXIT_OK = 0
EXIT_NO_INPUT = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="askline",
        description="Ask a question on the terminal until the answer is accepted.",
    )
    parser.add_argument("question", nargs="?", help="Question text shown as the prompt")
    parser.add_argument("-v", "--version", action="store_true", help="Show version and exit")
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write .askline/askline.json in the current directory and exit",
    )
    parser.add_argument(
        "-a",
        "--accept",
        action="append",
        metavar="VALUE",
        help="Accepted answer; repeat for more. Any answer is accepted when omitted.",
    )
    parser.add_argument(
        "--trim", action="store_true", help="Strip surrounding whitespace from answers"
    )
    parser.add_argument(
        "--case", choices=("lower", "upper"), help="Change the case of answers before checking"
    )
    parser.add_argument(
        "--non-empty", action="store_true", help="Reject empty answers"
    )
    parser.add_argument(
        "--retry-message",
        metavar="TEXT",
        help="Text shown before the question on retries; {previous} is the rejected answer",
    )
    parser.add_argument(
        "--session", choices=SESSION_BACKENDS, help="Line-reading backend (default from config)"
    )
    parser.add_argument(
        "--debug", metavar="SELECTION", help="Session log selection, e.g. 'session,info'"
    )
    return parser


def _case_formatter(case: str | None) -> AnswerFormatter | None:
    if case == "lower":
        return lambda answer, _context: answer.lower()
    if case == "upper":
        return lambda answer, _context: answer.upper()
    return None


def _options_from_args(args: argparse.Namespace) -> AskOptions:
    accept = args.accept or None
    if args.non_empty:
        choices = tuple(accept) if accept else None
        accept = lambda answer: bool(answer) and (choices is None or answer in choices)  # noqa: E731
    return AskOptions(trim=args.trim, format=_case_formatter(args.case), accept=accept)


def _retry_generator(question: str, message: str, options: AskOptions):
    def generate(context: AttemptContext, _props: AskProps) -> Question:
        text = question
        if context.iteration > 0:
            text = message.replace("{previous}", context.previous_answer) + question
        return Question.from_options(text, options)

    return generate


async def run_cli(
    args: argparse.Namespace,
    *,
    stdin: TextIO,
    stdout: TextIO,
    stderr: TextIO,
    root: Path | None = None,
) -> int:
    console = Console(file=stderr, highlight=False)
    paths = AsklinePaths(root or Path.cwd())
    manager = ConfigManager(paths, console=console)
    settings = manager.load_settings()
    if args.debug is not None:
        settings = replace(settings, debug=args.debug)
    logger = manager.session_logger(settings)
    set_active_logger(logger)
    log_info("cli", "settings", {"session": args.session or settings.session_backend})
    # the prompt goes to stderr so stdout carries only the answer
    asker = create_ask(
        stdin=stdin,
        stdout=stderr,
        backend=args.session or settings.session_backend,
    )
    options = _options_from_args(args)
    try:
        if args.retry_message:
            answer = await asker.generate(
                _retry_generator(args.question, args.retry_message, options)
            )
        else:
            answer = await asker(args.question, options)
    except EOFError:
        log_error("cli", "input.closed", {"question": args.question})
        console.print("[red]No answer: input closed.[/red]")
        return EXIT_NO_INPUT
    finally:
        logger.close()
        set_active_logger(None)
    stdout.write(answer + "\n")
    stdout.flush()
    return EXIT_OK


def init_config(root: Path | None = None, *, console: Console | None = None) -> Path:
    """Write the workspace config template and report where it went."""
    console = console or Console(stderr=True, highlight=False)
    path = ConfigManager(AsklinePaths(root or Path.cwd()), console=console).create_config_template()
    console.print(f"Wrote {path}")
    return path


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.version:
        from askline import __version__

        print(f"askline {__version__}")
        return
    if args.init_config:
        init_config()
        return
    if args.question is None:
        parser.error("the question argument is required")
    try:
        code = asyncio.run(
            run_cli(args, stdin=sys.stdin, stdout=sys.stdout, stderr=sys.stderr)
        )
    except KeyboardInterrupt:
        code = EXIT_INTERRUPTED
    except BrokenPipeError:
        return
    except OSError as exc:
        if exc.errno == errno.EPIPE:
            return
        raise
    raise SystemExit(code)


if __name__ == "__main__":
    main()
