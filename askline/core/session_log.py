from __future__ import annotations

import json
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config.paths import AsklinePaths

LOG_LEVELS = ("error", "warn", "info", "debug")
LOG_LEVEL_PRIORITY = {level: idx for idx, level in enumerate(LOG_LEVELS)}
LOG_TYPE_SESSION = "session"
_OFF_WORDS = {"", "none", "null", "off", "false", "0", "no", "n"}
_ON_WORDS = {"true", "1", "yes", "y", "on", "all"}


@dataclass(frozen=True)
class LogSelection:
    enabled_types: frozenset[str]
    enabled_levels: frozenset[str]


def resolve_debug_config(raw: Any) -> LogSelection:
    enabled_types: set[str] = set()
    enabled_levels: set[str] = set()

    def enable_all() -> None:
        enabled_types.add(LOG_TYPE_SESSION)
        enabled_levels.update(LOG_LEVELS)

    def handle_token(token: str) -> None:
        if token in _ON_WORDS:
            enable_all()
        elif token == LOG_TYPE_SESSION:
            enabled_types.add(LOG_TYPE_SESSION)
        elif token in LOG_LEVEL_PRIORITY:
            # levels are cumulative: "info" also enables error and warn
            enabled_levels.update(LOG_LEVELS[: LOG_LEVEL_PRIORITY[token] + 1])

    if raw is None or raw is False:
        return LogSelection(frozenset(), frozenset())
    if raw is True:
        enable_all()
    elif isinstance(raw, str):
        cleaned = raw.strip().lower()
        if cleaned in _OFF_WORDS:
            return LogSelection(frozenset(), frozenset())
        for token in cleaned.split(","):
            handle_token(token.strip())
    elif isinstance(raw, (list, tuple, set)):
        for item in raw:
            if not isinstance(item, str):
                continue
            cleaned = item.strip().lower()
            if not cleaned or cleaned in _OFF_WORDS:
                continue
            handle_token(cleaned)
    return LogSelection(frozenset(enabled_types), frozenset(enabled_levels))


class SessionLogger:
    """Write Markdown logs of prompting sessions when debug logging is enabled."""

    def __init__(self, paths: AsklinePaths, debug_config: Any) -> None:
        self.paths = paths
        self._session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._started_at = datetime.now(timezone.utc)
        self._path: Path | None = None
        self._header = ""
        self._interaction_counter = 0
        self._active_interaction_id: int | None = None
        self.enabled = False
        self._enabled_types: set[str] = set()
        self._enabled_levels: set[str] = set()
        self.configure(debug_config)

    @property
    def path(self) -> Path | None:
        return self._path

    def configure(self, debug_config: Any) -> None:
        selection = resolve_debug_config(debug_config)
        self._enabled_types = set(selection.enabled_types)
        self._enabled_levels = set(selection.enabled_levels)
        self.enabled = bool(self._enabled_types or self._enabled_levels)

    def close(self) -> None:
        self.enabled = False

    def start_interaction(self, source: str, *, summary: str | None = None) -> int | None:
        if not self._session_enabled():
            return None
        self._interaction_counter += 1
        self._active_interaction_id = self._interaction_counter
        self._write(
            {
                "source": source,
                "event": "scope.start",
                "type": LOG_TYPE_SESSION,
                "interaction_id": self._active_interaction_id,
                "content": {"summary": summary},
            }
        )
        return self._active_interaction_id

    def end_interaction(self, source: str, *, status: str | None = None) -> None:
        if not self._session_enabled():
            self._active_interaction_id = None
            return
        if self._active_interaction_id is None:
            return
        self._write(
            {
                "source": source,
                "event": "scope.end",
                "type": LOG_TYPE_SESSION,
                "interaction_id": self._active_interaction_id,
                "content": {"status": status},
            }
        )
        self._active_interaction_id = None

    def log_question(self, source: str, question: str, *, iteration: int) -> None:
        if not self._session_enabled():
            return
        self._write(
            {
                "source": source,
                "event": "prompt.question",
                "type": LOG_TYPE_SESSION,
                "content": {"iteration": iteration, "question": question},
            }
        )

    def log_answer(self, source: str, raw: str, answer: str) -> None:
        if not self._session_enabled():
            return
        self._write(
            {
                "source": source,
                "event": "prompt.answer",
                "type": LOG_TYPE_SESSION,
                "content": {"raw": raw, "answer": answer},
            }
        )

    def log_verdict(self, source: str, answer: str, *, accepted: bool, iteration: int) -> None:
        if not self._session_enabled():
            return
        self._write(
            {
                "source": source,
                "event": "prompt.verdict",
                "type": LOG_TYPE_SESSION,
                "content": {
                    "iteration": iteration,
                    "answer": answer,
                    "accepted": accepted,
                },
            }
        )

    def log_level(self, source: str, level: str, event: str, content: Any | None = None) -> None:
        if not self._level_enabled(level):
            return
        self._write(
            {
                "source": source,
                "event": event,
                "level": level,
                "content": content,
            }
        )

    def log_exception(self, source: str, exc: BaseException) -> None:
        if not self._level_enabled("error"):
            return
        location = None
        tb = exc.__traceback__
        if tb is not None:
            frames = traceback.extract_tb(tb)
            if frames:
                last = frames[-1]
                location = f"{last.filename}:{last.lineno} in {last.name}"
        trace_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self.log_level(
            source,
            "error",
            "exception",
            {
                "type": type(exc).__name__,
                "message": str(exc),
                "location": location,
                "traceback": trace_text,
            },
        )

    def _session_enabled(self) -> bool:
        return self.enabled and LOG_TYPE_SESSION in self._enabled_types

    def _level_enabled(self, level: str) -> bool:
        return self.enabled and level in self._enabled_levels

    def _ensure_path(self) -> None:
        if self._path is not None or not self.enabled:
            return
        logs_dir = self.paths.logs_dir
        logs_dir.mkdir(parents=True, exist_ok=True)
        self._path = logs_dir / f"askline_session_{self._session_id}.md"
        self._header = self._header_text()
        if not self._path.exists():
            self._path.write_text(self._header, encoding="utf-8")
            return
        existing = self._path.read_text(encoding="utf-8")
        if not existing.startswith(self._header):
            self._path.write_text(self._header + existing, encoding="utf-8")

    def _header_text(self) -> str:
        return (
            "# Askline Session Log\n\n"
            f"- Session: {self._session_id}\n"
            f"- Started: {self._started_at.isoformat()}\n\n"
            "---\n\n"
        )

    def _write(self, payload: dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            self._ensure_path()
            if self._path is None:
                return
            timestamp = datetime.now(timezone.utc).isoformat()
            source = str(payload.get("source", ""))
            event = str(payload.get("event", ""))
            log_type = str(
                payload.get("type") or payload.get("level") or LOG_TYPE_SESSION
            )
            interaction_id = payload.get("interaction_id", self._active_interaction_id)
            header = f"## {timestamp} · {log_type}/{source} · {event}"
            if interaction_id is not None:
                header = f"{header} · scope {interaction_id}"
            entry = f"{header}\n{self._format_content_block(payload.get('content', ''))}\n\n"
            self._prepend_entry(entry)
        except OSError:
            # a broken log file must never break prompting
            self.close()

    def _prepend_entry(self, entry: str) -> None:
        if self._path is None:
            return
        existing = self._path.read_text(encoding="utf-8")
        header = self._header or ""
        if header and existing.startswith(header):
            content = f"{header}{entry}{existing[len(header):]}"
        else:
            content = f"{header}{entry}{existing}"
        self._path.write_text(content, encoding="utf-8")

    def _format_content_block(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            body = json.dumps(content, indent=2, ensure_ascii=False)
            language = "json"
        else:
            body = "" if content is None else str(content)
            language = "markdown"
        body = body.rstrip()
        return f"```{language}\n{body}\n```"


_ACTIVE_LOGGER: SessionLogger | None = None


def set_active_logger(logger: SessionLogger | None) -> None:
    global _ACTIVE_LOGGER
    _ACTIVE_LOGGER = logger


def get_active_logger() -> SessionLogger | None:
    return _ACTIVE_LOGGER


def log_exception(source: str, exc: BaseException) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_exception(source, exc)


def log_error(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "error", event, content)


def log_info(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "info", event, content)


def log_debug(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "debug", event, content)
