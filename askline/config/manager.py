from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from ..core.session_log import SessionLogger
from .paths import AsklinePaths


SESSION_BACKENDS = ("auto", "prompt_toolkit", "console")
DEFAULT_CONFIG: Dict[str, Any] = {
    "session": "auto",
    "debug": None,
}
ENV_SESSION = "ASKLINE_SESSION"
ENV_DEBUG = "ASKLINE_DEBUG"


@dataclass(frozen=True)
class AskSettings:
    session_backend: str = "auto"
    debug: Any = None


class ConfigManager:
    """Loads askline.json files and resolves prompt settings."""

    def __init__(self, paths: AsklinePaths, console: Optional[Console] = None) -> None:
        self.paths = paths
        self.console = console or Console(stderr=True)

    def create_config_template(self) -> Path:
        """Create or update .askline/askline.json without overwriting user settings."""
        self.paths.askline_dir.mkdir(parents=True, exist_ok=True)
        current = self._read_json(self.paths.config_file)
        merged = self._merge_dicts(DEFAULT_CONFIG, current)
        self.paths.config_file.write_text(
            json.dumps(merged, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        return self.paths.config_file

    def load_config(self) -> Dict[str, Any]:
        """Merge defaults, the global file, the workspace file and the environment."""
        merged = self._merge_dicts(DEFAULT_CONFIG, self._read_json(self.paths.global_config_file))
        merged = self._merge_dicts(merged, self._read_json(self.paths.config_file))
        env_session = os.getenv(ENV_SESSION)
        if env_session:
            merged["session"] = env_session
        env_debug = os.getenv(ENV_DEBUG)
        if env_debug:
            merged["debug"] = env_debug
        return merged

    def load_settings(self) -> AskSettings:
        data = self.load_config()
        return AskSettings(
            session_backend=self._normalize_backend(data.get("session")),
            debug=data.get("debug"),
        )

    def session_logger(self, settings: AskSettings | None = None) -> SessionLogger:
        settings = settings or self.load_settings()
        return SessionLogger(self.paths, settings.debug)

    def _normalize_backend(self, raw: Any) -> str:
        if raw is None:
            return "auto"
        cleaned = str(raw).strip().lower().replace("-", "_")
        if not cleaned:
            return "auto"
        if cleaned not in SESSION_BACKENDS:
            self.console.print(
                f"[yellow]Unknown session backend '{raw}'. Using 'auto'.[/yellow]"
            )
            return "auto"
        return cleaned

    def _merge_dicts(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        if not override:
            return dict(base)
        merged: Dict[str, Any] = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge_dicts(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            self.console.print(
                f"[red]Failed to parse JSON config at {path}. Using defaults.[/red]"
            )
            return {}
        return data if isinstance(data, dict) else {}
