"""Configuration package."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .manager import AskSettings, ConfigManager
    from .paths import AsklinePaths

__all__ = ["AskSettings", "ConfigManager", "AsklinePaths"]


def __getattr__(name: str) -> Any:
    if name in {"ConfigManager", "AskSettings"}:
        from .manager import AskSettings, ConfigManager

        return {"ConfigManager": ConfigManager, "AskSettings": AskSettings}[name]
    if name == "AsklinePaths":
        from .paths import AsklinePaths

        return AsklinePaths
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
