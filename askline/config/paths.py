from dataclasses import dataclass
from pathlib import Path


@dataclass
class AsklinePaths:
    """Centralizes filesystem paths for an askline workspace."""

    root: Path

    @property
    def askline_dir(self) -> Path:
        return self.root / ".askline"

    @property
    def config_file(self) -> Path:
        return self.askline_dir / "askline.json"

    @property
    def logs_dir(self) -> Path:
        return self.askline_dir / "logs"

    @property
    def global_dir(self) -> Path:
        return Path.home() / ".askline"

    @property
    def global_config_file(self) -> Path:
        return self.global_dir / "askline.json"
