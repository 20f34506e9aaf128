"""Configuration management utilities."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..core.constants import CONFIG_FILE_NAME
from ..models.config import BoardConfig

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages board configuration stored in the workspace data directory."""

    def __init__(self, data_dir: Path):
        """Initialize config manager."""
        self.data_dir = Path(data_dir)
        self.config_file = self.data_dir / CONFIG_FILE_NAME

    def load(self) -> BoardConfig:
        """Load board configuration, falling back to defaults."""
        if not self.config_file.exists():
            return BoardConfig()
        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
            return BoardConfig(**data)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Invalid config at {self.config_file}, using defaults: {e}")
            return BoardConfig()

    def save(self, config: BoardConfig) -> None:
        """Save board configuration."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(config.model_dump_json(indent=2), encoding="utf-8")
