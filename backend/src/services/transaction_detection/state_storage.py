from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from src.schemas.detection import DetectionState
from src.utils.logger import get_logger

logger = get_logger(__name__)


class DetectionStateStorage(ABC):
    """Durable home of processed/dismissed ids and detection settings."""

    @abstractmethod
    def load(self) -> Optional[DetectionState]: ...

    @abstractmethod
    def save(self, state: DetectionState) -> bool: ...


class InMemoryStateStorage(DetectionStateStorage):
    def __init__(self, state: Optional[DetectionState] = None):
        self.state = state

    def load(self) -> Optional[DetectionState]:
        return self.state.model_copy(deep=True) if self.state else None

    def save(self, state: DetectionState) -> bool:
        self.state = state.model_copy(deep=True)
        return True


class JsonStateStorage(DetectionStateStorage):
    """Single JSON document on disk, replaced atomically on every save."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[DetectionState]:
        if not self.path.exists():
            return None
        try:
            return DetectionState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (ValidationError, OSError, ValueError) as e:
            logger.warning(f"Detection state load failed, using defaults: {e}")
            return None

    def save(self, state: DetectionState) -> bool:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to persist detection state to {self.path}: {e}")
            return False
