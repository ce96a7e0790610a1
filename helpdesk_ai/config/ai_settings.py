"""
Runtime AI Settings
===================

Operator-tunable AI behaviour loaded from ``ai_settings.yaml``.

Out-of-range values are clamped rather than rejected so that a bad edit to
the YAML file degrades to the nearest sane value instead of taking the AI
features down. The manager reloads the file on change (watchdog) without a
restart.
"""

import threading
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


class AISettings(BaseModel):
    """AI feature settings shared by triage, mining and the gateway."""

    # ========== Auto-response ==========
    auto_response_enabled: bool = True
    confidence_threshold: int = Field(default=70, description="0-100 confidence needed to auto-apply")
    max_response_length: int = Field(default=1000, description="Max characters of a posted response")
    response_timeout: int = Field(default=30, description="Model call timeout in seconds")

    # ========== Learning ==========
    auto_learn_enabled: bool = True
    article_similarity_threshold: float = Field(
        default=0.5,
        description="Title keyword overlap ratio treated as a duplicate article"
    )
    min_category_tickets: int = 3
    min_resolved_tickets: int = 5
    learning_window_days: int = 30

    # ========== Escalation ==========
    complexity_threshold: int = 70
    escalation_enabled: bool = True
    escalation_team_id: Optional[Union[int, str]] = None

    # ========== Model ==========
    model_id: str = "anthropic.claude-3-sonnet-20240229-v1:0"
    temperature: float = 0.3
    max_tokens: int = 2000

    # ========== Throttling ==========
    max_requests_per_minute: int = 20
    max_requests_per_user_per_hour: int = 100

    @field_validator("confidence_threshold", mode="before")
    @classmethod
    def clamp_confidence_threshold(cls, v: Any) -> int:
        """Accept legacy 0-1 fractions and clamp to 0-100."""
        number = _clamp(v, 0, 100, 70)
        if 0 < number < 1:
            number *= 100
        return int(round(number))

    @field_validator("max_response_length", mode="before")
    @classmethod
    def clamp_max_response_length(cls, v: Any) -> int:
        return int(_clamp(v, 100, 5000, 1000))

    @field_validator("response_timeout", mode="before")
    @classmethod
    def clamp_response_timeout(cls, v: Any) -> int:
        return int(_clamp(v, 5, 120, 30))

    @field_validator("complexity_threshold", mode="before")
    @classmethod
    def clamp_complexity_threshold(cls, v: Any) -> int:
        return int(_clamp(v, 0, 100, 70))

    @field_validator("temperature", mode="before")
    @classmethod
    def clamp_temperature(cls, v: Any) -> float:
        return _clamp(v, 0.0, 1.0, 0.3)

    @field_validator("max_tokens", mode="before")
    @classmethod
    def clamp_max_tokens(cls, v: Any) -> int:
        return int(_clamp(v, 100, 4000, 2000))

    @field_validator("max_requests_per_minute", mode="before")
    @classmethod
    def clamp_requests_per_minute(cls, v: Any) -> int:
        return int(_clamp(v, 1, 100, 20))

    @field_validator("max_requests_per_user_per_hour", mode="before")
    @classmethod
    def clamp_requests_per_user_per_hour(cls, v: Any) -> int:
        return int(_clamp(v, 1, 1000, 100))

    @field_validator("article_similarity_threshold", mode="before")
    @classmethod
    def clamp_similarity_threshold(cls, v: Any) -> float:
        return _clamp(v, 0.0, 1.0, 0.5)

    @field_validator("min_category_tickets", "min_resolved_tickets", mode="before")
    @classmethod
    def clamp_minimum_counts(cls, v: Any) -> int:
        return int(_clamp(v, 1, 1000, 3))

    @field_validator("learning_window_days", mode="before")
    @classmethod
    def clamp_window_days(cls, v: Any) -> int:
        return int(_clamp(v, 1, 365, 30))

    def operation_max_tokens(self, cap: int) -> int:
        """Per-operation output budget: the configured max, capped."""
        return min(self.max_tokens, cap)


class AISettingsFileHandler(FileSystemEventHandler):
    """Watchdog event handler for AI settings file changes."""

    def __init__(self, manager: "AISettingsManager", path: Path):
        self.manager = manager
        self.path = path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.path.resolve():
            logger.info("AI settings file changed", extra={"path": event.src_path})
            self.manager.reload()


class AISettingsManager:
    """
    Thread-safe AI settings holder with hot-reload support.

    The watchdog observer runs in its own thread, hence the lock around the
    swap of the settings object.
    """

    def __init__(self, initial: Optional[AISettings] = None):
        self._settings = initial
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> AISettings:
        """Initial load; a missing file yields defaults."""
        self._path = path
        loaded = self._load_from_file(path)
        with self._lock:
            self._settings = loaded
        return loaded

    def _load_from_file(self, path: Path) -> AISettings:
        if not path.exists():
            logger.warning("AI settings file not found, using defaults", extra={"path": str(path)})
            return AISettings()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return AISettings(**data)

    def reload(self) -> bool:
        """Reload from file; keeps the previous settings on failure."""
        if self._path is None:
            return False

        try:
            new_settings = self._load_from_file(self._path)
        except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
            logger.error("Failed to reload AI settings", extra={"error": str(e)})
            return False

        with self._lock:
            self._settings = new_settings
        logger.info("AI settings reloaded", extra={"model_id": new_settings.model_id})
        return True

    def update(self, **changes: Any) -> AISettings:
        """Apply in-memory overrides (validated and clamped)."""
        with self._lock:
            merged = {**self.current.model_dump(), **changes}
            self._settings = AISettings(**merged)
            return self._settings

    def start_watching(self) -> None:
        """Start watching the settings file; no-op when it does not exist."""
        if self._path is None:
            raise RuntimeError("AI settings not loaded. Call load() first.")

        if not self._path.exists():
            logger.info("AI settings file doesn't exist, skipping file watch", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            handler = AISettingsFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching AI settings file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static AI settings", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def current(self) -> AISettings:
        if self._settings is None:
            self._settings = AISettings()
        return self._settings
