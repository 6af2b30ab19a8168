"""
Escalation External Integrations
=================================

External concerns for quiet-window escalation:
- YAML quiet threshold file with watchdog hot-reload
- JSON import/export of the threshold document
- YAML business schedule loading
"""

import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from src.core.exceptions import ConfigurationException, ValidationException
from src.escalation.domain import BusinessSchedule, QuietThresholdConfig
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for quiet threshold file changes."""

    def __init__(self, config_manager: "QuietThresholdManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info(f"Quiet threshold file changed: {event.src_path}")
            self.config_manager.reload()


class QuietThresholdManager:
    """
    Thread-safe quiet threshold manager with hot-reload support.

    Every change (update, import, reload) is validated in full before it
    replaces the current configuration; a rejected change leaves the
    previous configuration in place.
    """

    def __init__(self, config: Optional[QuietThresholdConfig] = None):
        self._config = config or QuietThresholdConfig()
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> QuietThresholdConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: If the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (ValidationException, yaml.YAMLError) as e:
            raise ConfigurationException(
                f"Invalid quiet threshold file: {self._path}",
                {"error": str(e)}
            )
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> QuietThresholdConfig:
        """Load and parse YAML threshold file."""
        if not path.exists():
            logger.warning(f"Quiet threshold file not found: {path}, using defaults")
            return QuietThresholdConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return QuietThresholdConfig.from_document(data)

    def reload(self) -> bool:
        """Reload configuration from file, keeping the current one on failure."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (ValidationException, yaml.YAMLError, OSError) as e:
            logger.error(f"Failed to reload quiet thresholds: {e}")
            return False

        with self._lock:
            self._config = new_config
        logger.info("Quiet thresholds reloaded successfully")
        return True

    def update(self, partial: Mapping[str, Any]) -> QuietThresholdConfig:
        """
        Apply a partial update onto the current thresholds.

        Raises:
            ValidationException: If a key is unknown or the merged result is invalid
        """
        with self._lock:
            try:
                new_config = self._config.merged(partial)
            except ValidationException as e:
                logger.warning(
                    "Quiet threshold update rejected",
                    extra={"error": e.message, **e.details}
                )
                raise
            self._config = new_config

        self._persist(new_config)
        logger.info("Quiet thresholds updated", extra=new_config.to_document())
        return new_config

    def import_document(self, document: Union[str, bytes, Mapping[str, Any]]) -> QuietThresholdConfig:
        """
        Replace thresholds with an imported document.

        Raises:
            ValidationException: If the document has unknown keys or bad values
        """
        try:
            new_config = QuietThresholdConfig.from_document(document)
        except ValidationException as e:
            logger.warning(
                "Quiet threshold import rejected",
                extra={"error": e.message, **e.details}
            )
            raise

        with self._lock:
            self._config = new_config

        self._persist(new_config)
        logger.info("Quiet thresholds imported", extra=new_config.to_document())
        return new_config

    def export_document(self) -> str:
        """Indented JSON of the current thresholds."""
        return self.config.to_json()

    def _persist(self, config: QuietThresholdConfig) -> None:
        if self._path is None:
            return
        try:
            with open(self._path, "w") as f:
                yaml.safe_dump(config.to_document(), f, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to write quiet thresholds to {self._path}: {e}")

    def start_watching(self) -> None:
        """
        Start watching the threshold file for changes.

        Skips watching if the file doesn't exist or the platform has no
        file notification support.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                f"Quiet threshold file doesn't exist, skipping file watch: {self._path}. "
                "Using default quiet thresholds."
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching quiet threshold file: {self._path}")
        except OSError as e:
            logger.warning(
                f"File watching not available, using static thresholds: {e}"
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def config(self) -> QuietThresholdConfig:
        """Get current configuration."""
        with self._lock:
            return self._config


def load_business_schedule(path: Path) -> BusinessSchedule:
    """
    Load the weekly business schedule from YAML.

    A missing file yields the default schedule (Monday to Friday, 06-21).

    Raises:
        ConfigurationException: If the file exists but is invalid
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Business schedule file not found: {path}, using default schedule")
        return BusinessSchedule.default()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return BusinessSchedule.from_document(data)
    except (ValidationException, yaml.YAMLError) as e:
        raise ConfigurationException(
            f"Invalid business schedule file: {path}",
            {"error": str(e)}
        )
