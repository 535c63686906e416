"""
JSON file store for the user settings document.

A single document, merged over the defaults on load and rewritten whole on
save. Read failures fall back to the defaults; write failures are
reported, never raised.
"""

import logging
import os
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from discopic.config.settings import DashboardConfig


logger = logging.getLogger(__name__)


class ConfigStore:
    """Loads and saves ``DashboardConfig`` as a JSON file."""

    def __init__(self, path: Path) -> None:
        """
        Initialize the store.

        Args:
            path: Location of the settings document.
        """
        self._path = path

    @property
    def path(self) -> Path:
        """Get the settings document path."""
        return self._path

    def load(self) -> DashboardConfig:
        """
        Load the settings document.

        Missing keys take their defaults. An unreadable or invalid
        document is logged and the full defaults are returned.
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return DashboardConfig()
        except OSError as e:
            logger.error(f"Error loading config from {self._path}: {e}")
            return DashboardConfig()

        try:
            document = orjson.loads(raw)
            if not isinstance(document, dict):
                raise ValueError("settings document must be a JSON object")
            return DashboardConfig.model_validate(document)
        except (orjson.JSONDecodeError, ValueError, ValidationError) as e:
            logger.error(f"Error loading config from {self._path}: {e}")
            return DashboardConfig()

    def save(self, config: DashboardConfig) -> bool:
        """
        Write the settings document.

        The file is written next to its destination and renamed into
        place so a crash never leaves a truncated document.

        Returns:
            True on success, False if the file could not be written.
        """
        payload = orjson.dumps(config.to_document(), option=orjson.OPT_INDENT_2)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.error(f"Error saving config to {self._path}: {e}")
            return False

        logger.debug(f"Saved config to {self._path}")
        return True

    def update(self, **changes: Any) -> DashboardConfig | None:
        """
        Apply field changes to the stored document and save it.

        Args:
            **changes: Field names (or their document aliases) and values.

        Returns:
            The saved config, or None if saving failed.

        Raises:
            ValidationError: If a change produces an invalid document.
        """
        document = self.load().to_document()
        for key, value in changes.items():
            field = DashboardConfig.model_fields.get(key)
            document[field.alias if field and field.alias else key] = value

        config = DashboardConfig.model_validate(document)
        return config if self.save(config) else None

    def reset(self) -> bool:
        """Delete the stored document so the defaults apply again."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error resetting config at {self._path}: {e}")
            return False
        return True

    def has_api_key(self) -> bool:
        """Check if the stored document carries an API key."""
        return self.load().has_api_key
