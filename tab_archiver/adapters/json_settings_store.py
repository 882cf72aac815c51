"""JSON file settings store.

The file holds a JSON object; archive settings live under a single key
(``arcLikeExtensionSettings``) with camelCase field names, so other keys in
the same file are left untouched. Stored values are merged over the
defaults, which lets a settings file written by an older version pick up
newly added fields.

Writes go to a temporary file that is renamed over the original, under a
``filelock`` lock so concurrent CLI invocations cannot interleave.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from filelock import FileLock
from filelock import Timeout as FileLockTimeout
from pydantic import ValidationError

from tab_archiver.core.errors import SettingsStoreError
from tab_archiver.core.models import ArchiveSettings, SettingsChanged
from tab_archiver.ports.settings_store import SettingsListener

logger = logging.getLogger(__name__)

SETTINGS_KEY = "arcLikeExtensionSettings"


class JsonSettingsStore:
    """SettingsStorePort backed by a JSON file."""

    def __init__(self, path: Path, lock_timeout: float = 5.0) -> None:
        """Initialize the store.

        Args:
            path: JSON file to read and write. Created on first save.
            lock_timeout: Seconds to wait for the file lock.
        """
        self.path = Path(path)
        self.lock_timeout = lock_timeout
        self._lock = FileLock(str(self.path.with_name(self.path.name + ".lock")))
        self._listeners: list[SettingsListener] = []

    # -- reading -------------------------------------------------------------

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, dict):
            raise ValueError(f"expected a JSON object, got {type(document).__name__}")
        return document

    async def load(self) -> ArchiveSettings:
        """Read settings, falling back to defaults on any problem."""
        defaults = ArchiveSettings()
        try:
            stored = self._read_document().get(SETTINGS_KEY)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading settings from {self.path}: {e}")
            return defaults

        if stored is None:
            return defaults
        if not isinstance(stored, dict):
            logger.error(f"Stored settings under {SETTINGS_KEY!r} are not an object; using defaults")
            return defaults

        merged = {**defaults.model_dump(by_alias=True, mode="json"), **stored}
        try:
            return ArchiveSettings.model_validate(merged)
        except ValidationError as e:
            logger.error(f"Invalid stored settings, using defaults: {e}")
            return defaults

    # -- writing -------------------------------------------------------------

    def _write_document(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _update(self, settings: ArchiveSettings | None) -> None:
        try:
            with self._lock.acquire(timeout=self.lock_timeout):
                try:
                    document = self._read_document()
                except (OSError, ValueError) as e:
                    logger.warning(f"Replacing unreadable settings file {self.path}: {e}")
                    document = {}
                if settings is None:
                    document.pop(SETTINGS_KEY, None)
                else:
                    document[SETTINGS_KEY] = settings.model_dump(by_alias=True, mode="json")
                self._write_document(document)
        except FileLockTimeout as e:
            raise SettingsStoreError(
                f"Timed out waiting {self.lock_timeout}s for settings lock at {self.path}"
            ) from e
        except OSError as e:
            raise SettingsStoreError(f"Failed to write settings to {self.path}: {e}") from e

    async def save(self, settings: ArchiveSettings) -> None:
        """Persist settings and notify listeners.

        Raises:
            SettingsStoreError: If the file cannot be locked or written.
        """
        self._update(settings)
        logger.info(f"Settings saved to {self.path}")
        await self._notify(SettingsChanged(settings=settings))

    async def clear(self) -> None:
        """Remove stored settings; listeners are told to revert to defaults."""
        self._update(None)
        logger.info(f"Settings cleared from {self.path}")
        await self._notify(SettingsChanged(settings=None))

    # -- listeners -----------------------------------------------------------

    def add_listener(self, listener: SettingsListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SettingsListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def _notify(self, event: SettingsChanged) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.error(f"Settings listener failed: {e}", exc_info=True)
