"""
Persisted Onboarding Store.

Answers are written to two channels on every save: a primary channel
(session-scoped, like sessionStorage) and a fallback channel (survives tab
closes, like localStorage). Loads prefer the primary and re-sync it from the
fallback when the primary is empty.

Every channel failure is logged and swallowed. With both channels broken the
flow still works, it just loses resumability.

Channels are shared by every tab of the same profile. Writes are
last-write-wins; nothing coordinates concurrent tabs.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

STORAGE_KEY = "tasy_onboarding_data"


class StorageChannel(Protocol):
    """Minimal Web Storage-style key/value channel."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """In-process channel (sessionStorage analogue)."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """
    File-backed channel (localStorage analogue).

    All keys live in one JSON object on disk. The file is re-read on every
    access so separate processes see each other's writes. A corrupt file
    reads as empty and is overwritten by the next write.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        content = self.path.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        try:
            items = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        if not isinstance(items, dict):
            logger.warning(f"Ignoring storage file {self.path} with unexpected shape")
            return {}
        return items

    def _write_all(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write then rename so a crash mid-write leaves the old file intact
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(items), encoding="utf-8")
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)


class PersistedOnboardingStore:
    """
    Onboarding answers persisted to a primary and an optional fallback channel.

    ttl: optional expiry for stored answers. None keeps them until an
    explicit clear().
    """

    def __init__(
        self,
        primary: StorageChannel | None = None,
        fallback: StorageChannel | None = None,
        key: str = STORAGE_KEY,
        ttl: timedelta | None = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.key = key
        self.ttl = ttl

    @property
    def channels(self) -> list[StorageChannel]:
        return [c for c in (self.primary, self.fallback) if c is not None]

    def save(self, data: dict[str, Any]) -> bool:
        """
        Write the full answers mapping to every channel.

        Returns True if at least one channel accepted the write.
        """
        payload = json.dumps({
            "data": data,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        })

        saved = False
        for channel in self.channels:
            try:
                channel.set_item(self.key, payload)
                saved = True
            except Exception as e:
                logger.warning(f"Failed to persist onboarding data to {type(channel).__name__}: {e}")

        if not saved and self.channels:
            logger.warning("Onboarding data not persisted; continuing in memory only")
        return saved

    def load(self) -> dict[str, Any]:
        """Read answers, preferring the primary channel. Returns {} if none."""
        raw = self._read(self.primary)
        if raw is None:
            raw = self._read(self.fallback)
            if raw is not None and self.primary is not None:
                # Sync fallback back into the primary channel
                try:
                    self.primary.set_item(self.key, raw)
                except Exception as e:
                    logger.warning(f"Failed to re-sync primary onboarding storage: {e}")

        if raw is None:
            return {}

        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable onboarding data: {e}")
            return {}

        if not isinstance(envelope, dict) or not isinstance(envelope.get("data"), dict):
            logger.warning("Discarding onboarding data with unexpected shape")
            return {}

        if self._is_expired(envelope.get("saved_at")):
            logger.info("Stored onboarding data expired, clearing")
            self.clear()
            return {}

        return envelope["data"]

    def clear(self) -> None:
        """Remove stored answers from every channel."""
        for channel in self.channels:
            try:
                channel.remove_item(self.key)
            except Exception as e:
                logger.warning(f"Failed to clear onboarding data from {type(channel).__name__}: {e}")

    def _read(self, channel: StorageChannel | None) -> str | None:
        if channel is None:
            return None
        try:
            return channel.get_item(self.key)
        except Exception as e:
            logger.warning(f"Failed to read onboarding data from {type(channel).__name__}: {e}")
            return None

    def _is_expired(self, saved_at: str | None) -> bool:
        if self.ttl is None or not saved_at:
            return False
        try:
            saved = datetime.fromisoformat(saved_at)
        except ValueError:
            return False
        return datetime.now(timezone.utc) - saved > self.ttl
