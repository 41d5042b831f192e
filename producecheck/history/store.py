"""Persisted history of verdicts, favourites and user settings.

The whole state lives in one ``StoreSnapshot``. Every mutating call builds
a new snapshot, writes it through the blob store and only then makes it
current, so a failed write leaves both memory and disk at the previous
state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..api.verdict import Verdict, parse_timestamp
from .storage import BlobStore, MemoryBlobStore

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "producecheck-storage"
THEMES = ("light", "dark")


@dataclass(frozen=True)
class Settings:
    auto_save: bool = True
    location_tracking: bool = True
    notifications: bool = True
    model_version: str = "1.0.0"
    confidence_threshold: float = 0.3

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Settings":
        defaults = cls()
        if not isinstance(payload, Mapping):
            return defaults
        return defaults.merged(
            {key: value for key, value in payload.items() if key in _SETTING_NAMES}
        )

    def merged(self, updates: Mapping[str, Any]) -> "Settings":
        unknown = sorted(set(updates) - _SETTING_NAMES)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")
        values: dict[str, Any] = {}
        for key, value in updates.items():
            if value is None:
                continue
            if key == "confidence_threshold":
                values[key] = _sanitize_threshold(value, self.confidence_threshold)
            elif key == "model_version":
                values[key] = str(value)
            elif isinstance(value, bool):
                values[key] = value
            else:
                logger.warning("Ignoring non-boolean value for setting %s: %r", key, value)
        return replace(self, **values)


_SETTING_NAMES = frozenset(f.name for f in fields(Settings))


def _sanitize_threshold(value: object, default: float) -> float:
    try:
        threshold = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(0.0, min(1.0, threshold))


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    image_ref: str
    timestamp: datetime
    verdict: Verdict
    is_favorite: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "image_ref": self.image_ref,
            "timestamp": self.timestamp.isoformat(),
            "verdict": self.verdict.to_dict(),
            "is_favorite": self.is_favorite,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HistoryEntry":
        verdict = Verdict.from_dict(payload["verdict"])
        notes = payload.get("notes")
        return cls(
            id=str(payload.get("id", verdict.id)),
            image_ref=str(payload.get("image_ref", verdict.image_ref)),
            timestamp=parse_timestamp(payload.get("timestamp", verdict.timestamp.isoformat())),
            verdict=verdict,
            is_favorite=bool(payload.get("is_favorite", False)),
            notes=str(notes) if notes is not None else None,
        )


@dataclass(frozen=True)
class StoreSnapshot:
    theme: str = "light"
    history: tuple[HistoryEntry, ...] = ()
    favorites: tuple[str, ...] = ()
    settings: Settings = field(default_factory=Settings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme": self.theme,
            "history": [entry.to_dict() for entry in self.history],
            "favorites": list(self.favorites),
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StoreSnapshot":
        if not isinstance(payload, Mapping):
            raise ValueError("Snapshot must be a JSON object")
        theme = payload.get("theme", "light")
        history_raw = payload.get("history", [])
        favorites_raw = payload.get("favorites", [])
        if not isinstance(history_raw, list) or not isinstance(favorites_raw, list):
            raise ValueError("Snapshot history and favorites must be lists")
        return cls(
            theme=theme if theme in THEMES else "light",
            history=tuple(HistoryEntry.from_dict(item) for item in history_raw),
            favorites=tuple(dict.fromkeys(str(item) for item in favorites_raw)),
            settings=Settings.from_dict(payload.get("settings") or {}),
        )


class ResultStore:
    """Newest-first history of verdicts persisted as a single snapshot."""

    def __init__(self, backend: BlobStore | None = None, key: str = SNAPSHOT_KEY) -> None:
        self._backend: BlobStore = backend or MemoryBlobStore()
        self._key = key
        self.restored = False
        self._state = self._load()

    @property
    def snapshot(self) -> StoreSnapshot:
        return self._state

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self._state.history

    @property
    def settings(self) -> Settings:
        return self._state.settings

    @property
    def theme(self) -> str:
        return self._state.theme

    @property
    def favorites(self) -> tuple[str, ...]:
        ids = self._history_ids()
        return tuple(fav for fav in self._state.favorites if fav in ids)

    def get(self, entry_id: str) -> HistoryEntry | None:
        for entry in self._state.history:
            if entry.id == entry_id:
                return entry
        return None

    def is_favorite(self, entry_id: str) -> bool:
        return entry_id in self.favorites

    def append(self, verdict: Verdict) -> HistoryEntry:
        # A stale favourite left behind by clear() must not revive on re-append.
        keep_favorite = self.is_favorite(verdict.id)
        entry = HistoryEntry(
            id=verdict.id,
            image_ref=verdict.image_ref,
            timestamp=verdict.timestamp,
            verdict=verdict,
            is_favorite=keep_favorite,
        )
        remaining = tuple(item for item in self._state.history if item.id != verdict.id)
        favorites = tuple(
            fav for fav in self._state.favorites if fav != verdict.id or keep_favorite
        )
        self._commit(
            replace(self._state, history=(entry,) + remaining, favorites=favorites)
        )
        logger.info("History entry added id=%s total=%d", entry.id, len(self._state.history))
        return entry

    def remove(self, entry_id: str) -> None:
        if self.get(entry_id) is None:
            return
        self._commit(
            replace(
                self._state,
                history=tuple(item for item in self._state.history if item.id != entry_id),
                favorites=tuple(fav for fav in self._state.favorites if fav != entry_id),
            )
        )
        logger.info("History entry removed id=%s", entry_id)

    def clear(self) -> None:
        # Favourites are left to be pruned on the next favourite lookup.
        self._commit(replace(self._state, history=()))
        logger.info("History cleared")

    def toggle_favorite(self, entry_id: str) -> bool:
        if self.get(entry_id) is None:
            logger.debug("Ignoring favourite toggle for unknown id=%s", entry_id)
            return False
        favorites = list(self.favorites)
        if entry_id in favorites:
            favorites.remove(entry_id)
            now_favorite = False
        else:
            favorites.append(entry_id)
            now_favorite = True
        history = tuple(
            replace(item, is_favorite=now_favorite) if item.id == entry_id else item
            for item in self._state.history
        )
        self._commit(replace(self._state, history=history, favorites=tuple(favorites)))
        return now_favorite

    def update_entry(self, entry_id: str, *, notes: str | None) -> HistoryEntry | None:
        if self.get(entry_id) is None:
            return None
        history = tuple(
            replace(item, notes=notes) if item.id == entry_id else item
            for item in self._state.history
        )
        self._commit(replace(self._state, history=history))
        return self.get(entry_id)

    def update_settings(self, updates: Mapping[str, Any] | None = None, **kwargs: Any) -> Settings:
        merged_updates = {**(updates or {}), **kwargs}
        settings = self._state.settings.merged(merged_updates)
        self._commit(replace(self._state, settings=settings))
        logger.info("Settings updated: %s", sorted(merged_updates))
        return settings

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}; expected one of {THEMES}")
        self._commit(replace(self._state, theme=theme))
        return theme

    def toggle_theme(self) -> str:
        return self.set_theme("light" if self._state.theme == "dark" else "dark")

    def _history_ids(self) -> set[str]:
        return {entry.id for entry in self._state.history}

    def _commit(self, state: StoreSnapshot) -> None:
        payload = json.dumps(state.to_dict(), sort_keys=True).encode("utf-8")
        self._backend.save(self._key, payload)
        self._state = state
        logger.debug("Snapshot saved key=%s bytes=%d", self._key, len(payload))

    def _load(self) -> StoreSnapshot:
        try:
            raw = self._backend.load(self._key)
        except OSError as exc:
            logger.warning("Failed to read snapshot %s: %s; using defaults", self._key, exc)
            return StoreSnapshot()
        if raw is None:
            logger.info("No snapshot found for %s; using defaults", self._key)
            return StoreSnapshot()
        try:
            state = StoreSnapshot.from_dict(json.loads(raw.decode("utf-8")))
        except (
            UnicodeDecodeError,
            json.JSONDecodeError,
            AttributeError,
            KeyError,
            TypeError,
            ValueError,
        ) as exc:
            logger.warning("Discarding corrupt snapshot %s: %s; using defaults", self._key, exc)
            return StoreSnapshot()
        self.restored = True
        logger.info(
            "Loaded snapshot %s: history=%d favorites=%d",
            self._key,
            len(state.history),
            len(state.favorites),
        )
        return state


__all__ = ["HistoryEntry", "ResultStore", "Settings", "StoreSnapshot", "SNAPSHOT_KEY"]
