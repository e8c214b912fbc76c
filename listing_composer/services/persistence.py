from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from listing_composer.core.config import settings
from listing_composer.schemas.draft import ListingDraft, SavedDraft
from listing_composer.services.kv_store import KeyValueStore

log = logging.getLogger(__name__)


def draft_key(user_id: str, mode: str, listing_id: str | None = None, *, prefix: str | None = None) -> str:
    """Slot key per (user, mode); edit mode is further scoped by listing."""
    parts = [prefix or settings.draft_key_prefix, user_id, mode]
    if listing_id:
        parts.append(listing_id)
    return ":".join(parts)


class DraftPersistence:
    """
    Save/restore an unsaved draft in a durable local slot.

    Without a key every operation is a no-op (False / None). Storage failures
    are logged and reported as False, never raised to the caller.
    """

    def __init__(self, store: KeyValueStore, key: str | None):
        self.store = store
        self.key = key

    def save(self, draft: ListingDraft, *, now: datetime | None = None) -> bool:
        if not self.key:
            return False
        saved = SavedDraft(
            **draft.model_dump(by_alias=True),
            saved_at=now or datetime.now(timezone.utc),
        )
        try:
            self.store.set(self.key, saved.model_dump_json(by_alias=True))
        except Exception:
            log.warning("draft save failed: key=%s", self.key, exc_info=True)
            return False
        log.debug("draft saved: key=%s at=%s", self.key, saved.saved_at.isoformat())
        return True

    def load(self) -> SavedDraft | None:
        if not self.key:
            return None
        try:
            raw = self.store.get(self.key)
        except Exception:
            log.warning("draft load failed: key=%s", self.key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return SavedDraft.model_validate_json(raw)
        except (ValidationError, json.JSONDecodeError):
            log.warning("draft slot is corrupt, ignoring: key=%s", self.key, exc_info=True)
            return None

    def clear(self) -> bool:
        if not self.key:
            return False
        try:
            self.store.remove(self.key)
        except Exception:
            log.warning("draft clear failed: key=%s", self.key, exc_info=True)
            return False
        return True

    def exists(self) -> bool:
        if not self.key:
            return False
        try:
            return self.store.get(self.key) is not None
        except Exception:
            log.warning("draft lookup failed: key=%s", self.key, exc_info=True)
            return False
