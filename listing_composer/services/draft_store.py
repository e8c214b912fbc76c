from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Literal, Mapping

from listing_composer.canonical.v1.listing import ListingSubmissionV1
from listing_composer.core.config import settings
from listing_composer.core.errors import DraftValidationError
from listing_composer.schemas.draft import ListingDraft, SavedDraft
from listing_composer.services.normalizer import normalize
from listing_composer.services.quote_settings import QuoteSettingsEditor, sync_quote_only
from listing_composer.services.transitions import FieldChange, apply_changes
from listing_composer.services.validator import ErrorMap, error_messages, validate
from listing_composer.services.variants import VariantSet
from listing_composer.services.visibility import FieldVisibility, VisibilityInput, resolve_visibility

log = logging.getLogger(__name__)

Mode = Literal["create", "edit"]
Listener = Callable[["DraftStore"], None]

# form field name -> error key
_ERROR_KEYS = {"is_free": "isFree", "is_quote_only": "isQuoteOnly", "is_available": "isAvailable"}


class _Mutation:
    """Context manager: notify listeners once the mutation settled."""

    def __init__(self, store: "DraftStore"):
        self.store = store

    def __enter__(self) -> ListingDraft:
        return self.store.draft

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.store._notify()


class DraftStore:
    """
    Aggregate state of one listing editing session.

    Holds the draft (base attributes, images, variants, quote settings),
    the validation error map, and dirty tracking against the initial data.
    All mutations are synchronous; listeners (e.g. autosave) run after each one.
    """

    def __init__(
        self,
        initial_data: Mapping[str, Any] | None = None,
        *,
        mode: Mode = "create",
        max_images: int | None = None,
        max_variants: int | None = None,
    ):
        self.mode: Mode = mode
        self.max_images = max_images or settings.max_images
        self._initial_data = dict(initial_data) if initial_data else None
        self._initial = ListingDraft.from_listing(self._initial_data)
        self.draft = self._initial.model_copy(deep=True)
        self.errors: ErrorMap = {}
        self.last_saved: datetime | None = None
        self._listeners: list[Listener] = []

        self.variants = VariantSet(
            self.draft,
            max_count=max_variants or settings.max_variants,
            on_change=self._notify,
        )
        self.quote_settings = QuoteSettingsEditor(self.draft, on_change=self._notify)

    # ---------- listeners ----------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def mutation(self) -> _Mutation:
        """Wrap direct edits of `draft` so listeners fire once they settle."""
        return _Mutation(self)

    def _replace_draft(self, draft: ListingDraft) -> None:
        self.draft = draft
        self.variants.bind(draft)
        self.quote_settings.bind(draft)

    # ---------- derived state ----------

    @property
    def listing_id(self) -> str | None:
        """Server id of the listing being edited (None in create mode)."""
        if not self._initial_data:
            return None
        value = self._initial_data.get("_id") or self._initial_data.get("id")
        return str(value) if value else None

    @property
    def is_dirty(self) -> bool:
        return self.draft.fingerprint() != self._initial.fingerprint()

    @property
    def is_product(self) -> bool:
        return self.draft.form.type == "product"

    @property
    def is_service(self) -> bool:
        return self.draft.form.type == "service"

    @property
    def has_variants(self) -> bool:
        return self.variants.has_variants

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def visibility(self) -> FieldVisibility:
        return resolve_visibility(VisibilityInput.of(self.draft.form))

    @property
    def cover_image(self) -> str | None:
        return self.draft.images[0] if self.draft.images else None

    # ---------- form ----------

    def change_field(self, field: str, value: Any) -> None:
        self.change_fields({field: value})

    def change_fields(self, values: Mapping[str, Any]) -> None:
        previous_quote_only = self.draft.form.is_quote_only
        changes = [FieldChange(field, value) for field, value in values.items()]
        with self.mutation() as draft:
            draft.form = apply_changes(draft.form, changes)
            sync_quote_only(draft, previous_quote_only)
        for field in values:
            self.errors.pop(_ERROR_KEYS.get(field, field), None)

    # ---------- images ----------

    def add_images(self, urls: Iterable[str]) -> list[str]:
        """Append image URLs; anything beyond the image cap is dropped."""
        with self.mutation() as draft:
            combined = [*draft.images, *urls]
            if len(combined) > self.max_images:
                log.info("dropping %d image(s) over the cap of %d", len(combined) - self.max_images, self.max_images)
            draft.images = combined[: self.max_images]
        self.errors.pop("images", None)
        return self.draft.images

    def apply_upload_result(self, records: Iterable[Mapping[str, Any]]) -> list[str]:
        """Extend images from upload collaborator records shaped {main: {url}}."""
        urls = [r["main"]["url"] for r in records if (r.get("main") or {}).get("url")]
        return self.add_images(urls)

    def remove_image(self, index: int) -> str:
        with self.mutation() as draft:
            images = list(draft.images)
            removed = images.pop(index)
            draft.images = images
        return removed

    def remove_image_by_url(self, url: str) -> None:
        with self.mutation() as draft:
            draft.images = [img for img in draft.images if img != url]

    def reorder_images(self, from_index: int, to_index: int) -> None:
        with self.mutation() as draft:
            images = list(draft.images)
            moved = images.pop(from_index)
            images.insert(to_index, moved)
            draft.images = images

    def clear_images(self) -> None:
        with self.mutation() as draft:
            draft.images = []

    # ---------- validation / submission ----------

    def validate(self) -> ErrorMap:
        self.errors = validate(self.draft)
        return self.errors

    def error_messages(self) -> list[str]:
        return error_messages(self.errors)

    def merge_server_errors(self, field_errors: Mapping[str, str]) -> ErrorMap:
        """Server-side field errors join local ones in the same presentation path."""
        for field, message in field_errors.items():
            self.errors.setdefault(field, message)
        return self.errors

    def submission_payload(self) -> ListingSubmissionV1:
        errors = self.validate()
        if errors:
            raise DraftValidationError(errors)
        return normalize(self.draft)

    # ---------- snapshots ----------

    def snapshot(self) -> ListingDraft:
        return self.draft.model_copy(deep=True)

    def restore(self, snapshot: ListingDraft | SavedDraft) -> None:
        draft = snapshot.to_draft() if isinstance(snapshot, SavedDraft) else snapshot.model_copy(deep=True)
        if isinstance(snapshot, SavedDraft):
            self.last_saved = snapshot.saved_at
        self._replace_draft(draft)
        self.errors = {}
        self._notify()

    def reset(self) -> None:
        self._replace_draft(self._initial.model_copy(deep=True))
        self.errors = {}
        self._notify()

    def rebase(self, listing: Mapping[str, Any]) -> None:
        """Adopt a refetched authoritative listing as both initial and current state."""
        self._initial_data = dict(listing)
        self._initial = ListingDraft.from_listing(self._initial_data)
        self.reset()

    def mark_saved(self, at: datetime) -> None:
        self.last_saved = at
