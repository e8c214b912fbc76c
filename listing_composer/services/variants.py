from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from listing_composer.canonical.catalog import MAX_VARIANTS_PER_LISTING
from listing_composer.core.errors import (
    VariantConfirmationRequired,
    VariantLimitReached,
    VariantNotFound,
)
from listing_composer.core.numbers import parse_decimal
from listing_composer.schemas.draft import (
    ListingDraft,
    PersistedId,
    TemporaryId,
    Variant,
    new_temporary_id,
    to_aliases,
)

log = logging.getLogger(__name__)

VariantRef = TemporaryId | PersistedId | str


def _ref_matches(variant: Variant, ref: VariantRef) -> bool:
    if isinstance(ref, str):
        return str(variant.id) == ref
    return variant.id == ref


def has_priced_variant(draft: ListingDraft) -> bool:
    """Enabled variants with a positive price waive the base price requirement."""
    if not draft.variants_enabled:
        return False
    for v in draft.variants:
        price = parse_decimal(v.price)
        if price is not None and price > 0:
            return True
    return False


class VariantSet:
    """
    Ordered variant collection of one draft, with its enable toggle.

    Operates on the draft in place and calls on_change after every mutation.
    """

    def __init__(
        self,
        draft: ListingDraft,
        *,
        max_count: int = MAX_VARIANTS_PER_LISTING,
        on_change: Callable[[], None] | None = None,
    ):
        self._draft = draft
        self.max_count = max_count
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def bind(self, draft: ListingDraft) -> None:
        self._draft = draft

    @property
    def items(self) -> list[Variant]:
        return self._draft.variants

    @property
    def enabled(self) -> bool:
        return self._draft.variants_enabled

    @property
    def has_variants(self) -> bool:
        return self._draft.variants_enabled and len(self._draft.variants) > 0

    @property
    def can_add_more(self) -> bool:
        return len(self._draft.variants) < self.max_count

    def enable(self) -> None:
        self._draft.variants_enabled = True
        self._changed()

    def disable(self, clear_all: bool = False) -> None:
        """
        Turn the toggle off.

        An empty list is soft-hidden. A non-empty list needs confirmed intent:
        clear_all=True empties it for the rest of the session.
        """
        if self._draft.variants and not clear_all:
            raise VariantConfirmationRequired(
                f"{len(self._draft.variants)} variant(s) would be discarded; confirm with clear_all=True"
            )
        self._draft.variants_enabled = False
        if clear_all:
            self._draft.variants = []
        self._changed()

    def find(self, ref: VariantRef) -> Variant:
        for v in self._draft.variants:
            if _ref_matches(v, ref):
                return v
        raise VariantNotFound(str(ref))

    def add(self, data: Mapping[str, Any] | None = None) -> Variant:
        if not self.can_add_more:
            raise VariantLimitReached(f"Maximum {self.max_count} variants per listing")
        fields = dict(data or {})
        fields.pop("_id", None)
        fields["id"] = self._unique_temporary_id()
        variant = Variant.model_validate(fields)
        self._draft.variants = [*self._draft.variants, variant]
        self._changed()
        return variant

    def update(self, ref: VariantRef, data: Mapping[str, Any]) -> Variant:
        current = self.find(ref)
        fields = {k: v for k, v in dict(data).items() if k not in ("id", "_id")}
        merged = Variant.model_validate(
            {**current.model_dump(by_alias=True), **to_aliases(Variant, fields), "id": current.id}
        )
        self._draft.variants = [merged if v is current else v for v in self._draft.variants]
        self._changed()
        return merged

    def remove(self, ref: VariantRef) -> Variant:
        current = self.find(ref)
        self._draft.variants = [v for v in self._draft.variants if v is not current]
        self._changed()
        return current

    def bulk_replace(self, variants: Iterable[Mapping[str, Any] | Variant]) -> list[Variant]:
        replaced: list[Variant] = []
        seen: set[str] = set()
        for item in variants:
            v = item if isinstance(item, Variant) else Variant.model_validate(item)
            if str(v.id) in seen:
                v = v.model_copy(update={"id": self._unique_temporary_id(seen)})
            seen.add(str(v.id))
            replaced.append(v)
        if len(replaced) > self.max_count:
            raise VariantLimitReached(f"Maximum {self.max_count} variants per listing")
        self._draft.variants = replaced
        self._changed()
        return replaced

    def clear(self) -> None:
        self._draft.variants = []
        self._changed()

    def _unique_temporary_id(self, taken: set[str] | None = None) -> TemporaryId:
        taken = taken if taken is not None else {str(v.id) for v in self._draft.variants}
        vid = new_temporary_id()
        while str(vid) in taken:
            log.debug("temporary variant id collision: %s", vid)
            vid = new_temporary_id()
        return vid
