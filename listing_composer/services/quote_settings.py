from __future__ import annotations

from typing import Any, Callable, Mapping

from listing_composer.canonical.catalog import MAX_CUSTOM_FIELDS
from listing_composer.canonical.v1.listing import QuoteCustomFieldV1
from listing_composer.core.errors import QuoteFieldLimitReached, QuoteSettingsNotApplicable
from listing_composer.schemas.draft import ListingDraft, QuoteSettings, to_aliases


def quote_active(draft: ListingDraft) -> bool:
    """Quote requests apply to services with enabled settings or the quote-only flag."""
    if draft.form.type != "service":
        return False
    qs = draft.quote_settings
    return bool((qs is not None and qs.enabled) or draft.form.is_quote_only)


def sync_quote_only(draft: ListingDraft, previous_quote_only: bool) -> None:
    """
    Couple the form's is_quote_only flag to the nested settings.

    Turning quote-only on implicitly enables the settings; any change is
    mirrored into settings.quote_only when settings exist.
    """
    is_quote_only = draft.form.is_quote_only
    qs = draft.quote_settings
    if is_quote_only and (qs is None or not qs.enabled):
        base = qs or QuoteSettings()
        draft.quote_settings = base.model_copy(update={"enabled": True, "quote_only": True})
        return
    if is_quote_only != previous_quote_only and qs is not None:
        draft.quote_settings = qs.model_copy(update={"quote_only": is_quote_only})


class QuoteSettingsEditor:
    """Optional quote-request configuration of a service draft."""

    def __init__(self, draft: ListingDraft, *, on_change: Callable[[], None] | None = None):
        self._draft = draft
        self._on_change = on_change

    def _set(self, settings: QuoteSettings | None) -> None:
        self._draft.quote_settings = settings
        if self._on_change is not None:
            self._on_change()

    def bind(self, draft: ListingDraft) -> None:
        self._draft = draft

    @property
    def settings(self) -> QuoteSettings | None:
        return self._draft.quote_settings

    @property
    def is_active(self) -> bool:
        return quote_active(self._draft)

    def _require_service(self) -> QuoteSettings:
        if self._draft.form.type != "service":
            raise QuoteSettingsNotApplicable("Quote settings are only available for services")
        return self._draft.quote_settings or QuoteSettings()

    def enable(self) -> QuoteSettings:
        current = self._require_service()
        self._set(current.model_copy(update={"enabled": True}))
        return self._draft.quote_settings

    def disable(self) -> None:
        # quote-only listings keep their settings enabled
        if self._draft.quote_settings is None or self._draft.form.is_quote_only:
            return
        self._set(self._draft.quote_settings.model_copy(update={"enabled": False}))

    def update(self, **fields: Any) -> QuoteSettings:
        current = self._require_service()
        fields.pop("quote_only", None)  # driven by the form flag
        merged = QuoteSettings.model_validate(
            {**current.model_dump(by_alias=True), **to_aliases(QuoteSettings, fields)}
        )
        self._set(merged)
        return merged

    def clear(self) -> None:
        self._set(None)

    def add_custom_field(self, field: Mapping[str, Any] | QuoteCustomFieldV1) -> QuoteCustomFieldV1:
        current = self._require_service()
        if len(current.custom_fields) >= MAX_CUSTOM_FIELDS:
            raise QuoteFieldLimitReached(f"Maximum {MAX_CUSTOM_FIELDS} custom fields")
        new_field = field if isinstance(field, QuoteCustomFieldV1) else QuoteCustomFieldV1.model_validate(field)
        self._set(current.model_copy(update={"custom_fields": [*current.custom_fields, new_field]}))
        return new_field

    def remove_custom_field(self, index: int) -> QuoteCustomFieldV1:
        current = self._require_service()
        fields = list(current.custom_fields)
        removed = fields.pop(index)
        self._set(current.model_copy(update={"custom_fields": fields}))
        return removed
