from __future__ import annotations

from listing_composer.canonical.catalog import DEFAULT_MAX_QUOTE_PRICE, DEFAULT_RESPONSE_TIME
from listing_composer.canonical.v1.listing import (
    ListingSubmissionV1,
    QuoteSettingsV1,
    VariantSubmissionV1,
)
from listing_composer.core.errors import DraftValidationError
from listing_composer.core.numbers import parse_decimal, parse_int
from listing_composer.schemas.draft import ListingDraft, QuoteSettings, Variant
from listing_composer.services.quote_settings import quote_active
from listing_composer.services.validator import validate


def clean_variant(variant: Variant, *, is_product: bool) -> VariantSubmissionV1:
    # ids (temporary or persisted) are never submitted
    return VariantSubmissionV1(
        name=variant.name,
        price=parse_decimal(variant.price) or 0,
        stock=(parse_int(variant.stock) or 0) if is_product else None,
        is_available=variant.is_available is not False,
        sku=variant.sku or None,
        attributes=dict(variant.attributes) if variant.attributes else None,
        images=list(variant.images) if variant.images else None,
    )


def _full_quote_settings(qs: QuoteSettings | None, *, quote_only: bool) -> QuoteSettingsV1:
    qs = qs or QuoteSettings()
    return QuoteSettingsV1(
        enabled=True,
        quote_only=quote_only,
        auto_accept=qs.auto_accept,
        min_price=qs.min_price if qs.min_price is not None else 0,
        max_price=qs.max_price if qs.max_price is not None else DEFAULT_MAX_QUOTE_PRICE,
        response_time=qs.response_time or DEFAULT_RESPONSE_TIME,
        requires_deposit=qs.requires_deposit,
        deposit_percentage=int(qs.deposit_percentage or 0),
        custom_fields=list(qs.custom_fields),
    )


def normalize(draft: ListingDraft) -> ListingSubmissionV1:
    """
    Convert a valid draft into the canonical create/update payload.

    Deterministic and idempotent: ListingDraft.from_listing(payload) normalizes
    back to the same payload.
    """
    form = draft.form
    is_product = form.type == "product"
    is_service = form.type == "service"

    price = parse_decimal(form.price) or 0
    # a blank waived price is submitted as 0, so it reads back as free
    is_free = form.is_free or price == 0

    has_variants = draft.variants_enabled and len(draft.variants) > 0
    variants = [clean_variant(v, is_product=is_product) for v in draft.variants] if has_variants else []

    quote_settings: QuoteSettingsV1 | None = None
    is_quote_based: bool | None = None
    if is_service:
        if quote_active(draft):
            quote_settings = _full_quote_settings(draft.quote_settings, quote_only=form.is_quote_only)
            is_quote_based = True
        else:
            quote_settings = QuoteSettingsV1(enabled=False, quote_only=False)
            is_quote_based = False

    return ListingSubmissionV1(
        type=form.type,
        name=form.name.strip(),
        description=form.description.strip(),
        category=form.category,
        price=0 if is_free else price,
        is_free=is_free,
        is_available=form.is_available is not False,
        images=list(draft.images),
        stock=(parse_int(form.stock) or 0) if is_product else None,
        has_variants=has_variants,
        variants=variants,
        quote_settings=quote_settings,
        is_quote_based=is_quote_based,
    )


def validate_and_normalize(draft: ListingDraft) -> ListingSubmissionV1:
    errors = validate(draft)
    if errors:
        raise DraftValidationError(errors)
    return normalize(draft)
