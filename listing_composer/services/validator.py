from __future__ import annotations

from typing import Iterable, Mapping

from listing_composer.canonical.catalog import (
    DESCRIPTION_MAX_LENGTH,
    LISTING_TYPES,
    MAX_CUSTOM_FIELDS,
    MAX_DEPOSIT_PERCENTAGE,
    MAX_FIELD_LABEL_LENGTH,
    MAX_FIELD_OPTIONS,
    MAX_IMAGES,
    MAX_RESPONSE_TIME_LENGTH,
    MAX_SKU_LENGTH,
    MAX_VARIANT_NAME_LENGTH,
    MIN_DEPOSIT_PERCENTAGE,
    NAME_MAX_LENGTH,
    category_error,
)
from listing_composer.core.numbers import parse_decimal, parse_int
from listing_composer.schemas.draft import ListingDraft, QuoteSettings, Variant
from listing_composer.services.quote_settings import quote_active
from listing_composer.services.variants import has_priced_variant

# Ordered field/section -> message. Empty iff the draft is submittable.
ErrorMap = dict[str, str]


def _price_required(draft: ListingDraft) -> bool:
    form = draft.form
    if form.is_free:
        return False
    price = parse_decimal(form.price)
    if price is not None and price == 0:
        return False
    if form.type == "service" and form.is_quote_only:
        return False
    return not has_priced_variant(draft)


def variant_error(variant: Variant, position: int, *, is_product: bool) -> str | None:
    name = variant.name.strip()
    if not name:
        return f"Variant {position}: Name is required"
    if len(variant.name) > MAX_VARIANT_NAME_LENGTH:
        return f'Variant {position} ("{variant.name}"): Name must be {MAX_VARIANT_NAME_LENGTH} characters or less'

    price = parse_decimal(variant.price)
    if price is None or price < 0:
        return f'Variant {position} ("{variant.name}"): Price must be 0 or greater'

    if is_product:
        stock = parse_int(variant.stock)
        if stock is None or stock < 0:
            return f'Variant {position} ("{variant.name}"): Stock is required for products (must be 0 or greater)'

    if variant.sku and len(variant.sku) > MAX_SKU_LENGTH:
        return f'Variant {position} ("{variant.name}"): SKU must be {MAX_SKU_LENGTH} characters or less'
    return None


def _quote_settings_error(qs: QuoteSettings) -> str | None:
    if qs.min_price is not None and qs.min_price < 0:
        return "Min price must be a positive number"
    if qs.max_price is not None and qs.max_price < 0:
        return "Max price must be a positive number"
    if qs.min_price is not None and qs.max_price is not None and qs.max_price < qs.min_price:
        return "Max price must be greater than min price"
    deposit = qs.deposit_percentage
    out_of_range = deposit is not None and not (MIN_DEPOSIT_PERCENTAGE <= deposit <= MAX_DEPOSIT_PERCENTAGE)
    if out_of_range or (qs.requires_deposit and deposit is None):
        return f"Deposit must be between {MIN_DEPOSIT_PERCENTAGE}% and {MAX_DEPOSIT_PERCENTAGE}%"
    if qs.response_time and len(qs.response_time) > MAX_RESPONSE_TIME_LENGTH:
        return f"Response time must be {MAX_RESPONSE_TIME_LENGTH} characters or less"
    if len(qs.custom_fields) > MAX_CUSTOM_FIELDS:
        return f"Maximum {MAX_CUSTOM_FIELDS} custom fields allowed"
    for i, f in enumerate(qs.custom_fields, start=1):
        if not f.label.strip():
            return f"Custom field {i}: Label is required"
        if len(f.label) > MAX_FIELD_LABEL_LENGTH:
            return f"Custom field {i}: Label must be {MAX_FIELD_LABEL_LENGTH} characters or less"
        if f.type == "select" and not (0 < len(f.options) <= MAX_FIELD_OPTIONS):
            return f'Custom field {i} ("{f.label}"): Select fields need 1 to {MAX_FIELD_OPTIONS} options'
    return None


def validate(draft: ListingDraft) -> ErrorMap:
    """
    Validate a draft for submission.

    Checks run in a fixed order and the first failing message per key wins.
    Variant checks stop at the first failing variant.
    """
    form = draft.form
    errors: ErrorMap = {}

    if form.type not in LISTING_TYPES:
        errors["type"] = "Listing type must be 'product' or 'service'"
    is_product = form.type == "product"

    if not form.name.strip():
        errors["name"] = "Listing name is required"
    elif len(form.name) > NAME_MAX_LENGTH:
        errors["name"] = f"Listing name must be {NAME_MAX_LENGTH} characters or less"

    if not form.description.strip():
        errors["description"] = "Description is required"
    elif len(form.description) > DESCRIPTION_MAX_LENGTH:
        errors["description"] = f"Description must be {DESCRIPTION_MAX_LENGTH} characters or less"

    msg = category_error(form.type, form.category)
    if msg:
        errors["category"] = msg

    if _price_required(draft):
        price = parse_decimal(form.price)
        if price is None or price < 0:
            errors["price"] = "Valid price is required (or mark as free)"

    has_variants = draft.variants_enabled and len(draft.variants) > 0
    if is_product and not has_variants:
        stock = parse_int(form.stock)
        if stock is None or stock < 0:
            errors["stock"] = "Valid stock quantity is required for products"

    if not draft.images:
        errors["images"] = "At least one listing image is required"
    elif len(draft.images) > MAX_IMAGES:
        errors["images"] = f"Maximum {MAX_IMAGES} images allowed"

    if has_variants:
        for position, variant in enumerate(draft.variants, start=1):
            msg = variant_error(variant, position, is_product=is_product)
            if msg:
                errors["variants"] = msg
                break

    if form.is_quote_only and form.type != "service":
        errors["isQuoteOnly"] = "Quote-based pricing is only available for services"

    if quote_active(draft) and draft.quote_settings is not None:
        msg = _quote_settings_error(draft.quote_settings)
        if msg:
            errors["quoteSettings"] = msg

    return errors


def error_messages(errors: Mapping[str, str]) -> list[str]:
    return list(errors.values())


def summarize_errors(messages: Iterable[str], *, limit: int = 3) -> str:
    """First `limit` messages, plus a "(+N more)" tail for the rest."""
    items = [m for m in messages if m]
    head = "; ".join(items[:limit])
    rest = len(items) - limit
    if rest > 0:
        return f"{head} (+{rest} more)"
    return head
