"""
Listing catalog: listing types, category sets and platform limits.

Values must match the server enums exactly.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ListingType = Literal["product", "service"]

LISTING_TYPES: tuple[str, ...] = ("product", "service")


@dataclass(frozen=True)
class CategoryOption:
    value: str
    label: str


LISTING_CATEGORIES: dict[str, tuple[CategoryOption, ...]] = {
    "product": (
        CategoryOption("electronics", "Electronics"),
        CategoryOption("clothing", "Clothing & Fashion"),
        CategoryOption("food", "Food & Beverages"),
        CategoryOption("books", "Books & Stationery"),
        CategoryOption("other", "Other Products"),
    ),
    "service": (
        CategoryOption("printing", "Printing Services"),
        CategoryOption("repair", "Repair Services"),
        CategoryOption("e-hailing", "E-Hailing & Transport"),
        CategoryOption("delivery", "Delivery Services"),
        CategoryOption("other-service", "Other Services"),
    ),
}

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
MAX_IMAGES = 10

MAX_VARIANTS_PER_LISTING = 20
MAX_VARIANT_NAME_LENGTH = 100
MAX_SKU_LENGTH = 50
MAX_ATTRIBUTE_KEYS = 10
MAX_VARIANT_IMAGES = 5

MAX_CUSTOM_FIELDS = 10
MAX_FIELD_LABEL_LENGTH = 100
MAX_FIELD_OPTIONS = 20
MAX_RESPONSE_TIME_LENGTH = 50
MIN_DEPOSIT_PERCENTAGE = 0
MAX_DEPOSIT_PERCENTAGE = 100
QUOTE_FIELD_TYPES: tuple[str, ...] = ("text", "number", "select", "date", "textarea")

DEFAULT_RESPONSE_TIME = "24hr"
DEFAULT_MAX_QUOTE_PRICE = 100_000_000


def category_options(listing_type: str) -> tuple[CategoryOption, ...]:
    return LISTING_CATEGORIES.get(listing_type, ())


def category_labels(listing_type: str) -> list[str]:
    return [c.label for c in category_options(listing_type)]


def is_category_consistent(listing_type: str, category: str) -> bool:
    """True iff category belongs to the category set keyed by listing_type."""
    return any(c.value == category for c in category_options(listing_type))


def category_error(listing_type: str, category: str) -> str | None:
    """
    Category Consistency Rule.
    Returns a message enumerating the valid labels for the type, or None.
    """
    if not category:
        return "Category is required"
    if is_category_consistent(listing_type, category):
        return None
    labels = ", ".join(category_labels(listing_type))
    return f"Invalid category for {listing_type}. Please select from: {labels}"
