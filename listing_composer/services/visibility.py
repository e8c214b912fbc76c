from __future__ import annotations

from dataclasses import dataclass

from listing_composer.canonical.catalog import CategoryOption, category_options
from listing_composer.schemas.draft import ListingForm


@dataclass(frozen=True)
class VisibilityInput:
    type: str
    is_free: bool = False
    is_quote_only: bool = False

    @classmethod
    def of(cls, form: ListingForm) -> "VisibilityInput":
        return cls(type=form.type, is_free=form.is_free, is_quote_only=form.is_quote_only)


@dataclass(frozen=True)
class FieldState:
    visible: bool
    required: bool = False


HIDDEN = FieldState(visible=False)


@dataclass(frozen=True)
class FieldVisibility:
    type: FieldState
    name: FieldState
    description: FieldState
    category: FieldState
    is_free: FieldState
    is_quote_only: FieldState
    price: FieldState
    stock: FieldState
    is_available: FieldState
    category_options: tuple[CategoryOption, ...]

    def visible_fields(self) -> list[str]:
        return [name for name, state in self._states() if state.visible]

    def required_fields(self) -> list[str]:
        return [name for name, state in self._states() if state.visible and state.required]

    def _states(self) -> list[tuple[str, FieldState]]:
        return [
            ("type", self.type),
            ("name", self.name),
            ("description", self.description),
            ("category", self.category),
            ("is_free", self.is_free),
            ("is_quote_only", self.is_quote_only),
            ("price", self.price),
            ("stock", self.stock),
            ("is_available", self.is_available),
        ]


def resolve_visibility(values: VisibilityInput) -> FieldVisibility:
    """
    Project {type, is_free, is_quote_only} onto the base-attribute fields.

    - is_free and is_quote_only are mutually exclusive display states for services
    - price is hidden while the listing is free or quote-only
    - stock exists for products only
    """
    is_service = values.type == "service"
    is_product = values.type == "product"

    show_free = not (is_service and values.is_quote_only)
    show_quote_only = is_service and not values.is_free
    show_price = not values.is_free and not values.is_quote_only

    return FieldVisibility(
        type=FieldState(visible=True, required=True),
        name=FieldState(visible=True, required=True),
        description=FieldState(visible=True, required=True),
        category=FieldState(visible=True, required=True),
        is_free=FieldState(visible=True) if show_free else HIDDEN,
        is_quote_only=FieldState(visible=True) if show_quote_only else HIDDEN,
        price=FieldState(visible=True, required=True) if show_price else HIDDEN,
        stock=FieldState(visible=True, required=True) if is_product else HIDDEN,
        is_available=FieldState(visible=True),
        category_options=category_options(values.type),
    )
