"""
Field-change transitions for the base-attribute form.

apply_change(form, change) -> new form. Sibling resets are spelled out as
named rules in _RULES instead of being inferred inside a generic handler.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from listing_composer.core.errors import UnknownFieldError
from listing_composer.schemas.draft import ListingForm


@dataclass(frozen=True)
class FieldChange:
    field: str
    value: Any


Rule = Callable[[ListingForm, Any], dict[str, Any]]


def _assign(field: str) -> Rule:
    def rule(form: ListingForm, value: Any) -> dict[str, Any]:
        return {field: value}
    return rule


def _type_changed(form: ListingForm, value: Any) -> dict[str, Any]:
    # category sets are keyed by type; a stale category must never survive
    if value == form.type:
        return {}
    return {"type": value, "category": "", "is_quote_only": False}


def _quote_only_changed(form: ListingForm, value: Any) -> dict[str, Any]:
    return {"is_quote_only": bool(value) and form.type == "service"}


_RULES: dict[str, Rule] = {
    "type": _type_changed,
    "is_quote_only": _quote_only_changed,
    "name": _assign("name"),
    "description": _assign("description"),
    "category": _assign("category"),
    "price": _assign("price"),
    "stock": _assign("stock"),
    "is_free": _assign("is_free"),
    "is_available": _assign("is_available"),
}

FORM_FIELDS: frozenset[str] = frozenset(_RULES)


def apply_change(form: ListingForm, change: FieldChange) -> ListingForm:
    rule = _RULES.get(change.field)
    if rule is None:
        raise UnknownFieldError(change.field)
    updates = rule(form, change.value)
    if not updates:
        return form
    # re-validate so raw input gets the same coercion as hydration
    return ListingForm.model_validate({**form.model_dump(), **updates})


def apply_changes(form: ListingForm, changes: list[FieldChange]) -> ListingForm:
    # type goes first so its resets never clobber a category set in the same batch
    ordered = sorted(changes, key=lambda c: c.field != "type")
    for change in ordered:
        form = apply_change(form, change)
    return form
