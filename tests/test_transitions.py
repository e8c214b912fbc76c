import pytest

from factories import product_form, service_form
from listing_composer.core.errors import UnknownFieldError
from listing_composer.services.transitions import FieldChange, apply_change, apply_changes


def test_type_change_resets_category_and_quote_only():
    form = service_form(is_quote_only=True)
    out = apply_change(form, FieldChange("type", "product"))

    assert out.type == "product"
    assert out.category == ""
    assert out.is_quote_only is False
    # input untouched
    assert form.category == "repair" and form.is_quote_only is True


def test_same_type_keeps_category():
    form = product_form()
    assert apply_change(form, FieldChange("type", "product")).category == "electronics"


def test_quote_only_forced_off_for_products():
    out = apply_change(product_form(), FieldChange("is_quote_only", True))
    assert out.is_quote_only is False


def test_numeric_input_is_kept_as_text():
    out = apply_change(product_form(), FieldChange("price", 12.5))
    assert out.price == "12.5"


def test_batch_applies_type_before_category():
    out = apply_changes(
        product_form(),
        [FieldChange("category", "printing"), FieldChange("type", "service")],
    )
    assert out.type == "service"
    assert out.category == "printing"


def test_unknown_field_raises():
    with pytest.raises(UnknownFieldError):
        apply_change(product_form(), FieldChange("colour", "red"))
