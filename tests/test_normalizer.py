import pytest

from factories import product_form, service_form
from listing_composer.core.errors import DraftValidationError
from listing_composer.schemas.draft import ListingDraft, QuoteSettings, Variant
from listing_composer.services.normalizer import normalize, validate_and_normalize


def _renormalize(payload: dict) -> dict:
    return normalize(ListingDraft.from_listing(payload)).to_payload()


def test_simple_product(product_draft):
    payload = normalize(product_draft).to_payload()
    assert payload["type"] == "product"
    assert payload["price"] == 25
    assert payload["isFree"] is False
    assert payload["stock"] == 10
    assert payload["hasVariants"] is False
    assert payload["variants"] == []
    assert "quoteSettings" not in payload and "isQuoteBased" not in payload


def test_free_product_price_is_zero():
    draft = ListingDraft(form=product_form(price="", is_free=True, stock="3"), images=["url1"])
    payload = normalize(draft).to_payload()
    assert payload["price"] == 0
    assert payload["isFree"] is True


def test_zero_price_means_free(product_draft):
    product_draft.form = product_draft.form.model_copy(update={"price": "0"})
    assert normalize(product_draft).is_free is True


def test_quote_only_service_is_quote_based():
    draft = ListingDraft(form=service_form(price="", is_quote_only=True), images=["url1"])
    payload = normalize(draft).to_payload()

    assert payload["isQuoteBased"] is True
    assert payload["isFree"] is True
    qs = payload["quoteSettings"]
    assert qs["enabled"] is True and qs["quoteOnly"] is True
    assert qs["minPrice"] == 0
    assert qs["maxPrice"] == 100_000_000
    assert qs["responseTime"] == "24hr"
    assert qs["depositPercentage"] == 0
    assert "stock" not in payload


def test_deposit_percentage_is_sent_as_whole_number():
    draft = ListingDraft(
        form=service_form(),
        images=["url1"],
        quote_settings=QuoteSettings(enabled=True, requires_deposit=True, deposit_percentage="12.5"),
    )
    qs = normalize(draft).to_payload()["quoteSettings"]
    assert qs["depositPercentage"] == 12
    assert isinstance(qs["depositPercentage"], int)


def test_service_without_quotes_gets_disabled_block(service_draft):
    payload = normalize(service_draft).to_payload()
    assert payload["isQuoteBased"] is False
    assert payload["quoteSettings"] == {"enabled": False, "quoteOnly": False}


def test_variants_are_cleaned():
    draft = ListingDraft(
        form=product_form(price="", stock=""),
        images=["url1"],
        variants_enabled=True,
        variants=[Variant(name="Red", price="15", stock="2")],
    )
    payload = normalize(draft).to_payload()
    assert payload["hasVariants"] is True
    assert payload["variants"] == [{"name": "Red", "price": 15, "stock": 2, "isAvailable": True}]


def test_disabled_variants_are_not_submitted(product_draft):
    product_draft.variants = [Variant(name="Red", price="15", stock="2")]
    product_draft.variants_enabled = False
    payload = normalize(product_draft).to_payload()
    assert payload["hasVariants"] is False
    assert payload["variants"] == []


@pytest.mark.parametrize(
    "draft",
    [
        ListingDraft(form=product_form(), images=["url1"]),
        ListingDraft(form=product_form(price="0", is_free=True), images=["url1"]),
        ListingDraft(form=service_form(price="", is_quote_only=True), images=["url1"]),
        ListingDraft(
            form=service_form(),
            images=["url1", "url2"],
            quote_settings=QuoteSettings(enabled=True, min_price=10, response_time="48hr"),
            variants_enabled=True,
            variants=[Variant(name="Express", price="99.5", sku="EXP", attributes={"speed": "fast"})],
        ),
    ],
)
def test_normalize_is_idempotent(draft):
    payload = normalize(draft).to_payload()
    assert _renormalize(payload) == payload


def test_validate_and_normalize_raises_with_error_map(product_draft):
    product_draft.images = []
    with pytest.raises(DraftValidationError) as exc:
        validate_and_normalize(product_draft)
    assert exc.value.errors == {"images": "At least one listing image is required"}
