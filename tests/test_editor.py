import json

import httpx
import pytest

from factories import fill_valid_product
from listing_composer.core.errors import DraftError, UploadError, VariantLimitReached
from listing_composer.services.autosave import AutosaveScheduler
from listing_composer.services.collaborators import (
    GatewayResult,
    ImageFile,
    ListingApiClient,
    UploadedImage,
)
from listing_composer.services.draft_store import DraftStore
from listing_composer.services.editor import ListingEditor
from listing_composer.services.http_client import MarketplaceHttpClient


class FakeListings:
    def __init__(self, *results: GatewayResult, listing: dict | None = None):
        self.results = list(results)
        self.listing = listing
        self.calls: list[tuple] = []

    async def create_listing(self, payload):
        self.calls.append(("create", payload))
        return self.results.pop(0)

    async def update_listing(self, listing_id, payload):
        self.calls.append(("update", listing_id, payload))
        return self.results.pop(0)

    async def get_listing(self, listing_id):
        self.calls.append(("get", listing_id))
        return GatewayResult(ok=True, listing=self.listing)


class FakeVariants:
    def __init__(self, result: GatewayResult | None = None):
        self.result = result or GatewayResult(ok=True)
        self.calls: list[tuple] = []

    async def add_variant(self, listing_id, variant):
        self.calls.append(("add", listing_id, variant))
        return self.result

    async def update_variant(self, listing_id, variant_id, variant):
        self.calls.append(("update", listing_id, variant_id, variant))
        return self.result

    async def delete_variant(self, listing_id, variant_id):
        self.calls.append(("delete", listing_id, variant_id))
        return self.result


class FakeUploader:
    def __init__(self, urls=(), error: UploadError | None = None):
        self.urls = list(urls)
        self.error = error

    async def upload_listing_images(self, files, subfolder):
        if self.error is not None:
            raise self.error
        return [UploadedImage.model_validate({"main": {"url": u}}) for u in self.urls]


@pytest.mark.asyncio
async def test_invalid_draft_never_reaches_the_network(store, persistence):
    listings = FakeListings()
    editor = ListingEditor(store, persistence, listings)

    outcome = await editor.submit()

    assert not outcome.ok
    assert listings.calls == []
    assert outcome.message == (
        "Listing name is required; Description is required; Category is required (+3 more)"
    )
    assert set(outcome.errors) == {"name", "description", "category", "price", "stock", "images"}


@pytest.mark.asyncio
async def test_successful_create_clears_slot_and_resets(store, persistence):
    listings = FakeListings(GatewayResult(ok=True, listing={"_id": "L1"}, status_code=201))
    autosave = AutosaveScheduler(store, persistence, interval_seconds=60)
    editor = ListingEditor(store, persistence, listings, autosave=autosave)
    fill_valid_product(store)
    assert autosave.running
    editor.save_draft()
    assert persistence.exists()

    outcome = await editor.submit()

    assert outcome.ok and outcome.listing == {"_id": "L1"}
    kind, payload = listings.calls[0]
    assert kind == "create"
    assert payload["name"] == "Desk Lamp" and payload["stock"] == 10
    assert not persistence.exists()
    assert not autosave.running
    assert not store.is_dirty
    assert store.draft.form.name == ""
    await editor.close()


@pytest.mark.asyncio
async def test_server_field_errors_are_merged_and_draft_kept(store, persistence):
    listings = FakeListings(
        GatewayResult(ok=False, field_errors={"name": "Name already used"}, message="Validation failed", status_code=400)
    )
    editor = ListingEditor(store, persistence, listings)
    fill_valid_product(store)
    editor.save_draft()

    outcome = await editor.submit()

    assert not outcome.ok
    assert outcome.message == "Name already used"
    assert store.errors == {"name": "Name already used"}
    assert store.draft.form.name == "Desk Lamp"
    assert persistence.exists()


@pytest.mark.asyncio
async def test_transport_failure_gives_generic_message(store, persistence):
    editor = ListingEditor(store, persistence, FakeListings(GatewayResult(ok=False)))
    fill_valid_product(store)

    outcome = await editor.submit()
    assert outcome.message == "Failed to create listing"
    assert store.is_dirty


@pytest.mark.asyncio
async def test_edit_mode_updates_and_rebases(existing_listing, persistence):
    store = DraftStore(existing_listing, mode="edit")
    updated = {**existing_listing, "name": "Organic Cotton T-Shirt"}
    listings = FakeListings(GatewayResult(ok=True, listing=updated))
    editor = ListingEditor(store, persistence, listings)

    store.change_field("name", "Organic Cotton T-Shirt")
    outcome = await editor.submit()

    assert outcome.ok
    kind, listing_id, payload = listings.calls[0]
    assert (kind, listing_id) == ("update", "665f1c2ab7e4d2a1c0ffee01")
    assert payload["hasVariants"] is True
    assert all("id" not in v and "_id" not in v for v in payload["variants"])
    assert store.draft.form.name == "Organic Cotton T-Shirt"
    assert not store.is_dirty


def test_edit_mode_needs_listing_id(persistence):
    with pytest.raises(DraftError):
        ListingEditor(DraftStore(mode="edit"), persistence, FakeListings())


@pytest.mark.asyncio
async def test_edit_mode_variant_calls_refetch(existing_listing, persistence):
    store = DraftStore(existing_listing, mode="edit")
    refetched = {**existing_listing, "variants": existing_listing["variants"][:1]}
    variants = FakeVariants()
    editor = ListingEditor(store, persistence, FakeListings(listing=refetched), variants=variants)

    result = await editor.delete_variant("665f1c2ab7e4d2a1c0ffee12")

    assert result.ok
    assert variants.calls == [("delete", "665f1c2ab7e4d2a1c0ffee01", "665f1c2ab7e4d2a1c0ffee12")]
    assert [v.name for v in store.variants.items] == ["Small"]

    await editor.update_variant("665f1c2ab7e4d2a1c0ffee11", {"price": "36"})
    _, _, variant_id, body = variants.calls[1]
    assert variant_id == "665f1c2ab7e4d2a1c0ffee11"
    assert body == {"name": "Small", "price": 36, "stock": 4, "isAvailable": True, "sku": "TEE-S"}

    await editor.add_variant({"name": "Medium", "price": 36, "stock": 3})
    assert variants.calls[2][0] == "add"
    assert variants.calls[2][2]["name"] == "Medium"


@pytest.mark.asyncio
async def test_failed_variant_call_merges_errors(existing_listing, persistence):
    store = DraftStore(existing_listing, mode="edit")
    variants = FakeVariants(GatewayResult(ok=False, field_errors={"sku": "SKU already exists"}, status_code=400))
    listings = FakeListings()
    editor = ListingEditor(store, persistence, listings, variants=variants)

    result = await editor.add_variant({"name": "Medium", "price": 36, "stock": 3, "sku": "TEE-S"})

    assert not result.ok
    assert store.errors["sku"] == "SKU already exists"
    assert listings.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data, message",
    [
        ({"name": "", "price": "5", "stock": "1"}, "Variant 3: Name is required"),
        (
            {"name": "Medium", "price": "5", "stock": "abc"},
            'Variant 3 ("Medium"): Stock is required for products (must be 0 or greater)',
        ),
    ],
)
async def test_edit_mode_invalid_variant_is_rejected_locally(existing_listing, persistence, data, message):
    store = DraftStore(existing_listing, mode="edit")
    variants = FakeVariants()
    editor = ListingEditor(store, persistence, FakeListings(), variants=variants)

    result = await editor.add_variant(data)

    assert not result.ok
    assert result.field_errors == {"variants": message}
    assert store.errors["variants"] == message
    assert variants.calls == []


@pytest.mark.asyncio
async def test_edit_mode_variant_update_is_checked_before_sending(existing_listing, persistence):
    store = DraftStore(existing_listing, mode="edit")
    variants = FakeVariants()
    editor = ListingEditor(store, persistence, FakeListings(), variants=variants)

    result = await editor.update_variant("665f1c2ab7e4d2a1c0ffee12", {"price": "-1"})

    assert result.field_errors == {"variants": 'Variant 2 ("Large"): Price must be 0 or greater'}
    assert variants.calls == []


@pytest.mark.asyncio
async def test_edit_mode_add_variant_respects_the_cap(existing_listing, persistence):
    store = DraftStore(existing_listing, mode="edit", max_variants=2)
    variants = FakeVariants()
    editor = ListingEditor(store, persistence, FakeListings(), variants=variants)

    with pytest.raises(VariantLimitReached):
        await editor.add_variant({"name": "X", "price": "5", "stock": "1"})
    assert variants.calls == []


@pytest.mark.asyncio
async def test_create_mode_variant_calls_stay_local(store, persistence):
    editor = ListingEditor(store, persistence, FakeListings(), variants=FakeVariants())
    await editor.add_variant({"name": "Red", "price": "5"})
    assert [v.name for v in store.variants.items] == ["Red"]


@pytest.mark.asyncio
async def test_upload_extends_images_or_reports(store, persistence):
    editor = ListingEditor(store, persistence, FakeListings(), uploader=FakeUploader(["u1", "u2"]))
    assert await editor.upload_images([ImageFile("a.jpg", b"x"), ImageFile("b.jpg", b"y")], "new") is None
    assert store.draft.images == ["u1", "u2"]

    editor.uploader = FakeUploader(error=UploadError("File too large", status_code=413))
    assert await editor.upload_images([ImageFile("c.jpg", b"z")], "new") == "File too large"
    assert store.draft.images == ["u1", "u2"]


def test_restore_decision_is_made_once(store, persistence):
    fill_valid_product(store)
    persistence.save(store.draft)

    fresh = DraftStore()
    editor = ListingEditor(fresh, persistence, FakeListings())
    assert editor.has_pending_restore()
    assert editor.restore_draft()
    assert fresh.draft.form.name == "Desk Lamp"
    assert fresh.last_saved is not None
    assert not editor.has_pending_restore()

    other = ListingEditor(DraftStore(), persistence, FakeListings())
    other.discard_draft()
    assert not persistence.exists()
    assert not other.restore_draft()


@pytest.mark.asyncio
async def test_submit_over_http(store, persistence):
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        sent.update(json.loads(request.content))
        return httpx.Response(201, json={"success": True, "data": {"listing": {"_id": "L7", **sent}}})

    async with MarketplaceHttpClient(base_url="http://api.test/api", transport=httpx.MockTransport(handler)) as http:
        editor = ListingEditor(store, persistence, ListingApiClient(http))
        fill_valid_product(store)
        outcome = await editor.submit()

    assert outcome.ok
    assert outcome.listing["_id"] == "L7"
    assert sent["category"] == "electronics"
    assert sent["isFree"] is False
