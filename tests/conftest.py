import pytest

from factories import product_form, service_form
from listing_composer.schemas.draft import ListingDraft
from listing_composer.services.draft_store import DraftStore
from listing_composer.services.kv_store import InMemoryKeyValueStore
from listing_composer.services.persistence import DraftPersistence


@pytest.fixture
def product_draft() -> ListingDraft:
    return ListingDraft(form=product_form(), images=["https://cdn.test/lamp.jpg"])


@pytest.fixture
def service_draft() -> ListingDraft:
    return ListingDraft(form=service_form(), images=["https://cdn.test/repair.jpg"])


@pytest.fixture
def existing_listing() -> dict:
    """A listing document as returned by GET /listings/{id}."""
    return {
        "_id": "665f1c2ab7e4d2a1c0ffee01",
        "type": "product",
        "name": "Cotton T-Shirt",
        "description": "Plain cotton tee",
        "category": "clothing",
        "price": 35,
        "stock": 0,
        "isFree": False,
        "isAvailable": True,
        "images": ["https://cdn.test/tee-1.jpg", "https://cdn.test/tee-2.jpg"],
        "variants": [
            {"_id": "665f1c2ab7e4d2a1c0ffee11", "name": "Small", "price": 35, "stock": 4, "sku": "TEE-S"},
            {"_id": "665f1c2ab7e4d2a1c0ffee12", "name": "Large", "price": 39.5, "stock": 2, "sku": "TEE-L"},
        ],
    }


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def persistence(kv) -> DraftPersistence:
    return DraftPersistence(kv, "listing-draft:user-1:create")


@pytest.fixture
def store() -> DraftStore:
    return DraftStore()