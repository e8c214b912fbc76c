from listing_composer.schemas.draft import ListingForm
from listing_composer.services.draft_store import DraftStore


def product_form(**overrides) -> ListingForm:
    data = {
        "type": "product",
        "name": "Desk Lamp",
        "description": "LED desk lamp with adjustable arm",
        "category": "electronics",
        "price": "25.00",
        "stock": "10",
    }
    data.update(overrides)
    return ListingForm(**data)


def service_form(**overrides) -> ListingForm:
    data = {
        "type": "service",
        "name": "Phone Screen Repair",
        "description": "Same-day screen replacement",
        "category": "repair",
        "price": "80",
    }
    data.update(overrides)
    return ListingForm(**data)


def fill_valid_product(store: DraftStore) -> None:
    store.change_fields(product_form().model_dump())
    store.add_images(["https://cdn.test/lamp.jpg"])
