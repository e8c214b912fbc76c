from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from listing_composer.canonical.catalog import (
    DESCRIPTION_MAX_LENGTH,
    MAX_IMAGES,
    NAME_MAX_LENGTH,
)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuoteCustomFieldV1(CamelModel):
    label: str = ""
    type: Literal["text", "number", "select", "date", "textarea"] = "text"
    required: bool = False
    options: list[str] = Field(default_factory=list)


class QuoteSettingsV1(CamelModel):
    """
    Quote settings as submitted.

    A disabled block carries only enabled/quoteOnly; the rest stays None
    and is dropped from the payload.
    """
    enabled: bool = False
    quote_only: bool = False
    auto_accept: bool | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    response_time: str | None = None
    requires_deposit: bool | None = None
    deposit_percentage: int | None = Field(default=None, ge=0, le=100)
    custom_fields: list[QuoteCustomFieldV1] | None = None

    @model_validator(mode="after")
    def validate_range(self) -> "QuoteSettingsV1":
        if self.min_price is not None and self.max_price is not None:
            if self.max_price < self.min_price:
                raise ValueError("maxPrice must be greater than or equal to minPrice")
        return self


class VariantSubmissionV1(CamelModel):
    # no id: temporary ids never leave the client
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    stock: int | None = Field(default=None, ge=0)
    is_available: bool = True
    sku: str | None = None
    attributes: dict[str, Any] | None = None
    images: list[str] | None = None


class ListingSubmissionV1(CamelModel):
    """
    Canonical listing create/update payload.

    This is the contract the listing API consumes. Build it with
    services.normalizer.normalize(), never by hand from raw form input.
    """
    type: Literal["product", "service"]
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    description: str = Field(min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    category: str = Field(min_length=1)

    price: float = Field(ge=0)
    is_free: bool = False
    is_available: bool = True

    images: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)

    # products only
    stock: int | None = Field(default=None, ge=0)

    has_variants: bool = False
    variants: list[VariantSubmissionV1] = Field(default_factory=list)

    # services only
    quote_settings: QuoteSettingsV1 | None = None
    is_quote_based: bool | None = None

    @model_validator(mode="after")
    def validate_shape(self) -> "ListingSubmissionV1":
        if self.has_variants != bool(self.variants):
            raise ValueError("hasVariants must match the presence of variants")
        if self.type == "service" and self.stock is not None:
            raise ValueError("stock is only submitted for products")
        if self.type == "product" and (self.quote_settings is not None or self.is_quote_based is not None):
            raise ValueError("quote settings are only submitted for services")
        return self
