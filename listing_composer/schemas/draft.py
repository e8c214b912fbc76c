from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import ConfigDict, Field, field_validator, model_validator

from listing_composer.canonical.v1.listing import CamelModel, QuoteCustomFieldV1
from listing_composer.core.ids import gen_id, is_generated
from listing_composer.core.numbers import as_text

TEMP_ID_PREFIX = "temp"


class TemporaryId(CamelModel):
    """Locally generated variant id; never submitted."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["temporary"] = "temporary"
    local_id: str

    def __str__(self) -> str:
        return self.local_id


class PersistedId(CamelModel):
    """Server-issued variant id."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["persisted"] = "persisted"
    server_id: str

    def __str__(self) -> str:
        return self.server_id


VariantId = Annotated[Union[TemporaryId, PersistedId], Field(discriminator="kind")]


def new_temporary_id() -> TemporaryId:
    return TemporaryId(local_id=gen_id(TEMP_ID_PREFIX))


def coerce_variant_id(value: Any) -> Any:
    """Map raw ids (server payloads, UI callbacks) onto the tagged id type."""
    if value is None or value == "":
        return new_temporary_id()
    if isinstance(value, str):
        if is_generated(value, TEMP_ID_PREFIX):
            return TemporaryId(local_id=value)
        return PersistedId(server_id=value)
    return value


class Variant(CamelModel):
    id: VariantId = Field(default_factory=new_temporary_id)
    name: str = ""
    # raw form input, parsed by the validator/normalizer
    price: str = ""
    stock: str = ""
    is_available: bool = True
    sku: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_server_id(cls, data: Any) -> Any:
        # API documents carry "_id"
        if isinstance(data, Mapping) and "_id" in data and "id" not in data:
            data = dict(data)
            data["id"] = data.pop("_id")
        return data

    @field_validator("id", mode="before")
    @classmethod
    def tag_id(cls, v: Any) -> Any:
        return coerce_variant_id(v)

    @field_validator("name", mode="before")
    @classmethod
    def name_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("price", "stock", mode="before")
    @classmethod
    def numeric_text(cls, v: Any) -> str:
        return as_text(v)

    @field_validator("attributes", mode="before")
    @classmethod
    def no_attributes(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("images", mode="before")
    @classmethod
    def no_images(cls, v: Any) -> Any:
        return [] if v is None else v


class QuoteSettings(CamelModel):
    enabled: bool = False
    quote_only: bool = False
    auto_accept: bool = False
    min_price: float | None = None
    max_price: float | None = None
    response_time: str | None = None
    requires_deposit: bool = False
    deposit_percentage: float | None = None
    custom_fields: list[QuoteCustomFieldV1] = Field(default_factory=list)

    @field_validator("min_price", "max_price", "deposit_percentage", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("response_time", mode="before")
    @classmethod
    def blank_response_time(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ListingForm(CamelModel):
    """Base attributes, as typed by the user."""
    # not a Literal: an unknown type must reach the validator, not crash parsing
    type: str = "product"
    name: str = ""
    description: str = ""
    category: str = ""
    price: str = ""
    stock: str = ""
    is_free: bool = False
    is_quote_only: bool = False
    is_available: bool = True

    @field_validator("type", "name", "description", "category", mode="before")
    @classmethod
    def text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("price", "stock", mode="before")
    @classmethod
    def numeric_text(cls, v: Any) -> str:
        return as_text(v)


class ListingDraft(CamelModel):
    """
    Root aggregate of one editing session.

    Serialized shape (also the local draft slot format, minus savedAt):
    {formData, images, variants, variantsEnabled, quoteSettings}
    """
    form: ListingForm = Field(default_factory=ListingForm, alias="formData")
    images: list[str] = Field(default_factory=list)
    variants_enabled: bool = False
    variants: list[Variant] = Field(default_factory=list)
    quote_settings: QuoteSettings | None = None

    @field_validator("images", "variants", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def from_listing(cls, data: Mapping[str, Any] | None) -> "ListingDraft":
        """
        Hydrate a draft from an existing listing (edit mode) or a submission payload.
        """
        if not data:
            return cls()

        quote = data.get("quoteSettings") or None
        variants = [Variant.model_validate(v) for v in data.get("variants") or []]
        is_available = data.get("isAvailable")

        form = ListingForm(
            type=data.get("type") or "product",
            name=data.get("name") or "",
            description=data.get("description") or "",
            category=data.get("category") or "",
            price=data.get("price"),
            stock=data.get("stock"),
            is_free=bool(data.get("isFree")),
            is_quote_only=bool(quote and quote.get("quoteOnly")),
            is_available=True if is_available is None else bool(is_available),
        )
        return cls(
            form=form,
            images=list(data.get("images") or []),
            variants_enabled=len(variants) > 0,
            variants=variants,
            quote_settings=QuoteSettings.model_validate(quote) if quote else None,
        )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def fingerprint(self) -> str:
        # Deterministic JSON string for dirty tracking
        return json.dumps(
            self.to_json_dict(),
            ensure_ascii=False,
            separators=(",", ":"),
            sort_keys=True,
        )


class SavedDraft(ListingDraft):
    """A draft as written to the local slot."""
    saved_at: datetime

    def to_draft(self) -> ListingDraft:
        return ListingDraft.model_validate(self.model_dump(exclude={"saved_at"}))


def to_aliases(model_cls: type[CamelModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case field names to their wire aliases so partial updates merge cleanly."""
    out: dict[str, Any] = {}
    for key, value in data.items():
        field = model_cls.model_fields.get(key)
        out[(field.alias or key) if field is not None else key] = value
    return out
