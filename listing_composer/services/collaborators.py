"""
Ports to the marketplace collaborators the editor depends on, plus their
httpx implementations.

Listing and variant calls return GatewayResult and never raise; image
uploads raise UploadError with a message fit for display.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from pydantic import BaseModel, ValidationError

from listing_composer.core.errors import UploadError
from listing_composer.services.http_client import HttpResult, MarketplaceHttpClient

log = logging.getLogger(__name__)

UPLOAD_TOO_LARGE_MESSAGE = (
    "One or more files are too large. Maximum file size is 5MB per image. "
    "Please compress your images and try again."
)
UPLOAD_INVALID_MESSAGE = "Invalid files. Please check file types and sizes."
UPLOAD_FAILED_MESSAGE = "Failed to upload images"
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


@dataclass(frozen=True)
class ImageFile:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


class ImageRef(BaseModel):
    url: str


class UploadedImage(BaseModel):
    main: ImageRef
    thumbnail: ImageRef | None = None

    @property
    def url(self) -> str:
        return self.main.url


@dataclass(frozen=True)
class GatewayResult:
    ok: bool
    listing: dict[str, Any] | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    message: str | None = None
    status_code: int | None = None


class ImageUploader(Protocol):
    async def upload_listing_images(self, files: Sequence[ImageFile], subfolder: str) -> list[UploadedImage]:
        ...


class VariantGateway(Protocol):
    async def add_variant(self, listing_id: str, variant: Mapping[str, Any]) -> GatewayResult:
        ...

    async def update_variant(self, listing_id: str, variant_id: str, variant: Mapping[str, Any]) -> GatewayResult:
        ...

    async def delete_variant(self, listing_id: str, variant_id: str) -> GatewayResult:
        ...


class ListingGateway(Protocol):
    async def create_listing(self, payload: Mapping[str, Any]) -> GatewayResult:
        ...

    async def update_listing(self, listing_id: str, payload: Mapping[str, Any]) -> GatewayResult:
        ...

    async def get_listing(self, listing_id: str) -> GatewayResult:
        ...


def parse_field_errors(detail: Mapping[str, Any]) -> dict[str, str]:
    """
    Server validation errors -> {field: message}.

    Body shape: {code: "VALIDATION_ERROR", errors: [{field, message, value, location}]}.
    The first message per field wins.
    """
    out: dict[str, str] = {}
    if detail.get("code") != "VALIDATION_ERROR":
        return out
    for item in detail.get("errors") or []:
        if not isinstance(item, Mapping):
            continue
        name = item.get("field")
        message = item.get("message")
        if name and message:
            out.setdefault(str(name), str(message))
    return out


def _listing_of(result: HttpResult) -> dict[str, Any] | None:
    data = result.data
    for key in ("listing", "updatedListing"):
        if isinstance(data.get(key), dict):
            return data[key]
    return data or None


def to_gateway_result(result: HttpResult) -> GatewayResult:
    if result.ok:
        return GatewayResult(ok=True, listing=_listing_of(result), status_code=result.status_code)
    if result.status_code is None:
        return GatewayResult(ok=False, message=NETWORK_ERROR_MESSAGE)
    return GatewayResult(
        ok=False,
        field_errors=parse_field_errors(result.detail),
        message=result.error_message,
        status_code=result.status_code,
    )


class ListingApiClient:
    def __init__(self, http: MarketplaceHttpClient):
        self.http = http

    async def create_listing(self, payload: Mapping[str, Any]) -> GatewayResult:
        return to_gateway_result(await self.http.post_json("/listings", json_body=dict(payload)))

    async def update_listing(self, listing_id: str, payload: Mapping[str, Any]) -> GatewayResult:
        return to_gateway_result(await self.http.patch_json(f"/listings/{listing_id}", json_body=dict(payload)))

    async def get_listing(self, listing_id: str) -> GatewayResult:
        return to_gateway_result(await self.http.get_json(f"/listings/{listing_id}"))


class VariantApiClient:
    def __init__(self, http: MarketplaceHttpClient):
        self.http = http

    async def add_variant(self, listing_id: str, variant: Mapping[str, Any]) -> GatewayResult:
        return to_gateway_result(
            await self.http.post_json(f"/listings/{listing_id}/variants", json_body=dict(variant))
        )

    async def update_variant(self, listing_id: str, variant_id: str, variant: Mapping[str, Any]) -> GatewayResult:
        return to_gateway_result(
            await self.http.put_json(f"/listings/{listing_id}/variants/{variant_id}", json_body=dict(variant))
        )

    async def delete_variant(self, listing_id: str, variant_id: str) -> GatewayResult:
        return to_gateway_result(await self.http.delete(f"/listings/{listing_id}/variants/{variant_id}"))


def _upload_error_message(result: HttpResult) -> str:
    if result.status_code is None:
        return NETWORK_ERROR_MESSAGE
    if result.status_code == 413:
        return UPLOAD_TOO_LARGE_MESSAGE
    server_message = result.detail.get("message")
    if result.status_code == 400:
        return server_message or UPLOAD_INVALID_MESSAGE
    return server_message or UPLOAD_FAILED_MESSAGE


class ImageUploadClient:
    def __init__(self, http: MarketplaceHttpClient):
        self.http = http

    async def upload_listing_images(self, files: Sequence[ImageFile], subfolder: str) -> list[UploadedImage]:
        if not files:
            return []
        result = await self.http.post_multipart(
            "/upload/listing",
            files=[("images", (f.filename, f.content, f.content_type)) for f in files],
            data={"subfolder": subfolder},
        )
        if not result.ok:
            message = _upload_error_message(result)
            log.warning("upload failed: status=%s message=%s", result.status_code, message)
            raise UploadError(message, status_code=result.status_code)

        try:
            return [UploadedImage.model_validate(r) for r in result.data.get("images") or []]
        except ValidationError as e:
            raise UploadError(UPLOAD_FAILED_MESSAGE, status_code=result.status_code) from e
