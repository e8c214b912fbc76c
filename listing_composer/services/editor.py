from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from listing_composer.core.config import settings
from listing_composer.core.errors import (
    DraftError,
    DraftValidationError,
    UploadError,
    VariantLimitReached,
)
from listing_composer.core.telemetry import get_tracer
from listing_composer.schemas.draft import PersistedId, Variant, to_aliases
from listing_composer.services.autosave import AutosaveScheduler
from listing_composer.services.collaborators import (
    GatewayResult,
    ImageFile,
    ImageUploader,
    ListingGateway,
    VariantGateway,
)
from listing_composer.services.draft_store import DraftStore
from listing_composer.services.normalizer import clean_variant
from listing_composer.services.persistence import DraftPersistence
from listing_composer.services.validator import summarize_errors, variant_error
from listing_composer.services.variants import VariantRef

log = logging.getLogger(__name__)
tracer = get_tracer(__name__)


@dataclass(frozen=True)
class SubmitOutcome:
    ok: bool
    listing: dict[str, Any] | None = None
    message: str | None = None
    errors: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None


class ListingEditor:
    """
    One create/edit session: restore decision, uploads, variant calls, submit, teardown.

    Local state lives in the DraftStore; every network call goes through a
    collaborator port so tests can swap in fakes.
    """

    def __init__(
        self,
        store: DraftStore,
        persistence: DraftPersistence,
        listings: ListingGateway,
        *,
        uploader: ImageUploader | None = None,
        variants: VariantGateway | None = None,
        autosave: AutosaveScheduler | None = None,
        listing_id: str | None = None,
    ):
        self.store = store
        self.persistence = persistence
        self.listings = listings
        self.uploader = uploader
        self.variants = variants
        self.autosave = autosave
        self.listing_id = listing_id or store.listing_id
        self._restore_decided = False

        if self.store.mode == "edit" and not self.listing_id:
            raise DraftError("edit mode needs the id of the listing being edited")
        if self.autosave is not None:
            self.autosave.attach()

    def _summary(self, messages: Sequence[str]) -> str:
        return summarize_errors(messages, limit=settings.error_summary_limit)

    # ---------- local draft slot ----------

    def has_pending_restore(self) -> bool:
        """A saved draft is offered once per session."""
        return not self._restore_decided and self.persistence.exists()

    def restore_draft(self) -> bool:
        self._restore_decided = True
        saved = self.persistence.load()
        if saved is None:
            return False
        self.store.restore(saved)
        log.info("draft restored: key=%s saved_at=%s", self.persistence.key, saved.saved_at.isoformat())
        return True

    def discard_draft(self) -> None:
        self._restore_decided = True
        self.persistence.clear()

    def save_draft(self) -> bool:
        if self.autosave is not None:
            return self.autosave.save_now()
        now = datetime.now(timezone.utc)
        ok = self.persistence.save(self.store.draft, now=now)
        if ok:
            self.store.mark_saved(now)
        return ok

    # ---------- images ----------

    async def upload_images(self, files: Sequence[ImageFile], subfolder: str) -> str | None:
        """Upload and append images. Returns an error message, or None on success."""
        if self.uploader is None:
            raise DraftError("no image uploader configured")
        with tracer.start_as_current_span("listing.upload_images") as span:
            span.set_attribute("upload.count", len(files))
            try:
                uploaded = await self.uploader.upload_listing_images(files, subfolder)
            except UploadError as e:
                span.set_attribute("upload.status_code", e.status_code or 0)
                return str(e)
            self.store.add_images([img.url for img in uploaded])
            return None

    # ---------- variants ----------

    def _variant_payload(self, variant: Variant) -> dict[str, Any]:
        return clean_variant(variant, is_product=self.store.is_product).to_payload()

    async def _refetch(self, result: GatewayResult) -> GatewayResult:
        if not result.ok:
            if result.field_errors:
                self.store.merge_server_errors(result.field_errors)
            return result
        fresh = await self.listings.get_listing(self.listing_id)
        if fresh.ok and fresh.listing:
            self.store.rebase(fresh.listing)
        else:
            log.warning("variant saved but refetch failed: listing_id=%s message=%s", self.listing_id, fresh.message)
        return result

    def _remote(self) -> bool:
        return self.store.mode == "edit" and self.variants is not None

    def _rejected(self, variant: Variant, position: int) -> GatewayResult | None:
        msg = variant_error(variant, position, is_product=self.store.is_product)
        if msg is None:
            return None
        self.store.errors["variants"] = msg
        return GatewayResult(ok=False, field_errors={"variants": msg}, message=msg)

    async def add_variant(self, data: Mapping[str, Any]) -> GatewayResult:
        if not self._remote():
            self.store.variants.add(data)
            return GatewayResult(ok=True)
        if not self.store.variants.can_add_more:
            raise VariantLimitReached(f"Maximum {self.store.variants.max_count} variants per listing")
        variant = Variant.model_validate({k: v for k, v in dict(data).items() if k not in ("id", "_id")})
        rejected = self._rejected(variant, len(self.store.variants.items) + 1)
        if rejected is not None:
            return rejected
        with tracer.start_as_current_span("listing.variant.add") as span:
            span.set_attribute("listing.id", self.listing_id)
            result = await self.variants.add_variant(self.listing_id, self._variant_payload(variant))
            return await self._refetch(result)

    async def update_variant(self, ref: VariantRef, data: Mapping[str, Any]) -> GatewayResult:
        current = self.store.variants.find(ref)
        if not self._remote() or not isinstance(current.id, PersistedId):
            self.store.variants.update(ref, data)
            return GatewayResult(ok=True)
        fields = {k: v for k, v in dict(data).items() if k not in ("id", "_id")}
        merged = Variant.model_validate({**current.model_dump(by_alias=True), **to_aliases(Variant, fields)})
        rejected = self._rejected(merged, self.store.variants.items.index(current) + 1)
        if rejected is not None:
            return rejected
        with tracer.start_as_current_span("listing.variant.update") as span:
            span.set_attribute("listing.id", self.listing_id)
            result = await self.variants.update_variant(
                self.listing_id, current.id.server_id, self._variant_payload(merged)
            )
            return await self._refetch(result)

    async def delete_variant(self, ref: VariantRef) -> GatewayResult:
        current = self.store.variants.find(ref)
        if not self._remote() or not isinstance(current.id, PersistedId):
            self.store.variants.remove(ref)
            return GatewayResult(ok=True)
        with tracer.start_as_current_span("listing.variant.delete") as span:
            span.set_attribute("listing.id", self.listing_id)
            result = await self.variants.delete_variant(self.listing_id, current.id.server_id)
            return await self._refetch(result)

    # ---------- submit ----------

    async def submit(self) -> SubmitOutcome:
        mode = self.store.mode
        with tracer.start_as_current_span("listing.submit") as span:
            span.set_attribute("listing.mode", mode)
            try:
                payload = self.store.submission_payload().to_payload()
            except DraftValidationError as e:
                span.set_attribute("listing.local_errors", len(e.errors))
                return SubmitOutcome(ok=False, message=self._summary(list(e.errors.values())), errors=e.errors)

            if mode == "edit":
                result = await self.listings.update_listing(self.listing_id, payload)
            else:
                result = await self.listings.create_listing(payload)
            span.set_attribute("http.status_code", result.status_code or 0)

            if not result.ok:
                if result.field_errors:
                    self.store.merge_server_errors(result.field_errors)
                    message = self._summary(list(result.field_errors.values()))
                else:
                    message = result.message or f"Failed to {'update' if mode == 'edit' else 'create'} listing"
                log.warning("submit failed: mode=%s status=%s message=%s", mode, result.status_code, message)
                return SubmitOutcome(
                    ok=False,
                    message=message,
                    errors=dict(self.store.errors),
                    status_code=result.status_code,
                )

        self.persistence.clear()
        if self.autosave is not None:
            self.autosave.stop()
        if mode == "edit" and result.listing:
            self.store.rebase(result.listing)
        else:
            self.store.reset()
        log.info("submit ok: mode=%s listing_id=%s", mode, (result.listing or {}).get("_id") or self.listing_id)
        return SubmitOutcome(ok=True, listing=result.listing, status_code=result.status_code)

    # ---------- teardown ----------

    async def close(self) -> None:
        if self.autosave is not None:
            await self.autosave.aclose()
