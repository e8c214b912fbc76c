from listing_composer.models.base import Base  # noqa: F401

from listing_composer.models.draft_slot import DraftSlot  # noqa: F401
