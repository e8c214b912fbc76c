from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from listing_composer.models.base import Base, AuditMixin


class DraftSlot(AuditMixin, Base):
    __tablename__ = "draft_slots"

    # "<prefix>:<user>:<mode>[:<listing>]", see services.persistence.draft_key
    key: Mapped[str] = mapped_column(String(200), primary_key=True)

    # serialized SavedDraft JSON
    value: Mapped[str] = mapped_column(Text, nullable=False)
