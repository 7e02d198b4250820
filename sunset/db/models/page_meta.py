"""Per-page key/value metadata."""

from uuid import UUID

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sunset.db.base import Base


class PageMeta(Base):
    """A single metadata value attached to a page."""

    __tablename__ = "page_meta"
    __table_args__ = (UniqueConstraint("page_id", "key", name="uq_page_meta_page_key"),)

    page_id: Mapped[UUID] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
