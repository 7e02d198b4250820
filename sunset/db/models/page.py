from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import String, Text, DateTime, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sunset.db.base import Base


class PageStatus(str, Enum):
    """Publication status of a page."""

    PUBLISHED = "published"
    DRAFT = "draft"
    PRIVATE = "private"


class Page(Base):
    """Page model for content management."""

    __tablename__ = "pages"

    # Author (users live in the auth provider, so no foreign key)
    user_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    # Content fields
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="post", server_default="post", index=True)

    # Publication fields
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PageStatus.DRAFT.value, server_default=PageStatus.DRAFT.value, index=True
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Ordering field
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)

    @property
    def is_published(self) -> bool:
        return self.status == PageStatus.PUBLISHED.value
