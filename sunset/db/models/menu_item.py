"""Navigation menu entries."""

from uuid import UUID

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sunset.db.base import Base


class MenuItem(Base):
    """An entry in a named navigation menu.

    Entries pointing at content carry the target's type and id so menu
    filters can drop them when the target becomes hidden. Custom links
    leave both empty.
    """

    __tablename__ = "menu_items"

    menu: Mapped[str] = mapped_column(String(100), nullable=False, default="primary", index=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    object_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    object_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
