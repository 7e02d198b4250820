from sunset.db.models.menu_item import MenuItem
from sunset.db.models.page import Page, PageStatus
from sunset.db.models.page_meta import PageMeta
from sunset.db.models.setting import Setting

__all__ = ["MenuItem", "Page", "PageMeta", "PageStatus", "Setting"]
