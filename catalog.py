import logging
from typing import List, Optional

from database import RecordStore
from errors import CategoryNotFound, MenuItemNotFound
from schemas import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
)

logger = logging.getLogger(__name__)

CATEGORY = "category"
MENU_ITEM = "menuitem"

# Fields a stored record must always carry; an explicit null leaves them as is.
CATEGORY_REQUIRED = frozenset({"name"})
MENU_ITEM_REQUIRED = frozenset({"name", "description", "price", "image", "is_available"})


def _changes(payload, required: frozenset) -> dict:
    return {
        k: v
        for k, v in payload.model_dump(mode="json", exclude_unset=True).items()
        if v is not None or k not in required
    }


class CatalogStore:
    """Categories and menu items.

    Category deletion never cascades. Items pointing at a missing category are
    read back with ``category_id=None``.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # Categories

    def list_categories(self) -> List[Category]:
        docs = self.store.get_documents(CATEGORY, sort=[("name", 1)])
        return [Category(**d) for d in docs]

    def get_category(self, category_id: str) -> Category:
        doc = self.store.get_document_by_id(CATEGORY, category_id)
        if not doc:
            raise CategoryNotFound(category_id)
        return Category(**doc)

    def create_category(self, payload: CategoryCreate) -> Category:
        if payload.id and self.store.get_document_by_id(CATEGORY, payload.id):
            return self.update_category(payload.id, CategoryUpdate(**payload.model_dump(exclude={"id"})))
        doc = self.store.create_document(CATEGORY, payload.model_dump(mode="json"))
        logger.info("Category %s created", doc["id"])
        return Category(**doc)

    def update_category(self, category_id: str, payload: CategoryUpdate) -> Category:
        changes = _changes(payload, CATEGORY_REQUIRED)
        doc = self.store.update_document(CATEGORY, category_id, changes)
        if not doc:
            raise CategoryNotFound(category_id)
        return Category(**doc)

    def delete_category(self, category_id: str) -> bool:
        deleted = self.store.delete_document(CATEGORY, category_id)
        if deleted:
            logger.info("Category %s deleted, its items are now uncategorized", category_id)
        return deleted

    # Menu items

    def _to_menu_item(self, doc: dict, known_categories: Optional[set] = None) -> MenuItem:
        category_id = doc.get("category_id")
        if category_id:
            if known_categories is not None:
                exists = category_id in known_categories
            else:
                exists = self.store.get_document_by_id(CATEGORY, category_id) is not None
            if not exists:
                doc["category_id"] = None
        return MenuItem(**doc)

    def list_menu_items(self, category_id: Optional[str] = None, only_available: bool = True) -> List[MenuItem]:
        filt = {}
        if only_available:
            filt["is_available"] = True
        if category_id:
            filt["category_id"] = category_id
        docs = self.store.get_documents(MENU_ITEM, filt, sort=[("name", 1)])
        known = {c.id for c in self.list_categories()}
        return [self._to_menu_item(d, known) for d in docs]

    def get_menu_item(self, item_id: str) -> MenuItem:
        doc = self.store.get_document_by_id(MENU_ITEM, item_id)
        if not doc:
            raise MenuItemNotFound(item_id)
        return self._to_menu_item(doc)

    def create_menu_item(self, payload: MenuItemCreate) -> MenuItem:
        if payload.id and self.store.get_document_by_id(MENU_ITEM, payload.id):
            return self.update_menu_item(payload.id, MenuItemUpdate(**payload.model_dump(exclude={"id"})))
        doc = self.store.create_document(MENU_ITEM, payload.model_dump(mode="json"))
        logger.info("Menu item %s (%s) created", doc["id"], doc["name"])
        return self._to_menu_item(doc)

    def update_menu_item(self, item_id: str, payload: MenuItemUpdate) -> MenuItem:
        changes = _changes(payload, MENU_ITEM_REQUIRED)
        doc = self.store.update_document(MENU_ITEM, item_id, changes)
        if not doc:
            raise MenuItemNotFound(item_id)
        return self._to_menu_item(doc)

    def delete_menu_item(self, item_id: str) -> bool:
        return self.store.delete_document(MENU_ITEM, item_id)
