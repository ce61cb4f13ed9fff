"""
Default catalog and coupons, loaded into an empty store at startup.
"""

import logging
from typing import Any, Dict, List

from catalog import CATEGORY, MENU_ITEM
from coupons import COUPON
from database import RecordStore

logger = logging.getLogger(__name__)

COUPON_COUNT = 100

CATEGORIES: List[Dict[str, Any]] = [
    {"id": "1", "name": "Appetizers", "description": "Start your meal with our delicious appetizers", "image": ""},
    {"id": "2", "name": "Pasta", "description": "Traditional Italian pasta dishes", "image": ""},
    {"id": "3", "name": "Pizza", "description": "Wood-fired pizzas with authentic flavors", "image": ""},
    {"id": "4", "name": "Main Courses", "description": "Hearty main dishes to satisfy your appetite", "image": ""},
    {"id": "5", "name": "Desserts", "description": "Sweet endings to your perfect meal", "image": ""},
]

MENU_ITEMS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Spaghetti Carbonara",
        "description": "Classic Roman pasta with eggs, pecorino cheese, pancetta, and black pepper",
        "price": "18.50",
        "image": "https://images.unsplash.com/photo-1621996346565-e3dbc353d2e5",
        "category_id": "2",
        "ingredients": ["Spaghetti pasta", "eggs", "Pecorino Romano cheese", "Guanciale", "black pepper", "salt"],
        "recipe": "Cook spaghetti al dente, crisp the guanciale, then toss off the heat with eggs and cheese.",
        "is_available": True,
        "allergens": ["eggs", "dairy", "gluten"],
    },
    {
        "id": "2",
        "name": "Margherita Pizza",
        "description": "Traditional Neapolitan pizza with San Marzano tomatoes, fresh mozzarella, and basil",
        "price": "16.00",
        "image": "https://images.unsplash.com/photo-1574071318508-1cdbab80d002",
        "category_id": "3",
        "ingredients": ["Pizza dough", "San Marzano tomatoes", "fresh mozzarella", "fresh basil", "olive oil", "sea salt"],
        "recipe": "Stretch the dough, add sauce and mozzarella, bake 90 seconds in a wood-fired oven.",
        "is_available": True,
        "allergens": ["gluten", "dairy"],
    },
    {
        "id": "3",
        "name": "Bruschetta al Pomodoro",
        "description": "Toasted bread topped with fresh tomatoes, garlic, basil, and extra virgin olive oil",
        "price": "12.00",
        "image": "https://images.unsplash.com/photo-1572441713132-9b0d4b2c5ed9",
        "category_id": "1",
        "ingredients": ["Ciabatta bread", "fresh tomatoes", "garlic", "fresh basil", "olive oil", "balsamic vinegar"],
        "recipe": "Toast the bread, rub with garlic, top with tomatoes dressed in basil, oil and balsamic.",
        "is_available": True,
        "allergens": ["gluten"],
    },
    {
        "id": "4",
        "name": "Tiramisu",
        "description": "Classic Italian dessert with espresso-soaked ladyfingers and mascarpone cream",
        "price": "9.50",
        "image": "https://images.unsplash.com/photo-1571877227200-a0d98ea607e9",
        "category_id": "5",
        "ingredients": ["Ladyfinger cookies", "mascarpone cheese", "eggs", "sugar", "espresso", "cocoa powder"],
        "recipe": "Layer espresso-dipped ladyfingers with mascarpone cream, chill overnight, dust with cocoa.",
        "is_available": True,
        "allergens": ["eggs", "dairy", "gluten", "alcohol"],
    },
]


def coupon_codes(count: int = COUPON_COUNT) -> List[str]:
    return [f"TASTE{i:03d}" for i in range(1, count + 1)]


def seed_store(store: RecordStore) -> bool:
    """Insert the defaults unless the catalog already has data."""
    if store.count_documents(MENU_ITEM) or store.count_documents(CATEGORY):
        logger.info("Catalog already populated, skipping seed data")
        return False
    for category in CATEGORIES:
        store.create_document(CATEGORY, category)
    for item in MENU_ITEMS:
        store.create_document(MENU_ITEM, item)
    if not store.count_documents(COUPON):
        for code in coupon_codes():
            store.create_document(COUPON, {"code": code, "is_used": False})
    logger.info("Seeded %d categories, %d menu items", len(CATEGORIES), len(MENU_ITEMS))
    return True
