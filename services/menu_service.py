from datetime import datetime, timezone
from bson import ObjectId
from db.db_operation import MongoConnection
from core.authorization import Action, ensure_allowed
from core.dependencies import CurrentUser
from core.exceptions import NotFoundError
from models.menu import CategoryCreate, CategoryUpdate, MenuItemCreate, MenuItemUpdate, MenuCategoryIn
from services.restaurant_service import fetch_restaurant
from utils.serializers import serialize_doc
from utils.logger import get_logger

logger = get_logger("Menu_Service")

# The menu lives inside the restaurant document. Every change reads the
# document, edits the list in memory and writes the whole list back.

def _sorted(menu: list) -> list:
    return sorted(menu, key=lambda c: c.get("order", 0))

def _find_category(menu: list, category_id: str) -> dict:
    for category in menu:
        if category.get("id") == category_id:
            return category
    raise NotFoundError("Category not found")

def _find_item(category: dict, item_id: str) -> dict:
    for item in category.get("items", []):
        if item.get("id") == item_id:
            return item
    raise NotFoundError("Menu item not found")

async def _owned_menu(db: MongoConnection, caller: CurrentUser, restaurant_id: str):
    restaurant = await fetch_restaurant(db, restaurant_id)
    ensure_allowed(caller, Action.MENU_MANAGE, restaurant=restaurant)
    return restaurant, list(restaurant.get("menu") or [])

async def _save_menu(db: MongoConnection, restaurant: dict, menu: list):
    result = await db.restaurants_collection.update_one(
        {"_id": restaurant["_id"]},
        {"$set": {"menu": menu, "updated_at": datetime.now(timezone.utc)}}
    )
    if result.matched_count == 0:
        raise NotFoundError("Restaurant not found")

async def get_menu(db: MongoConnection, restaurant_id: str) -> list:
    restaurant = await fetch_restaurant(db, restaurant_id)
    return serialize_doc({"menu": _sorted(restaurant.get("menu") or [])})["menu"]

async def replace_menu(db: MongoConnection, caller: CurrentUser, restaurant_id: str, categories: list[MenuCategoryIn]) -> list:
    """Replace the whole menu; ids and created_at of known items are kept."""
    restaurant, current = await _owned_menu(db, caller, restaurant_id)
    created = {
        item["id"]: item.get("created_at")
        for category in current for item in category.get("items", [])
    }
    now = datetime.now(timezone.utc)
    menu = []
    for category in categories:
        items = []
        for item in category.items:
            item_id = item.id or str(ObjectId())
            items.append({
                **item.model_dump(exclude={"id"}),
                "id": item_id,
                "created_at": created.get(item_id) or now,
                "updated_at": now,
            })
        menu.append({
            "id": category.id or str(ObjectId()),
            "name": category.name,
            "description": category.description,
            "order": category.order,
            "items": items,
        })
    await _save_menu(db, restaurant, menu)
    logger.info("Menu replaced", extra={"actor": caller.email, "restaurant_id": restaurant_id, "categories": len(menu)})
    return serialize_doc({"menu": _sorted(menu)})["menu"]

async def create_category(db: MongoConnection, caller: CurrentUser, restaurant_id: str, payload: CategoryCreate) -> dict:
    restaurant, menu = await _owned_menu(db, caller, restaurant_id)
    category = {
        "id": str(ObjectId()),
        "name": payload.name,
        "description": payload.description,
        "order": payload.order if payload.order is not None else len(menu) + 1,
        "items": [],
    }
    menu.append(category)
    await _save_menu(db, restaurant, menu)
    logger.info("Menu category created", extra={"actor": caller.email, "restaurant_id": restaurant_id, "category_id": category["id"]})
    return serialize_doc(category)

async def update_category(db: MongoConnection, caller: CurrentUser, restaurant_id: str, category_id: str, payload: CategoryUpdate) -> dict:
    restaurant, menu = await _owned_menu(db, caller, restaurant_id)
    category = _find_category(menu, category_id)
    category.update({"name": payload.name, "description": payload.description, "order": payload.order})
    await _save_menu(db, restaurant, menu)
    return serialize_doc(category)

async def delete_category(db: MongoConnection, caller: CurrentUser, restaurant_id: str, category_id: str) -> dict:
    restaurant, menu = await _owned_menu(db, caller, restaurant_id)
    _find_category(menu, category_id)
    menu = [c for c in menu if c.get("id") != category_id]
    await _save_menu(db, restaurant, menu)
    logger.info("Menu category deleted", extra={"actor": caller.email, "category_id": category_id})
    return {"message": "deleted", "category_id": category_id}

async def create_item(db: MongoConnection, caller: CurrentUser, restaurant_id: str, category_id: str, payload: MenuItemCreate) -> dict:
    restaurant, menu = await _owned_menu(db, caller, restaurant_id)
    category = _find_category(menu, category_id)
    item = {
        "id": str(ObjectId()),
        **payload.model_dump(),
        "price": float(payload.price),
        "created_at": datetime.now(timezone.utc),
    }
    category.setdefault("items", []).append(item)
    await _save_menu(db, restaurant, menu)
    logger.info("Menu item created", extra={"restaurant_id": restaurant_id, "actor": caller.email, "item_id": item["id"]})
    return serialize_doc(item)

async def update_item(db: MongoConnection, caller: CurrentUser, restaurant_id: str, category_id: str, item_id: str, payload: MenuItemUpdate) -> dict:
    restaurant, menu = await _owned_menu(db, caller, restaurant_id)
    category = _find_category(menu, category_id)
    original = _find_item(category, item_id)
    updated = {
        "id": item_id,
        **payload.model_dump(),
        "price": float(payload.price),
        "created_at": original.get("created_at"),
        "updated_at": datetime.now(timezone.utc),
    }
    category["items"] = [updated if i.get("id") == item_id else i for i in category["items"]]
    await _save_menu(db, restaurant, menu)
    return serialize_doc(updated)

async def delete_item(db: MongoConnection, caller: CurrentUser, restaurant_id: str, category_id: str, item_id: str) -> dict:
    restaurant, menu = await _owned_menu(db, caller, restaurant_id)
    category = _find_category(menu, category_id)
    _find_item(category, item_id)
    category["items"] = [i for i in category["items"] if i.get("id") != item_id]
    await _save_menu(db, restaurant, menu)
    logger.info("Menu item deleted", extra={"actor": caller.email, "item_id": item_id})
    return {"message": "deleted", "item_id": item_id}
