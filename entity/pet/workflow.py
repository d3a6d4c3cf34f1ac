from datetime import datetime, timezone

from common.config.conts import PET_AVAILABLE, PET_STATUSES

SEARCH_FIELDS = ("type", "pet_name", "color", "breed", "training_level", "age")


async def normalize_pet(entity: dict):
    # form fields left empty arrive as None and are not stored
    for key in [k for k, v in entity.items() if v is None]:
        del entity[key]
    if isinstance(entity.get("pet_name"), str):
        entity["pet_name"] = entity["pet_name"].strip()
    entity.setdefault("status", PET_AVAILABLE)
    now = datetime.now(timezone.utc).isoformat()
    if "created_at" not in entity:
        entity["created_at"] = now
    entity["updated_at"] = now
    return entity


def validate_pet_has_name(entity: dict) -> bool:
    return bool(entity.get("pet_name") and isinstance(entity["pet_name"], str) and entity["pet_name"].strip())


def validate_pet_status(entity: dict) -> bool:
    return entity.get("status", PET_AVAILABLE) in PET_STATUSES


def matches_search(entity: dict, term: str) -> bool:
    needle = term.lower().strip()
    if not needle:
        return True
    for field in SEARCH_FIELDS:
        value = entity.get(field)
        if value is not None and needle in str(value).lower():
            return True
    return False
