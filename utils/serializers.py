from datetime import datetime
from bson import ObjectId

HIDDEN_FIELDS = {"password"}

def _convert(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value

def serialize_doc(doc: dict | None) -> dict | None:
    """Mongo document -> JSON-friendly dict with `_id` exposed as `id`."""
    if not doc:
        return doc
    d = {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return _convert(d)
