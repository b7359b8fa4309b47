from typing import Any

from bson import ObjectId
from fastapi.encoders import jsonable_encoder

ENCODERS: dict[Any, Any] = {ObjectId: str}


def encode(data: Any) -> Any:
    """Turn documents (or anything holding them) into JSON-compatible data, ObjectIds as strings."""
    return jsonable_encoder(data, custom_encoder=ENCODERS)
