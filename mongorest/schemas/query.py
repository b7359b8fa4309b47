import json
from typing import Any, Mapping

from pydantic import BaseModel, Field

from mongorest.core.errors import ValidationError


class QueryDescriptor(BaseModel):
    filter: dict[str, Any] = Field(default_factory=dict)
    projection: dict[str, Any] | str | None = None
    populate: Any = None
    options: dict[str, Any] = Field(default_factory=dict)


def _to_number(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Query option '{key}' must be a number") from None


def parse_filter(query: Mapping[str, Any]) -> dict[str, Any]:
    raw = query.get("filter")
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def parse_populate(query: Mapping[str, Any]) -> Any:
    raw = query.get("populate")
    if not raw:
        return None
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_projection(query: Mapping[str, Any]) -> dict[str, Any] | str | None:
    raw = query.get("projection") or None
    if not isinstance(raw, str):
        return raw
    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw
    return parsed if isinstance(parsed, dict) else raw


def parse_options(query: Mapping[str, Any]) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if "sort" in query:
        options["sort"] = str(query["sort"])
    if "skip" in query:
        options["skip"] = _to_number("skip", query["skip"] or query.get("start"))
    elif "start" in query:
        options["skip"] = _to_number("start", query["start"])
    if options.get("skip", 0) < 0:
        raise ValidationError("Query option 'skip' must not be negative")
    if "limit" in query:
        options["limit"] = _to_number("limit", query["limit"])
    return options


def parse_query(query: Mapping[str, Any]) -> QueryDescriptor:
    """
    Build a query descriptor from query-string parameters.

    Only options present in ``query`` end up in ``options``, so the mapper sees
    nothing but what was explicitly asked for.
    """
    return QueryDescriptor(
        filter=parse_filter(query),
        projection=parse_projection(query),
        populate=parse_populate(query),
        options=parse_options(query),
    )
