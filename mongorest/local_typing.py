from typing import Any, Callable, Mapping

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorCursor
from pymongo.results import DeleteResult, InsertOneResult

AgnosticCollection = AsyncIOMotorCollection
AgnosticCursor = AsyncIOMotorCursor
DBDeleteResult = DeleteResult
DBInsertOneResult = InsertOneResult

Filter = dict[str, Any]
Projection = Mapping[str, Any] | str | None
SortSpec = list[tuple[str, int]]

# (request, response, *payload) -> None
Hook = Callable[..., Any]
# a FastAPI dependency callable
Middleware = Callable[..., Any]
