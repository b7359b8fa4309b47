from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from mongorest.core.config import Settings, config


class Database:
    """
    Holds one motor client and hands out databases by name.

    Request handlers receive this context explicitly instead of reaching for a
    process-wide connection, so each request can be routed to a named database.
    """

    def __init__(self, client: Any = None, default_db: str | None = None, settings: Settings = config) -> None:
        self._client = client if client is not None else AsyncIOMotorClient(settings.MONGODB_URL)
        self._default_db = default_db or settings.MONGODB_DB

    def use_db(self, name: str | None = None) -> AsyncIOMotorDatabase:
        return self._client.get_database(name or self._default_db)

    def close(self) -> None:
        self._client.close()
