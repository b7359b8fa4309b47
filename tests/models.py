import asyncio

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from mongorest import Document


class ItemSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(alias="_id")
    name: str | None = None
    tags: list[str] | None = None


class Item(Document):
    __schema__ = ItemSchema

    @classmethod
    def greeting(cls, p1, p2):
        return {"message": f"{p1} {p2}"}

    @classmethod
    def salute(cls, p1, p2):
        return {"message": f"salute: {p1} {p2}"}

    @staticmethod
    async def slow_echo(value, suffix="!"):
        await asyncio.sleep(0)
        return {"echo": f"{value}{suffix}"}

    @classmethod
    async def names(cls):
        return [doc["name"] for doc in await cls.find({}, "name", {"sort": "name"})]

    @classmethod
    def explode(cls):
        raise RuntimeError("boom")

    async def rename(self, name):
        self["name"] = name
        return await self.save()

    def describe(self, prefix):
        return {"description": f"{prefix} {self['name']}"}


class AuthorSchema(BaseModel):
    id: int = Field(alias="_id")
    name: str
    email: str | None = None


class Author(Document):
    __schema__ = AuthorSchema


class PostSchema(BaseModel):
    id: int = Field(alias="_id")
    title: str | None = None
    content: str | None = None
    user: int | None = None
    field1: str | None = None
    field2: str | None = None


class Post(Document):
    __schema__ = PostSchema
    __refs__ = {"user": "Author"}


class Note(Document):
    __collection__ = "notebook"


class GadgetSchema(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: ObjectId | None = Field(default=None, alias="_id")
    name: str


class Gadget(Document):
    __schema__ = GadgetSchema


class WidgetSchema(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str | ObjectId | None = Field(default=None, alias="_id")


class Widget(Document):
    __schema__ = WidgetSchema
