import inspect
import json
import logging
from contextlib import contextmanager
from typing import Any, ClassVar, Iterator, Mapping, get_args

from bson import ObjectId
from inflection import pluralize
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ConfigDict, PydanticUserError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from mongorest.core.errors import MapperError, RegistrationError, ValidationError
from mongorest.local_typing import (
    AgnosticCollection,
    AgnosticCursor,
    DBDeleteResult,
    DBInsertOneResult,
    Filter,
    Projection,
    SortSpec,
)

logger = logging.getLogger(__name__)

model_registry: dict[str, type["Document"]] = {}
"""
Document classes keyed by class name, filled in as subclasses are declared.
"""

_LAX_CONFIG = ConfigDict(arbitrary_types_allowed=True)


def get_model(name: str) -> type["Document"]:
    try:
        return model_registry[name]
    except KeyError:
        raise RegistrationError(f"Model {name} is not defined") from None


@contextmanager
def driver_errors() -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as exc:
        raise MapperError(str(exc), 409) from exc
    except PyMongoError as exc:
        raise MapperError(str(exc)) from exc


def normalize_projection(projection: Projection) -> dict[str, Any] | None:
    if not projection:
        return None
    if isinstance(projection, str):
        return {field.lstrip("-"): 0 if field.startswith("-") else 1 for field in projection.split()}
    return dict(projection)


def _direction(value: Any) -> int:
    if str(value).lower() in ("-1", "desc", "descending"):
        return DESCENDING
    return ASCENDING


def normalize_sort(sort: Any) -> SortSpec | None:
    """
    Accepts ``"name -age"``, ``{"name": 1, "age": -1}`` (also as JSON text)
    or a list of names / ``[name, direction]`` pairs.
    """
    if not sort:
        return None
    if isinstance(sort, str) and sort.strip()[:1] in ("{", "["):
        try:
            sort = json.loads(sort)
        except ValueError:
            pass
    if isinstance(sort, str):
        return [
            (key.lstrip("-"), DESCENDING if key.startswith("-") else ASCENDING)
            for key in sort.replace(",", " ").split()
        ]
    if isinstance(sort, Mapping):
        return [(key, _direction(value)) for key, value in sort.items()]
    if not isinstance(sort, list):
        raise ValidationError("Invalid sort option")
    spec: SortSpec = []
    for item in sort:
        if isinstance(item, str):
            spec.append((item, ASCENDING))
        elif isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[0], str):
            spec.append((item[0], _direction(item[1])))
        else:
            raise ValidationError("Invalid sort option")
    return spec


def normalize_populate(populate: Any) -> list[dict[str, Any]]:
    if not populate:
        return []
    if isinstance(populate, str):
        return [{"path": path, "select": None} for path in populate.split()]
    if isinstance(populate, Mapping):
        if not populate.get("path"):
            raise ValidationError("Populate options need a path")
        return [{"path": path, "select": populate.get("select")} for path in str(populate["path"]).split()]
    if not isinstance(populate, list):
        raise ValidationError("Invalid populate option")
    options: list[dict[str, Any]] = []
    for item in populate:
        if not isinstance(item, (str, Mapping)):
            raise ValidationError("Invalid populate option")
        options.extend(normalize_populate(item))
    return options


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _object_id(value: Any) -> Any:
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def _admits_object_id(annotation: Any) -> bool:
    """True for ``ObjectId`` and unions such as ``str | ObjectId``."""
    if annotation is ObjectId:
        return True
    return any(_admits_object_id(arg) for arg in get_args(annotation))


class Document(dict):
    """
    Base class for MongoDB document models.

    Subclasses are registered by class name and stored in ``__collection__``,
    the pluralised lower-case class name unless set explicitly. An optional
    pydantic ``__schema__`` validates writes and casts ids and filter values;
    ``__refs__`` maps fields to the model names they reference for populate.

    Classmethods and staticmethods declared on a subclass are its statics,
    plain functions its instance methods.

    Example:
        >>> class Post(Document):
        ...     __refs__ = {"user": "User"}
        ...
        ...     @classmethod
        ...     async def by_user(cls, user):
        ...         return await cls.find({"user": user})
        >>> BoundPost = Post.bind(database.use_db())
        >>> await BoundPost.create({"title": "hello", "user": 1})
    """

    __collection__: ClassVar[str]
    __schema__: ClassVar[type[BaseModel] | None] = None
    __refs__: ClassVar[dict[str, str]] = {}

    _database: ClassVar[AsyncIOMotorDatabase | None] = None
    _model: ClassVar[type["Document"]]

    def __init_subclass__(cls, bound: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if bound:
            return
        if "__collection__" not in cls.__dict__:
            cls.__collection__ = pluralize(cls.__name__.lower())
        cls._model = cls
        model_registry[cls.__name__] = cls

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._is_new = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict.__repr__(self)})"

    @classmethod
    def bind(cls, database: AsyncIOMotorDatabase) -> type["Document"]:
        """Return a subclass of this model whose operations run against ``database``."""
        model = cls._model
        namespace = {"_database": database, "__module__": model.__module__}
        return type(model.__name__, (model,), namespace, bound=True)

    @classmethod
    def collection(cls) -> AgnosticCollection:
        if cls._database is None:
            raise MapperError(f"Model {cls.__name__} is not bound to a database")
        return cls._database.get_collection(cls.__collection__)

    @classmethod
    def _from_db(cls, raw: Mapping[str, Any]) -> "Document":
        doc = cls(raw)
        doc._is_new = False
        return doc

    # Introspection

    @classmethod
    def _declared(cls) -> dict[str, Any]:
        declared: dict[str, Any] = {}
        for klass in reversed(cls._model.__mro__):
            if klass is Document or not issubclass(klass, Document):
                continue
            declared.update({name: attr for name, attr in vars(klass).items() if not name.startswith("_")})
        return declared

    @classmethod
    def statics(cls) -> list[str]:
        return [name for name, attr in cls._declared().items() if isinstance(attr, (classmethod, staticmethod))]

    @classmethod
    def instance_methods(cls) -> list[str]:
        return [name for name, attr in cls._declared().items() if inspect.isfunction(attr)]

    # Casting

    @classmethod
    def _field_type(cls, key: str) -> Any:
        if cls.__schema__ is None:
            return None
        for name, field in cls.__schema__.model_fields.items():
            if key in (name, field.alias):
                return field.annotation
        return None

    @classmethod
    def cast_value(cls, key: str, value: Any) -> Any:
        annotation = cls._field_type(key)
        if annotation is None:
            return _object_id(value) if key == "_id" else value
        try:
            cast = TypeAdapter(annotation, config=_LAX_CONFIG).validate_python(value)
        except (PydanticValidationError, PydanticUserError):
            # e.g. ObjectId, which arbitrary types only accept as instances
            return _object_id(value) if key == "_id" else value
        if key == "_id" and isinstance(cast, str) and _admits_object_id(annotation):
            return _object_id(cast)
        return cast

    @classmethod
    def cast_id(cls, value: Any) -> Any:
        return cls.cast_value("_id", value)

    @classmethod
    def cast_filter(cls, filter: Filter | None) -> Filter:
        return {
            key: cls.cast_value(key, value) if _is_scalar(value) else value
            for key, value in (filter or {}).items()
        }

    @classmethod
    def _validate(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        if cls.__schema__ is None:
            return dict(data)
        try:
            validated = cls.__schema__.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        dumped = validated.model_dump(by_alias=True)
        # unset optional fields stay out of the stored document
        return {key: value for key, value in dumped.items() if key in data or value is not None}

    # Queries

    @classmethod
    async def find_one(
        cls, filter: Filter | None = None, projection: Projection = None, populate: Any = None
    ) -> "Document | None":
        with driver_errors():
            raw = await cls.collection().find_one(cls.cast_filter(filter), normalize_projection(projection))
        if raw is None:
            return None
        doc = cls._from_db(raw)
        await cls.populate([doc], populate)
        return doc

    @classmethod
    async def find(
        cls,
        filter: Filter | None = None,
        projection: Projection = None,
        options: Mapping[str, Any] | None = None,
        populate: Any = None,
    ) -> list["Document"]:
        options = options or {}
        cursor_options: dict[str, Any] = {}
        sort = normalize_sort(options.get("sort"))
        if sort:
            cursor_options["sort"] = sort
        if options.get("skip"):
            cursor_options["skip"] = int(options["skip"])
        if options.get("limit"):
            cursor_options["limit"] = int(options["limit"])
        with driver_errors():
            cursor: AgnosticCursor = cls.collection().find(
                cls.cast_filter(filter), normalize_projection(projection), **cursor_options
            )
            items = await cursor.to_list(length=None)
        docs = [cls._from_db(raw) for raw in items]
        await cls.populate(docs, populate)
        return docs

    @classmethod
    async def count(cls, filter: Filter | None = None) -> int:
        with driver_errors():
            return await cls.collection().count_documents(cls.cast_filter(filter))

    @classmethod
    async def create(cls, data: Mapping[str, Any]) -> "Document":
        return await cls(data).save()

    @classmethod
    async def populate(cls, docs: list["Document"], populate: Any) -> list["Document"]:
        """Replace referenced ids in ``docs`` with the documents they point to."""
        for option in normalize_populate(populate):
            path = option["path"]
            ref = cls.__refs__.get(path)
            if ref is None:
                raise ValidationError(f"Cannot populate path `{path}`, it is not a reference of {cls.__name__}")
            target = get_model(ref).bind(cls._database)
            ids: list[Any] = []
            for doc in docs:
                value = doc.get(path)
                ids.extend(value if isinstance(value, list) else [value])
            ids = [value for value in ids if value is not None]
            if not ids:
                continue
            related = {item["_id"]: item for item in await target.find({"_id": {"$in": ids}}, option["select"])}
            for doc in docs:
                value = doc.get(path)
                if isinstance(value, list):
                    doc[path] = [related[item] for item in value if item in related]
                elif value is not None:
                    doc[path] = related.get(value)
        return docs

    # Instance operations

    async def save(self) -> "Document":
        data = self._validate(self)
        with driver_errors():
            if self._is_new:
                result: DBInsertOneResult = await self.collection().insert_one(data)
                data["_id"] = result.inserted_id
            else:
                await self.collection().replace_one({"_id": self["_id"]}, data)
        self.clear()
        self.update(data)
        self._is_new = False
        logger.debug("saved %s %s", type(self).__name__, self["_id"])
        return self

    async def remove(self) -> "Document":
        with driver_errors():
            result: DBDeleteResult = await self.collection().delete_one({"_id": self["_id"]})
        logger.debug("removed %s %s (%d deleted)", type(self).__name__, self["_id"], result.deleted_count)
        return self
