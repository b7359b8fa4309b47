import inspect
import json
import logging
from typing import Any, Callable

from fastapi import HTTPException, Request, Response

from mongorest.core.documents import Document, get_model
from mongorest.core.errors import MapperError, MongoRestError, NotFoundError, RegistrationError, ValidationError
from mongorest.database.mongo import Database
from mongorest.handlers.hooks import ActionKey, HookTable, MiddlewareTable
from mongorest.local_typing import Hook, Middleware
from mongorest.schemas.core import Action, ExposedMethod, Phase
from mongorest.schemas.mongo import encode
from mongorest.schemas.query import QueryDescriptor, parse_filter, parse_query

logger = logging.getLogger(__name__)


async def read_body(request: Request, default: Any = None) -> Any:
    raw = await request.body()
    if not raw.strip():
        return default
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Malformed JSON body") from exc


def bind_arguments(func: Callable[..., Any], body: dict[str, Any]) -> tuple[list[Any], dict[str, Any]]:
    """Match the declared parameter names of ``func`` to same-named fields of ``body``."""
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for name, param in inspect.signature(func).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if name in body:
            value = body[name]
        elif param.default is not param.empty:
            continue
        else:
            value = None
        if param.kind is param.POSITIONAL_ONLY:
            args.append(value)
        else:
            kwargs[name] = value
    return args, kwargs


async def invoke(func: Callable[..., Any], body: dict[str, Any]) -> Any:
    args, kwargs = bind_arguments(func, body)
    try:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
    except (MongoRestError, HTTPException):
        raise
    except Exception as exc:
        raise MapperError(str(exc)) from exc
    return result


class ModelWrapper:
    def __init__(self, model: str | type[Document], database: Database | None = None) -> None:
        self._model_class = None if isinstance(model, str) else model
        self.model_name = model if isinstance(model, str) else model.__name__
        self.database = database or Database()
        self.hooks = HookTable()
        self.middlewares = MiddlewareTable()
        self.methods: list[ExposedMethod] = []
        self.statics: list[ExposedMethod] = []
        self.hidden: list[str] = []

    def model_class(self) -> type[Document]:
        return self._model_class or get_model(self.model_name)

    def model(self, params: dict[str, Any] | None = None) -> type[Document]:
        """Return the model bound to the database named in ``params``, else to the default one."""
        dbname = (params or {}).get("db")
        return self.model_class().bind(self.database.use_db(dbname))

    @property
    def collection_name(self) -> str:
        return self.model_class().__collection__

    # Hooks and middleware

    def add_hook(self, phase: str | Phase, action: ActionKey, callback: Hook) -> None:
        self.hooks.add(phase, action, callback)

    def apply_hooks(self, phase: str | Phase, action: str | Action, request: Request, response: Response, *payload: Any) -> None:
        self.hooks.apply(phase, action, request, response, *payload)

    def set_middleware(self, action: ActionKey, callback: Middleware) -> None:
        self.middlewares.set(action, callback)

    def get_middleware(self, action: str | Action) -> Middleware:
        return self.middlewares.get(action)

    def pre(self, action: ActionKey, callback: Hook) -> "ModelWrapper":
        self.add_hook(Phase.PRE, action, callback)
        return self

    def post(self, action: ActionKey, callback: Hook) -> "ModelWrapper":
        self.add_hook(Phase.POST, action, callback)
        return self

    def middleware(self, action: ActionKey, callback: Middleware | None = None) -> "ModelWrapper | Middleware":
        if callback is None:
            return self.get_middleware(action)
        self.set_middleware(action, callback)
        return self

    def hide(self, fields: str | list[str]) -> "ModelWrapper":
        """
        Strip field(s) from response documents.

        Hidden fields can still be written through create and update.
        """
        self.hidden.extend([fields] if isinstance(fields, str) else fields)
        return self

    # Exposed methods

    @staticmethod
    def _put(methods: list[ExposedMethod], method: ExposedMethod) -> None:
        for index, exposed in enumerate(methods):
            if exposed.expose_name == method.expose_name:
                methods[index] = method
                return
        methods.append(method)

    def expose_method(self, method: str | dict[str, Any] | ExposedMethod) -> None:
        method = ExposedMethod.coerce(method)
        if method.name not in self.model_class().instance_methods():
            raise RegistrationError(f"Instance method {method.name} is not defined for model {self.model_name}")
        self._put(self.methods, method)
        logger.info("exposed %s.%s as %s", self.model_name, method.name, method.expose_name)

    def expose_static(self, method: str | dict[str, Any] | ExposedMethod) -> None:
        method = ExposedMethod.coerce(method)
        if method.name not in self.model_class().statics():
            raise RegistrationError(f"Static method {method.name} is not defined for model {self.model_name}")
        self._put(self.statics, method)
        logger.info("exposed static %s.%s as %s", self.model_name, method.name, method.expose_name)

    def method(self, method: str | dict[str, Any] | ExposedMethod) -> "ModelWrapper":
        self.expose_method(method)
        return self

    def static(self, method: str | dict[str, Any] | ExposedMethod) -> "ModelWrapper":
        self.expose_static(method)
        return self

    def get_methods(self) -> list[ExposedMethod]:
        return self.methods

    def get_statics(self) -> list[ExposedMethod]:
        return self.statics

    # Request handling

    async def find_by_id(self, id: Any, model: type[Document]) -> Document:
        doc = await model.find_one({"_id": id})
        if doc is None:
            raise NotFoundError()
        return doc

    def init_model(self, request: Request, response: Response) -> type[Document]:
        params: dict[str, Any] = {}
        self.apply_hooks(Phase.PRE, Action.INIT, request, response, params)
        model = self.model(params)
        self.apply_hooks(Phase.POST, Action.INIT, request, response, model)
        return model

    def _hide(self, data: Any) -> Any:
        if data and self.hidden:
            for doc in data if isinstance(data, list) else [data]:
                for field in self.hidden:
                    doc.pop(field, None)
        return data

    @staticmethod
    async def _read_object(request: Request, default: Any = None) -> dict[str, Any]:
        body = await read_body(request, default)
        if not isinstance(body, dict):
            raise ValidationError("Only objects allowed")
        request.state.body = body
        return body

    async def create(self, request: Request, response: Response) -> Any:
        await self._read_object(request)
        model = self.init_model(request, response)
        self.apply_hooks(Phase.PRE, Action.CREATE, request, response)
        doc = await model.create(request.state.body)
        self.apply_hooks(Phase.POST, Action.CREATE, request, response, doc)
        return encode(self._hide(doc))

    async def find_one(self, request: Request, response: Response) -> Any:
        model = self.init_model(request, response)
        query = parse_query(request.query_params)
        query.filter["_id"] = request.path_params["id"]
        self.apply_hooks(Phase.PRE, Action.FIND_ONE, request, response, query)
        doc = await model.find_one(query.filter, query.projection, query.populate)
        if doc is None:
            raise NotFoundError()
        self.apply_hooks(Phase.POST, Action.FIND_ONE, request, response, doc)
        return encode(self._hide(doc))

    async def find(self, request: Request, response: Response) -> Any:
        model = self.init_model(request, response)
        query = parse_query(request.query_params)
        self.apply_hooks(Phase.PRE, Action.FIND, request, response, query)
        docs = await model.find(query.filter, query.projection, query.options, query.populate)
        self.apply_hooks(Phase.POST, Action.FIND, request, response, docs)
        return encode(self._hide(docs))

    async def update(self, request: Request, response: Response) -> Any:
        await self._read_object(request, {})
        model = self.init_model(request, response)
        doc = await self.find_by_id(request.path_params["id"], model)
        self.apply_hooks(Phase.PRE, Action.UPDATE, request, response, doc)
        # _id is immutable once stored
        doc.update({key: value for key, value in request.state.body.items() if key != "_id"})
        doc = await doc.save()
        self.apply_hooks(Phase.POST, Action.UPDATE, request, response, doc)
        return encode(self._hide(doc))

    async def delete(self, request: Request, response: Response) -> Any:
        model = self.init_model(request, response)
        doc = await self.find_by_id(request.path_params["id"], model)
        self.apply_hooks(Phase.PRE, Action.DELETE, request, response, doc)
        doc = await doc.remove()
        self.apply_hooks(Phase.POST, Action.DELETE, request, response, doc)
        return encode(self._hide(doc))

    async def count(self, request: Request, response: Response) -> Any:
        model = self.init_model(request, response)
        params = dict(request.query_params)
        # paging options do not apply to a count
        query = QueryDescriptor(filter=parse_filter(params) if "filter" in params else params)
        self.apply_hooks(Phase.PRE, Action.COUNT, request, response, query)
        count = await model.count(query.filter)
        self.apply_hooks(Phase.POST, Action.COUNT, request, response, count)
        return {"count": count}

    async def call_method(self, method: str, request: Request, response: Response) -> Any:
        await self._read_object(request, {})
        model = self.init_model(request, response)
        doc = await self.find_by_id(request.path_params["id"], model)
        self.apply_hooks(Phase.PRE, Action.METHOD, request, response, method)
        func = getattr(doc, method, None)
        if not callable(func):
            raise MapperError(f"Instance method {method} is not defined for model {self.model_name}")
        result = await invoke(func, request.state.body)
        self.apply_hooks(Phase.POST, Action.METHOD, request, response, method, result)
        return encode(result)

    async def call_static(self, method: str, request: Request, response: Response) -> Any:
        await self._read_object(request, {})
        model = self.init_model(request, response)
        self.apply_hooks(Phase.PRE, Action.STATIC, request, response, method)
        func = getattr(model, method, None)
        if not callable(func):
            raise MapperError(f"Static method {method} is not defined for model {self.model_name}")
        result = await invoke(func, request.state.body)
        self.apply_hooks(Phase.POST, Action.STATIC, request, response, method, result)
        return encode(result)
