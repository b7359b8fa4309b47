import logging
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends, Request, Response

from mongorest.core.documents import Document
from mongorest.core.errors import RegistrationError
from mongorest.database.mongo import Database
from mongorest.handlers.base import ModelWrapper
from mongorest.schemas.core import Action

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET, OPTIONS, DELETE, POST, PUT"

Handler = Callable[..., Awaitable[Any]]


def _endpoint(handler: Handler, *args: Any) -> Callable[[Request, Response], Awaitable[Any]]:
    async def endpoint(request: Request, response: Response) -> Any:
        return await handler(*args, request, response)

    return endpoint


async def _options() -> Response:
    return Response(status_code=204, headers={"Allow": ALLOWED_METHODS})


class MongoRest:
    """
    Registry of wrapped models that builds their CRUD routes.

    Example:
        >>> rest = MongoRest(Database())
        >>> rest.add_model("Post").pre("create", set_author).hide("secret")
        >>> app.include_router(rest.router(), prefix="/api")
    """

    def __init__(self, database: Database | None = None) -> None:
        self.database = database or Database()
        self.models: list[ModelWrapper] = []

    def add_model(self, model: str | type[Document]) -> ModelWrapper:
        wrapper = ModelWrapper(model, self.database)
        if self.get_model_wrapper(wrapper.model_name):
            raise RegistrationError("Model already registered")
        self.models.append(wrapper)
        logger.info("registered model %s", wrapper.model_name)
        return wrapper

    def remove_model(self, model_name: str) -> "MongoRest":
        self.models = [wrapper for wrapper in self.models if wrapper.model_name != model_name]
        return self

    def get_model_wrapper(self, model_name: str) -> ModelWrapper | None:
        return next((wrapper for wrapper in self.models if wrapper.model_name == model_name), None)

    def setup_model_routes(self, wrapper: ModelWrapper, router: APIRouter) -> None:
        path = "/" + wrapper.collection_name

        def add(route: str, endpoint: Callable[..., Any], method: str, action: Action) -> None:
            router.add_api_route(
                route,
                endpoint,
                methods=[method],
                dependencies=[Depends(wrapper.get_middleware(action))],
                response_model=None,
            )

        router.add_api_route(path, _options, methods=["OPTIONS"], status_code=204, include_in_schema=False)
        # literal paths go before the /{id} routes that would shadow them
        for method in wrapper.get_statics():
            add(f"{path}/{method.expose_name}", _endpoint(wrapper.call_static, method.name), "POST", Action.STATIC)
        for method in wrapper.get_methods():
            add(f"{path}/{{id}}/{method.expose_name}", _endpoint(wrapper.call_method, method.name), "POST", Action.METHOD)
        add(f"{path}/count", _endpoint(wrapper.count), "GET", Action.COUNT)
        add(f"{path}/{{id}}", _endpoint(wrapper.find_one), "GET", Action.FIND)
        add(path, _endpoint(wrapper.find), "GET", Action.FIND)
        add(path, _endpoint(wrapper.create), "POST", Action.CREATE)
        add(f"{path}/{{id}}", _endpoint(wrapper.update), "POST", Action.UPDATE)
        add(path, _endpoint(wrapper.create), "PUT", Action.CREATE)
        add(f"{path}/{{id}}", _endpoint(wrapper.delete), "DELETE", Action.DELETE)
        logger.debug("routes built for %s at %s", wrapper.model_name, path)

    def init_router(self, router: APIRouter) -> "MongoRest":
        for wrapper in self.models:
            self.setup_model_routes(wrapper, router)
        return self

    def router(self, **router_kwargs: Any) -> APIRouter:
        router = APIRouter(**router_kwargs)
        self.init_router(router)
        return router
