from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, model_validator


class Phase(str, Enum):
    PRE = "pre"
    POST = "post"


class Action(str, Enum):
    INIT = "init"
    CREATE = "create"
    FIND = "find"
    FIND_ONE = "findOne"
    UPDATE = "update"
    DELETE = "delete"
    COUNT = "count"
    METHOD = "method"
    STATIC = "static"
    # registrable, but not dispatched by any built-in handler
    GET = "get"
    QUERY = "query"
    ALL = "all"


def as_actions(action: "str | Action | Iterable[str | Action]") -> list[Action]:
    if isinstance(action, (str, Action)):
        return [Action(action)]
    return [Action(item) for item in action]


class ExposedMethod(BaseModel):
    name: str
    expose_name: str | None = None

    @model_validator(mode="after")
    def default_expose_name(self) -> "ExposedMethod":
        if not self.expose_name:
            self.expose_name = self.name
        return self

    @classmethod
    def coerce(cls, method: "str | dict[str, Any] | ExposedMethod") -> "ExposedMethod":
        match method:
            case ExposedMethod():
                return method
            case str():
                return cls(name=method)
            case dict():
                return cls.model_validate(method)
            case _:
                raise TypeError(f"Cannot expose {method!r}")
