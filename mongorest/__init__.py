# describe the project
"""
mongorest generates REST CRUD endpoints for MongoDB document models on top of FastAPI and motor.

Features:
- One router entry per CRUD action for every registered model.
- Filtering, projection, population, sorting and pagination from the query string.
- Pre/post hooks per action to observe or rewrite queries, bodies and documents.
- Per-action FastAPI dependencies to gate requests (authentication, rate limits).
- Model statics and instance methods exposed as POST endpoints.
- Hidden fields stripped from responses.

Usage:
1. Declare models by subclassing `Document`.
2. Register them on a `MongoRest` registry and configure hooks, middleware and exposed methods.
3. Mount `MongoRest.router()` on your FastAPI app and call `install_exception_handlers(app)`.
"""
__VERSION__ = "0.1.0"


# make the imports for library users easier
from .core.documents import Document
from .core.errors import (
    HookError,
    MapperError,
    MongoRestError,
    NotFoundError,
    RegistrationError,
    ValidationError,
    install_exception_handlers,
)
from .database.mongo import Database
from .handlers.base import ModelWrapper
from .router import MongoRest
from .schemas.core import Action, ExposedMethod, Phase
from .schemas.query import QueryDescriptor, parse_query
