"""example usage"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from mongorest import Database, Document, MongoRest, install_exception_handlers
from mongorest.core.log import configure_logging


class UserSchema(BaseModel):
    id: int = Field(alias="_id")
    name: str
    age: int | None = None
    password: str | None = None


class User(Document):
    __schema__ = UserSchema

    @classmethod
    async def adults(cls, min_age=18):
        return await cls.find({"age": {"$gte": min_age}})

    def greet(self, greeting):
        return {"message": f"{greeting}, {self['name']}"}


def require_token(request: Request) -> None:
    if request.headers.get("Authorization") != "Bearer secret":
        raise HTTPException(status_code=401, detail="Unauthorized")


def tenant_database(request: Request, _response, params: dict) -> None:
    tenant = request.headers.get("X-Tenant")
    if tenant:
        params["db"] = tenant


database = Database()
rest = MongoRest(database)
(
    rest.add_model(User)
    .pre("init", tenant_database)
    .middleware(["create", "update", "delete"], require_token)
    .static("adults")
    .method("greet")
    .hide("password")
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    yield
    database.close()


tapp = FastAPI(lifespan=lifespan)
tapp.include_router(rest.router(), prefix="/api")
install_exception_handlers(tapp)


@tapp.get("/")
async def root():
    return {"message": "Hello World"}


if __name__ == "__main__":
    uvicorn.run(tapp, host="localhost", port=8000)
