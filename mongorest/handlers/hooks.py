import logging
from typing import Any, Iterable

from fastapi import HTTPException, Request, Response

from mongorest.core.errors import HookError, MongoRestError, RegistrationError
from mongorest.local_typing import Hook, Middleware
from mongorest.schemas.core import Action, Phase, as_actions

logger = logging.getLogger(__name__)

ActionKey = str | Action | Iterable[str | Action]


def _actions(action: ActionKey) -> list[Action]:
    try:
        return as_actions(action)
    except ValueError as exc:
        raise RegistrationError(f"Unknown action: {exc}") from exc


async def pass_through() -> None:
    return None


class HookTable:
    """
    Ordered callbacks per phase and action.

    Callbacks are called as ``hook(request, response, *payload)``. Payloads are
    passed by reference, so a hook changes a query, body or document by
    mutating it in place.
    """

    def __init__(self) -> None:
        self._hooks: dict[Phase, dict[Action, list[Hook]]] = {Phase.PRE: {}, Phase.POST: {}}

    def add(self, phase: str | Phase, action: ActionKey, callback: Hook) -> None:
        phase = Phase(phase)
        for key in _actions(action):
            self._hooks[phase].setdefault(key, []).append(callback)

    def get(self, phase: str | Phase, action: str | Action) -> list[Hook]:
        hooks = self._hooks[Phase(phase)]
        return [*hooks.get(Action(action), []), *hooks.get(Action.ALL, [])]

    def apply(self, phase: str | Phase, action: str | Action, request: Request, response: Response, *payload: Any) -> None:
        for hook in self.get(phase, action):
            try:
                hook(request, response, *payload)
            except (MongoRestError, HTTPException):
                raise
            except Exception as exc:
                logger.warning("%s %s hook %r failed: %s", Phase(phase).value, Action(action).value, hook, exc)
                raise HookError(str(exc), Action(action).value) from exc


class MiddlewareTable:
    """One FastAPI dependency per action; the last registration for a key wins."""

    def __init__(self) -> None:
        self._middlewares: dict[Action, Middleware] = {}

    def set(self, action: ActionKey, callback: Middleware) -> None:
        for key in _actions(action):
            self._middlewares[key] = callback

    def get(self, action: str | Action) -> Middleware:
        return self._middlewares.get(Action(action)) or self._middlewares.get(Action.ALL) or pass_through
