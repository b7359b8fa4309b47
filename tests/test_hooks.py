# ==============================================================================
# HOOK AND MIDDLEWARE REGISTRY TESTS
# ==============================================================================

import pytest
from fastapi import HTTPException

from mongorest import Action, HookError, NotFoundError, Phase, RegistrationError
from mongorest.handlers.hooks import HookTable, MiddlewareTable, pass_through


class TestHookTable:
    """Tests for hook registration and dispatch."""

    def test_action_hooks_run_before_catch_all(self):
        table = HookTable()
        calls = []
        table.add("post", "all", lambda req, res, data: calls.append(("all", data)))
        table.add("post", "find", lambda req, res, data: calls.append(("find", data)))

        table.apply(Phase.POST, Action.FIND, None, None, "docs")

        assert calls == [("find", "docs"), ("all", "docs")]

    def test_hooks_run_in_registration_order(self):
        table = HookTable()
        calls = []
        for index in range(3):
            table.add(Phase.PRE, Action.CREATE, lambda req, res, index=index: calls.append(index))

        table.apply("pre", "create", None, None)

        assert calls == [0, 1, 2]

    def test_fan_out_over_actions(self):
        table = HookTable()
        hook = lambda req, res, data: None  # noqa: E731
        table.add("post", ["get", "query"], hook)

        assert table.get("post", "get") == [hook]
        assert table.get("post", "query") == [hook]
        assert table.get("post", "findOne") == []

    def test_phases_are_separate(self):
        table = HookTable()
        table.add("pre", "find", lambda req, res, query: None)
        assert table.get("post", "find") == []

    def test_payload_mutation_is_visible(self):
        table = HookTable()
        table.add("pre", "find", lambda req, res, query: query.update(user=1))
        table.add("pre", "find", lambda req, res, query: query.update(seen=query["user"]))
        query = {}

        table.apply("pre", "find", None, None, query)

        assert query == {"user": 1, "seen": 1}

    def test_exception_aborts_chain_as_hook_error(self):
        table = HookTable()
        calls = []

        def fail(req, res, doc):
            raise ValueError("Oops!")

        table.add("pre", "delete", fail)
        table.add("pre", "delete", lambda req, res, doc: calls.append(doc))

        with pytest.raises(HookError) as exc_info:
            table.apply("pre", "delete", None, None, {})

        assert exc_info.value.message == "Oops!"
        assert exc_info.value.action == "delete"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert calls == []

    @pytest.mark.parametrize("error", [HTTPException(status_code=403, detail="no"), NotFoundError()])
    def test_http_and_mongorest_errors_pass_through(self, error):
        table = HookTable()

        def deny(req, res):
            raise error

        table.add("pre", "create", deny)
        with pytest.raises(type(error)):
            table.apply("pre", "create", None, None)

    def test_unknown_action_rejected(self):
        with pytest.raises(RegistrationError):
            HookTable().add("pre", "explode", lambda req, res: None)


class TestMiddlewareTable:
    """Tests for middleware lookup."""

    def test_default_is_pass_through(self):
        assert MiddlewareTable().get("find") is pass_through

    def test_all_is_fallback(self):
        table = MiddlewareTable()
        gate = object()
        table.set("all", gate)
        assert table.get("count") is gate

    def test_last_registration_wins(self):
        table = MiddlewareTable()
        first, second = object(), object()
        table.set(["create", "update"], first)
        table.set("create", second)
        assert table.get("create") is second
        assert table.get("update") is first

    @pytest.mark.asyncio
    async def test_pass_through_does_nothing(self):
        assert await pass_through() is None
