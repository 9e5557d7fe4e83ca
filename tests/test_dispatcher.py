"""Tests for dispatch: OPTIONS, 404/405 and middleware chains."""

from typing import List

import pytest

from plantgate.controllers.health import HealthController
from plantgate.core.dispatcher import Dispatcher
from plantgate.core.exceptions import ConfigurationError
from plantgate.core.middleware import CORSMiddleware, FunctionMiddleware, Middleware, MiddlewareRegistry
from plantgate.core.pipeline import Pipeline
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.core.router import HandlerRegistry, Router


def recorder(trace: List[str], name: str):
    async def middleware(request, response, next):
        trace.append(name)
        return await next(request, response)
    return middleware


class FunctionRecorder(Middleware):
    def __init__(self, trace: List[str], name: str) -> None:
        self.trace = trace
        self.name = name

    async def before(self, request, response):
        self.trace.append(self.name)
        return None


class Blocker(Middleware):
    async def before(self, request, response):
        return response.unauthorized("Blocked")


class TestRouteMatching:
    async def test_captures_become_params(self) -> None:
        router = Router()

        @router.get("/plants/:id")
        async def show(request, response):
            return response.success({"id": request.get_param("id")})

        reply = await Dispatcher(router).dispatch(Request("GET", "/plants/12"))
        assert reply.status_code == 200
        assert reply.data["data"] == {"id": "12"}

    async def test_same_route_every_time(self) -> None:
        router = Router()
        hits: List[str] = []

        @router.get("/x/:id")
        async def first(request, response):
            hits.append("first")

        @router.get("/x/:slug")
        async def second(request, response):
            hits.append("second")

        dispatcher = Dispatcher(router)
        for _ in range(5):
            await dispatcher.dispatch(Request("GET", "/x/9"))
        assert hits == ["first"] * 5

    async def test_trailing_slash_and_query_ignored(self) -> None:
        router = Router()
        router.get("/health", lambda request, response: response.json({"status": "ok"}))

        reply = await Dispatcher(router).dispatch(Request("GET", "/health/?check=1"))
        assert reply.status_code == 200

    async def test_base_path_stripped(self) -> None:
        router = Router(base_path="/svc")
        router.get("/health", lambda request, response: response.json({"status": "ok"}))

        reply = await Dispatcher(router).dispatch(Request("GET", "/svc/health"))
        assert reply.status_code == 200

    async def test_dict_result_becomes_json(self) -> None:
        router = Router()
        router.get("/plain", lambda request, response: {"ok": True})

        reply = await Dispatcher(router).dispatch(Request("GET", "/plain"))
        assert reply.get_content_type() == "application/json"
        assert reply.data == {"ok": True}

    async def test_health_under_api_prefix(self) -> None:
        router = Router(handlers=HandlerRegistry({"HealthController": HealthController()}))
        router.get("/api/v1/health", "HealthController@check")

        reply = await Dispatcher(router).dispatch(Request("GET", "/api/v1/health"))
        assert reply.status_code == 200
        assert reply.data["status"] == "ok"
        assert isinstance(reply.data["timestamp"], int)


class TestNotFoundAndMethodNotAllowed:
    async def test_wrong_method_is_405(self) -> None:
        router = Router()
        router.get("/x", lambda request, response: response)

        reply = await Dispatcher(router).dispatch(Request("POST", "/x"))
        assert reply.status_code == 405
        assert reply.get_header("Allow") == "GET"

    async def test_unknown_path_is_404(self) -> None:
        router = Router()
        router.get("/x", lambda request, response: response)

        reply = await Dispatcher(router).dispatch(Request("GET", "/y"))
        assert reply.status_code == 404
        assert reply.data["message"] == "Route not found: /y"

    async def test_custom_not_found(self) -> None:
        router = Router()
        dispatcher = Dispatcher(router)
        dispatcher.set_not_found_handler(
            lambda request, response: response.json({"missing": request.path}, 404)
        )

        reply = await dispatcher.dispatch(Request("GET", "/nowhere"))
        assert reply.data == {"missing": "/nowhere"}

    async def test_custom_method_not_allowed(self) -> None:
        router = Router()
        router.post("/x", lambda request, response: response)
        dispatcher = Dispatcher(router)

        async def refuse(request, response, allowed):
            return response.json({"allowed": allowed}, 405)

        dispatcher.set_method_not_allowed_handler(refuse)

        reply = await dispatcher.dispatch(Request("DELETE", "/x"))
        assert reply.data == {"allowed": ["POST"]}

    async def test_method_override_routes_by_effective_method(self) -> None:
        router = Router()
        router.put("/x", lambda request, response: response.success(None, "updated"))

        request = Request(
            "POST",
            "/x",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"_method=PUT",
        )
        reply = await Dispatcher(router).dispatch(request)
        assert reply.status_code == 200


class TestOptions:
    async def test_allow_lists_matching_methods(self) -> None:
        router = Router()
        router.get("/items/:id", lambda request, response: response)
        router.delete("/items/:id", lambda request, response: response)
        router.post("/items", lambda request, response: response)

        reply = await Dispatcher(router).dispatch(Request("OPTIONS", "/items/3"))
        assert reply.status_code == 204
        assert sorted(reply.get_header("Allow").split(", ")) == ["DELETE", "GET", "OPTIONS"]

    async def test_unknown_path_is_404(self) -> None:
        router = Router()
        router.get("/items", lambda request, response: response)

        reply = await Dispatcher(router).dispatch(Request("OPTIONS", "/nothing"))
        assert reply.status_code == 404

    async def test_explicit_options_route_wins(self) -> None:
        router = Router()
        router.get("/items", lambda request, response: response)
        router.options("/items", lambda request, response: response.json({"custom": True}))

        reply = await Dispatcher(router).dispatch(Request("OPTIONS", "/items"))
        assert reply.data == {"custom": True}

    async def test_preflight_headers(self) -> None:
        router = Router()
        router.post("/items", lambda request, response: response)
        dispatcher = Dispatcher(router, cors=CORSMiddleware(allow_origins=["https://mes.example"]))

        request = Request("OPTIONS", "/items", headers={"Origin": "https://mes.example"})
        reply = await dispatcher.dispatch(request)
        assert reply.get_header("Access-Control-Allow-Origin") == "https://mes.example"
        assert reply.get_header("Vary") == "Origin"

    async def test_options_skips_middleware(self) -> None:
        trace: List[str] = []
        router = Router()
        with router.group("/api", middleware=[recorder(trace, "auth")]):
            router.post("/items", lambda request, response: response)

        reply = await Dispatcher(router).dispatch(Request("OPTIONS", "/api/items"))
        assert reply.status_code == 204
        assert trace == []


class TestMiddlewareChain:
    async def test_global_group_route_order(self) -> None:
        trace: List[str] = []
        registry = MiddlewareRegistry()
        registry.register("A", lambda: FunctionRecorder(trace, "A"))
        registry.register("B", lambda: FunctionRecorder(trace, "B"))
        registry.register("C", lambda: FunctionRecorder(trace, "C"))

        router = Router()
        with router.group("/g", middleware=["B"]):
            @router.get("/r")
            async def endpoint(request, response):
                trace.append("handler")
                return response.success()
            router.with_middleware(["C"])

        dispatcher = Dispatcher(router, registry, global_middleware=["A"])
        await dispatcher.dispatch(Request("GET", "/g/r"))
        assert trace == ["A", "B", "C", "handler"]

    async def test_short_circuit_stops_chain(self) -> None:
        trace: List[str] = []
        registry = MiddlewareRegistry()
        registry.register("block", Blocker)

        router = Router()
        with router.group("", middleware=[recorder(trace, "outer"), "block", recorder(trace, "inner")]):
            @router.post("/guarded")
            async def guarded(request, response):
                trace.append("handler")
                return response.success()

        reply = await Dispatcher(router, registry).dispatch(Request("POST", "/guarded"))
        assert reply.status_code == 401
        assert reply.data == {"status_code": 401, "message": "Blocked"}
        assert trace == ["outer"]

    async def test_after_hooks_run_in_reverse(self) -> None:
        trace: List[str] = []

        class Tag(Middleware):
            def __init__(self, name):
                self.name = name

            async def after(self, request, response):
                trace.append(self.name)
                return response

        async def terminal(request, response):
            return response.success()

        await Pipeline([Tag("outer"), Tag("inner")]).run(Request(), Response(), terminal)
        assert trace == ["inner", "outer"]

    async def test_fresh_instance_per_dispatch(self) -> None:
        created: List[Middleware] = []

        class Counting(Middleware):
            def __init__(self):
                created.append(self)

        registry = MiddlewareRegistry().register("counting", Counting)
        router = Router()
        with router.group("", middleware=["counting"]):
            router.get("/x", lambda request, response: response)

        dispatcher = Dispatcher(router, registry)
        await dispatcher.dispatch(Request("GET", "/x"))
        await dispatcher.dispatch(Request("GET", "/x"))
        assert len(created) == 2
        assert created[0] is not created[1]

    async def test_unknown_middleware_name(self) -> None:
        router = Router()
        with router.group("", middleware=["nope"]):
            router.get("/x", lambda request, response: response)

        with pytest.raises(ConfigurationError, match="Middleware not found: nope"):
            await Dispatcher(router).dispatch(Request("GET", "/x"))

    async def test_middleware_instance_rejected(self) -> None:
        router = Router()
        with router.group("", middleware=[Blocker()]):
            router.get("/x", lambda request, response: response)

        with pytest.raises(ConfigurationError, match="Middleware instance"):
            await Dispatcher(router).dispatch(Request("GET", "/x"))

    def test_registry_builds_classes_and_functions(self) -> None:
        registry = MiddlewareRegistry()

        first, second = registry.resolve([Blocker, Blocker])
        (wrapped,) = registry.resolve([recorder([], "fn")])

        assert isinstance(first, Blocker)
        assert first is not second
        assert isinstance(wrapped, FunctionMiddleware)
