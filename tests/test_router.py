"""Tests for path patterns, the route table and handler resolution."""

import pytest

from plantgate.core.exceptions import ConfigurationError, RouteNotFound
from plantgate.core.router import (
    HandlerRegistry,
    PathPattern,
    PatternRegistry,
    Router,
    normalize_path,
)


async def handler(request, response):
    return response


async def other(request, response):
    return response


class TestNormalizePath:
    def test_trailing_slash_removed(self) -> None:
        assert normalize_path("/users/") == "/users"

    def test_root_stays_root(self) -> None:
        assert normalize_path("/") == "/"
        assert normalize_path("") == "/"

    def test_query_string_dropped(self) -> None:
        assert normalize_path("/users?page=2") == "/users"

    def test_base_path_stripped(self) -> None:
        assert normalize_path("/svc/api/v1/health", "/svc") == "/api/v1/health"


class TestPathPattern:
    def test_static_path(self) -> None:
        pattern = PathPattern.compile("/health")
        assert pattern.match("/health") == {}
        assert pattern.match("/health/x") is None

    def test_id_is_digits_only(self) -> None:
        pattern = PathPattern.compile("/users/:id")
        assert pattern.match("/users/42") == {"id": "42"}
        assert pattern.match("/users/alice") is None

    def test_unregistered_name_matches_one_segment(self) -> None:
        pattern = PathPattern.compile("/users/:username/profile")
        assert pattern.match("/users/alice/profile") == {"username": "alice"}
        assert pattern.match("/users/a/b/profile") is None

    def test_optional_segment(self) -> None:
        pattern = PathPattern.compile("/posts/:slug[/:page]")
        assert pattern.match("/posts/hello-world") == {"slug": "hello-world"}
        assert pattern.match("/posts/hello-world/3") == {"slug": "hello-world", "page": "3"}

    def test_param_names_in_order(self) -> None:
        pattern = PathPattern.compile("/plants/:plant/lines/:id")
        assert pattern.param_names == ("plant", "id")

    def test_uuid_pattern(self) -> None:
        pattern = PathPattern.compile("/items/:uuid")
        assert pattern.match("/items/123e4567-e89b-12d3-a456-426614174000") is not None
        assert pattern.match("/items/not-a-uuid") is None

    def test_literal_characters_escaped(self) -> None:
        pattern = PathPattern.compile("/files/report.csv")
        assert pattern.match("/files/report.csv") == {}
        assert pattern.match("/files/reportXcsv") is None

    def test_custom_pattern(self) -> None:
        patterns = PatternRegistry({"token": r"[A-F0-9]{4}"})
        pattern = PathPattern.compile("/files/:token", patterns)
        assert pattern.match("/files/AB12") == {"token": "AB12"}
        assert pattern.match("/files/xyz1") is None

    def test_build_fills_parameters(self) -> None:
        pattern = PathPattern.compile("/users/:id")
        assert pattern.build({"id": 7}) == "/users/7"

    def test_build_drops_missing_optional_segment(self) -> None:
        pattern = PathPattern.compile("/posts/:slug[/:page]")
        assert pattern.build({"slug": "news"}) == "/posts/news"
        assert pattern.build({"slug": "news", "page": 2}) == "/posts/news/2"

    def test_unbalanced_close_bracket(self) -> None:
        with pytest.raises(ConfigurationError):
            PathPattern.compile("/posts]")

    def test_unbalanced_open_bracket(self) -> None:
        with pytest.raises(ConfigurationError):
            PathPattern.compile("/posts[/:page")

    def test_repeated_parameter(self) -> None:
        with pytest.raises(ConfigurationError):
            PathPattern.compile("/a/:id/b/:id")

    @pytest.mark.parametrize("template", ["/items/:1x", "/items/:9"])
    def test_parameter_name_starting_with_digit(self, template) -> None:
        with pytest.raises(ConfigurationError):
            PathPattern.compile(template)

    def test_lone_colon_is_literal(self) -> None:
        pattern = PathPattern.compile("/time/12:/now")
        assert pattern.match("/time/12:/now") == {}

    def test_trailing_newline_does_not_match(self) -> None:
        pattern = PathPattern.compile("/items/:id")
        assert pattern.match("/items/1") == {"id": "1"}
        assert pattern.match("/items/1\n") is None
        assert PathPattern.compile("/health").match("/health\n") is None

    def test_invalid_custom_regex(self) -> None:
        with pytest.raises(ConfigurationError):
            PatternRegistry({"broken": "[a-"})


class TestRouterRegistration:
    def test_get_registers_route(self) -> None:
        router = Router()
        router.get("/health", handler)
        route, params = router.find("GET", "/health")
        assert route.handler is handler
        assert params == {}

    def test_decorator_form(self) -> None:
        router = Router()

        @router.post("/login")
        async def login(request, response):
            return response

        route, _ = router.find("POST", "/login")
        assert route.handler is login

    def test_first_registered_wins(self) -> None:
        router = Router()
        router.get("/users/:id", handler)
        router.get("/users/:name", other)

        for _ in range(3):
            route, params = router.find("GET", "/users/7")
            assert route.handler is handler
            assert params == {"id": "7"}

        route, _ = router.find("GET", "/users/alice")
        assert route.handler is other

    def test_map_registers_each_method(self) -> None:
        router = Router()
        router.map(["get", "post"], "/me", handler)
        assert router.find("GET", "/me") is not None
        assert router.find("POST", "/me") is not None
        assert router.find("PUT", "/me") is None

    def test_any_excludes_head(self) -> None:
        router = Router()
        router.any("/echo", handler)
        assert router.allowed_methods("/echo") == ["GET", "POST", "PUT", "PATCH", "DELETE"]

    def test_unsupported_method(self) -> None:
        router = Router()
        with pytest.raises(ConfigurationError):
            router.add_route("TRACE", "/x", handler)

    def test_non_callable_handler(self) -> None:
        router = Router()
        with pytest.raises(ConfigurationError):
            router.get("/x", 42)

    def test_string_handler_without_registry(self) -> None:
        router = Router()
        with pytest.raises(ConfigurationError):
            router.get("/x", "UserController@login")

    def test_custom_pattern_applies_to_later_routes(self) -> None:
        router = Router()
        router.pattern(":code", r"[A-Z]{3}")
        router.get("/plants/:code", handler)
        assert router.find("GET", "/plants/KUL") is not None
        assert router.find("GET", "/plants/kul") is None


class TestRouteGroups:
    def test_prefix_and_middleware_inherited(self) -> None:
        router = Router()
        with router.group("/api", middleware=["security"]):
            with router.group("v1", middleware=["auth"]):
                router.post("/system-log/list", handler)

        route, _ = router.find("POST", "/api/v1/system-log/list")
        assert route.template == "/api/v1/system-log/list"
        assert route.middleware == ["security", "auth"]

    def test_scope_restored_after_group(self) -> None:
        router = Router()
        with router.group("/api", middleware=["auth"]):
            router.post("/inside", handler)
        router.post("/outside", handler)

        route, _ = router.find("POST", "/outside")
        assert route.template == "/outside"
        assert route.middleware == []

    def test_scope_restored_after_error(self) -> None:
        router = Router()
        with pytest.raises(ConfigurationError):
            with router.group("/api", middleware=["auth"]):
                router.post("/bad[", handler)
        router.post("/after", handler)

        route, _ = router.find("POST", "/after")
        assert route.middleware == []

    def test_callback_form(self) -> None:
        router = Router()
        router.group("/auth", callback=lambda r: r.post("/login", handler))
        assert router.find("POST", "/auth/login") is not None

    def test_single_middleware_name(self) -> None:
        router = Router()
        with router.group("/auth", middleware="basic"):
            router.post("/token", handler)
        route, _ = router.find("POST", "/auth/token")
        assert route.middleware == ["basic"]

    def test_with_middleware_appends_to_last_route_only(self) -> None:
        router = Router()
        with router.group("/notification-center", middleware=["auth"]):
            router.post("/list", handler)
            router.post("/create", handler).with_middleware(["log"])

        listing, _ = router.find("POST", "/notification-center/list")
        creating, _ = router.find("POST", "/notification-center/create")
        assert listing.middleware == ["auth"]
        assert creating.middleware == ["auth", "log"]


class TestReverseLookup:
    def test_url_for_named_route(self) -> None:
        router = Router()
        router.get("/users/:id", handler, name="users.show")
        assert router.url("users.show", {"id": 42}) == "/users/42"

    def test_url_includes_base_path(self) -> None:
        router = Router(base_path="svc/")
        router.get("/health", handler, name="health")
        assert router.url("health") == "/svc/health"

    def test_unknown_name(self) -> None:
        router = Router()
        with pytest.raises(RouteNotFound):
            router.url("missing")


class TestHandlerRegistry:
    class Greeter:
        async def hello(self, request, response):
            return response

        def _hidden(self):
            return None

    def test_resolves_bound_method(self) -> None:
        greeter = self.Greeter()
        handlers = HandlerRegistry().register("Greeter", greeter)
        resolved = handlers.resolve("Greeter@hello")
        assert resolved.__self__ is greeter

    def test_resolution_happens_at_registration(self) -> None:
        router = Router(handlers=HandlerRegistry())
        with pytest.raises(ConfigurationError, match="Controller not found"):
            router.post("/hello", "Missing@hello")

    @pytest.mark.parametrize("reference", ["Greeter", "Greeter@", "@hello"])
    def test_malformed_reference(self, reference: str) -> None:
        handlers = HandlerRegistry({"Greeter": self.Greeter()})
        with pytest.raises(ConfigurationError, match="Invalid handler reference"):
            handlers.resolve(reference)

    def test_unknown_action(self) -> None:
        handlers = HandlerRegistry({"Greeter": self.Greeter()})
        with pytest.raises(ConfigurationError, match="Action not found"):
            handlers.resolve("Greeter@goodbye")

    def test_private_action_refused(self) -> None:
        handlers = HandlerRegistry({"Greeter": self.Greeter()})
        with pytest.raises(ConfigurationError, match="Action not found"):
            handlers.resolve("Greeter@_hidden")
