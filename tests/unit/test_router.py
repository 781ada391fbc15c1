"""
Unit tests for the route table.
"""

import pytest

from todoapi.http.router import Router, compile_pattern
from todoapi.middleware.base import FunctionMiddleware


def dummy_handler(request):
    """Dummy handler for testing."""
    return {"path": request.path}


def other_handler(request):
    return {"other": True}


class TestRouter:
    """Tests for Router registration and matching."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        router.add("get", "/todos", dummy_handler)

        assert len(router) == 1
        assert router.routes[0].path == "/todos"
        assert router.routes[0].method == "GET"

    def test_match_static_path(self):
        """Test matching static paths."""
        router = Router()
        router.get("/todos", dummy_handler)
        router.get("/users", other_handler)

        match = router.match("GET", "/todos")
        assert match is not None
        assert match.route.handler is dummy_handler

        match = router.match("GET", "/users")
        assert match is not None
        assert match.route.handler is other_handler

    def test_match_with_method(self):
        """Test method-based routing."""
        router = Router()
        router.get("/todos", dummy_handler)
        router.post("/todos", other_handler)

        assert router.match("GET", "/todos").route.method == "GET"
        assert router.match("POST", "/todos").route.method == "POST"

    def test_match_is_case_insensitive_on_method(self):
        """Test lowercase methods still match."""
        router = Router()
        router.put("/todos/{id}", dummy_handler)

        assert router.match("put", "/todos/3") is not None

    def test_match_dynamic_params(self):
        """Test placeholder capture."""
        router = Router()
        router.get("/todos/{id}", dummy_handler)
        router.get("/users/{user_id}/todos/{todo_id}", dummy_handler)

        match = router.match("GET", "/todos/123")
        assert match.params == {"id": "123"}

        match = router.match("GET", "/users/alice/todos/9")
        assert match.params == {"user_id": "alice", "todo_id": "9"}

    def test_placeholder_does_not_cross_segments(self):
        """Test {id} matches exactly one path segment."""
        router = Router()
        router.get("/todos/{id}", dummy_handler)

        assert router.match("GET", "/todos/1/2") is None
        assert router.match("GET", "/todos/") is None

    def test_trailing_slash_is_ignored(self):
        """Test /todos/ and /todos are the same route."""
        router = Router()
        router.get("/todos", dummy_handler)

        assert router.match("GET", "/todos/") is not None

    def test_registration_order_wins(self):
        """Test the first registered of two overlapping patterns is chosen."""
        router = Router()
        router.get("/users/{user_id}", dummy_handler)
        router.get("/users/me", other_handler)

        match = router.match("GET", "/users/me")
        assert match.route.handler is dummy_handler
        assert match.params == {"user_id": "me"}

    def test_no_match(self):
        """Test when no route matches."""
        router = Router()
        router.get("/todos", dummy_handler)

        assert router.match("GET", "/posts") is None
        assert router.match("POST", "/todos") is None  # Wrong method

    def test_regex_metacharacters_in_literals_are_escaped(self):
        """Test a dot in the pattern only matches a literal dot."""
        pattern = compile_pattern("/files/report.json")

        assert pattern.match("/files/report.json")
        assert not pattern.match("/files/reportXjson")

    def test_param_names(self):
        """Test a route exposes its placeholder names."""
        router = Router()
        route = router.get("/users/{user_id}/todos/{id}", dummy_handler)

        assert route.param_names == ["user_id", "id"]


class TestRouterGroups:
    """Tests for prefix and middleware groups."""

    def test_group_prefix(self):
        """Test routes inside a group get the prefix."""
        router = Router()
        router.group("/api/v1", lambda r: r.get("/todos", dummy_handler))

        assert router.match("GET", "/api/v1/todos") is not None
        assert router.match("GET", "/todos") is None

    def test_group_root_route(self):
        """Test an empty path inside a group maps to the prefix itself."""
        router = Router()
        router.group("/todos", lambda r: r.get("", dummy_handler))

        assert router.routes[0].path == "/todos"

    def test_nested_groups(self):
        """Test prefixes and middleware accumulate through nesting."""
        outer = FunctionMiddleware(lambda req, nxt: nxt(req), name="Outer")
        inner = FunctionMiddleware(lambda req, nxt: nxt(req), name="Inner")
        route_mw = FunctionMiddleware(lambda req, nxt: nxt(req), name="Route")
        router = Router()

        def api(r):
            r.group("/todos", lambda t: t.get("/{id}", dummy_handler, [route_mw]), [inner])

        router.group("/api/v1", api, [outer])

        route = router.routes[0]
        assert route.path == "/api/v1/todos/{id}"
        assert [m.name for m in route.middleware] == ["Outer", "Inner", "Route"]

    def test_group_state_restored(self):
        """Test routes added after a group get no prefix or group middleware."""
        mw = FunctionMiddleware(lambda req, nxt: nxt(req), name="Grouped")
        router = Router()
        router.group("/api", lambda r: r.get("/a", dummy_handler), [mw])
        router.get("/health", dummy_handler)

        health = router.match("GET", "/health").route
        assert health.middleware == ()

    def test_group_state_restored_after_error(self):
        """Test a failing builder doesn't leak its prefix."""
        router = Router()

        def broken(r):
            r.get("/a", dummy_handler)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            router.group("/api", broken)

        router.get("/b", dummy_handler)
        assert router.routes[-1].path == "/b"

    def test_describe(self):
        """Test the printable route table."""
        mw = FunctionMiddleware(lambda req, nxt: nxt(req), name="Stamp")
        router = Router()
        router.get("/todos", dummy_handler, [mw])

        lines = router.describe()
        assert len(lines) == 1
        assert "GET" in lines[0]
        assert "/todos" in lines[0]
        assert "[Stamp]" in lines[0]
