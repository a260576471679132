"""Tests for switchyard.http.request and response helpers."""

from switchyard.http.request import Request
from switchyard.http.response import Response


def _scope(**overrides) -> dict:
    scope = {
        "type": "http",
        "method": "post",
        "path": "/users/1",
        "query_string": b"page=2&tag=a&tag=b",
        "headers": [
            (b"host", b"example.com"),
            (b"cookie", b"a=1; b=two"),
            (b"content-type", b"application/x-www-form-urlencoded"),
        ],
        "server": ("example.com", 443),
        "client": ("10.0.0.1", 5000),
    }
    scope.update(overrides)
    return scope


async def _receive_body():
    return {"type": "http.request", "body": b"name=Ada&role=admin", "more_body": False}


class TestFromAsgi:
    def test_metadata(self) -> None:
        request = Request.from_asgi(_scope(), _receive_body)
        assert request.method == "POST"
        assert request.path == "/users/1"
        assert request.url == "/users/1?page=2&tag=a&tag=b"
        assert request.query.get("page") == "2"
        assert request.query.get_list("tag") == ["a", "b"]
        assert request.cookies == {"a": "1", "b": "two"}
        assert request.host == "example.com"
        assert request.client == ("10.0.0.1", 5000)
        assert request.is_form

    def test_host_falls_back_to_server(self) -> None:
        request = Request.from_asgi(_scope(headers=[], server=("internal", 8080)), _receive_body)
        assert request.host == "internal:8080"

    async def test_form_and_input(self) -> None:
        request = Request.from_asgi(_scope(), _receive_body)
        form = await request.form()
        assert form["name"] == "Ada"
        assert await request.input("role") == "admin"
        assert await request.input("page") == "2"
        assert await request.input("missing", "x") == "x"

    async def test_body_cached_across_param_copies(self) -> None:
        request = Request.from_asgi(_scope(), _receive_body)
        await request.body()
        routed = request.with_path_params({"id": "1"})
        assert routed.path_params == {"id": "1"}
        assert await routed.text() == "name=Ada&role=admin"


class TestExpectations:
    def test_ajax(self, make_request) -> None:
        request = make_request("GET", "/", {"X-Requested-With": "XMLHttpRequest"})
        assert request.is_ajax
        assert request.expects_json

    def test_accept_json(self, make_request) -> None:
        assert make_request("GET", "/", {"Accept": "application/json, text/plain"}).expects_json

    def test_browser(self, make_request) -> None:
        assert not make_request("GET", "/", {"Accept": "text/html"}).expects_json

    async def test_json_body(self, make_request) -> None:
        request = make_request("POST", "/", {"content-type": "application/json"}, b'{"a": [1]}')
        assert request.is_json
        assert await request.json() == {"a": [1]}
        assert await request.input("a") == [1]

    async def test_form_on_json_request_is_empty(self, make_request) -> None:
        request = make_request("POST", "/", {"content-type": "application/json"}, b"{}")
        assert len(await request.form()) == 0


class TestResponseBuilders:
    def test_immutable_chain(self) -> None:
        base = Response()
        built = base.with_status(201).with_header("X-A", "1").with_body("ok")
        assert base.status == 200
        assert base.headers == ()
        assert (built.status, built.header("x-a"), built.text) == (201, "1", "ok")

    def test_with_json(self) -> None:
        response = Response().with_json({"ok": True})
        assert response.content_type == "application/json"
        assert response.json() == {"ok": True}

    def test_cookies(self) -> None:
        response = Response().with_cookie("a", "1", max_age=10).without_cookie("b")
        assert [(c.name, c.max_age) for c in response.cookies] == [("a", 10), ("b", 0)]
        assert response.cookies[0].to_header_value().startswith("a=1; Max-Age=10; Path=/")

    def test_redirect(self) -> None:
        response = Response("body").redirect("/next", 307)
        assert response.status == 307
        assert response.header("Location") == "/next"
        assert response.body == ""
