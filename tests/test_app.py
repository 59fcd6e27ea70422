from tests import helper
from tests.util import wsgi
import tinyrest
import logging

expect_response = helper.assert_produces_response
basic_handler = helper.basic_handler


def test_basic():
    app = tinyrest.App()
    @app.route("/")
    def handler(request: tinyrest.Request, response: tinyrest.Response):
        return "hello"
    expect_response(app, "/", 200, "hello",
                    headers={"Content-Type": "text/html;charset=utf-8"})


def test_default_not_found():
    app = tinyrest.App()
    expect_response(app, "/nothing", 404, "Could not find this route!",
                    headers={"Content-Type": "text/plain;charset=utf-8"})


def test_configured_not_found_body():
    app = tinyrest.App(tinyrest.RouterConfig(not_found_body="nope"))
    expect_response(app, "/nothing", 404, "nope")


def test_not_found_handler_called_once():
    calls = []
    routed = []
    app = tinyrest.App()
    app.match("GET", "/users/:id", lambda req, resp: routed.append(req))

    @app.errorhandler(404)
    def not_found(request: tinyrest.Request, response):
        calls.append(request)
        return "custom 404"

    expect_response(app, "/posts/1", 404, "custom 404")
    assert len(calls) == 1
    assert routed == []
    assert isinstance(calls[0].first_error(), tinyrest.NotFound)


def test_error_handlers():
    app = tinyrest.App()
    app.set_errorhandler(567, basic_handler("OTHER"))
    app.set_errorhandler(tinyrest.NotFound, basic_handler("MISSING"))

    @app.route("/other")
    def _(i, o):
        raise tinyrest.HttpError(567)

    @app.route("/key")
    def _(i, o):
        raise KeyError("x")

    expect_response(app, "/other", 567, "OTHER")
    expect_response(app, "/nowhere", 404, "MISSING")
    # exception handlers match the raised HttpError type, not its cause
    got = wsgi.Request("/key").get_response(app)
    helper.assert_response(got, 500)
    assert "Internal Server Error" in got.output_str()


def test_default_error_handler():
    app = tinyrest.App()
    app.set_errorhandler(None, basic_handler("fallback"))
    expect_response(app, "/missing", 404, "fallback")


def test_unhandled_exception(caplog):
    app = tinyrest.App()

    @app.route("/boom")
    def _(i, o):
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="tinyrest"):
        got = wsgi.Request("/boom").get_response(app)
    helper.assert_response(got, 500)
    assert "<h2>HTTP 500 - Internal Server Error</h2>" in got.output_str()
    assert got.exc_info is not None and got.exc_info[0] is RuntimeError
    assert any("GET /boom failed" in r.getMessage() for r in caplog.records)


def test_json_response():
    app = tinyrest.App()

    @app.route("/data")
    def _(request, response: tinyrest.JsonResponse):
        return {"a": [1, 2]}

    expect_response(app, "/data", 200, {"a": [1, 2]})


def test_string_response_write():
    app = tinyrest.App()

    @app.route("/write")
    def _(request, response: tinyrest.StringResponse):
        response.write("a")
        response.write("b")
        response.headers["X-Thing"] = "1"

    expect_response(app, "/write", 200, "ab", headers={"X-Thing": "1"})


def test_request_from_wsgi():
    env = wsgi.Request("/a/b?x=1", method="PUT",
                       env={"HTTP_ACCEPT_LANGUAGE": "en-US"})._environ()
    request = tinyrest.Request.from_wsgi(env)
    assert request.path == "/a/b"
    assert request.method == "PUT"
    assert request.query_vars == {"x": "1"}
    assert request.headers["Accept-Language"] == "en-US"
    assert request.route_vars == {}


def test_with_route_copies():
    env = wsgi.Request("/users/3?x=1")._environ()
    request = tinyrest.Request.from_wsgi(env)
    route = tinyrest.Route("GET", "/users/:id", None)
    routed = request.with_route(tinyrest.RouteMatch(route, [("id", "3")]))
    assert routed.query_string == "x=1&id=3"
    assert request.query_string == "x=1"
    assert routed.vars == {"x": "1", "id": "3"}


def test_make_server_uses_config():
    app = tinyrest.App(tinyrest.RouterConfig(host="127.0.0.1", port=0))
    server = app.make_server()
    try:
        assert server.server_address[0] == "127.0.0.1"
        assert server.get_app() is app
    finally:
        server.server_close()
