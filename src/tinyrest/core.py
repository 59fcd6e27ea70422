import wsgiref.types
import wsgiref.simple_server
import contextlib
from dataclasses import InitVar, dataclass, field
import wsgiref.headers
import json
import http
import html
import logging
import socketserver
import copy
import urllib.parse

from . import util
from .config import RouterConfig
from .errors import HttpError, NotFound
from .resource import Controller, expand_resource
from .routing import Route, RouteTable

import typing as t
_O = t.Optional
_T = t.TypeVar("_T")
Headers = wsgiref.headers.Headers
_AnyHeaders: t.TypeAlias = dict[str, str] | list[tuple[str, str]] | Headers
_Wrapper = t.Callable[[_T], _T]
_ResponseT = t.TypeVar("_ResponseT", bound="Response", covariant=True)

logger = logging.getLogger(__name__)


class HandlerFn(t.Protocol):
    def __call__(self, request: "Request", response: _ResponseT,  # type: ignore
                 /) -> t.Any: ...


@t.runtime_checkable
class Handler(t.Protocol):
    def handle_request(self, request: "Request", **kwargs) -> "Response": ...


AnyHandler = HandlerFn | Handler


@dataclass
class RouteMatch:
    route: Route
    params: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class Request:
    environ: wsgiref.types.WSGIEnvironment
    path: str
    method: str
    headers: Headers
    query_string: str = ""
    route_match: RouteMatch | None = None
    http_errors: tuple[HttpError, ...] = field(default_factory=tuple)

    @classmethod
    def from_wsgi(cls, environ: wsgiref.types.WSGIEnvironment):
        hlist = [(k[5:].replace("_", "-").title(), v)
                 for k, v in environ.items() if k.startswith("HTTP_")]
        return cls(environ, environ.get('PATH_INFO') or '/',
                   environ['REQUEST_METHOD'], Headers(hlist),
                   environ.get('QUERY_STRING', ''))

    def with_route(self, route_match: RouteMatch) -> t.Self:
        """Copy of this request with the route's path variables in the query."""
        request = copy.copy(self)
        request.route_match = route_match
        request.query_string = util.merge_query(self.query_string,
                                                route_match.params)
        return request

    def with_error(self, http_error: HttpError) -> t.Self:
        request = copy.copy(self)
        request.http_errors = (http_error, *self.http_errors)
        return request

    def first_error(self) -> HttpError | None:
        return self.http_errors[0] if self.http_errors else None

    @property
    def query_vars(self) -> dict[str, str]:
        return dict(urllib.parse.parse_qsl(self.query_string))

    @property
    def route_vars(self) -> dict[str, str]:
        return dict(self.route_match.params) if self.route_match else {}

    @property
    def vars(self):
        return self.query_vars | self.route_vars


@dataclass(kw_only=True)
class Response:
    """Response contains everything about the response but the content."""
    code: int = 200
    content_type: str | None = None
    charset: str | None = None
    h: InitVar[_AnyHeaders | None] = None
    headers: Headers = field(init=False, default=None)  # type:ignore
    http_error: HttpError | None = None

    def __post_init__(self, h: _AnyHeaders | None):
        self.headers = Headers(
            list(h.items()) if isinstance(h, dict) or isinstance(h, Headers)
            else h
        )
        self._resp_inst: t.Iterable[bytes] = tuple()
        if self.http_error and self.http_error.code:
            self.code = self.http_error.code

    def set_content(self, content: t.Any) -> None:
        """Called when the request handler returns a non-null result."""
        del content  # unused param
        raise ValueError(f'"{type(self).__name__}" does not implement '
                         'set_content but request handler returned a value.')

    def finalize(self, request: Request) -> bytes | None:
        """Do any post-request cleanup; return bytes if they're the content."""
        del request  # unused param
        return None

    def _http_status(self) -> str:
        try:
            return http.HTTPStatus(self.code).phrase
        except ValueError:
            return "StatusPhraseUnknown"

    def _wsgi_start_response_args(self):
        """Get the args that will go to WSGI's start_response()."""
        status_line = f"{self.code} {self._http_status()}"
        if self.http_error and self.http_error.has_cause():
            return (status_line, self.headers.items(), self.http_error.exc_info())
        return (status_line, self.headers.items(), None)

    def _apply_default_headers(self):
        if self.content_type:
            cs = f";charset={self.charset}" if self.charset else ""
            self.headers.setdefault('Content-Type', f"{self.content_type}{cs}")
        if self.http_error:
            for k, v in self.http_error.all_headers().items():
                self.headers.setdefault(k, v)

    def _wsgi_finalize(self, request: Request):
        final = self.finalize(request)  # pylint: disable=assignment-from-none
        if final is not None:
            self._resp_inst = (final,) if isinstance(final, bytes) else final
        self._apply_default_headers()

    def _wsgi_response(self) -> t.Iterable[bytes]:
        return self._resp_inst


@dataclass(kw_only=True)
class StringResponse(Response):
    """A StringResponse manages string-to-bytes encoding for you."""
    content: InitVar[str | None] = field(default=None, kw_only=False)
    content_type: str = 'text/html'
    charset: str = 'utf-8'

    def __post_init__(self, h: _AnyHeaders | None, content: str | None):
        super().__post_init__(h)
        self._str_list: list[str] = [] if content is None else [content]

    def set_content(self, content: str | list[str]):
        self._str_list = [content] if isinstance(content, str) else content

    def write(self, content: str):
        self._str_list.append(content)

    def finalize(self, request: Request) -> bytes | None:
        return ''.join(self._str_list).encode(self.charset)


@dataclass(kw_only=True)
class JsonResponse(Response):
    content: t.Any = field(kw_only=False, default_factory=list)
    content_type: str = 'application/json'
    charset: str = 'utf-8'

    def set_content(self, content: t.Any):
        self.content = content

    def finalize(self, request: Request) -> bytes | None:
        return json.dumps(self.content).encode(self.charset)


def apply_content(response: Response, content: t.Any) -> Response:
    """Fold whatever a handler returned into the response it was given."""
    if content is None:
        return response
    if isinstance(content, Response):
        if response.http_error and not content.http_error:
            content.http_error = response.http_error
        return content
    response.set_content(content)
    return response


@dataclass
class FuncHandler:
    handlerfn: HandlerFn
    response_class: type[Response]

    def handle_request(self, request: Request, **kwargs) -> Response:
        response = self.response_class(http_error=request.first_error())
        return apply_content(response, self.handlerfn(request, response))


class App:
    """Maps (method, path) pairs to handlers; also the WSGI application.

    Register everything before serving starts. The route table isn't meant to
    change while requests are being dispatched.
    """
    DEFAULT_RESPONSE_CLASS = StringResponse

    def __init__(self, config: RouterConfig | None = None):
        self.config = config or RouterConfig()
        self.routes = RouteTable()
        self.errorhandlers: dict[int | type | None, Handler] = dict()
        self._namespace = ""

    # Decorators ----------------------------------------------------------

    def route(self, pattern: str, method: str = "", *,
              response_class: _O[type[Response]] = None) -> _Wrapper[HandlerFn]:
        def decorator(handlerfn: HandlerFn):
            self.match(method, pattern, handlerfn, response_class=response_class)
            return handlerfn
        return decorator

    def errorhandler(self, code: int | type | None, *,
                     response_class: _O[type[Response]] = None) -> _Wrapper[HandlerFn]:
        def decorator(handlerfn: HandlerFn):
            self.set_errorhandler(code, handlerfn, response_class)
            return handlerfn
        return decorator

    # Setup ---------------------------------------------------------------

    @contextlib.contextmanager
    def namespace(self, ns: str):
        """Prefix every pattern registered inside the block with ``/ns``."""
        outer = self._namespace
        if ns := ns.strip('/'):
            self._namespace = f"{outer}/{ns}"
        try:
            yield self
        finally:
            self._namespace = outer

    def match(self, method: str, pattern: str, handler: AnyHandler, *,
              response_class: _O[type[Response]] = None) -> Route:
        """Route requests for ``method`` (``""`` for any) and ``pattern``.

        Raises PatternError if the pattern is malformed.
        """
        route = Route(method, self._namespace + util.normalize_path(pattern),
                      self.make_handler(handler, response_class=response_class))
        self.routes.register(route)
        return route

    def match_func(self, method: str, pattern: str, handlerfn: HandlerFn, *,
                   response_class: _O[type[Response]] = None) -> Route:
        return self.match(method, pattern,
                          FuncHandler(handlerfn, response_class
                                      or self._response_class(handlerfn)))

    def resources(self, controller: Controller | type[Controller],
                  *parents: str) -> list[Route]:
        """Register the seven RESTful routes for ``controller``.

        ``parents`` are controller type names, outermost last. Nothing is
        registered if any of the names is invalid.
        """
        if isinstance(controller, type):
            controller = controller()
        response_class = controller.response_class or self.DEFAULT_RESPONSE_CLASS
        routes = expand_resource(
            controller, parents,
            make_handler=lambda action: FuncHandler(action, response_class),
            suffix=self.config.resource_suffix,
            id_param=self.config.id_param,
            prefix=self._namespace)
        self.routes.extend(routes)
        return routes

    def set_errorhandler(self, error: int | type | None,
                         handler: AnyHandler,
                         response_class: _O[type[Response]] = None):
        self.errorhandlers[error] = self.make_handler(
            handler, response_class=response_class)

    def make_handler(self, handler: AnyHandler, *, response_class: _O[type[Response]]) -> Handler:
        if isinstance(handler, Handler):
            if response_class:
                raise ValueError(
                    "Cannot set response_class unless handler is a callback function")
            return handler
        return FuncHandler(handler, response_class or self._response_class(handler))

    def _response_class(self, handlerfn: HandlerFn):
        resp_class = util.type_from_callable(handlerfn, 1)
        if (isinstance(resp_class, type) and issubclass(resp_class, Response)
                and resp_class != Response):
            return resp_class
        return self.DEFAULT_RESPONSE_CLASS

    # Request Handling ----------------------------------------------------

    def handle_request(self, request: Request) -> Response:
        try:
            with HttpError.wrap_exceptions():
                route_match = self.get_route(request)
                request = request.with_route(route_match)
                return route_match.route.handler.handle_request(request)
        except HttpError as http_error:
            if error_handler := self.get_error_handler(http_error):
                return error_handler.handle_request(request.with_error(http_error))
            raise

    def get_route(self, request: Request) -> RouteMatch:
        route = self.routes.dispatch(request.method, request.path)
        if route is None:
            raise NotFound(desc=f"No route matches {request.method} {request.path}")
        return RouteMatch(route, route.extract_params(request.path))

    def get_error_handler(self, http_error: HttpError) -> Handler | None:
        for t in type(http_error).__mro__:  # Exception type handers
            if h := self.errorhandlers.get(t):
                return h
        if h := self.errorhandlers.get(http_error.code):  # error code handler
            return h
        return self.errorhandlers.get(None)  # default handler

    def default_error_handler(self, request: Request) -> Response:
        if not request.http_errors:
            raise HttpError(
                500, "Error handler called with no error",
                desc="Error handler was invoked with no error attached to the "
                "request. (That is, itself, an error.)")
        err, *others = request.http_errors
        if err.code == 404:
            return StringResponse(self.config.not_found_body, http_error=err,
                                  content_type='text/plain')
        resp = StringResponse(http_error=err)
        resp.write(f"<h2>HTTP {resp.code} - {resp._http_status()}</h2>\n")
        if err.short:
            resp.write(f"<h3>{html.escape(err.short)}</h3>\n")
        if err.desc:
            resp.write(f"<div>{html.escape(err.desc)}</div>\n")
        else:
            resp.write(f"<pre>{html.escape(repr(err))}</pre>\n")
        return resp

    def fallback_error_handler(self, request: Request, http_error: HttpError) -> Response:
        if http_error.has_cause():
            logger.error("%s %s failed", request.method, request.path,
                         exc_info=http_error.exc_info())
        try:
            with HttpError.wrap_exceptions():
                return self.default_error_handler(request.with_error(http_error))
        except HttpError:
            return StringResponse(
                "The server encountered the following error:\n"
                f"HTTP({http_error.code}): {http_error.short}\n\n"
                f"During the handling another error was encountered.\n",
                http_error=http_error, content_type='text/plain')

    # Server Running ----------------------------------------------------

    def make_server(self, port=None, host=None, threaded=None):
        cfg = self.config
        port = cfg.port if port is None else port
        host = cfg.host if host is None else host
        threaded = cfg.threaded if threaded is None else threaded
        svr = wsgiref.simple_server.WSGIServer
        if threaded:  # Add threading mix-in
            svr = type('ThreadedServer', (socketserver.ThreadingMixIn, svr),
                       {'daemon_threads': True})
        return wsgiref.simple_server.make_server(host, port, self, server_class=svr)

    def serve_forever(self, port=None, host=None, threaded=None):
        server = self.make_server(port, host, threaded)
        logger.info("Serving on %s:%s -- ctrl+c to quit.", *server.server_address[:2])
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.server_close()

    def __call__(self, environ, start_response):
        """WSGI entrypoint."""
        request = Request.from_wsgi(environ)
        response = self._wsgi_get_response(request)
        response._wsgi_finalize(request)
        start_response(*response._wsgi_start_response_args())
        return response._wsgi_response()

    def _wsgi_get_response(self, request: Request) -> Response:
        """Call handler with 100% error handling."""
        try:
            with HttpError.wrap_exceptions():
                return self.handle_request(request)
        except HttpError as ex:
            return self.fallback_error_handler(request, ex)
