"""tinyrest: a tiny WSGI router with RESTful resources."""

from .config import RouterConfig
from .core import (App, FuncHandler, Handler, HandlerFn, JsonResponse,
                   Request, Response, RouteMatch, StringResponse)
from .errors import HttpError, NamingError, NotFound, PatternError, RoutingError
from .resource import Action, BeforeFilter, Controller, resource_name
from .routing import Route, RouteTable, compile_pattern, extract_params

__all__ = [
    "Action", "App", "BeforeFilter", "Controller", "FuncHandler", "Handler",
    "HandlerFn", "HttpError", "JsonResponse", "NamingError", "NotFound",
    "PatternError", "Request", "Response", "Route", "RouteMatch",
    "RouteTable", "RouterConfig", "RoutingError", "StringResponse",
    "compile_pattern", "extract_params", "resource_name",
]
