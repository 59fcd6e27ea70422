"""tinyrest exception hierarchy.

Registration problems (bad patterns, badly named controllers) raise
``RoutingError`` subclasses straight back to the caller. Everything that
happens while serving a request is an ``HttpError``.
"""

import contextlib
from dataclasses import dataclass, field


class RoutingError(ValueError):
    """Base for errors raised while registering routes."""


class PatternError(RoutingError):
    """A route pattern could not be compiled."""


class NamingError(RoutingError):
    """A controller name can't be turned into a resource name."""


@dataclass(kw_only=True)
class HttpError(Exception):
    """Throwable HTTP Error."""
    code: int = field(kw_only=False, default=500)
    short: str | None = field(kw_only=False, default=None)
    desc: str | None = None
    headers: dict[str, str] = field(default_factory=dict)  # type:ignore

    def default_headers(self) -> dict[str, str]: return {}
    def all_headers(self): return self.default_headers() | self.headers
    def has_cause(self): return self.__cause__ is not None

    def exc_info(self):
        """Get the exception info tuple if this error was raised from an exception."""
        if self.has_cause():
            return (type(self.__cause__), self.__cause__, self.__traceback__)
        return (type(self), self, self.__traceback__)

    def causes(self):
        cause = self.__cause__
        seen = []  # circular reference prevention
        while cause:
            if cause in seen:
                break
            yield cause
            seen.append(cause)
            cause = cause.__cause__

    @classmethod
    @contextlib.contextmanager
    def wrap_exceptions(cls, *args, **kwargs):
        try:
            yield
        except HttpError:
            raise
        except Exception as ex:
            raise cls(*args, **kwargs) from ex


@dataclass(kw_only=True)
class NotFound(HttpError):  # noqa: N818
    """No route accepted the request."""
    code: int = field(kw_only=False, default=404)
    short: str | None = field(kw_only=False, default="Not Found")
