"""RESTful resources: one controller, seven routes.

A controller named ``PhotoController`` is served under ``/photo``:

    GET     /photo              index
    GET     /photo/new          new
    POST    /photo              create
    GET     /photo/:id          show
    GET     /photo/:id/edit     edit
    PUT     /photo/:id          update
    DELETE  /photo/:id          destroy

Parent controllers nest the paths, so registering it under
``"AlbumsController"`` gives ``/albums/:album_id/photo/...``.
"""

import enum
import logging
import re
import typing as t
from dataclasses import dataclass

import inflection

from .errors import NamingError, NotFound
from .routing import Route

if t.TYPE_CHECKING:
    from .core import Request, Response

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = "Controller"
RESERVED_NAMES = frozenset({"new", "edit"})
_NAME_VALIDATOR = re.compile(r"[A-Za-z]+")


class Action(enum.Enum):
    INDEX = "index"
    NEW = "new"
    CREATE = "create"
    SHOW = "show"
    EDIT = "edit"
    UPDATE = "update"
    DESTROY = "destroy"

    def __str__(self):
        return self.name.title()


def resource_actions(id_param: str = "id") -> list[tuple[str, str, Action]]:
    """The (method, path suffix, action) triples, in registration order."""
    return [
        ("GET", "/", Action.INDEX),
        ("GET", "/new", Action.NEW),
        ("POST", "/", Action.CREATE),
        ("GET", f"/:{id_param}", Action.SHOW),
        ("GET", f"/:{id_param}/edit", Action.EDIT),
        ("PUT", f"/:{id_param}", Action.UPDATE),
        ("DELETE", f"/:{id_param}", Action.DESTROY),
    ]


def resource_name(type_name: str, suffix: str = DEFAULT_SUFFIX) -> str:
    """Turn a controller type name into its resource name.

    ``"SuperUserController"`` becomes ``"super_user"``. The name must end in
    ``suffix``, what's left must be purely alphabetic, and it can't be
    ``new`` or ``edit`` since those are already sub-paths of a resource.
    """
    if not suffix or not type_name.endswith(suffix):
        raise NamingError(f"controller name must end with {suffix!r}: {type_name!r}")
    raw = type_name[:-len(suffix)]
    name = inflection.underscore(raw)
    if name in RESERVED_NAMES or not _NAME_VALIDATOR.fullmatch(raw):
        raise NamingError(
            f"controller name must not be New{suffix}, Edit{suffix} "
            f"or include invalid characters: {type_name!r}")
    return name


def parent_segment(type_name: str, suffix: str = DEFAULT_SUFFIX,
                   id_param: str = "id") -> str:
    """``"UsersController"`` -> ``"users/:user_id/"``"""
    name = resource_name(type_name, suffix)
    return f"{name}/:{inflection.singularize(name)}_{id_param}/"


def parent_path(parents: t.Sequence[str], suffix: str = DEFAULT_SUFFIX,
                id_param: str = "id") -> str:
    # the last parent given ends up outermost
    return "/" + "".join(parent_segment(p, suffix, id_param)
                         for p in reversed(parents))


@t.runtime_checkable
class BeforeFilter(t.Protocol):
    def before_filter(self, action: Action, request: "Request",
                      response: "Response", /) -> bool: ...


class Controller:
    """Base class for resource controllers.

    Every action answers 404 until a subclass overrides it, so implement only
    the ones you need. Action methods take ``(request, response)`` just like
    plain route handlers.

    A new instance is made for every request (see ``new_instance``), which
    means whatever ``before_filter`` stores on ``self`` belongs to that request
    alone. Add a ``before_filter(action, request, response)`` method returning
    False to stop the action from running.
    """

    response_class: t.ClassVar[type["Response"] | None] = None

    @classmethod
    def type_name(cls) -> str:
        return cls.__name__

    def new_instance(self) -> t.Self:
        return type(self)()

    def index(self, request, response):
        raise NotFound()

    def new(self, request, response):
        raise NotFound()

    def create(self, request, response):
        raise NotFound()

    def show(self, request, response):
        raise NotFound()

    def edit(self, request, response):
        raise NotFound()

    def update(self, request, response):
        raise NotFound()

    def destroy(self, request, response):
        raise NotFound()


@dataclass
class ActionHandler:
    """Runs one controller action on a fresh instance per request."""
    controller: Controller
    action: Action

    def __call__(self, request: "Request", response: "Response", /) -> t.Any:
        instance = self.controller.new_instance()
        if isinstance(instance, BeforeFilter):
            if not instance.before_filter(self.action, request, response):
                logger.debug("%s.before_filter stopped %s",
                             instance.type_name(), self.action)
                return response
        return getattr(instance, self.action.value)(request, response)


def expand_resource(controller: Controller, parents: t.Sequence[str] = (), *,
                    make_handler: t.Callable[[ActionHandler], t.Any] = lambda h: h,
                    suffix: str = DEFAULT_SUFFIX,
                    id_param: str = "id",
                    prefix: str = "") -> list[Route]:
    """Build the seven routes for ``controller`` without registering them.

    Any naming or pattern error is raised before a single route exists.
    """
    if isinstance(parents, str):
        raise TypeError("parents must be a sequence of controller names, not a str")
    base = parent_path(parents, suffix, id_param)
    base += resource_name(controller.type_name(), suffix).lower()
    routes = [
        Route(method, prefix + base + path,
              make_handler(ActionHandler(controller, action)))
        for method, path, action in resource_actions(id_param)
    ]
    logger.debug("resource %s -> %s", controller.type_name(), prefix + base)
    return routes
