"""Router configuration.

RouterConfig is a frozen dataclass; build one and hand it to ``App``::

    app = App(config=RouterConfig(id_param="key", port=3000))
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation."""

    # Resources
    id_param: str = "id"
    resource_suffix: str = "Controller"

    # Default 404 body (text/plain)
    not_found_body: str = "Could not find this route!"

    # Development server
    host: str = ""
    port: int = 8080
    threaded: bool = True
