"""
Install a Router on a host server.

    server = Server(ServerConfig(supported_methods=("GET",)))
    router = install_router(server)

    server.get("/", index)          # registers on the router
    server.post("/", create)        # UnsupportedMethod: host only speaks GET

The host needs ``supported_methods()`` and ``use(handler)``; any object
providing both works, not just ``routechain.Server``.
"""

from functools import partial
from typing import Any, Mapping, Optional, Union
import logging

from .config import RouterConfig
from .http.methods import ALL, HTTP_METHODS
from .router import Router


logger = logging.getLogger(__name__)


def install_router(
    server: Any,
    config: Union[RouterConfig, Mapping[str, Any], None] = None,
) -> Router:
    """
    Create a router restricted to the host's verbs and mount it.

    Adds ``all`` plus one registration method per known verb (``get``,
    ``purge``, ...) to the host instance. Methods for verbs the host does
    not support still exist but raise ``UnsupportedMethod`` when called.

    Returns:
        The mounted Router.
    """
    router = Router(config, methods=server.supported_methods())

    setattr(server, ALL.lower(), router.all)
    for verb in HTTP_METHODS:
        setattr(server, verb.lower(), partial(router.route, verb))

    server.use(router)
    logger.debug(f"Installed {router!r} on {server!r} for {', '.join(router.methods)}")
    return router
