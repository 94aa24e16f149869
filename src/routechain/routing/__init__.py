"""
Path compilation and route storage.

The dispatcher lives in ``routechain.routing.dispatcher`` and is imported
from there directly; it depends on the middleware runner, which in turn
depends on the route definitions exported here.
"""

from .path_parser import (
    DEFAULT_PARAM_FORMAT,
    PARAM_FORMATS,
    PathMatcher,
    compile_path,
    create_pattern,
    normalize_path,
)
from .route import Route, build_chain, handler_name, validate_handler
from .table import RouteTable

__all__ = [
    "DEFAULT_PARAM_FORMAT",
    "PARAM_FORMATS",
    "PathMatcher",
    "compile_path",
    "create_pattern",
    "normalize_path",
    "Route",
    "RouteTable",
    "build_chain",
    "handler_name",
    "validate_handler",
]
