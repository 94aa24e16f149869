"""
=============================================================================
ROUTER AND SERVER CONFIGURATION
=============================================================================

Centralized configuration for routers and for the in-process host.

=============================================================================
WHY DATACLASSES?
=============================================================================

Configuration should be:
1. Centralized - One place to see all options
2. Typed - IDE autocomplete and error detection
3. Validated - Catch errors early (at Router() / Server(), not mid-request)
4. Configurable - From code, a plain dict, or environment variables

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Keyword arguments                                              │
    │      └── Router(case_insensitive=False)                             │
    │                                                                      │
    │   2. A dict (camelCase or snake_case keys)                          │
    │      └── Router({"paramFormat": "handlebar", "passThrough": True}) │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── ROUTER_PARAM_FORMAT=handlebar                              │
    │                                                                      │
    │   4. Default values (in the dataclasses below)                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .http.methods import HTTP_METHODS, normalize_methods
from .routing.path_parser import DEFAULT_PARAM_FORMAT, PARAM_FORMATS


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class RouterConfig:
    """
    Configuration for one Router.

    =========================================================================
    OPTIONS
    =========================================================================

    case_insensitive:  "/ABC" matches template "/abc" (default True)

    param_format:      Token syntax for templates
                       "colon"            /users/:id
                       "handlebar"        /users/{id}
                       "doubleHandlebar"  /users/{{id}}

    pass_through:      When nothing handles the request, do NOT write a
                       404/405; call the host's continuation and let it
                       decide (default False)

    =========================================================================
    """

    case_insensitive: bool = True
    param_format: str = DEFAULT_PARAM_FORMAT
    pass_through: bool = False

    # Original camelCase spellings → field names
    _ALIASES = {
        "caseInsensitive": "case_insensitive",
        "paramFormat": "param_format",
        "passThrough": "pass_through",
    }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RouterConfig":
        """
        Build a config from a plain mapping.

        Accepts both ``{"passThrough": True}`` and ``{"pass_through": True}``.
        Unknown keys are rejected so typos fail loudly.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Router configuration must be a mapping, got {type(data).__name__}"
            )

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown router option: {key!r}")
            values[name] = value

        config = cls(**values)
        config.validate()
        return config

    @classmethod
    def from_env(cls) -> "RouterConfig":
        """
        Create configuration from environment variables.

        ROUTER_CASE_INSENSITIVE   true/false (default: true)
        ROUTER_PARAM_FORMAT       colon | handlebar | doubleHandlebar
        ROUTER_PASS_THROUGH       true/false (default: false)
        """
        config = cls(
            case_insensitive=_env_bool("ROUTER_CASE_INSENSITIVE", True),
            param_format=os.getenv("ROUTER_PARAM_FORMAT", DEFAULT_PARAM_FORMAT),
            pass_through=_env_bool("ROUTER_PASS_THROUGH", False),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Fail fast on bad values."""
        for name in ("case_insensitive", "pass_through"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a boolean")

        if self.param_format not in PARAM_FORMATS:
            raise ConfigurationError(
                f"Invalid param_format: {self.param_format!r}. "
                f"Must be one of: {', '.join(PARAM_FORMATS)}"
            )


@dataclass
class ServerConfig:
    """
    Configuration for the in-process ``Server`` host.

    supported_methods:  Verbs the host accepts; routers installed on it are
                        restricted to these
    log_level:          DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_format:         "text" (human) or "json" (log aggregators)
    """

    supported_methods: Tuple[str, ...] = field(default=HTTP_METHODS)
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        ROUTECHAIN_METHODS     Comma separated verbs (default: all known)
        ROUTECHAIN_LOG_LEVEL   Logging level (default: INFO)
        ROUTECHAIN_LOG_FORMAT  text | json (default: text)
        """
        methods = os.getenv("ROUTECHAIN_METHODS")
        return cls(
            supported_methods=normalize_methods(methods) if methods else HTTP_METHODS,
            log_level=os.getenv("ROUTECHAIN_LOG_LEVEL", "INFO"),
            log_format=os.getenv("ROUTECHAIN_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by Server() so a bad config never reaches request handling.
        """
        self.supported_methods = normalize_methods(self.supported_methods)

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Invalid log_level: {self.log_level!r}")

        if self.log_format not in ("text", "json"):
            raise ConfigurationError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
