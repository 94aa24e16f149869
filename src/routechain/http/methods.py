"""
HTTP verbs known to the router.

Every verb here gets a registration method on ``Router`` (``router.get``,
``router.purge``, ...). A router may be configured with a subset; calling
the registration method of a verb outside that subset raises
``UnsupportedMethod``.
"""

from typing import Iterable, Tuple

from ..errors import ConfigurationError


ALL = "ALL"

HTTP_METHODS: Tuple[str, ...] = (
    "COPY",
    "DELETE",
    "GET",
    "HEAD",
    "LINK",
    "OPTIONS",
    "PATCH",
    "POST",
    "PURGE",
    "PUT",
    "UNLINK",
)


def normalize_methods(methods: Iterable[str]) -> Tuple[str, ...]:
    """
    Upper-case and de-duplicate a verb list, keeping the given order.

    Raises:
        ConfigurationError: If the list is empty or names ``ALL``.
    """
    if isinstance(methods, str):
        methods = methods.split(",")

    result: list[str] = []
    for method in methods:
        verb = str(method).strip().upper()
        if not verb:
            continue
        if verb == ALL:
            raise ConfigurationError(f"{ALL!r} is a wildcard, not a method")
        if verb not in result:
            result.append(verb)

    if not result:
        raise ConfigurationError("At least one HTTP method must be supported")
    return tuple(result)
