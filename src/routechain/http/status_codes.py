"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the router and the in-process host actually emit, as an
IntEnum with reason phrases.

    ┌───────┬──────────────────────────┬────────────────────────────────┐
    │ Code  │ Phrase                   │ Emitted by                     │
    ├───────┼──────────────────────────┼────────────────────────────────┤
    │ 200   │ OK                       │ Response.send() default        │
    │ 404   │ Not Found                │ dispatcher, end of table       │
    │ 405   │ Method Not Allowed       │ dispatcher, verb mismatch      │
    │ 500   │ Internal Server Error    │ host, unhandled HandlerFailure │
    └───────┴──────────────────────────┴────────────────────────────────┘

Handlers may send any other code with ``response.send_status(code)``.
Unknown codes still work; they fall back to the phrase "Unknown".

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Usable wherever an int is expected:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404                 # No route matched the path
    METHOD_NOT_ALLOWED = 405        # Path matched, verb did not

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500     # A handler failed

    @property
    def phrase(self) -> str:
        """Reason phrase used in status lines and default bodies."""
        return _STATUS_PHRASES.get(self, "Unknown")


def status_phrase(code: int) -> str:
    """Reason phrase for any integer code, including ones not in the enum."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
