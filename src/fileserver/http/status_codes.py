"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server only ever answers with one of three status lines:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK           - the requested file follows                 │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Bad Request  - unparseable request, or a method other     │
    │        │                than GET / HEAD                            │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  404   │ Not Found    - path outside the servable names, or the    │
    │        │                file is missing / unreadable               │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.0 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
}
