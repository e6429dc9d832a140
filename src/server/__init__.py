"""Server package for the HTTP/JSON adapter transport."""

from server.httpd import (
    MAX_EVENT_WAIT,
    Server,
    ServerHandler,
    create_server,
)

__all__ = [
    "MAX_EVENT_WAIT",
    "Server",
    "ServerHandler",
    "create_server",
]
