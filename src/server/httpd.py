"""HTTP/JSON transport for the mesh adapter.

Endpoints:
- GET  /health               liveness
- GET  /name                 mesh name
- GET  /operations           supported operations
- POST /instance             create a cluster session
- POST /operations/apply     apply an operation
- GET  /events?timeout=N     long-poll for one workflow event (204 if none)
"""

import base64
import binascii
import json
import logging
import signal
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from adapter import MeshAdapter
from cluster_client.client import ResourceError
from cluster_client.session import SessionError
from config import DEFAULT_BIND, DEFAULT_PORT
from event_stream import StreamError
from manifest import ManifestError
from operations import ApplyRequest, ClientNotCreatedError, OperationError
from sources import SourceError

logger = logging.getLogger(__name__)

# Upper bound for a single /events long-poll
MAX_EVENT_WAIT = 60.0


class ServerHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the adapter."""

    # Class-level state (shared across requests)
    adapter: Optional[MeshAdapter] = None

    def log_message(self, format: str, *args):
        """Override to use Python logging."""
        logger.info("%s - %s", self.address_string(), format % args)

    def send_json(self, data: dict, status: int = 200):
        """Send JSON response."""
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def send_error_json(self, code: str, message: str, status: int):
        self.send_json({"error": {"code": code, "message": message}}, status)

    def read_json(self) -> Optional[dict]:
        """Read a JSON object body; sends a 400 and returns None if invalid."""
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length else b"{}"
        try:
            data = json.loads(raw)
        except ValueError as e:
            self.send_error_json("E400", f"Invalid JSON body: {e}", 400)
            return None
        if not isinstance(data, dict):
            self.send_error_json("E400", "JSON body must be an object", 400)
            return None
        return data

    def do_GET(self):
        """Handle GET requests."""
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")

        if path == "/health":
            self.send_json({"status": "ok"})
            return

        if self.adapter is None:
            self.send_error_json("E500", "Adapter not initialized", 500)
            return

        if path == "/name":
            self.send_json({"name": self.adapter.mesh_name()})
            return

        if path == "/operations":
            self.send_json({"ops": self.adapter.supported_operations()})
            return

        if path == "/events":
            self._handle_events(parse_qs(parsed.query))
            return

        self.send_error_json("E404", f"Unknown endpoint: {path}", 404)

    def do_POST(self):
        """Handle POST requests."""
        path = urlparse(self.path).path.rstrip("/")

        if self.adapter is None:
            self.send_error_json("E500", "Adapter not initialized", 500)
            return

        if path == "/instance":
            self._handle_instance()
            return

        if path == "/operations/apply":
            self._handle_apply()
            return

        self.send_error_json("E404", f"Unknown endpoint: {path}", 404)

    def _handle_instance(self):
        data = self.read_json()
        if data is None:
            return
        try:
            kubeconfig = base64.b64decode(data.get("kubeconfig") or "", validate=True)
        except (binascii.Error, ValueError) as e:
            self.send_error_json("E400", f"kubeconfig must be base64: {e}", 400)
            return

        try:
            self.adapter.create_mesh_instance(kubeconfig, str(data.get("context") or ""))
        except SessionError as e:
            self.send_error_json("E503", str(e), 503)
            return
        self.send_json({})

    def _handle_apply(self):
        data = self.read_json()
        if data is None:
            return
        try:
            task = self.adapter.apply_operation(ApplyRequest.from_dict(data))
        except ClientNotCreatedError as e:
            self.send_error_json(e.code, e.message, 409)
            return
        except OperationError as e:
            self.send_error_json(e.code, e.message, 400)
            return
        except (ResourceError, ManifestError, SourceError) as e:
            self.send_error_json("E502", str(e), 502)
            return

        response = {}
        if task is not None:
            response["task"] = task.name
        self.send_json(response)

    def _handle_events(self, query: dict):
        try:
            timeout = max(0.0, min(float(query.get("timeout", ["0"])[0]), MAX_EVENT_WAIT))
        except ValueError:
            self.send_error_json("E400", "timeout must be a number", 400)
            return

        try:
            events = self.adapter.events
        except ClientNotCreatedError as e:
            self.send_error_json(e.code, e.message, 409)
            return

        def send(event):
            self.send_json(event.to_dict())

        try:
            delivered = events.deliver(send, timeout=timeout)
        except StreamError:
            # Event requeued; the connection is unusable
            return
        if not delivered:
            self.send_response(204)
            self.end_headers()


class Server:
    """HTTP server exposing one MeshAdapter."""

    def __init__(
        self,
        adapter: MeshAdapter,
        bind: str = DEFAULT_BIND,
        port: int = DEFAULT_PORT,
    ):
        """Initialize server.

        Args:
            adapter: Adapter serving the requests
            bind: Address to bind to
            port: Port to listen on (0 picks a free port)
        """
        self.adapter = adapter
        self.bind = bind
        self.port = port
        self.server: Optional[ThreadingHTTPServer] = None

    def start(self, handle_signals: bool = True):
        """Bind the listening socket."""
        ServerHandler.adapter = self.adapter
        self.server = ThreadingHTTPServer((self.bind, self.port), ServerHandler)
        self.server.daemon_threads = True
        self.port = self.server.server_address[1]

        logger.info("Server starting on http://%s:%d", self.bind, self.port)
        logger.info("Supported operations: %s", ", ".join(self.adapter.supported_operations()))

        if handle_signals:
            self._setup_signal_handlers()

    def serve_forever(self):
        """Start serving requests."""
        if not self.server:
            raise RuntimeError("Server not started")

        try:
            self.server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutdown requested")
        finally:
            self.shutdown()

    def shutdown(self):
        """Stop serving and close the socket."""
        server, self.server = self.server, None
        if server:
            logger.info("Shutting down server")
            server.shutdown()
            server.server_close()

    def _setup_signal_handlers(self):
        """Setup signal handler for graceful shutdown."""

        def handle_sigterm(signum, frame):
            logger.info("Received SIGTERM")
            if self.server:
                self.server.server_close()
            sys.exit(0)

        signal.signal(signal.SIGTERM, handle_sigterm)


def create_server(
    adapter: MeshAdapter,
    bind: str = DEFAULT_BIND,
    port: int = DEFAULT_PORT,
) -> Server:
    """Create a server instance (not yet started)."""
    return Server(adapter=adapter, bind=bind, port=port)
