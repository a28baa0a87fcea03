"""Local callback listener that receives the API key after a browser login.

The dashboard finishes its sign-in page by redirecting the browser to
``http://127.0.0.1:<port>/?apiKey=...``. :class:`CallbackListener` accepts
those connections on a threading TCP server, pulls the key out of the raw
request, and hands it to the waiting
:class:`~trieve_cli.auth.flow.AuthFlowCoordinator` through a queue.

Two capture strategies are supported, matching the redirect shapes the
service has used:

* ``query_param`` -- the ``apiKey`` query parameter on the request line.
* ``header`` -- a request header, ``Cookie`` by default.

Every connection gets the same static success page whether or not a key was
found. A connection without a key is logged and dropped; it never stops the
listener.

See Also:
    :mod:`trieve_cli.auth.flow` for the code that starts and cancels the
    listener.
"""

from __future__ import annotations

import enum
import logging
import queue
import socketserver
import threading
from http.cookies import CookieError, SimpleCookie
from typing import Optional

from trieve_cli.exceptions import AuthError, ExtractionFailure

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 65535

_READ_LIMIT = 4096

_SUCCESS_BODY = (
    '<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8">'
    '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
    "<title>Login Success</title>"
    "<style>body {font-family: sans-serif; text-align: center; margin-top: 50px;} "
    "h1, p {margin: 20px 0;}</style></head>"
    "<body><h1>Login Succeeded</h1>"
    "<p>Return to your terminal to continue setup.</p></body></html>"
).encode("utf-8")

SUCCESS_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html; charset=UTF-8\r\n"
    b"Content-Length: " + str(len(_SUCCESS_BODY)).encode("ascii") + b"\r\n"
    b"Connection: close\r\n"
    b"\r\n" + _SUCCESS_BODY
)


class CaptureStrategy(str, enum.Enum):
    """Where in the callback request the API key is carried."""

    QUERY_PARAM = "query_param"
    HEADER = "header"


# ------------------------------------------------------------------ #
# Extraction
# ------------------------------------------------------------------ #


def extract_query_param(request: str, name: str = "apiKey") -> Optional[str]:
    """Return the value of *name* in the request target, or ``None``.

    Only the first line of *request* is inspected. The value runs from just
    after ``name=`` to the next ``&`` or the end of the target, and is
    returned verbatim (no percent-decoding).

    Example::

        >>> extract_query_param("GET /?apiKey=ABC123&x=1 HTTP/1.1\\r\\n")
        'ABC123'
    """
    lines = request.splitlines()
    if not lines:
        return None
    parts = lines[0].split()
    if len(parts) < 2:
        return None
    target = parts[1]

    marker = f"{name}="
    start = target.find(marker)
    if start < 0:
        return None
    start += len(marker)
    end = target.find("&", start)
    value = target[start:] if end < 0 else target[start:end]
    return value or None


def _cookie_value(header_value: str, cookie_name: Optional[str]) -> Optional[str]:
    cookie: SimpleCookie = SimpleCookie()
    try:
        cookie.load(header_value)
    except CookieError:
        return None
    if cookie_name is not None:
        morsel = cookie.get(cookie_name)
        return morsel.value if morsel is not None and morsel.value else None
    for morsel in cookie.values():
        return morsel.value or None
    return None


def extract_header(
    request: str,
    header: str = "Cookie",
    cookie_name: Optional[str] = None,
) -> Optional[str]:
    """Return the trimmed value of *header*, or ``None``.

    For the ``Cookie`` header the key is the value of the cookie called
    *cookie_name*, or of the first cookie when no name is given, so
    ``Cookie: session=XYZ789`` yields ``"XYZ789"``. Header names match
    case-insensitively. Scanning stops at the blank line ending the headers.
    """
    prefix = f"{header.lower()}:"
    for line in request.splitlines()[1:]:
        if not line.strip():
            break
        if not line.lower().startswith(prefix):
            continue
        value = line[len(prefix):].strip()
        if header.lower() == "cookie":
            return _cookie_value(value, cookie_name)
        return value or None
    return None


# ------------------------------------------------------------------ #
# Server
# ------------------------------------------------------------------ #


class _CallbackRequestHandler(socketserver.BaseRequestHandler):
    """Handles one inbound connection on its own thread."""

    server: _CallbackServer

    def handle(self) -> None:
        peer = self.client_address[0]
        try:
            data = self.request.recv(_READ_LIMIT)
        except OSError as exc:
            logger.debug("Unable to read callback from %s: %s", peer, exc)
            data = b""

        request = data.decode("utf-8", errors="replace")
        try:
            token = self.server.extract(request)
        except ExtractionFailure as exc:
            logger.debug("Ignoring callback from %s: %s", peer, exc)
        else:
            logger.debug("Received API key from %s", peer)
            self.server.sink.put(token)

        try:
            self.request.sendall(SUCCESS_RESPONSE)
        except OSError as exc:
            logger.debug("Failed sending callback response to %s: %s", peer, exc)


class _CallbackServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address, sink: queue.Queue, extract) -> None:
        self.sink = sink
        self.extract = extract
        super().__init__(address, _CallbackRequestHandler)

    def handle_error(self, request, client_address) -> None:
        # A broken connection must not reach the accept loop.
        logger.warning(
            "Callback connection from %s failed", client_address[0], exc_info=True
        )


class CallbackHandle:
    """A running listener. Returned by :meth:`CallbackListener.start`."""

    def __init__(self, server: _CallbackServer, thread: threading.Thread) -> None:
        self._server = server
        self._thread = thread
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._server.server_address[:2]
        return host, port

    @property
    def callback_url(self) -> str:
        host, port = self.address
        return f"http://{host}:{port}"

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        """Stop accepting and close the listening socket. Safe to call twice.

        Connections already being handled are not waited for; their threads
        are daemons and their output no longer matters.
        """
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        logger.debug("Callback listener on %s:%d closed", *self.address)


class CallbackListener:
    """Ephemeral localhost listener that captures the API key from a redirect.

    Args:
        host: Interface to bind. Loopback by default.
        port: Port to bind. ``0`` picks a free port; the default matches the
            port the dashboard redirects to.
        strategy: Where the key is carried in the request.
        capture_name: Query parameter name (``apiKey``) or header name
            (``Cookie``) depending on *strategy*.
        cookie_name: With the ``Cookie`` header, the cookie holding the key.

    Example::

        sink: queue.Queue[str] = queue.Queue()
        handle = CallbackListener(port=0).start(sink)
        token = sink.get(timeout=300)
        handle.cancel()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        strategy: CaptureStrategy = CaptureStrategy.QUERY_PARAM,
        capture_name: Optional[str] = None,
        cookie_name: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.strategy = CaptureStrategy(strategy)
        if capture_name is None:
            capture_name = "apiKey" if self.strategy == CaptureStrategy.QUERY_PARAM else "Cookie"
        self.capture_name = capture_name
        self.cookie_name = cookie_name

    def extract(self, request: str) -> str:
        """Pull the API key out of a raw request.

        Raises:
            ExtractionFailure: If the key is not present.
        """
        if self.strategy == CaptureStrategy.QUERY_PARAM:
            token = extract_query_param(request, self.capture_name)
        else:
            token = extract_header(request, self.capture_name, self.cookie_name)
        if token is None:
            raise ExtractionFailure(f"{self.capture_name} not found in callback request")
        return token

    def start(self, sink: queue.Queue) -> CallbackHandle:
        """Bind the listener and start accepting on a background thread.

        Args:
            sink: Queue each extracted key is put on.

        Raises:
            AuthError: If the address cannot be bound.
        """
        try:
            server = _CallbackServer((self.host, self.port), sink, self.extract)
        except OSError as exc:
            raise AuthError(
                f"Cannot listen for the login callback on {self.host}:{self.port}: {exc}"
            ) from exc

        thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="trieve-login-callback",
            daemon=True,
        )
        thread.start()
        handle = CallbackHandle(server, thread)
        logger.debug("Callback listener started on %s", handle.callback_url)
        return handle
