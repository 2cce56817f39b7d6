"""
One-shot loopback HTTP listener for Bear's x-success / x-error callbacks.

Each callback-bearing tool call gets its own CallbackReceiver: a socket bound
to an OS-assigned port, a uvicorn server answering on it, and a future that
the first callback settles. The listener is torn down on every way out.
"""

import asyncio
import contextlib
import logging
import socket
from copy import deepcopy
from typing import Any, Awaitable, Optional, TypeVar

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, Response
from starlette.routing import Route
from uvicorn import Config, Server
from uvicorn.config import LOGGING_CONFIG

from .errors import BearCallbackError, CallbackDecodeError, CallbackError, CallbackTimeoutError
from .urls import decode_query

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

CALLBACK_PATH = "/callback"
ERROR_PATH = "/error"

# Bear opens the callback URL in the default browser; this page tries to
# close that window again.
CLOSE_WINDOW_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta http-equiv="refresh" content="0; url=about:blank">
  <title>Bear MCP Callback</title>
  <style>body { display: none; }</style>
</head>
<body>
  <script>
    try {
      window.close();
      window.open('', '_self', '');
      window.close();
      setTimeout(() => window.close(), 1);
      setTimeout(() => history.back(), 10);
    } catch (e) {}
  </script>
</body>
</html>
"""

NO_CACHE_HEADERS = {
    "X-Frame-Options": "DENY",
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class _CallbackServer(Server):
    @contextlib.contextmanager
    def capture_signals(self):
        # SIGINT/SIGTERM stay with the host process
        yield


def _log_config() -> dict[str, Any]:
    # stdout carries the MCP stdio stream
    config = deepcopy(LOGGING_CONFIG)
    config["handlers"]["access"]["stream"] = "ext://sys.stderr"
    return config


class CallbackReceiver:
    """Capture exactly one callback from Bear, bounded by a timeout.

    Usage::

        async with CallbackReceiver(timeout=10) as receiver:
            params["x-success"] = receiver.url
            await receiver.run(open_bear(url))  # bounded by the same timeout
            result = await receiver.wait()
    """

    def __init__(self, timeout: float = 10.0, bind_host: str = "127.0.0.1", callback_host: str = "127.0.0.1"):
        self.timeout = timeout
        self.bind_host = bind_host
        self.callback_host = callback_host
        self.port: Optional[int] = None
        self._result: Optional[asyncio.Future] = None
        self._sock: Optional[socket.socket] = None
        self._server: Optional[_CallbackServer] = None
        self._task: Optional[asyncio.Task] = None
        self._deadline: Optional[float] = None
        self._started = False
        self._closed = False

    @property
    def url(self) -> str:
        return f"http://{self.callback_host}:{self.port}{CALLBACK_PATH}"

    @property
    def error_url(self) -> str:
        return f"http://{self.callback_host}:{self.port}{ERROR_PATH}"

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "CallbackReceiver":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _build_app(self) -> Starlette:
        return Starlette(routes=[
            Route(CALLBACK_PATH, self._on_success, methods=["GET"]),
            Route(ERROR_PATH, self._on_error, methods=["GET"]),
        ])

    async def start(self) -> None:
        """Bind the listener and wait until it accepts connections"""
        if self._started:
            raise CallbackError("Callback receiver cannot be reused")
        self._started = True
        loop = asyncio.get_running_loop()
        self._result = loop.create_future()
        # the timeout runs from the moment the port is taken
        self._deadline = loop.time() + self.timeout

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((self.bind_host, 0))
        except OSError as e:
            sock.close()
            self._closed = True
            raise CallbackError(f"Failed to start callback server on {self.bind_host}: {e}") from e
        self._sock = sock
        self.port = sock.getsockname()[1]

        config = Config(
            app=self._build_app(),
            lifespan="off",
            ws="none",
            log_level="warning",
            log_config=_log_config(),
            timeout_graceful_shutdown=1,
        )
        self._server = _CallbackServer(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))

        while not self._server.started:
            if self._task.done():
                await self.close()
                raise CallbackError("Failed to start callback server")
            await asyncio.sleep(0.01)
        LOGGER.debug("Callback receiver listening on port %d", self.port)

    def _remaining(self) -> float:
        if self._deadline is None:
            raise CallbackError("Callback receiver was never started")
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def _timed_out(self) -> CallbackTimeoutError:
        LOGGER.warning("No callback on port %s within %gs", self.port, self.timeout)
        return CallbackTimeoutError(self.timeout)

    async def run(self, aw: Awaitable[T]) -> T:
        """Await a step of the call (opening the URL) under the receiver's deadline"""
        try:
            return await asyncio.wait_for(aw, self._remaining())
        except asyncio.TimeoutError:
            await self.close()
            raise self._timed_out() from None

    async def wait(self) -> dict[str, Any]:
        """Wait for the callback, then shut the listener down"""
        if self._result is None:
            raise CallbackError("Callback receiver was never started")
        try:
            return await asyncio.wait_for(self._result, self._remaining())
        except asyncio.TimeoutError:
            raise self._timed_out() from None
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop the server and release the port. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._result is not None and not self._result.done():
            self._result.cancel()
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            await asyncio.wait([self._task])
            if not self._task.cancelled() and self._task.exception() is not None:
                LOGGER.warning("Callback server on port %s stopped with: %r", self.port, self._task.exception())
        if self._sock is not None:
            self._sock.close()
        LOGGER.debug("Callback receiver on port %s closed", self.port)

    def _settle(self, result: Optional[dict[str, Any]] = None, error: Optional[BaseException] = None) -> None:
        if self._result is None or self._result.done():
            LOGGER.debug("Ignoring extra callback on port %s", self.port)
            return
        if error is not None:
            self._result.set_exception(error)
        else:
            self._result.set_result(result)

    async def _on_success(self, request: Request) -> Response:
        query = request.scope.get("query_string", b"").decode("latin-1")
        try:
            data = decode_query(query)
        except CallbackDecodeError as e:
            LOGGER.warning("Undecodable callback on port %s: %s", self.port, e)
            self._settle(error=e)
            return PlainTextResponse("Error parsing callback data", status_code=500)
        self._settle(result=data)
        return HTMLResponse(CLOSE_WINDOW_HTML, headers=NO_CACHE_HEADERS)

    async def _on_error(self, request: Request) -> Response:
        params = request.query_params
        self._settle(error=BearCallbackError(
            error_code=params.get("errorCode") or "",
            error_message=params.get("errorMessage") or "",
        ))
        return HTMLResponse(CLOSE_WINDOW_HTML, headers=NO_CACHE_HEADERS)
