"""
Hand Bear x-callback-urls to macOS and, when asked, wait for Bear's answer.
"""

import asyncio
import logging
import subprocess
from typing import Any, Mapping, Optional

from .callback import CallbackReceiver
from .config import Settings
from .errors import DispatchError
from .urls import ParamValue, build_url

LOGGER = logging.getLogger(__name__)


def run_open(url: str, command: str = "open", timeout: Optional[float] = None) -> str:
    """Open a URL with the system opener and return its output"""
    try:
        result = subprocess.run(
            [command, url],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired as e:
        raise DispatchError(f"Failed to execute Bear URL: {command} did not finish within {timeout:g}s") from e
    except OSError as e:
        raise DispatchError(f"Failed to execute Bear URL: {e}") from e

    if result.stderr:
        raise DispatchError(f"Failed to execute Bear URL: Bear command failed: {result.stderr.strip()}")
    if result.returncode != 0:
        raise DispatchError(f"Failed to execute Bear URL: {command} exited with status {result.returncode}")
    return result.stdout.strip()


async def open_url(url: str, settings: Settings) -> str:
    # off the event loop, so a listening receiver keeps answering
    return await asyncio.to_thread(run_open, url, settings.open_command, settings.callback_timeout)


def _redacted(params: Mapping[str, ParamValue]) -> dict[str, ParamValue]:
    return {k: ("***" if k == "token" else v) for k, v in params.items()}


async def execute(action: str, params: Optional[Mapping[str, ParamValue]], settings: Settings) -> str:
    """Fire a Bear action without waiting for a result"""
    params = dict(params or {})
    LOGGER.info("Dispatching %s %s", action, _redacted(params))
    return await open_url(build_url(action, params, scheme=settings.scheme), settings)


async def execute_with_callback(
    action: str, params: Optional[Mapping[str, ParamValue]], settings: Settings
) -> dict[str, Any]:
    """Fire a Bear action and return the decoded x-success callback"""
    async with CallbackReceiver(
        timeout=settings.callback_timeout,
        bind_host=settings.bind_host,
        callback_host=settings.callback_host,
    ) as receiver:
        params = dict(params or {})
        params["x-success"] = receiver.url
        params["x-error"] = receiver.error_url
        LOGGER.info("Dispatching %s %s", action, _redacted(params))
        await receiver.run(open_url(build_url(action, params, scheme=settings.scheme), settings))
        return await receiver.wait()
