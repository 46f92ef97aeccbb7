"""
Process-wide loading of the hosted PayPal SDK.

The SDK script may only be loaded once per process: a second load would
create a second hosted-flow context. ``PayPalSDKLoader.load`` is safe to call
repeatedly and concurrently; only the first call reaches the script loader.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

ScriptLoader = Callable[[str], Awaitable[None]]


class _SDKState:
    loaded_url: Optional[str] = None
    pending: Optional[asyncio.Future] = None


_state = _SDKState()


def is_sdk_loaded() -> bool:
    return _state.loaded_url is not None


def reset_sdk_state() -> None:
    """Forget that the SDK was loaded. Intended for tests."""
    _state.loaded_url = None
    _state.pending = None


def _clear_pending(future: asyncio.Future) -> None:
    if _state.pending is future:
        _state.pending = None
    if not future.cancelled() and future.exception() is not None:
        logger.error("PayPal SDK failed to load: %s", future.exception())


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def build_sdk_url(
    sdk_url: str,
    client_id: str,
    options: Optional[dict[str, Any]] = None,
) -> str:
    """Build the hosted SDK script URL.

    Args:
        sdk_url: Base script URL
        client_id: PayPal client id from the gateway configuration
        options: Extra query options (``currency``, ``intent``, ``vault``, ...)

    Returns:
        Script URL
    """
    options = dict(options or {})
    # dataAttributes belong on the script tag, not in the query
    options.pop("dataAttributes", None)
    options.pop("data_attributes", None)

    query: dict[str, str] = {
        "client-id": client_id,
        "components": "buttons",
        "intent": "authorize",
    }
    if options.get("vault") is True:
        query["vault"] = "true"
        query["intent"] = "tokenize"

    for key, value in options.items():
        if value is None:
            continue
        query[key.replace("_", "-")] = _query_value(value)

    return f"{sdk_url}?{urlencode(query)}"


class PayPalSDKLoader:
    """Init-once loader for the hosted SDK script."""

    def __init__(self, sdk_url: str, script_loader: Optional[ScriptLoader] = None):
        self.sdk_url = sdk_url
        self._script_loader = script_loader

    async def _inject(self, url: str) -> None:
        if self._script_loader is None:
            logger.info("PayPal SDK script ready: %s", url)
        else:
            await self._script_loader(url)
        _state.loaded_url = url

    async def load(self, client_id: str, options: Optional[dict[str, Any]] = None) -> str:
        """
        Load the SDK unless it is already loaded.

        Returns:
            URL of the loaded script (the first one, on repeated calls)
        """
        if _state.loaded_url is not None:
            logger.debug("PayPal SDK already loaded")
            return _state.loaded_url

        if _state.pending is not None:
            await asyncio.shield(_state.pending)
            return _state.loaded_url

        url = build_sdk_url(self.sdk_url, client_id, options)
        pending = asyncio.ensure_future(self._inject(url))
        _state.pending = pending
        # cleared by the injection itself, not by a caller that may be cancelled
        pending.add_done_callback(_clear_pending)
        await asyncio.shield(pending)
        return url
