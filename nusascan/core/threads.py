"""Run blocking provider calls off the event loop in abandonable daemon threads."""

import asyncio
import contextvars
import logging
import threading
from typing import Any, Callable, TypeVar

_log = logging.getLogger(__name__)

T = TypeVar("T")


def _resolve(future: asyncio.Future, result: Any, error: BaseException | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def run_blocking(func: Callable[..., T], *args: Any, name: str = "nusascan-call") -> T:
    """
    Await func(*args) running in a daemon thread, with the caller's context variables.

    Unlike asyncio.to_thread, nothing joins the thread: when the awaiting task is
    cancelled (deadline expiry), the thread is abandoned and neither
    asyncio.run() nor interpreter exit waits for it. Its late result is dropped.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()
    ctx = contextvars.copy_context()

    def target() -> None:
        result, error = None, None
        try:
            result = ctx.run(func, *args)
        except Exception as e:
            error = e
        try:
            loop.call_soon_threadsafe(_resolve, future, result, error)
        except RuntimeError:
            # Event loop closed: the caller already gave up on this call.
            _log.debug("Dropping result of abandoned call %s", name)

    threading.Thread(target=target, name=name, daemon=True).start()
    return await future
