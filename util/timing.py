# util/timing.py
import asyncio
import time
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Callable, Dict, Iterator
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Dict[str, Any]) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "audio.split", segments=4):
          ...
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.info("%s.done ms=%d%s", name, dt_ms, suffix)


@asynccontextmanager
async def heartbeat(interval: float, beat: Callable[[], None]) -> AsyncIterator[None]:
    """
    Call `beat()` every `interval` seconds while the block runs.
    The timer is cancelled on exit, whatever the outcome of the block.
    """

    async def _loop() -> None:
        while True:
            await asyncio.sleep(interval)
            beat()

    task = asyncio.create_task(_loop())
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
