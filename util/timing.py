# util/timing.py
import time
from contextlib import contextmanager
from typing import Iterator, Any
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "backend.uploads.list", identity=identity):
          ...
    Emits one DEBUG on exit: "<name>.done ms=<int> key=val ..."
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.debug("%s.done ms=%d%s", name, dt_ms, suffix)
