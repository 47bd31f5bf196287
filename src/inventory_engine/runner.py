"""
Background execution for the engine.

A dashboard should not block its event loop while a large dataset is
reconciled. `run_in_worker` ships the inputs to a separate process, runs the
requested computation there and hands back the finished result. Inputs and
results are pickled, so the worker never shares state with the caller.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, ProcessPoolExecutor

from .config import EngineSettings, get_settings
from .core.engine import EngineInputs, InventoryEngine, Request
from .core.errors import EngineError, WorkerError

logger = logging.getLogger(__name__)


def _execute(inputs: EngineInputs, request: Request, settings: EngineSettings):
    """Worker entry point; module-level so it can be pickled by reference."""
    return InventoryEngine(settings).compute(inputs, request)


async def run_in_worker(
    inputs: EngineInputs,
    *,
    request: Request = "all",
    settings: EngineSettings | None = None,
    executor: Executor | None = None,
):
    """
    Compute `request` off the event loop and return its result.

    Without an `executor` a single-use process pool is created and shut down
    once the job finishes. Engine errors are re-raised as-is; anything else
    (a crashed process, an unpicklable input) is wrapped in WorkerError.
    """
    settings = settings or get_settings()
    loop = asyncio.get_running_loop()
    owned = executor is None
    pool = executor or ProcessPoolExecutor(max_workers=settings.worker_max_workers)

    logger.debug("Submitting '%s' to %s", request, type(pool).__name__)
    try:
        return await loop.run_in_executor(pool, _execute, inputs, request, settings)
    except EngineError:
        raise
    except Exception as e:
        logger.error("Worker failed computing '%s': %s", request, e)
        raise WorkerError(request, f"{type(e).__name__}: {e}") from e
    finally:
        if owned:
            pool.shutdown(wait=True)
