"""
Deferred generation for a server process: regenerate the artifact shortly
after start-up without blocking the caller.
"""

import logging
import threading
from typing import Optional

from .config import GeneratorConfig
from .swagger import generate_swagger

logger = logging.getLogger("apidoc_synth.startup")

_timer_lock = threading.Lock()
_pending: Optional[threading.Timer] = None


def _run_generation(config: GeneratorConfig) -> None:
    global _pending
    try:
        generate_swagger(config)
    except Exception as e:
        # The server keeps serving the previous artifact
        logger.error(f"Swagger generation failed: {e}")
        logger.debug("Swagger generation traceback", exc_info=True)
    finally:
        with _timer_lock:
            _pending = None


def schedule_swagger_generation(config: GeneratorConfig, delay: Optional[float] = None) -> threading.Timer:
    """
    Arm a one-shot daemon timer that runs one guarded generation.

    While a generation is pending or running, the existing timer is returned
    and nothing new is scheduled.
    """
    global _pending
    with _timer_lock:
        if _pending is not None:
            logger.debug("Swagger generation already scheduled")
            return _pending

        seconds = config.startup_delay_seconds if delay is None else delay
        timer = threading.Timer(seconds, _run_generation, args=(config,))
        timer.daemon = True
        _pending = timer
        timer.start()

    logger.info(f"Swagger generation scheduled in {seconds}s")
    return timer


def cancel_scheduled_generation() -> bool:
    """Cancel a generation that has not started yet."""
    global _pending
    with _timer_lock:
        if _pending is None:
            return False
        _pending.cancel()
        _pending = None
    return True
