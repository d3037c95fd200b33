from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from specgate.contract.errors import TransientGenerationError
from specgate.framework.runtime import CancelSignal, raise_if_cancelled

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (TransientGenerationError, TimeoutError, ConnectionError)


def call_with_retries(
    operation: Callable[[], T],
    *,
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    cancel: CancelSignal | None = None,
    logger: logging.Logger | None = None,
) -> T:
    """
    Call `operation` until it succeeds or the attempt budget is spent.

    Only transient failures are retried, with exponential backoff between
    attempts. Anything else propagates unchanged on the first occurrence.
    Exhaustion raises TransientGenerationError(GENERATION_RETRIES_EXHAUSTED)
    chained to the last failure.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    log = logger or logging.getLogger(__name__)
    delay = float(initial_delay)
    last_error: BaseException | None = None

    for attempt in range(1, max_attempts + 1):
        raise_if_cancelled(cancel, stage="spec-generation", operation="Specification generation")
        try:
            return operation()
        except TRANSIENT_ERRORS as exc:
            last_error = exc
            if attempt >= max_attempts:
                break
            log.warning(
                "Transient generation failure (attempt %d/%d): %s; retrying in %.2fs",
                attempt,
                max_attempts,
                exc,
                delay,
            )
            sleep(delay)
            delay *= backoff_factor

    raise TransientGenerationError(
        f"Generation failed after {max_attempts} attempt(s): {last_error}",
        code="GENERATION_RETRIES_EXHAUSTED",
        user_message="The specification generator is unavailable right now.",
        suggestion="Try again later",
        details={"attempts": max_attempts, "lastError": str(last_error)},
    ) from last_error
