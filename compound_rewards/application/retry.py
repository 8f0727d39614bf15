from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, TypeVar

from compound_rewards.domain.exceptions import DomainError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class PositionEvaluationError(RuntimeError):
    """An external step kept failing after every retry."""


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_seconds: float = 30.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds * attempt


def call_with_retries(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy,
    operation: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``fn`` with up to ``policy.max_retries`` extra attempts and linear backoff.

    Domain errors are raised immediately; they are not transient.
    """
    attempts = max(0, policy.max_retries) + 1
    last_exc: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except DomainError:
            raise
        except Exception as exc:  # noqa: BLE001
            last_exc = exc
            if attempt == attempts:
                break
            delay = policy.delay_for(attempt)
            logger.warning(
                "retry: operation_failed operation=%s attempt=%s/%s delay_seconds=%s error=%s",
                operation,
                attempt,
                attempts,
                delay,
                exc,
            )
            sleep(delay)

    logger.error(
        "retry: retries_exhausted operation=%s attempts=%s error=%s",
        operation,
        attempts,
        last_exc,
    )
    raise PositionEvaluationError(
        f"{operation} failed after {attempts} attempts: {last_exc}"
    ) from last_exc
