"""Bounded retry for optimistic-concurrency conflicts."""

from collections.abc import Callable
from typing import TypeVar

import structlog

from shared.errors import ConcurrentModification

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def retry_on_conflict(operation: Callable[[], T], retries: int) -> T:
    """Run ``operation``, re-running it up to ``retries`` more times on conflict.

    The operation must re-read the aggregate it changes on every call. Only
    ``ConcurrentModification`` is retried; anything else propagates at once.
    """
    attempt = 0
    while True:
        try:
            return operation()
        except ConcurrentModification as exc:
            if attempt >= retries:
                logger.warning(
                    "Giving up after concurrent modifications",
                    aggregate=exc.aggregate,
                    identifier=exc.identifier,
                    attempts=attempt + 1,
                )
                raise
            attempt += 1
            logger.info(
                "Retrying after concurrent modification",
                aggregate=exc.aggregate,
                identifier=exc.identifier,
                attempt=attempt,
            )
