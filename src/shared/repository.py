"""Loading and version-checked saving of aggregates.

Aggregates live in the repositories of the active domain. Every save compares
the version the caller read with the stored one; a writer holding a stale
copy loses with ``ConcurrentModification`` and must re-read before trying
again. Callers run inside a domain context, as request handlers do.
"""

import threading
from datetime import UTC, datetime

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from shared.errors import ConcurrentModification

logger = structlog.get_logger(__name__)

# A version check and the write it guards must not interleave with another save
_save_lock = threading.RLock()


def utcnow() -> datetime:
    return datetime.now(UTC)


def load(aggregate_cls, identifier, not_found):
    """Return a fresh copy of an aggregate, or raise ``not_found(identifier)``."""
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError:
        raise not_found(str(identifier)) from None


def save(aggregate) -> None:
    """Persist ``aggregate`` unless someone saved it since it was read."""
    name = type(aggregate).__name__
    repository = current_domain.repository_for(type(aggregate))

    with _save_lock:
        try:
            stored_version = repository.get(aggregate.id)._version
        except ObjectNotFoundError:
            stored_version = None

        if stored_version is not None and stored_version != aggregate._version:
            raise ConcurrentModification(name, aggregate.id, aggregate._version, stored_version)

        try:
            with UnitOfWork():
                repository.add(aggregate)
        except ExpectedVersionError as exc:
            raise ConcurrentModification(name, aggregate.id, aggregate._version, stored_version) from exc

    logger.debug("Aggregate saved", aggregate=name, identifier=aggregate.id)
