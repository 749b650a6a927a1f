import logging

from .exceptions import PreconditionFailedError

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3


def retry_on_conflict(operation, attempts=DEFAULT_ATTEMPTS):
    """
    Call operation() and retry it when a compare-and-set write loses a race.

    Only PreconditionFailedError is retried; the operation is expected to
    re-read state on every call. The last conflict is re-raised once the
    attempts are exhausted.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except PreconditionFailedError as e:
            if attempt == attempts:
                logger.error(
                    f"Giving up after {attempts} conflicting writes: {e}",
                    extra={'entity': e.entity, 'pk': str(e.pk)},
                )
                raise
            logger.info(f"Write conflict on {e.entity} {e.pk}, retrying ({attempt}/{attempts})")
