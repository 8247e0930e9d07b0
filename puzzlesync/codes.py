"""Delivery error codes — single source of truth for retry classification.

Codes at or above SERVER_ERROR_MIN are HTTP-style server faults. The negative
sentinels never come from the report service itself: delivery channels emit
them for conditions detected on the client side.

A failed delivery keeps the pending batch when ANY error in the response is
retryable. Otherwise the batch was rejected by the service and is dropped.

Tier 1 leaf — imports only from puzzlesync.schemas.
"""

from collections.abc import Iterable

from puzzlesync.schemas import DeliveryError

NO_INTERNET: int = -1
INVALID_TOKEN: int = -2
NOT_INITIALIZED: int = -3

SERVER_ERROR_MIN: int = 500

RETRYABLE_SENTINELS: frozenset[int] = frozenset({NO_INTERNET, INVALID_TOKEN, NOT_INITIALIZED})


def is_retryable(code: int) -> bool:
    """Checks whether a single error code belongs to the retryable class."""
    return code >= SERVER_ERROR_MIN or code in RETRYABLE_SENTINELS


def should_keep_queue(errors: Iterable[DeliveryError]) -> bool:
    """Returns True if the pending batch must survive this failure."""
    return any(is_retryable(error.code) for error in errors)
